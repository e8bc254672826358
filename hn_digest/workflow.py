# hn_digest/workflow.py
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Protocol
import threading
import time
import uuid

from .logging_setup import get_logger, run_id_var
from .models import Article, utc_now
from .preferences import PreferenceModel, check_decay_args
from .ranker import DEFAULT_ENGAGEMENT_WEIGHT, DEFAULT_TAG_WEIGHT, rank
from .sources import FeedItem, discussion_url
from .summarize import SummaryResult

logger = get_logger("hn_digest.workflow")

DEFAULT_ARTICLE_COUNT = 30
DEFAULT_RECENCY_WINDOW = timedelta(days=7)
FETCH_BUFFER = 2  # fetch 2x the target to cover filtered and failed candidates

STATUS_COMPLETED = "completed"
STATUS_ABORTED = "aborted"
STATUS_SKIPPED = "skipped"
STATUS_CANCELLED = "cancelled"


class Feed(Protocol):
    def top_stories(self, limit: int) -> List[int]: ...
    def get_item(self, item_id: int) -> FeedItem: ...


class Extractor(Protocol):
    def extract(self, url: str) -> str: ...


class Summarizer(Protocol):
    def summarize(self, title: str, content: str) -> SummaryResult: ...


class Sender(Protocol):
    def deliver(self, article: Article) -> int: ...


@dataclass
class DigestResult:
    run_id: str
    status: str = STATUS_COMPLETED
    fetched: int = 0
    filtered_out: int = 0
    enriched: int = 0
    delivered: List[int] = field(default_factory=list)
    errors: Dict[str, int] = field(default_factory=dict)


class DigestPipeline:
    """
    One digest cycle: decay -> fetch -> filter recent -> enrich -> rank ->
    select -> deliver & persist.

    Only a failing top-stories fetch aborts a cycle. Every other failure
    degrades (decay, recency filter, weights), falls back (extraction uses the
    title) or drops a single item (detail fetch, summary, delivery). A cycle
    that ends up delivering nothing is still a completed cycle.

    At most one cycle runs per pipeline instance; a second start while one is
    in flight returns immediately with status "skipped".
    """

    def __init__(
        self,
        feed: Feed,
        extractor: Extractor,
        summarizer: Summarizer,
        sender: Sender,
        store,
        preferences: Optional[PreferenceModel] = None,
        *,
        target_count: int = DEFAULT_ARTICLE_COUNT,
        decay_rate: float = 0.02,
        min_weight: float = 0.1,
        recency_window: timedelta = DEFAULT_RECENCY_WINDOW,
        tag_weight: float = DEFAULT_TAG_WEIGHT,
        engagement_weight: float = DEFAULT_ENGAGEMENT_WEIGHT,
        clock: Callable[[], datetime] = utc_now,
    ):
        check_decay_args(decay_rate, min_weight)
        if target_count < 1:
            raise ValueError("target_count must be at least 1")
        self.feed = feed
        self.extractor = extractor
        self.summarizer = summarizer
        self.sender = sender
        self.store = store
        self.preferences = preferences or PreferenceModel(store)
        self.target_count = target_count
        self.decay_rate = decay_rate
        self.min_weight = min_weight
        self.recency_window = recency_window
        self.tag_weight = tag_weight
        self.engagement_weight = engagement_weight
        self.clock = clock
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    def run(self, cancel: Optional[threading.Event] = None, target_count: Optional[int] = None) -> DigestResult:
        run_id = uuid.uuid4().hex[:8]
        if not self._lock.acquire(blocking=False):
            logger.warning("RUN_DIGEST_SKIPPED", extra={"run_id": run_id, "reason": "already_running"})
            return DigestResult(run_id=run_id, status=STATUS_SKIPPED)

        token = run_id_var.set(run_id)
        try:
            return self._run(run_id, cancel, target_count or self.target_count)
        finally:
            run_id_var.reset(token)
            self._lock.release()

    def _run(self, run_id: str, cancel: Optional[threading.Event], target: int) -> DigestResult:
        result = DigestResult(run_id=run_id)
        errors: Counter = Counter()

        def X(**fields):
            # Helper to attach correlation + common fields
            return {"run_id": run_id, **fields}

        def stop_requested(step: str) -> bool:
            if cancel is not None and cancel.is_set():
                logger.info("RUN_DIGEST_CANCELLED", extra=X(step=step, delivered=len(result.delivered)))
                result.status = STATUS_CANCELLED
                return True
            return False

        def finish() -> DigestResult:
            result.errors = dict(errors)
            return result

        logger.info("RUN_DIGEST_START", extra=X(step="start", target=target))
        t0 = time.perf_counter()

        # --- Decay ---
        if not self.preferences.decay(self.decay_rate, self.min_weight):
            errors["decay"] += 1
        if stop_requested("decay"):
            return finish()

        # --- Fetch candidates ---
        t_fetch = time.perf_counter()
        fetch_count = target * FETCH_BUFFER
        try:
            story_ids = self.feed.top_stories(fetch_count)
        except Exception as e:
            errors["fetch"] += 1
            logger.exception("FETCH_FAILED", extra=X(step="fetch", handled=True, error=type(e).__name__))
            result.status = STATUS_ABORTED
            return finish()
        result.fetched = len(story_ids)
        logger.info(
            "FETCH_OK",
            extra=X(step="fetch", count=len(story_ids), elapsed_ms=round((time.perf_counter() - t_fetch) * 1000)),
        )

        # --- Filter recently delivered ---
        try:
            recent = self.store.recently_delivered_ids(self.recency_window, now=self.clock())
        except Exception as e:
            errors["filter"] += 1
            logger.exception("RECENT_LOOKUP_FAILED", extra=X(step="filter", handled=True, error=type(e).__name__))
            recent = set()
        fresh = [sid for sid in story_ids if sid not in recent]
        result.filtered_out = len(story_ids) - len(fresh)
        # the feed may hand back more ids than asked for
        candidates = fresh[:fetch_count]
        logger.info("FILTER_DONE", extra=X(step="filter", before=len(story_ids), after=len(candidates)))
        if stop_requested("filter"):
            return finish()

        # --- Enrich ---
        t_enrich = time.perf_counter()
        enriched: List[Article] = []
        for sid in candidates:
            if stop_requested("enrich"):
                return finish()
            article = self._enrich(sid, errors, X)
            if article is not None:
                enriched.append(article)
        result.enriched = len(enriched)
        logger.info(
            "ENRICH_DONE",
            extra=X(
                step="enrich",
                count=len(enriched),
                detail_errors=errors["detail"],
                summary_errors=errors["summary"],
                extract_fallbacks=errors["extract"],
                elapsed_ms=round((time.perf_counter() - t_enrich) * 1000),
            ),
        )

        # --- Rank & select ---
        try:
            weights = self.preferences.weights()
        except Exception as e:
            errors["weights"] += 1
            logger.exception("WEIGHTS_LOOKUP_FAILED", extra=X(step="rank", handled=True, error=type(e).__name__))
            weights = {}
        selected = rank(enriched, weights, self.tag_weight, self.engagement_weight)[:target]
        logger.info(
            "RANKING_DONE",
            extra=X(step="rank", selected=len(selected), top5_scores=[round(r.final_score, 4) for r in selected[:5]]),
        )

        # --- Deliver & persist ---
        for ranked in selected:
            if stop_requested("deliver"):
                return finish()
            article = ranked.article
            try:
                msg_id = self.sender.deliver(article)
            except Exception as e:
                errors["deliver"] += 1
                logger.exception("DELIVER_FAILED", extra=X(step="deliver", handled=True, id=article.id, error=type(e).__name__))
                continue

            article.sent_at = self.clock()
            article.telegram_msg_id = msg_id
            result.delivered.append(article.id)
            try:
                self.store.save_item(article)
            except Exception as e:
                # already in the user's chat; the article just won't be filtered or likeable
                errors["persist"] += 1
                logger.exception("PERSIST_FAILED", extra=X(step="persist", handled=True, id=article.id, error=type(e).__name__))
                continue
            logger.info("ARTICLE_SENT", extra=X(step="deliver", id=article.id, msg_id=msg_id, score=round(ranked.final_score, 4)))

        logger.info(
            "RUN_DIGEST_SUCCESS",
            extra=X(
                step="end",
                handled=True,
                total_elapsed_ms=round((time.perf_counter() - t0) * 1000),
                metrics={
                    "fetched": result.fetched,
                    "filtered_out": result.filtered_out,
                    "enriched": result.enriched,
                    "delivered": len(result.delivered),
                    **errors,
                },
            ),
        )
        return finish()

    def _enrich(self, item_id: int, errors: Counter, X) -> Optional[Article]:
        try:
            item = self.feed.get_item(item_id)
        except Exception as e:
            errors["detail"] += 1
            logger.warning("ITEM_FETCH_FAILED", extra=X(step="enrich", handled=True, id=item_id, error=type(e).__name__))
            return None

        content = item.title
        if item.url:
            try:
                text = self.extractor.extract(item.url)
                if text and text.strip():
                    content = text
                else:
                    errors["extract"] += 1
                    logger.info("EXTRACT_EMPTY_USING_TITLE", extra=X(step="enrich", id=item_id, url=item.url))
            except Exception as e:
                errors["extract"] += 1
                logger.warning(
                    "EXTRACT_FAILED_USING_TITLE",
                    extra=X(step="enrich", handled=True, id=item_id, url=item.url, error=type(e).__name__),
                )

        try:
            summary = self.summarizer.summarize(item.title, content)
        except Exception as e:
            errors["summary"] += 1
            logger.warning("SUMMARY_FAILED", extra=X(step="enrich", handled=True, id=item_id, error=type(e).__name__))
            return None
        if not summary.tags:
            errors["summary"] += 1
            logger.warning("SUMMARY_UNTAGGED", extra=X(step="enrich", handled=True, id=item_id))
            return None

        return Article(
            id=item.id,
            title=item.title,
            url=item.url or discussion_url(item.id),
            summary=summary.summary,
            tags=list(summary.tags),
            engagement_score=item.score,
            comments=item.descendants,
            fetched_at=self.clock(),
        )
