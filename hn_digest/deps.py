# hn_digest/deps.py
"""
Builds the long-lived objects once per process and hands them to the
scheduler, the routers and the bot. Routers get them through FastAPI
dependencies so tests can swap them with app.dependency_overrides.
"""
from datetime import timedelta
from functools import lru_cache
import threading

from . import config
from .bot import CommandHandler, current_article_count, current_chat_id
from .logging_setup import get_logger
from .preferences import PreferenceModel
from .reactions import ReactionProcessor
from .scheduler import reschedule
from .sources import HackerNewsClient
from .store import Store
from .summarize import OpenAISummarizer
from .telegram import ArticleSender, TelegramClient
from .text_extraction import ArticleExtractor
from .workflow import DigestPipeline, DigestResult, STATUS_SKIPPED

logger = get_logger("hn_digest.deps")

# Set on shutdown; an in-flight digest stops at the next item boundary.
shutdown_event = threading.Event()


@lru_cache
def get_store() -> Store:
    return Store()


@lru_cache
def get_preferences() -> PreferenceModel:
    return PreferenceModel(get_store())


@lru_cache
def get_telegram() -> TelegramClient:
    return TelegramClient(config.TELEGRAM_TOKEN, timeout=config.FETCH_TIMEOUT_SECS + 5)


@lru_cache
def get_pipeline() -> DigestPipeline:
    store = get_store()
    return DigestPipeline(
        feed=HackerNewsClient(timeout=config.FETCH_TIMEOUT_SECS),
        extractor=ArticleExtractor(timeout=config.FETCH_TIMEOUT_SECS),
        summarizer=OpenAISummarizer(api_key=config.OPENAI_API_KEY, model=config.OPENAI_MODEL),
        sender=ArticleSender(get_telegram(), lambda: current_chat_id(store)),
        store=store,
        preferences=get_preferences(),
        target_count=config.ARTICLE_COUNT,
        decay_rate=config.TAG_DECAY_RATE,
        min_weight=config.MIN_TAG_WEIGHT,
        recency_window=timedelta(days=config.RECENCY_WINDOW_DAYS),
        tag_weight=config.TAG_SCORE_WEIGHT,
        engagement_weight=config.ENGAGEMENT_WEIGHT,
    )


@lru_cache
def get_reaction_processor() -> ReactionProcessor:
    return ReactionProcessor(get_store(), get_preferences(), boost_amount=config.TAG_BOOST_ON_LIKE)


def run_digest_job() -> DigestResult:
    """Entry point for both the scheduler and manual triggers."""
    store = get_store()
    pipeline = get_pipeline()
    if not current_chat_id(store):
        logger.warning("RUN_DIGEST_NO_CHAT", extra={"handled": True})
        return DigestResult(run_id="-", status=STATUS_SKIPPED)
    return pipeline.run(cancel=shutdown_event, target_count=current_article_count(store))


def trigger_digest() -> None:
    """Fire-and-forget run for /fetch; the pipeline's run lock rejects overlaps."""
    threading.Thread(target=run_digest_job, name="digest-manual", daemon=True).start()


@lru_cache
def get_command_handler() -> CommandHandler:
    return CommandHandler(get_telegram(), get_store(), trigger_digest=trigger_digest, reschedule=reschedule)
