# tests/test_workflow.py
import threading
from datetime import datetime, timedelta, timezone

import pytest
from freezegun import freeze_time

from conftest import FakeExtractor, FakeFeed, FakeSender, FakeSummarizer, story
from hn_digest.models import Article
from hn_digest.workflow import (
    STATUS_ABORTED,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_SKIPPED,
    DigestPipeline,
)

NOW = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


def make_pipeline(store, feed, extractor=None, summarizer=None, sender=None, **kw):
    kw.setdefault("target_count", 2)
    kw.setdefault("decay_rate", 0.0)
    return DigestPipeline(
        feed=feed,
        extractor=extractor or FakeExtractor(),
        summarizer=summarizer or FakeSummarizer(),
        sender=sender or FakeSender(),
        store=store,
        clock=lambda: NOW,
        **kw,
    )


def test_end_to_end_preference_beats_popularity(store):
    store.save_item(Article(id=1, title="old", url="u", sent_at=NOW - timedelta(days=1), telegram_msg_id=5))
    store.boost("x", 4.0)  # x -> 5.0
    feed = FakeFeed({1: story(1), 2: story(2, score=10), 3: story(3, score=1000)}, order=[1, 2, 3])
    summarizer = FakeSummarizer(tags_by_title={"story 2": ["x"], "story 3": ["y"]})
    sender = FakeSender()

    result = make_pipeline(store, feed, summarizer=summarizer, sender=sender, target_count=1).run()

    assert result.status == STATUS_COMPLETED
    assert feed.requested_limit == 2
    assert feed.detail_calls == [2, 3]
    assert result.filtered_out == 1
    assert result.enriched == 2
    assert result.delivered == [2]
    assert sender.sent == [2]

    saved = store.get_item(2)
    assert saved.sent_at is not None
    assert saved.telegram_msg_id == 1001
    assert saved.tags == ["x"]
    assert store.get_item(3) is None


def test_fetch_failure_aborts_cycle(store):
    summarizer = FakeSummarizer()
    result = make_pipeline(store, FakeFeed({}, fail_top=True), summarizer=summarizer).run()
    assert result.status == STATUS_ABORTED
    assert result.errors == {"fetch": 1}
    assert summarizer.calls == []


def test_recent_ids_never_redelivered(store):
    for i in (1, 2):
        store.save_item(Article(id=i, title="t", url="u", sent_at=NOW - timedelta(hours=i), telegram_msg_id=i))
    feed = FakeFeed({i: story(i) for i in (1, 2, 3, 4)})
    result = make_pipeline(store, feed).run()
    assert result.delivered == [3, 4]
    assert 1 not in feed.detail_calls and 2 not in feed.detail_calls


def test_recent_lookup_failure_proceeds_unfiltered(store, mocker):
    store.save_item(Article(id=1, title="t", url="u", sent_at=NOW, telegram_msg_id=9))
    mocker.patch.object(store, "recently_delivered_ids", side_effect=RuntimeError("db locked"))
    result = make_pipeline(store, FakeFeed({1: story(1), 2: story(2)})).run()
    assert result.status == STATUS_COMPLETED
    assert sorted(result.delivered) == [1, 2]
    assert result.errors["filter"] == 1


def test_detail_fetch_failure_skips_item(store):
    feed = FakeFeed({2: story(2)}, order=[1, 2])
    result = make_pipeline(store, feed).run()
    assert result.delivered == [2]
    assert result.errors["detail"] == 1


def test_extraction_failure_falls_back_to_title(store):
    extractor = FakeExtractor(failing=("https://example.com/1",))
    summarizer = FakeSummarizer()
    result = make_pipeline(store, FakeFeed({1: story(1)}), extractor=extractor, summarizer=summarizer).run()
    assert result.delivered == [1]
    assert summarizer.calls == [("story 1", "story 1")]
    assert result.errors["extract"] == 1


def test_empty_extraction_falls_back_to_title(store):
    extractor = FakeExtractor(texts={"https://example.com/1": "   "})
    summarizer = FakeSummarizer()
    make_pipeline(store, FakeFeed({1: story(1)}), extractor=extractor, summarizer=summarizer).run()
    assert summarizer.calls == [("story 1", "story 1")]


def test_text_post_skips_extraction_and_links_discussion(store):
    extractor = FakeExtractor()
    feed = FakeFeed({8: story(8, url="", title="Ask HN: anything")})
    make_pipeline(store, feed, extractor=extractor).run()
    assert extractor.calls == []
    assert store.get_item(8).url == "https://news.ycombinator.com/item?id=8"


def test_summary_failure_drops_item(store):
    summarizer = FakeSummarizer(failing_titles=("story 1",))
    result = make_pipeline(store, FakeFeed({1: story(1), 2: story(2)}), summarizer=summarizer).run()
    assert result.enriched == 1
    assert result.delivered == [2]
    assert store.get_item(1) is None


def test_untagged_summary_drops_item(store):
    summarizer = FakeSummarizer(tags_by_title={"story 1": []})
    sender = FakeSender()
    result = make_pipeline(store, FakeFeed({1: story(1)}), summarizer=summarizer, sender=sender).run()
    assert result.enriched == 0
    assert result.errors["summary"] == 1
    assert result.delivered == []
    assert store.get_item(1) is None


def test_all_enrichment_failing_is_a_valid_empty_digest(store):
    summarizer = FakeSummarizer(failing_titles=("story 1", "story 2"))
    sender = FakeSender()
    result = make_pipeline(store, FakeFeed({1: story(1), 2: story(2)}), summarizer=summarizer, sender=sender).run()
    assert result.status == STATUS_COMPLETED
    assert result.delivered == []
    assert sender.sent == []


def test_delivery_failure_continues_with_next_item(store):
    sender = FakeSender(failing_ids=(1,))
    feed = FakeFeed({1: story(1, score=500), 2: story(2, score=5)})
    result = make_pipeline(store, feed, sender=sender).run()
    assert result.delivered == [2]
    assert result.errors["deliver"] == 1
    assert store.get_item(1) is None
    assert store.get_item(2).telegram_msg_id == 1001


def test_persist_failure_keeps_delivery(store, mocker):
    mocker.patch.object(store, "save_item", side_effect=RuntimeError("disk full"))
    sender = FakeSender()
    result = make_pipeline(store, FakeFeed({1: story(1)}), sender=sender).run()
    assert sender.sent == [1]
    assert result.delivered == [1]
    assert result.errors["persist"] == 1


def test_selects_at_most_target_count(store):
    feed = FakeFeed({i: story(i, score=i) for i in range(1, 9)})
    result = make_pipeline(store, feed, target_count=3).run()
    assert feed.requested_limit == 6
    # the feed ignored the limit; only the first 6 are enriched
    assert feed.detail_calls == [1, 2, 3, 4, 5, 6]
    assert result.filtered_out == 0
    assert result.enriched == 6
    assert result.delivered == [6, 5, 4]


def test_target_count_override(store):
    feed = FakeFeed({i: story(i) for i in range(1, 5)})
    result = make_pipeline(store, feed, target_count=3).run(target_count=1)
    assert feed.requested_limit == 2
    assert len(result.delivered) == 1


def test_decay_runs_before_fetch(store):
    store.boost("x", 1.0)  # 2.0
    feed = FakeFeed({}, fail_top=True)
    make_pipeline(store, feed, decay_rate=0.5, min_weight=0.1).run()
    assert store.all_tag_weights()["x"] == pytest.approx(1.0)


def test_decay_failure_does_not_abort(store, mocker):
    mocker.patch.object(store, "apply_decay", side_effect=RuntimeError("locked"))
    result = make_pipeline(store, FakeFeed({1: story(1)})).run()
    assert result.status == STATUS_COMPLETED
    assert result.delivered == [1]
    assert result.errors["decay"] == 1


def test_second_run_while_running_is_skipped(store):
    nested = {}

    class ReentrantSender(FakeSender):
        def deliver(self, article):
            nested["result"] = pipeline.run()
            return super().deliver(article)

    pipeline = make_pipeline(store, FakeFeed({1: story(1)}), sender=ReentrantSender(), target_count=1)
    result = pipeline.run()
    assert result.status == STATUS_COMPLETED
    assert nested["result"].status == STATUS_SKIPPED
    assert pipeline.running is False


def test_cancel_stops_enrichment_promptly(store):
    cancel = threading.Event()

    class CancellingExtractor(FakeExtractor):
        def extract(self, url):
            cancel.set()
            return super().extract(url)

    feed = FakeFeed({i: story(i) for i in range(1, 5)})
    sender = FakeSender()
    result = make_pipeline(store, feed, extractor=CancellingExtractor(), sender=sender).run(cancel=cancel)
    assert result.status == STATUS_CANCELLED
    assert feed.detail_calls == [1]
    assert sender.sent == []


def test_pipeline_rejects_bad_settings(store):
    with pytest.raises(ValueError):
        make_pipeline(store, FakeFeed({}), decay_rate=1.5)
    with pytest.raises(ValueError):
        make_pipeline(store, FakeFeed({}), target_count=0)


def test_default_clock_smoke(store):
    pipeline = DigestPipeline(
        feed=FakeFeed({1: story(1)}),
        extractor=FakeExtractor(),
        summarizer=FakeSummarizer(),
        sender=FakeSender(),
        store=store,
        target_count=1,
    )
    with freeze_time("2025-01-01"):
        result = pipeline.run()
        assert store.recently_delivered_ids(timedelta(days=7)) == {1}
    assert result.delivered == [1]
    assert store.get_item(1).sent_at.replace(tzinfo=None) == datetime(2025, 1, 1)
