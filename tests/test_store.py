# tests/test_store.py
from datetime import datetime, timedelta, timezone

import pytest
from sqlmodel import select

from hn_digest.models import Article
from hn_digest.store import get_session

NOW = datetime(2025, 1, 10, 12, 0, tzinfo=timezone.utc)


def make_article(id, sent_at=None, msg_id=None, tags=None):
    return Article(
        id=id,
        title=f"t{id}",
        url=f"https://example.com/{id}",
        summary="s",
        tags=tags or ["a"],
        engagement_score=5,
        fetched_at=NOW,
        sent_at=sent_at,
        telegram_msg_id=msg_id,
    )


def test_db_roundtrip(store, engine):
    store.save_item(make_article(1, tags=["rust", "db"]))
    with get_session(engine) as s:
        got = s.exec(select(Article).where(Article.id == 1)).first()
        assert got and got.title == "t1"
        assert got.tags == ["rust", "db"]


def test_save_item_overwrites_by_id(store):
    store.save_item(make_article(1))
    updated = make_article(1, sent_at=NOW, msg_id=55)
    updated.summary = "new"
    store.save_item(updated)
    got = store.get_item(1)
    assert got.summary == "new"
    assert got.telegram_msg_id == 55


def test_recently_delivered_ids_respects_window(store):
    store.save_item(make_article(1, sent_at=NOW - timedelta(days=1), msg_id=1))
    store.save_item(make_article(2, sent_at=NOW - timedelta(days=8), msg_id=2))
    store.save_item(make_article(3))  # never sent
    assert store.recently_delivered_ids(timedelta(days=7), now=NOW) == {1}


def test_mark_delivered_and_lookup_by_message_id(store):
    store.save_item(make_article(42, tags=["go"]))
    assert store.item_by_message_id(900) is None
    assert store.mark_delivered(42, NOW, 900) is True
    found = store.item_by_message_id(900)
    assert found.id == 42
    assert found.tags == ["go"]
    assert store.mark_delivered(404, NOW, 901) is False


def test_likes_are_unique_per_article(store):
    assert store.is_liked(7) is False
    assert store.record_like(7, NOW) is True
    assert store.record_like(7, NOW) is False
    assert store.is_liked(7) is True
    assert store.like_count() == 1


def test_boost_upsert_and_top_tags(store):
    store.boost("ai", 0.2)
    store.boost("ai", 0.2)
    store.boost("go", 1.0)
    store.boost("db", 0.1)
    tags = store.top_tags(2)
    assert [t.tag for t in tags] == ["go", "ai"]
    assert tags[1].count == 2
    assert store.all_tag_weights()["ai"] == pytest.approx(1.4)


def test_apply_decay_returns_touched_rows(store):
    store.boost("a", 0.0)
    store.boost("b", 0.0)
    assert store.apply_decay(0.5, 0.1) == 2
    assert store.all_tag_weights() == {"a": 0.5, "b": 0.5}


def test_settings(store):
    assert store.get_setting("chat_id") is None
    assert store.get_setting("chat_id", "0") == "0"
    store.set_setting("chat_id", "123")
    store.set_setting("chat_id", "456")
    assert store.get_setting("chat_id") == "456"
