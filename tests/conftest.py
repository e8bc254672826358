# tests/conftest.py
import pathlib
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pytest
from dotenv import load_dotenv
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

# Loaded before any test module imports hn_digest.config
load_dotenv(pathlib.Path(__file__).parent / ".env.test", override=True)

from hn_digest.errors import DeliveryError, ExtractionError, ItemNotFoundError, SummaryError  # noqa: E402
from hn_digest.sources import FeedItem  # noqa: E402
from hn_digest.store import Store, init_db  # noqa: E402
from hn_digest.summarize import SummaryResult  # noqa: E402


@pytest.fixture()
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def store(engine):
    return Store(engine)


@pytest.fixture()
def client(store):
    from fastapi.testclient import TestClient
    from hn_digest.deps import get_store
    from hn_digest.main import app

    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---- Collaborator fakes for the digest pipeline ----

class FakeFeed:
    def __init__(self, items: Dict[int, FeedItem], order: Optional[List[int]] = None, fail_top: bool = False):
        self.items = items
        self.order = order if order is not None else list(items)
        self.fail_top = fail_top
        self.requested_limit = None
        self.detail_calls: List[int] = []

    def top_stories(self, limit):
        self.requested_limit = limit
        if self.fail_top:
            raise ConnectionError("hn down")
        return list(self.order)

    def get_item(self, item_id):
        self.detail_calls.append(item_id)
        if item_id not in self.items:
            raise ItemNotFoundError(item_id)
        return self.items[item_id]


class FakeExtractor:
    def __init__(self, texts: Optional[Dict[str, str]] = None, failing: tuple = ()):
        self.texts = texts or {}
        self.failing = set(failing)
        self.calls: List[str] = []

    def extract(self, url):
        self.calls.append(url)
        if url in self.failing:
            raise ExtractionError(f"cannot read {url}")
        return self.texts.get(url, f"body of {url}")


@dataclass
class FakeSummarizer:
    tags_by_title: Dict[str, List[str]] = field(default_factory=dict)
    failing_titles: tuple = ()
    calls: List[tuple] = field(default_factory=list)

    def summarize(self, title, content):
        self.calls.append((title, content))
        if title in self.failing_titles:
            raise SummaryError("bad json")
        return SummaryResult(summary=f"summary of {title}", tags=self.tags_by_title.get(title, ["general"]))


class FakeSender:
    def __init__(self, failing_ids: tuple = (), first_msg_id: int = 1000):
        self.failing_ids = set(failing_ids)
        self.sent: List[int] = []
        self._next = first_msg_id

    def deliver(self, article):
        if article.id in self.failing_ids:
            raise DeliveryError("telegram 502")
        self.sent.append(article.id)
        self._next += 1
        return self._next


def story(item_id: int, score: int = 10, url: Optional[str] = None, title: Optional[str] = None) -> FeedItem:
    return FeedItem(
        id=item_id,
        title=title or f"story {item_id}",
        url=f"https://example.com/{item_id}" if url is None else url,
        score=score,
        descendants=3,
    )
