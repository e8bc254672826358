# hn_digest/sources.py
"""
Hacker News Firebase API client.

  - top_stories(limit): ordered ids from /v0/topstories.json
  - get_item(id): one story from /v0/item/<id>.json

Both raise FeedError on transport/HTTP/decoding problems; get_item raises
ItemNotFoundError when the API answers with a JSON null (deleted or unknown id).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import requests

from .errors import FeedError, ItemNotFoundError

DEFAULT_BASE_URL = "https://hacker-news.firebaseio.com"
HN_ITEM_URL = "https://news.ycombinator.com/item?id={id}"


def discussion_url(item_id: int) -> str:
    return HN_ITEM_URL.format(id=item_id)


@dataclass
class FeedItem:
    id: int
    title: str
    url: str  # empty for Ask HN / Show HN text posts
    score: int = 0
    descendants: int = 0


class HackerNewsClient:
    name = "hackernews"

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: float = 10, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get_json(self, path: str):
        url = f"{self.base_url}{path}"
        try:
            r = self.session.get(url, timeout=self.timeout)
            r.raise_for_status()
            return r.json()
        except requests.RequestException as e:
            raise FeedError(f"GET {url} failed: {e}") from e
        except ValueError as e:
            raise FeedError(f"GET {url} returned invalid JSON") from e

    def top_stories(self, limit: int = 0) -> List[int]:
        ids = self._get_json("/v0/topstories.json")
        if not isinstance(ids, list):
            raise FeedError("topstories did not return a list")
        if limit > 0:
            ids = ids[:limit]
        return [int(i) for i in ids]

    def get_item(self, item_id: int) -> FeedItem:
        data = self._get_json(f"/v0/item/{item_id}.json")
        if not data:
            raise ItemNotFoundError(item_id)
        return FeedItem(
            id=int(data.get("id", item_id)),
            title=data.get("title", "") or "",
            url=data.get("url", "") or "",
            score=int(data.get("score", 0) or 0),
            descendants=int(data.get("descendants", 0) or 0),
        )
