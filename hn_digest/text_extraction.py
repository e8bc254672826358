# hn_digest/text_extraction.py
from __future__ import annotations
from typing import Optional
from urllib.parse import urlparse

import httpx
import trafilatura
from bs4 import BeautifulSoup

from .errors import ExtractionError
from .logging_setup import get_logger

logger = get_logger("hn_digest.text_extraction")

USER_AGENT = "Mozilla/5.0 (compatible; HNDigestBot/1.0)"
DEFAULT_MAX_CHARS = 4000


def _extract_text(html: str) -> str:
    # Best: trafilatura
    text = trafilatura.extract(html, include_comments=False, favor_recall=True) or ""
    if text.strip():
        return text

    # Fallback: BeautifulSoup
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return " ".join(s for s in soup.stripped_strings)


class ArticleExtractor:
    """Fetches a page and returns its readable main text, truncated to max_chars."""

    def __init__(self, timeout: float = 10, max_chars: int = DEFAULT_MAX_CHARS, client: Optional[httpx.Client] = None):
        self.timeout = timeout
        self.max_chars = max_chars
        self._client = client

    def _fetch(self, url: str) -> str:
        headers = {"User-Agent": USER_AGENT}
        try:
            if self._client is not None:
                r = self._client.get(url, headers=headers)
                r.raise_for_status()
                return r.text
            with httpx.Client(follow_redirects=True, timeout=self.timeout) as client:
                r = client.get(url, headers=headers)
                r.raise_for_status()
                return r.text
        except httpx.HTTPError as e:
            raise ExtractionError(f"fetch {url} failed: {type(e).__name__}") from e

    def extract(self, url: str) -> str:
        parsed = urlparse(url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ExtractionError(f"invalid URL: {url!r}")

        html = self._fetch(url)
        try:
            text = _extract_text(html).strip()
        except Exception as e:
            raise ExtractionError(f"parse {url} failed: {type(e).__name__}") from e

        if len(text) > self.max_chars:
            text = text[: self.max_chars]
        logger.debug("EXTRACT_OK", extra={"url": url, "chars": len(text)})
        return text
