# hn_digest/telegram.py
"""
Minimal synchronous Telegram Bot API client plus the digest's article sender.

Only the two calls the bot needs: sendMessage and setWebhook.
Reactions arrive as `message_reaction` updates, which must be requested
explicitly through allowed_updates.
"""
from __future__ import annotations

from typing import Callable, List, Optional

import httpx

from .errors import DeliveryError
from .logging_setup import get_logger
from .render_message import render_article_message

logger = get_logger("hn_digest.telegram")

API_BASE = "https://api.telegram.org"
ALLOWED_UPDATES: List[str] = ["message", "message_reaction"]


class TelegramClient:
    def __init__(self, token: str, timeout: float = 15, client: Optional[httpx.Client] = None, base_url: str = API_BASE):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self._http = client or httpx.Client(timeout=timeout)

    def _call(self, method: str, payload: dict):
        url = f"{self.base_url}/bot{self.token}/{method}"
        try:
            r = self._http.post(url, json=payload)
            data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise DeliveryError(f"telegram {method} failed: {type(e).__name__}") from e
        if not data.get("ok"):
            raise DeliveryError(f"telegram {method} {r.status_code}: {data.get('description', 'not ok')}")
        return data.get("result")

    def send_message(self, chat_id: int, text: str, html: bool = False) -> int:
        payload = {"chat_id": chat_id, "text": text, "disable_web_page_preview": True}
        if html:
            payload["parse_mode"] = "HTML"
        result = self._call("sendMessage", payload)
        try:
            return int(result["message_id"])
        except (TypeError, KeyError, ValueError) as e:
            raise DeliveryError("telegram sendMessage returned no message_id") from e

    def set_webhook(self, url: str, secret: str = "") -> None:
        payload = {"url": url, "allowed_updates": ALLOWED_UPDATES}
        if secret:
            payload["secret_token"] = secret
        self._call("setWebhook", payload)
        logger.info("WEBHOOK_SET", extra={"url": url})

    def close(self) -> None:
        self._http.close()


class ArticleSender:
    """
    Delivers one article as one message and returns Telegram's message id,
    which later maps reactions back to the article.
    """

    def __init__(self, client: TelegramClient, chat_id_provider: Callable[[], int]):
        self.client = client
        self.chat_id_provider = chat_id_provider

    def deliver(self, article) -> int:
        chat_id = self.chat_id_provider()
        if not chat_id:
            raise DeliveryError("no chat_id configured; send /start to the bot first")
        return self.client.send_message(chat_id, render_article_message(article), html=True)
