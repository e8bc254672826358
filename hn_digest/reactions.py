# hn_digest/reactions.py
"""
Turns a 👍 on a delivered article into a one-time preference boost.

Boost runs before the Like is recorded. If the process dies in between, the
next duplicate reaction boosts again: at-least-once boosting, never a lost
like.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from .logging_setup import get_logger
from .models import utc_now
from .preferences import PreferenceModel

logger = get_logger("hn_digest.reactions")

POSITIVE_REACTION = "👍"
DEFAULT_BOOST = 0.2


class ReactionOutcome(str, Enum):
    IGNORED = "ignored"
    UNKNOWN_MESSAGE = "unknown_message"
    ALREADY_LIKED = "already_liked"
    LIKED = "liked"
    ERROR = "error"


class ReactionProcessor:
    def __init__(
        self,
        store,
        preferences: Optional[PreferenceModel] = None,
        boost_amount: float = DEFAULT_BOOST,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.preferences = preferences or PreferenceModel(store)
        self.boost_amount = boost_amount
        self.clock = clock

    def handle(self, message_id: int, reaction: str) -> ReactionOutcome:
        if reaction != POSITIVE_REACTION:
            return ReactionOutcome.IGNORED

        try:
            article = self.store.item_by_message_id(message_id)
            if article is None:
                # a command reply or some other non-digest message
                return ReactionOutcome.UNKNOWN_MESSAGE
            if self.store.is_liked(article.id):
                logger.info("LIKE_DUPLICATE", extra={"message_id": message_id, "article_id": article.id})
                return ReactionOutcome.ALREADY_LIKED
        except Exception as e:
            logger.exception("REACTION_LOOKUP_FAILED", extra={"handled": True, "message_id": message_id, "error": type(e).__name__})
            return ReactionOutcome.ERROR

        failed_tags = self.preferences.boost(article.tags or [], self.boost_amount)

        try:
            self.store.record_like(article.id, self.clock())
        except Exception as e:
            logger.exception("RECORD_LIKE_FAILED", extra={"handled": True, "article_id": article.id, "error": type(e).__name__})
            return ReactionOutcome.ERROR

        logger.info(
            "LIKE_PROCESSED",
            extra={"article_id": article.id, "tags": list(article.tags or []), "failed_tags": failed_tags},
        )
        return ReactionOutcome.LIKED
