# hn_digest/preferences.py
"""
Learned topic preferences: one weight per tag.

Unseen tags sit at an implicit baseline of 1.0. Every digest cycle starts by
decaying all weights toward a floor so old interests fade; every liked
article boosts the weights of its tags.
"""
from __future__ import annotations

from typing import Dict, Iterable, List

from .logging_setup import get_logger

logger = get_logger("hn_digest.preferences")

BASELINE_WEIGHT = 1.0


def decayed_weight(weight: float, rate: float, floor: float) -> float:
    return max(floor, weight * (1.0 - rate))


def check_decay_args(rate: float, floor: float) -> None:
    if not 0.0 <= rate < 1.0:
        raise ValueError(f"decay rate must be in [0, 1), got {rate}")
    if floor <= 0.0:
        raise ValueError(f"decay floor must be positive, got {floor}")


class PreferenceModel:
    """
    Tag -> weight mapping backed by the Store. The Store applies each change
    as a single statement, so this class holds no state of its own.
    """

    def __init__(self, store):
        self.store = store

    def decay(self, rate: float, floor: float) -> bool:
        """
        Best effort: store failures are logged and reported as False, never raised.
        """
        check_decay_args(rate, floor)
        try:
            touched = self.store.apply_decay(rate, floor)
        except Exception as e:
            logger.exception("DECAY_FAILED", extra={"handled": True, "rate": rate, "floor": floor, "error": type(e).__name__})
            return False
        logger.info("DECAY_APPLIED", extra={"rate": rate, "floor": floor, "tags": touched})
        return True

    def boost(self, tags: Iterable[str], amount: float) -> List[str]:
        """
        Boost every tag independently. Returns the tags whose update failed;
        a failure on one tag does not stop the others.
        """
        failed: List[str] = []
        seen = set()
        for tag in tags:
            if tag in seen:
                continue
            seen.add(tag)
            try:
                self.store.boost(tag, amount)
            except Exception as e:
                failed.append(tag)
                logger.exception("BOOST_FAILED", extra={"handled": True, "tag": tag, "error": type(e).__name__})
        logger.info("BOOST_APPLIED", extra={"tags": sorted(seen), "amount": amount, "failed": failed})
        return failed

    def weights(self) -> Dict[str, float]:
        return self.store.all_tag_weights()

    def top_tags(self, limit: int = 10):
        return self.store.top_tags(limit)
