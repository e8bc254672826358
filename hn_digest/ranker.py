from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Sequence
import math

from .preferences import BASELINE_WEIGHT

# Learned preference dominates raw popularity 70/30.
DEFAULT_TAG_WEIGHT = 0.7
DEFAULT_ENGAGEMENT_WEIGHT = 0.3


@dataclass
class RankedArticle:
    article: object
    tag_score: float
    engagement_component: float
    final_score: float


def tag_score(tags: Iterable[str], weights: Mapping[str, float]) -> float:
    # unknown topics start neutral, not zero
    return sum(weights.get(tag, BASELINE_WEIGHT) for tag in tags)


def engagement_component(engagement_score: int) -> float:
    # +1 keeps a zero-point story at 0 instead of -inf; log compresses outliers
    return math.log10(max(0, engagement_score) + 1)


def composite_score(
    tags: Iterable[str],
    engagement_score: int,
    weights: Mapping[str, float],
    tag_weight: float = DEFAULT_TAG_WEIGHT,
    engagement_weight: float = DEFAULT_ENGAGEMENT_WEIGHT,
) -> float:
    return tag_score(tags, weights) * tag_weight + engagement_component(engagement_score) * engagement_weight


def rank(
    articles: Sequence,
    weights: Dict[str, float],
    tag_weight: float = DEFAULT_TAG_WEIGHT,
    engagement_weight: float = DEFAULT_ENGAGEMENT_WEIGHT,
) -> List[RankedArticle]:
    """
    Score every article (anything with .tags and .engagement_score) and sort
    by final score, highest first. sorted() is stable, so ties keep the
    order the articles came in.
    """
    weights = weights or {}
    ranked = []
    for a in articles:
        ts = tag_score(a.tags, weights)
        ec = engagement_component(a.engagement_score)
        ranked.append(RankedArticle(
            article=a,
            tag_score=ts,
            engagement_component=ec,
            final_score=ts * tag_weight + ec * engagement_weight,
        ))
    return sorted(ranked, key=lambda r: r.final_score, reverse=True)
