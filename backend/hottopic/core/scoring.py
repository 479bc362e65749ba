"""
Multi-source weighted popularity scoring.

Every source contributes a saturating score ``min(raw * factor, 100)`` which
is weighted by the active weight configuration. The three sub-indices
(exposure, engagement, demand) are rounded weighted sums of those scores and
the overall index is a rounded weighted sum of the sub-indices. Nothing here
performs I/O.
"""
from __future__ import annotations

import math
import sys
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Tuple

from hottopic.config import (
    DEMAND_FACTORS,
    ENGAGEMENT_DIVISORS,
    EXPOSURE_FACTORS,
    GRADE_BREAKPOINTS,
)
from hottopic.schemas import Indices, SourceBundle, WeightConfiguration
from hottopic.utils import clamp_to_range

MAX_SOURCE_SCORE = 100.0

GRADE_LABELS = ("very high", "high", "medium", "low")


def _finite(value: float) -> float:
    """Non-finite input (NaN, inf) contributes nothing; ints beyond float range keep their sign."""
    try:
        value = float(value)
    except OverflowError:
        return sys.float_info.max if value > 0 else -sys.float_info.max
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def _saturate(value: float) -> float:
    """Cap a score at 100. A product of finite terms that overflowed saturates; NaN and -inf give 0."""
    if math.isnan(value) or value == -math.inf:
        return 0.0
    return min(value, MAX_SOURCE_SCORE)


def round_index(value: float) -> int:
    """Round half away from zero."""
    return int(Decimal(str(_finite(value))).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def source_score(raw: float, factor: float) -> float:
    """
    Convert a raw counter into a 0-100 source score.

    Args:
        raw: Raw counter (article count, total views, ...)
        factor: Source-specific multiplier

    Returns:
        ``min(raw * factor, 100)``; non-finite raw input scores 0.0
    """
    return _saturate(_finite(raw) * _finite(factor))


def per_item_engagement(
    likes: float,
    comments: float,
    shares: float,
    item_count: int,
    detail: Dict[str, float],
) -> float:
    """Weighted interactions per item, using the engagement detail weights."""
    weighted = (
        _finite(likes) * detail["likes"]
        + _finite(comments) * detail["comments"]
        + _finite(shares) * detail["shares"]
    )
    return weighted / max(_finite(item_count), 1)


def exposure_scores(sources: SourceBundle) -> Dict[str, float]:
    return {
        "news": source_score(sources.news.article_count, EXPOSURE_FACTORS["news"]),
        "video": source_score(sources.video.total_views, EXPOSURE_FACTORS["video"]),
        "microblog": source_score(sources.microblog.post_count, EXPOSURE_FACTORS["microblog"]),
        "photo": source_score(sources.photo.post_count, EXPOSURE_FACTORS["photo"]),
        "short_video": source_score(sources.short_video.total_views, EXPOSURE_FACTORS["short_video"]),
    }


def engagement_scores(sources: SourceBundle, detail: Dict[str, float]) -> Dict[str, float]:
    video = sources.video
    microblog = sources.microblog
    photo = sources.photo
    short_video = sources.short_video

    # Microblog replies count as comments and reshares as shares
    per_item = {
        "video": per_item_engagement(
            video.total_likes, video.total_comments, video.total_shares, video.video_count, detail
        ),
        "microblog": per_item_engagement(
            microblog.total_likes, microblog.total_replies, microblog.total_reshares, microblog.post_count, detail
        ),
        "photo": per_item_engagement(
            photo.total_likes, photo.total_comments, photo.total_shares, photo.post_count, detail
        ),
        "short_video": per_item_engagement(
            short_video.total_likes,
            short_video.total_comments,
            short_video.total_shares,
            short_video.video_count,
            detail,
        ),
    }
    return {
        name: _saturate(value / ENGAGEMENT_DIVISORS[name])
        for name, value in per_item.items()
    }


def demand_scores(sources: SourceBundle) -> Dict[str, float]:
    return {
        "trend": source_score(sources.trend.search_volume, DEMAND_FACTORS["trend"]),
        "video": source_score(sources.video.video_count, DEMAND_FACTORS["video"]),
        "microblog": source_score(sources.microblog.post_count, DEMAND_FACTORS["microblog"]),
        "photo": source_score(sources.photo.post_count, DEMAND_FACTORS["photo"]),
        "short_video": source_score(sources.short_video.video_count, DEMAND_FACTORS["short_video"]),
    }


def weighted_sum(scores: Dict[str, float], weights: Dict[str, float]) -> float:
    """Sum of ``score * weight`` over the weight group; a non-finite term counts as 0."""
    return sum(_finite(scores.get(name, 0.0) * _finite(weight)) for name, weight in weights.items())


def calculate_exposure_index(sources: SourceBundle, weights: WeightConfiguration) -> int:
    return round_index(weighted_sum(exposure_scores(sources), weights.exposure.model_dump()))


def calculate_engagement_index(sources: SourceBundle, weights: WeightConfiguration) -> int:
    scores = engagement_scores(sources, weights.engagement_detail.model_dump())
    return round_index(weighted_sum(scores, weights.engagement.model_dump()))


def calculate_demand_index(sources: SourceBundle, weights: WeightConfiguration) -> int:
    return round_index(weighted_sum(demand_scores(sources), weights.demand.model_dump()))


def calculate_overall_index(exposure: int, engagement: int, demand: int, weights: WeightConfiguration) -> int:
    sub_indices = {"exposure": exposure, "engagement": engagement, "demand": demand}
    return round_index(weighted_sum(sub_indices, weights.overall.model_dump()))


def compute_indices(sources: SourceBundle, weights: WeightConfiguration, clamp: bool = False) -> Indices:
    """
    Compute exposure, engagement, demand and overall indices.

    Args:
        sources: Metrics from all six sources (zero-valued where a collector failed)
        weights: Weight configuration to apply
        clamp: Clamp each index to [0, 100]. Unclamped sums can exceed 100
            only under pathological weight configurations.

    Returns:
        Indices with integer values
    """
    exposure = calculate_exposure_index(sources, weights)
    engagement = calculate_engagement_index(sources, weights)
    demand = calculate_demand_index(sources, weights)
    if clamp:
        exposure, engagement, demand = (_clamp_index(v) for v in (exposure, engagement, demand))

    overall = calculate_overall_index(exposure, engagement, demand, weights)
    if clamp:
        overall = _clamp_index(overall)

    return Indices(exposure=exposure, engagement=engagement, demand=demand, overall=overall)


def _clamp_index(value: int) -> int:
    return int(clamp_to_range(value, 0, int(MAX_SOURCE_SCORE)))


def grade(index_name: str, value: float) -> str:
    """
    Map an index value to its grade label.

    Args:
        index_name: One of exposure, engagement, demand, overall
        value: Index value

    Returns:
        "very high", "high", "medium" or "low"
    """
    breakpoints: Tuple[int, int, int] = GRADE_BREAKPOINTS[index_name]
    for label, threshold in zip(GRADE_LABELS, breakpoints):
        if value >= threshold:
            return label
    return GRADE_LABELS[-1]


def grade_indices(indices: Indices) -> Dict[str, str]:
    return {name: grade(name, value) for name, value in indices.model_dump().items()}
