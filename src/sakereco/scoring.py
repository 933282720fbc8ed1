from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .config import RecommendOptions, ScoringConfig
from .coordinates import COORDINATE_LIMIT
from .errors import InsufficientPreferenceData
from .models import (
    PROFILE_DIMENSIONS,
    FavoriteItem,
    InsufficientData,
    PreferenceVector,
    Recommendation,
    RecommendationResult,
    RecommendationStatus,
    RecommendationType,
    SakeItem,
    UserTastePreference,
)

LOGGER = logging.getLogger(__name__)

POOL_ORDER: Tuple[RecommendationType, ...] = (
    RecommendationType.SIMILAR,
    RecommendationType.EXPLORE,
    RecommendationType.TRENDING,
)

# Each coordinate axis spans [-3, 3]; each flavor axis spans [0, 1].
DIMENSION_SPANS = np.array([2 * COORDINATE_LIMIT] * 2 + [1.0] * 6)

DIMENSION_LABELS: Dict[str, str] = {
    "sweetness": "sweetness",
    "richness": "richness",
    "f1_floral": "floral aroma",
    "f2_mellow": "mellowness",
    "f3_heavy": "body",
    "f4_mild": "mildness",
    "f5_dry": "crispness",
    "f6_light": "lightness",
}

EXPLORE_REASON = "Something new to discover beyond your usual taste"
TRENDING_REASON = "Popular with other sake fans right now"

ItemRef = Union[SakeItem, FavoriteItem, str]


def _item_id(item: ItemRef) -> str:
    if isinstance(item, FavoriteItem):
        return item.sake.id
    if isinstance(item, SakeItem):
        return item.id
    return str(item)


def allocate_pool_sizes(count: int, shares: Sequence[float]) -> Dict[RecommendationType, int]:
    """Split ``count`` across the pools in proportion to ``shares``.

    Uses the largest-remainder method so the sizes always add up to
    ``count``; equal remainders go to the higher priority pool.
    """
    total = float(sum(shares))
    if total <= 0:
        return {pool: 0 for pool in POOL_ORDER}
    raw = [count * share / total for share in shares]
    sizes = [math.floor(value) for value in raw]
    remainder = count - sum(sizes)
    by_fraction = sorted(range(len(raw)), key=lambda i: (-(raw[i] - sizes[i]), i))
    for index in by_fraction[:remainder]:
        sizes[index] += 1
    return dict(zip(POOL_ORDER, sizes))


def predict_rating(similarity: float, adjustment: float = 0.0) -> float:
    return float(np.clip(1.0 + 4.0 * similarity + adjustment, 1.0, 5.0))


def similarity_reason(similarity: float, differences: np.ndarray) -> str:
    if similarity > 0.9:
        return "Very close to your taste"
    if similarity > 0.7:
        closest = PROFILE_DIMENSIONS[int(np.argmin(differences))]
        return f"Matches your preference for {DIMENSION_LABELS[closest]}"
    return "May suit your taste"


class CandidateScorer:
    """Scores catalog items against a preference and assembles recommendation pools."""

    def __init__(self, config: Optional[ScoringConfig] = None) -> None:
        self.config = config or ScoringConfig()
        self.dimension_weights = np.array(
            [self.config.coordinate_weight] * 2 + [self.config.flavor_weight] * 6
        )

    def _normalized_differences(self, profiles: np.ndarray, target: np.ndarray) -> np.ndarray:
        target = target.copy()
        target[:2] = np.clip(target[:2], -COORDINATE_LIMIT, COORDINATE_LIMIT)
        return np.abs(profiles - target) / DIMENSION_SPANS

    def distances(self, profiles: np.ndarray, target: np.ndarray) -> np.ndarray:
        """Weighted Euclidean distance with every axis scaled to [0, 1]; result is in [0, 1]."""
        diff = self._normalized_differences(profiles, target)
        weighted = (self.dimension_weights * diff**2).sum(axis=1) / self.dimension_weights.sum()
        return np.clip(np.sqrt(weighted), 0.0, 1.0)

    def similarity(self, item: SakeItem, preference: Union[UserTastePreference, PreferenceVector]) -> float:
        vector = preference.vector if isinstance(preference, UserTastePreference) else preference
        return float(1.0 - self.distances(item.profile()[None, :], vector.as_array())[0])

    def score_candidates(
        self,
        preference: Union[UserTastePreference, PreferenceVector],
        items: Sequence[SakeItem],
    ) -> pd.DataFrame:
        """Return one row per item with ``similarity`` and ``distance``, in input order."""
        if not items:
            return pd.DataFrame(columns=["sake_id", "position", "similarity", "distance"])
        vector = preference.vector if isinstance(preference, UserTastePreference) else preference
        profiles = np.vstack([item.profile() for item in items])
        distance = self.distances(profiles, vector.as_array())
        return pd.DataFrame(
            {
                "sake_id": [item.id for item in items],
                "position": range(len(items)),
                "similarity": 1.0 - distance,
                "distance": distance,
            }
        )

    def _similar_pool(self, frame: pd.DataFrame) -> pd.DataFrame:
        ranked = frame.sort_values(by=["similarity", "position"], ascending=[False, True])
        return ranked.assign(score=ranked["similarity"])

    def _explore_pool(self, frame: pd.DataFrame, adventure: float) -> pd.DataFrame:
        low = self.config.explore_min_distance + self.config.explore_adventure_span * adventure
        high = low + self.config.explore_band_width
        band = frame[(frame["distance"] >= low) & (frame["distance"] <= high)]
        ranked = band.sort_values(by=["distance", "position"], ascending=[False, True])
        return ranked.assign(score=ranked["distance"])

    def _trending_pool(self, frame: pd.DataFrame, trending: Sequence[ItemRef]) -> pd.DataFrame:
        order: Dict[str, int] = {}
        for item in trending:
            order.setdefault(_item_id(item), len(order))
        pool = frame[frame["sake_id"].isin(list(order))].copy()
        pool["trend_rank"] = pool["sake_id"].map(order)
        pool = pool.sort_values(by=["trend_rank", "position"])
        total = max(len(order), 1)
        return pool.assign(score=1.0 - pool["trend_rank"] / total)

    def _merge_pools(
        self,
        pools: Dict[RecommendationType, pd.DataFrame],
        quotas: Dict[RecommendationType, int],
        count: int,
    ) -> List[Tuple[RecommendationType, object]]:
        chosen: List[Tuple[RecommendationType, object]] = []
        seen = set()
        for pool_type in POOL_ORDER:
            pool = pools.get(pool_type)
            if pool is None:
                continue
            taken = 0
            for row in pool.itertuples(index=False):
                if taken >= quotas[pool_type]:
                    break
                if row.sake_id in seen:
                    continue
                seen.add(row.sake_id)
                chosen.append((pool_type, row))
                taken += 1
        # Duplicates and short pools leave gaps; fill them in priority order.
        for pool_type in POOL_ORDER:
            pool = pools.get(pool_type)
            if pool is None or len(chosen) >= count:
                continue
            for row in pool.itertuples(index=False):
                if len(chosen) >= count:
                    break
                if row.sake_id in seen:
                    continue
                seen.add(row.sake_id)
                chosen.append((pool_type, row))
        return chosen[:count]

    def recommend(
        self,
        preference: Union[UserTastePreference, InsufficientData, None],
        catalog: Iterable[SakeItem],
        options: Optional[RecommendOptions] = None,
        favorites: Iterable[ItemRef] = (),
        trending: Sequence[ItemRef] = (),
    ) -> RecommendationResult:
        if preference is None or isinstance(preference, InsufficientData):
            raise InsufficientPreferenceData(
                "recommend() needs an analyzed preference; check the analyzer result first"
            )
        options = options or RecommendOptions()

        excluded = {_item_id(item) for item in favorites}
        available: List[SakeItem] = []
        known = set()
        for item in catalog:
            if item.id in excluded or item.id in known:
                continue
            known.add(item.id)
            available.append(item)
        if not available:
            return RecommendationResult(
                recommendations=[],
                status=RecommendationStatus.NO_CANDIDATES,
                message="No sake left to recommend once your favorites are excluded",
            )

        frame = self.score_candidates(preference, available)
        quotas = allocate_pool_sizes(options.count, options.pool_shares())
        pools: Dict[RecommendationType, pd.DataFrame] = {}
        if options.include_similar:
            pools[RecommendationType.SIMILAR] = self._similar_pool(frame)
        if options.include_explore:
            pools[RecommendationType.EXPLORE] = self._explore_pool(frame, preference.adventure_score)
        if options.include_trending:
            pools[RecommendationType.TRENDING] = self._trending_pool(frame, trending)
        LOGGER.debug(
            "Pools for user %s (mood=%s): quotas=%s sizes=%s",
            preference.user_id,
            options.mood.value,
            {k.value: v for k, v in quotas.items()},
            {k.value: len(v) for k, v in pools.items()},
        )

        target = preference.vector.as_array()
        adjustment = options.rating_adjustments.get(options.mood, 0.0)
        recommendations: List[Recommendation] = []
        for rank, (pool_type, row) in enumerate(self._merge_pools(pools, quotas, options.count), start=1):
            item = available[int(row.position)]
            similarity = float(row.similarity)
            if pool_type is RecommendationType.SIMILAR:
                differences = self._normalized_differences(item.profile(), target)
                reason = similarity_reason(similarity, differences)
            elif pool_type is RecommendationType.EXPLORE:
                reason = EXPLORE_REASON
            else:
                reason = TRENDING_REASON
            recommendations.append(
                Recommendation(
                    sake=item,
                    similarity_score=similarity,
                    predicted_rating=predict_rating(similarity, adjustment),
                    type=pool_type,
                    reason=reason,
                    score=float(row.score),
                    rank=rank,
                )
            )

        message = None
        if not recommendations:
            message = "No candidates matched the enabled recommendation pools"
        return RecommendationResult(recommendations=recommendations, message=message)
