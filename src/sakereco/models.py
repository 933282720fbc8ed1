from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from functools import cached_property
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np

from .coordinates import FlavorChart, TasteCoordinate, map_to_coordinate

PROFILE_DIMENSIONS: Tuple[str, ...] = (
    "sweetness",
    "richness",
    "f1_floral",
    "f2_mellow",
    "f3_heavy",
    "f4_mild",
    "f5_dry",
    "f6_light",
)


class TasteType(str, Enum):
    FLORAL = "floral"
    MELLOW = "mellow"
    HEAVY = "heavy"
    MILD = "mild"
    DRY = "dry"
    LIGHT = "light"
    BALANCED = "balanced"
    EXPLORER = "explorer"


AXIS_TASTE_TYPES: Tuple[TasteType, ...] = (
    TasteType.FLORAL,
    TasteType.MELLOW,
    TasteType.HEAVY,
    TasteType.MILD,
    TasteType.DRY,
    TasteType.LIGHT,
)


class RecommendationType(str, Enum):
    SIMILAR = "similar"
    EXPLORE = "explore"
    TRENDING = "trending"
    PAIRING = "pairing"
    RANDOM = "random"


class RecommendationStatus(str, Enum):
    OK = "ok"
    NO_CANDIDATES = "no_candidates"
    INSUFFICIENT_DATA = "insufficient_data"


@dataclass(frozen=True)
class SakeItem:
    id: str
    name: str
    brewery: str
    flavor_chart: FlavorChart
    region: Optional[str] = None
    description: str = ""
    brand_id: Optional[int] = None

    @cached_property
    def coordinate(self) -> TasteCoordinate:
        return map_to_coordinate(self.flavor_chart)

    def profile(self) -> np.ndarray:
        return np.concatenate([self.coordinate.as_array(), self.flavor_chart.as_array()])

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "SakeItem":
        """Build an item from a ``sake_master`` style row or a JSON fixture."""
        brand_id = row.get("brand_id", row.get("brandId"))
        chart_src = row.get("flavor_chart") or row.get("flavorChart") or row
        return cls(
            id=str(row["id"]),
            name=str(row.get("brand_name") or row.get("name") or "Unknown"),
            brewery=str(row.get("brewery_name") or row.get("brewery") or "Unknown"),
            flavor_chart=FlavorChart.from_row(chart_src, brand_id=brand_id),
            region=row.get("prefecture") or row.get("region"),
            description=str(row.get("description") or ""),
            brand_id=int(brand_id) if brand_id is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        coordinate = self.coordinate
        return {
            "id": self.id,
            "name": self.name,
            "brewery": self.brewery,
            "region": self.region,
            "description": self.description,
            "brandId": self.brand_id,
            "sweetness": round(coordinate.sweetness, 4),
            "richness": round(coordinate.richness, 4),
            "flavorChart": dict(zip(("f1", "f2", "f3", "f4", "f5", "f6"), self.flavor_chart.values())),
        }


@dataclass(frozen=True)
class FavoriteItem:
    user_id: str
    sake: SakeItem
    created_at: datetime


@dataclass(frozen=True)
class PreferenceVector:
    sweetness: float
    richness: float
    f1_floral: float
    f2_mellow: float
    f3_heavy: float
    f4_mild: float
    f5_dry: float
    f6_light: float

    @classmethod
    def from_array(cls, values: np.ndarray) -> "PreferenceVector":
        return cls(*(float(v) for v in values))

    def as_array(self) -> np.ndarray:
        return np.array([getattr(self, name) for name in PROFILE_DIMENSIONS], dtype=float)

    def flavor_components(self) -> np.ndarray:
        return self.as_array()[2:]

    @property
    def coordinate(self) -> TasteCoordinate:
        return TasteCoordinate(sweetness=self.sweetness, richness=self.richness)

    def to_dict(self) -> Dict[str, float]:
        return {name: round(getattr(self, name), 4) for name in PROFILE_DIMENSIONS}


@dataclass(frozen=True)
class UserTastePreference:
    user_id: Optional[str]
    vector: PreferenceVector
    taste_type: TasteType
    diversity_score: float
    adventure_score: float
    total_favorites: int
    calculated_at: datetime
    weights: Tuple[float, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "vector": self.vector.to_dict(),
            "tasteType": self.taste_type.value,
            "diversityScore": round(self.diversity_score, 4),
            "adventureScore": round(self.adventure_score, 4),
            "totalFavorites": self.total_favorites,
            "calculatedAt": self.calculated_at.isoformat(),
        }


@dataclass(frozen=True)
class InsufficientData:
    """Returned by the analyzer when there are too few favorites to profile."""

    user_id: Optional[str]
    favorites_count: int
    min_favorites: int
    message: str


@dataclass(frozen=True)
class Recommendation:
    sake: SakeItem
    similarity_score: float
    predicted_rating: float
    type: RecommendationType
    reason: str
    score: float
    rank: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rank": self.rank,
            "sake": self.sake.to_dict(),
            "score": round(self.score, 4),
            "type": self.type.value,
            "reason": self.reason,
            "similarityScore": round(self.similarity_score, 4),
            "predictedRating": round(self.predicted_rating, 2),
        }


@dataclass
class RecommendationResult:
    recommendations: List[Recommendation] = field(default_factory=list)
    status: RecommendationStatus = RecommendationStatus.OK
    message: Optional[str] = None

    def to_records(self) -> List[Dict[str, Any]]:
        return [rec.to_dict() for rec in self.recommendations]


@dataclass
class RestaurantRecommendationsResult:
    recommendations: List[Recommendation]
    not_found: List[str]
    total_found: int
    requires_more_favorites: Optional[bool] = None
    favorites_count: Optional[int] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "recommendations": [rec.to_dict() for rec in self.recommendations],
            "notFound": list(self.not_found),
            "totalFound": self.total_found,
        }
        if self.requires_more_favorites is not None:
            payload["requiresMoreFavorites"] = self.requires_more_favorites
        if self.favorites_count is not None:
            payload["favoritesCount"] = self.favorites_count
        if self.message is not None:
            payload["message"] = self.message
        return payload
