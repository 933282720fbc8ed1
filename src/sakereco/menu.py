"""
Menu-constrained recommendations for a restaurant visit.

Menu lines are free text (typed or OCR'd). Each line is resolved against the
catalog by name; only the resolved items are ranked, so a recommendation can
never point at a sake the restaurant does not serve. Lines that cannot be
resolved are reported back in ``not_found``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .analysis import PreferenceAnalyzer
from .config import DEFAULT_MENU_RECOMMENDATION_COUNT, MAX_MENU_RECOMMENDATION_COUNT
from .errors import EmptyMenu
from .models import (
    InsufficientData,
    Recommendation,
    RecommendationType,
    RestaurantRecommendationsResult,
    SakeItem,
)
from .scoring import CandidateScorer, predict_rating
from .sources import FavoritesSource, InMemoryCatalog, MenuResolver, PopularitySource, normalize_name

LOGGER = logging.getLogger(__name__)


class MenuStrategy(str, Enum):
    SIMILARITY = "similarity"
    PAIRING = "pairing"
    RANDOM = "random"


PAIRING_BOOST = 0.2
NEUTRAL_SIMILARITY = 0.5
DEFAULT_POPULARITY_LIMIT = 100


def _half(condition: bool) -> float:
    return 1.0 if condition else 0.5


# Each rule scores in [0, 2]; pairing_score halves it into [0, 1].
PAIRING_RULES: Dict[str, Callable[[SakeItem], float]] = {
    "sashimi": lambda s: _half(s.coordinate.richness < 0) + s.flavor_chart.f6,
    "grilled": lambda s: _half(s.coordinate.richness > 0) + s.flavor_chart.f5,
    "fried": lambda s: _half(s.coordinate.sweetness < 0) + s.flavor_chart.f5,
    "soup": lambda s: s.flavor_chart.f2 + s.flavor_chart.f4,
    "dessert": lambda s: _half(s.coordinate.sweetness > 0) + s.flavor_chart.f1,
    "general": lambda s: 1.0,
}

PAIRING_REASONS: Dict[str, str] = {
    "sashimi": "Brings out the delicate flavor of sashimi",
    "grilled": "Stands up to the smoky notes of grilled dishes",
    "fried": "Cuts cleanly through fried food",
    "soup": "A gentle companion for warm soups",
    "dessert": "A treat alongside dessert",
    "general": "Easy to pair with a wide range of dishes",
}

RANDOM_REASONS: Tuple[str, ...] = (
    "Tonight's lucky pour",
    "A hidden gem on this menu",
    "A chance to meet a new flavor",
    "Something different for a change",
)

LOGIN_MESSAGE = "Sign in to get recommendations based on your favorites"


def pairing_score(dish_type: Optional[str], sake: SakeItem) -> float:
    rule = PAIRING_RULES.get((dish_type or "general").strip().lower(), PAIRING_RULES["general"])
    return min(max(rule(sake) / 2.0, 0.0), 1.0)


def pairing_reason(dish_type: Optional[str]) -> str:
    return PAIRING_REASONS.get((dish_type or "general").strip().lower(), PAIRING_REASONS["general"])


def menu_similarity_reason(similarity: float) -> str:
    if similarity > 0.9:
        return "A perfect match for your taste"
    if similarity > 0.8:
        return "Very close to your taste"
    if similarity > 0.7:
        return "Shares traits with your favorites"
    if similarity > 0.6:
        return "A well-balanced choice"
    return "Worth trying for something new"


@dataclass
class MenuRecommendationRequest:
    menu_items: Sequence[str]
    resolved: Sequence[SakeItem] = ()
    dish_type: Optional[str] = None
    user_id: Optional[str] = None
    count: int = DEFAULT_MENU_RECOMMENDATION_COUNT
    strategy: MenuStrategy = MenuStrategy.SIMILARITY
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        self.strategy = MenuStrategy(self.strategy)
        if not 1 <= self.count <= MAX_MENU_RECOMMENDATION_COUNT:
            raise ValueError(f"count must be between 1 and {MAX_MENU_RECOMMENDATION_COUNT}")


class MenuRecommender:
    """Runs the scorer against the sake actually listed on a restaurant menu."""

    def __init__(
        self,
        analyzer: Optional[PreferenceAnalyzer] = None,
        scorer: Optional[CandidateScorer] = None,
        resolver: Optional[MenuResolver] = None,
        favorites_source: Optional[FavoritesSource] = None,
        popularity_source: Optional[PopularitySource] = None,
        popularity_limit: int = DEFAULT_POPULARITY_LIMIT,
    ) -> None:
        self.analyzer = analyzer or PreferenceAnalyzer()
        self.scorer = scorer or CandidateScorer()
        self.resolver = resolver
        self.favorites_source = favorites_source
        self.popularity_source = popularity_source
        self.popularity_limit = popularity_limit

    def resolve_menu(
        self, menu_items: Sequence[str], resolved: Sequence[SakeItem] = ()
    ) -> Tuple[List[SakeItem], List[str]]:
        """Map menu lines to catalog items; returns (items, names not found)."""
        provided = InMemoryCatalog(resolved)
        items: List[SakeItem] = []
        not_found: List[str] = []
        seen_names = set()
        seen_ids = set()
        for name in menu_items:
            key = normalize_name(name or "")
            if not key or key in seen_names:
                continue
            seen_names.add(key)
            item = provided.resolve_by_name(name)
            if item is None and self.resolver is not None:
                item = self.resolver.resolve_by_name(name)
            if item is None:
                not_found.append(name.strip())
                continue
            if item.id not in seen_ids:
                seen_ids.add(item.id)
                items.append(item)
        return items, not_found

    def recommend_for_menu(self, request: MenuRecommendationRequest, now: datetime) -> RestaurantRecommendationsResult:
        if not any(name and name.strip() for name in request.menu_items):
            raise EmptyMenu()

        menu, not_found = self.resolve_menu(request.menu_items, request.resolved)
        if not_found:
            LOGGER.warning("%d menu item(s) not found in catalog: %s", len(not_found), not_found)
        if not menu:
            return RestaurantRecommendationsResult(
                recommendations=[],
                not_found=not_found,
                total_found=0,
                message="None of the menu items could be matched to the catalog",
            )

        if request.strategy is MenuStrategy.RANDOM:
            return self._random_pick(menu, not_found, request.seed)
        if request.strategy is MenuStrategy.PAIRING:
            return self._pairing(menu, not_found, request)

        if request.user_id is None:
            return self._popularity_fallback(menu, not_found, request, favorites_count=0, message=LOGIN_MESSAGE)

        favorites = self.favorites_source.list_favorites(request.user_id) if self.favorites_source else []
        analysis = self.analyzer.analyze(favorites, now, user_id=request.user_id)
        if isinstance(analysis, InsufficientData):
            return self._popularity_fallback(
                menu,
                not_found,
                request,
                favorites_count=analysis.favorites_count,
                message=(
                    f"Add at least {analysis.min_favorites} favorites to get personalized picks "
                    f"(you have {analysis.favorites_count})"
                ),
            )

        frame = self.scorer.score_candidates(analysis, menu)
        frame["score"] = frame["similarity"] + self._pairing_boost(menu, request.dish_type)
        ranked = frame.sort_values(by=["score", "position"], ascending=[False, True]).head(request.count)

        recommendations = []
        for rank, row in enumerate(ranked.itertuples(index=False), start=1):
            similarity = float(row.similarity)
            recommendations.append(
                Recommendation(
                    sake=menu[int(row.position)],
                    similarity_score=similarity,
                    predicted_rating=predict_rating(similarity),
                    type=RecommendationType.SIMILAR,
                    reason=menu_similarity_reason(similarity),
                    score=float(row.score),
                    rank=rank,
                )
            )
        return RestaurantRecommendationsResult(
            recommendations=recommendations,
            not_found=not_found,
            total_found=len(menu),
        )

    def _pairing_boost(self, menu: Sequence[SakeItem], dish_type: Optional[str]) -> np.ndarray:
        if not dish_type:
            return np.zeros(len(menu))
        return PAIRING_BOOST * np.array([pairing_score(dish_type, sake) for sake in menu])

    def _popularity_fallback(
        self,
        menu: List[SakeItem],
        not_found: List[str],
        request: MenuRecommendationRequest,
        favorites_count: int,
        message: str,
    ) -> RestaurantRecommendationsResult:
        trending = self.popularity_source.get_trending(self.popularity_limit) if self.popularity_source else []
        order: Dict[str, int] = {}
        for item in trending:
            order.setdefault(item.id, len(order))
        total = max(len(order), 1)

        frame = pd.DataFrame(
            {
                "position": range(len(menu)),
                "popularity": [1.0 - order[s.id] / total if s.id in order else 0.0 for s in menu],
            }
        )
        frame["score"] = frame["popularity"] + self._pairing_boost(menu, request.dish_type)
        ranked = frame.sort_values(by=["score", "position"], ascending=[False, True]).head(request.count)

        reason = pairing_reason(request.dish_type) if request.dish_type else "A popular pick on this menu"
        recommendations = [
            Recommendation(
                sake=menu[int(row.position)],
                similarity_score=NEUTRAL_SIMILARITY,
                predicted_rating=predict_rating(NEUTRAL_SIMILARITY),
                type=RecommendationType.TRENDING,
                reason=reason,
                score=float(row.score),
                rank=rank,
            )
            for rank, row in enumerate(ranked.itertuples(index=False), start=1)
        ]
        return RestaurantRecommendationsResult(
            recommendations=recommendations,
            not_found=not_found,
            total_found=len(menu),
            requires_more_favorites=True,
            favorites_count=favorites_count,
            message=message,
        )

    def _pairing(
        self, menu: List[SakeItem], not_found: List[str], request: MenuRecommendationRequest
    ) -> RestaurantRecommendationsResult:
        frame = pd.DataFrame(
            {
                "position": range(len(menu)),
                "score": [pairing_score(request.dish_type, sake) for sake in menu],
            }
        )
        ranked = frame.sort_values(by=["score", "position"], ascending=[False, True]).head(request.count)
        reason = pairing_reason(request.dish_type)
        recommendations = [
            Recommendation(
                sake=menu[int(row.position)],
                similarity_score=float(row.score),
                predicted_rating=min(3.0 + 2.0 * float(row.score), 5.0),
                type=RecommendationType.PAIRING,
                reason=reason,
                score=float(row.score),
                rank=rank,
            )
            for rank, row in enumerate(ranked.itertuples(index=False), start=1)
        ]
        return RestaurantRecommendationsResult(
            recommendations=recommendations,
            not_found=not_found,
            total_found=len(menu),
        )

    def _random_pick(
        self, menu: List[SakeItem], not_found: List[str], seed: Optional[int]
    ) -> RestaurantRecommendationsResult:
        rng = np.random.default_rng(seed)
        sake = menu[int(rng.integers(len(menu)))]
        reason = RANDOM_REASONS[int(rng.integers(len(RANDOM_REASONS)))]
        return RestaurantRecommendationsResult(
            recommendations=[
                Recommendation(
                    sake=sake,
                    similarity_score=0.5 + float(rng.random()) * 0.3,
                    predicted_rating=3.5 + float(rng.random()) * 1.5,
                    type=RecommendationType.RANDOM,
                    reason=reason,
                    score=1.0,
                    rank=1,
                )
            ],
            not_found=not_found,
            total_found=len(menu),
        )
