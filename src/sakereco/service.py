"""
Glue between the boundary sources and the pure recommendation core.

``RecommendationService`` fetches favorites, catalog and trending data,
runs the analyzer and scorer, and caches results per user and per distinct set of
request options (mood, count, enabled pools, rating adjustment).
``FavoritesService`` mutates favorites and invalidates that cache; a failed
invalidation is logged and never fails the favorite change itself.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from .analysis import AnalysisResult, PreferenceAnalyzer
from .config import RECOMMENDATION_CACHE_TTL_HOURS, RecommendOptions
from .models import (
    FavoriteItem,
    InsufficientData,
    RecommendationResult,
    RecommendationStatus,
    SakeItem,
)
from .scoring import CandidateScorer
from .sources import (
    CatalogSource,
    FavoritesRepository,
    FavoritesSource,
    PopularitySource,
    RecommendationCache,
    utc_now,
)

LOGGER = logging.getLogger(__name__)


@dataclass
class UserRecommendations:
    result: RecommendationResult
    preference: Optional[AnalysisResult] = None
    from_cache: bool = False


class RecommendationService:
    def __init__(
        self,
        favorites_source: FavoritesSource,
        catalog_source: CatalogSource,
        popularity_source: Optional[PopularitySource] = None,
        cache: Optional[RecommendationCache] = None,
        analyzer: Optional[PreferenceAnalyzer] = None,
        scorer: Optional[CandidateScorer] = None,
        cache_ttl: timedelta = timedelta(hours=RECOMMENDATION_CACHE_TTL_HOURS),
    ) -> None:
        self.favorites_source = favorites_source
        self.catalog_source = catalog_source
        self.popularity_source = popularity_source
        self.cache = cache
        self.analyzer = analyzer or PreferenceAnalyzer()
        self.scorer = scorer or CandidateScorer()
        self.cache_ttl = cache_ttl

    def analyze_user(self, user_id: str, now: Optional[datetime] = None) -> AnalysisResult:
        favorites = self.favorites_source.list_favorites(user_id)
        return self.analyzer.analyze(favorites, now or utc_now(), user_id=user_id)

    def trending(self, limit: int) -> List[SakeItem]:
        if self.popularity_source is None:
            return []
        return self.popularity_source.get_trending(limit)

    def recommend_for_user(
        self,
        user_id: str,
        options: Optional[RecommendOptions] = None,
        now: Optional[datetime] = None,
        use_cache: bool = True,
    ) -> UserRecommendations:
        options = options or RecommendOptions()
        now = now or utc_now()
        cache_key = options.cache_key()

        if use_cache and self.cache is not None:
            cached = self.cache.get(user_id, cache_key)
            if cached:
                LOGGER.debug("Recommendation cache hit for user %s (%s)", user_id, cache_key)
                return UserRecommendations(
                    result=RecommendationResult(recommendations=cached),
                    from_cache=True,
                )

        favorites: List[FavoriteItem] = self.favorites_source.list_favorites(user_id)
        preference = self.analyzer.analyze(favorites, now, user_id=user_id)
        if isinstance(preference, InsufficientData):
            return UserRecommendations(
                result=RecommendationResult(
                    recommendations=[],
                    status=RecommendationStatus.INSUFFICIENT_DATA,
                    message=preference.message,
                ),
                preference=preference,
            )

        catalog = self.catalog_source.list_candidates()
        trending = self.trending(options.count * self.scorer.config.trending_fetch_factor)
        result = self.scorer.recommend(preference, catalog, options, favorites=favorites, trending=trending)

        if self.cache is not None and result.recommendations:
            self.cache.put(user_id, cache_key, result.recommendations, self.cache_ttl)
        return UserRecommendations(result=result, preference=preference)

    def clear_cache(self, user_id: str) -> None:
        if self.cache is not None:
            self.cache.clear(user_id)


class FavoritesService:
    def __init__(self, repo: FavoritesRepository, cache: Optional[RecommendationCache] = None) -> None:
        self.repo = repo
        self.cache = cache

    def list(self, user_id: str) -> List[FavoriteItem]:
        """Favorites for ``user_id``, deduplicated by sake id, newest first."""
        if not user_id:
            return []
        seen = set()
        deduped = []
        for item in self.repo.list_favorites(user_id):
            if item.sake.id in seen:
                continue
            seen.add(item.sake.id)
            deduped.append(item)
        return deduped

    def add(self, user_id: str, sake: SakeItem, created_at: Optional[datetime] = None) -> None:
        if not user_id:
            return
        self.repo.add(user_id, sake, created_at)
        self._invalidate(user_id)

    def remove(self, user_id: str, sake_id: str) -> None:
        if not user_id:
            return
        self.repo.remove(user_id, sake_id)
        self._invalidate(user_id)

    def _invalidate(self, user_id: str) -> None:
        if self.cache is None:
            return
        try:
            self.cache.clear(user_id)
        except Exception as exc:
            LOGGER.warning("Failed to clear recommendation cache for user %s: %s", user_id, exc)
