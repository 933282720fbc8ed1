"""
Sake taste analysis and recommendation core.

The package provides utilities for:
    * projecting six-axis flavor charts onto a sweetness/richness taste map,
    * aggregating a user's favorites into a recency-weighted preference,
    * scoring a catalog into similar, explore and trending recommendations,
    * ranking the sake listed on a restaurant menu for a user and a dish.

The core is pure and synchronous; favorites, catalog and trending data come
in through the small interfaces in ``sakereco.sources``. Supabase-backed
implementations live in ``sakereco.supabase_client`` and are imported lazily
by callers so the core runs without a Supabase connection.
"""

from .analysis import PreferenceAnalyzer
from .config import AnalysisOptions, Mood, RecommendOptions, ScoringConfig
from .coordinates import FlavorChart, TasteCoordinate, map_to_coordinate
from .errors import EmptyMenu, InsufficientPreferenceData, SakeRecoError
from .menu import MenuRecommendationRequest, MenuRecommender, MenuStrategy
from .models import (
    FavoriteItem,
    InsufficientData,
    Recommendation,
    RecommendationResult,
    RecommendationStatus,
    RecommendationType,
    RestaurantRecommendationsResult,
    SakeItem,
    TasteType,
    UserTastePreference,
)
from .scoring import CandidateScorer
from .service import FavoritesService, RecommendationService

__all__ = [
    "AnalysisOptions",
    "CandidateScorer",
    "EmptyMenu",
    "FavoriteItem",
    "FavoritesService",
    "FlavorChart",
    "InsufficientData",
    "InsufficientPreferenceData",
    "MenuRecommendationRequest",
    "MenuRecommender",
    "MenuStrategy",
    "Mood",
    "PreferenceAnalyzer",
    "Recommendation",
    "RecommendationResult",
    "RecommendationService",
    "RecommendationStatus",
    "RecommendationType",
    "RecommendOptions",
    "RestaurantRecommendationsResult",
    "SakeItem",
    "SakeRecoError",
    "ScoringConfig",
    "TasteCoordinate",
    "TasteType",
    "UserTastePreference",
    "map_to_coordinate",
]
