from .repositories import SupabaseCatalog, SupabaseFavoritesRepository, SupabaseRecommendationCache
from .supabase_service import SupabaseService, get_supabase_service

__all__ = [
    "SupabaseCatalog",
    "SupabaseFavoritesRepository",
    "SupabaseRecommendationCache",
    "SupabaseService",
    "get_supabase_service",
]
