import os
from typing import Any, Dict, List, Optional, Sequence

from dotenv import load_dotenv
from supabase import Client, create_client

# Load environment variables
load_dotenv()


class SupabaseService:
    """Thin row-level access to the sake tables in Supabase"""

    def __init__(self, client: Optional[Client] = None):
        if client is not None:
            self.client = client
            return

        url = os.getenv("SUPABASE_URL")
        # Use service role key for full access
        key = os.getenv("SUPABASE_SERVICE_ROLE_KEY")

        if not url or not key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set in environment")

        self.client: Client = create_client(url, key)

    # ==================== FAVORITES ====================

    def list_favorites(self, user_id: str) -> List[Dict[str, Any]]:
        """Get a user's favorites, newest first"""
        response = (self.client.table("favorites")
                    .select("sake_id,sake_data,created_at")
                    .eq("user_id", user_id)
                    .order("created_at", desc=True)
                    .execute())
        return response.data or []

    def add_favorite(self, user_id: str, sake_id: str, sake_data: Dict[str, Any],
                     created_at: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Add a sake to a user's favorites"""
        data = {"user_id": user_id, "sake_id": sake_id, "sake_data": sake_data}
        if created_at:
            data["created_at"] = created_at
        response = self.client.table("favorites").insert(data).execute()
        return response.data[0] if response.data else None

    def remove_favorite(self, user_id: str, sake_id: str) -> bool:
        """Remove a sake from a user's favorites"""
        response = (self.client.table("favorites")
                    .delete()
                    .eq("user_id", user_id)
                    .eq("sake_id", sake_id)
                    .execute())
        return len(response.data or []) > 0

    def get_favorite_sake_ids(self, limit: int = 100) -> List[str]:
        """Get sake ids from recent favorite rows across all users"""
        response = (self.client.table("favorites")
                    .select("sake_id")
                    .order("created_at", desc=True)
                    .limit(limit)
                    .execute())
        return [row["sake_id"] for row in response.data or []]

    # ==================== SAKE MASTER ====================

    def get_all_sakes(self, limit: int = 1000) -> List[Dict[str, Any]]:
        """Get sake master rows"""
        response = self.client.table("sake_master").select("*").limit(limit).execute()
        return response.data or []

    def get_sakes_by_ids(self, sake_ids: Sequence[str]) -> List[Dict[str, Any]]:
        """Get sake master rows for the given ids"""
        if not sake_ids:
            return []
        response = self.client.table("sake_master").select("*").in_("id", list(sake_ids)).execute()
        return response.data or []

    def search_sakes_by_name(self, name: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Case-insensitive brand name search"""
        response = (self.client.table("sake_master")
                    .select("*")
                    .ilike("brand_name", f"%{name}%")
                    .limit(limit)
                    .execute())
        return response.data or []

    # ==================== RECOMMENDATION CACHE ====================

    def get_cached_recommendations(self, user_id: str, cache_key: str, now_iso: str) -> List[Dict[str, Any]]:
        """Get unexpired cached recommendations for a user and request key, in rank order"""
        response = (self.client.table("recommendation_cache")
                    .select("*")
                    .eq("user_id", user_id)
                    .eq("cache_key", cache_key)
                    .gt("expires_at", now_iso)
                    .order("rank")
                    .execute())
        return response.data or []

    def replace_cached_recommendations(self, user_id: str, cache_key: str,
                                       rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Replace every cached row for a user and request key"""
        (self.client.table("recommendation_cache")
         .delete()
         .eq("user_id", user_id)
         .eq("cache_key", cache_key)
         .execute())
        if not rows:
            return []
        response = (self.client.table("recommendation_cache")
                    .upsert(rows, on_conflict="user_id,cache_key,sake_id")
                    .execute())
        return response.data or []

    def clear_cached_recommendations(self, user_id: str) -> bool:
        """Delete all cached recommendations for a user"""
        response = self.client.table("recommendation_cache").delete().eq("user_id", user_id).execute()
        return len(response.data or []) > 0


# Singleton instance
_supabase_service = None


def get_supabase_service() -> SupabaseService:
    """Get or create the singleton SupabaseService instance"""
    global _supabase_service
    if _supabase_service is None:
        _supabase_service = SupabaseService()
    return _supabase_service
