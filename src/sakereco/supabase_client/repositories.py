"""Supabase-backed implementations of the boundary sources in ``sakereco.sources``."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from ..models import FavoriteItem, Recommendation, RecommendationType, SakeItem
from ..sources import CandidateFilter, Clock, InMemoryCatalog, utc_now
from .supabase_service import SupabaseService, get_supabase_service

LOGGER = logging.getLogger(__name__)


def _parse_timestamp(raw: Any) -> Optional[datetime]:
    if raw is None:
        return None
    stamp = pd.to_datetime(raw, errors="coerce", utc=True)
    if pd.isna(stamp):
        return None
    return stamp.to_pydatetime()


def _rows_to_items(rows: List[Mapping[str, Any]]) -> List[SakeItem]:
    items = []
    for row in rows:
        try:
            items.append(SakeItem.from_row(row))
        except (KeyError, TypeError, ValueError) as exc:
            LOGGER.warning("Skipping malformed sake row %s: %s", row.get("id"), exc)
    return items


class SupabaseFavoritesRepository:
    def __init__(self, service: Optional[SupabaseService] = None, clock: Clock = utc_now) -> None:
        self.service = service or get_supabase_service()
        self._clock = clock

    def list_favorites(self, user_id: str) -> List[FavoriteItem]:
        favorites = []
        for row in self.service.list_favorites(user_id):
            sake_data = row.get("sake_data")
            if not sake_data:
                continue
            items = _rows_to_items([{"id": row.get("sake_id"), **sake_data}])
            if not items:
                continue
            favorites.append(
                FavoriteItem(
                    user_id=user_id,
                    sake=items[0],
                    created_at=_parse_timestamp(row.get("created_at")) or self._clock(),
                )
            )
        return favorites

    def add(self, user_id: str, sake: SakeItem, created_at: Optional[datetime] = None) -> None:
        self.service.add_favorite(
            user_id,
            sake.id,
            sake.to_dict(),
            created_at=created_at.isoformat() if created_at else None,
        )

    def remove(self, user_id: str, sake_id: str) -> None:
        self.service.remove_favorite(user_id, sake_id)


class SupabaseCatalog:
    """Catalog, popularity signal and menu resolver over the ``sake_master`` table."""

    def __init__(self, service: Optional[SupabaseService] = None, limit: int = 1000) -> None:
        self.service = service or get_supabase_service()
        self.limit = limit

    def list_candidates(self, filter: Optional[CandidateFilter] = None) -> List[SakeItem]:
        items = _rows_to_items(self.service.get_all_sakes(limit=self.limit))
        if filter is None:
            return items
        return [item for item in items if filter(item)]

    def get_trending(self, limit: int) -> List[SakeItem]:
        """Sake ordered by how often they appear among recent favorites; empty when nobody has any."""
        sake_ids = self.service.get_favorite_sake_ids(limit=limit * 2)
        if not sake_ids:
            return []
        counts = pd.Series(sake_ids).value_counts(sort=False)
        order = {sake_id: i for i, sake_id in enumerate(dict.fromkeys(sake_ids))}
        ranked = sorted(counts.index, key=lambda sake_id: (-int(counts[sake_id]), order[sake_id]))[:limit]
        by_id = {item.id: item for item in _rows_to_items(self.service.get_sakes_by_ids(ranked))}
        return [by_id[sake_id] for sake_id in ranked if sake_id in by_id]

    def resolve_by_name(self, name: str) -> Optional[SakeItem]:
        rows = self.service.search_sakes_by_name(name.strip())
        if not rows:
            return None
        return InMemoryCatalog(_rows_to_items(rows)).resolve_by_name(name)


class SupabaseRecommendationCache:
    def __init__(self, service: Optional[SupabaseService] = None, clock: Clock = utc_now) -> None:
        self.service = service or get_supabase_service()
        self._clock = clock

    def get(self, user_id: str, key: str) -> Optional[List[Recommendation]]:
        rows = self.service.get_cached_recommendations(user_id, key, self._clock().isoformat())
        if not rows:
            return None
        by_id: Dict[str, SakeItem] = {
            item.id: item
            for item in _rows_to_items(self.service.get_sakes_by_ids([row["sake_id"] for row in rows]))
        }
        recommendations = []
        for row in rows:
            sake = by_id.get(row["sake_id"])
            if sake is None:
                LOGGER.warning("Cached recommendation references missing sake %s", row["sake_id"])
                continue
            recommendations.append(
                Recommendation(
                    sake=sake,
                    similarity_score=float(row["similarity_score"]),
                    predicted_rating=float(row["predicted_rating"]),
                    type=RecommendationType(row["recommendation_type"]),
                    reason=row.get("recommendation_reason") or "",
                    score=float(row["score"]),
                    rank=int(row["rank"]),
                )
            )
        return recommendations or None

    def put(self, user_id: str, key: str, recommendations: List[Recommendation], ttl: timedelta) -> None:
        expires_at = (self._clock() + ttl).isoformat()
        self.service.replace_cached_recommendations(
            user_id,
            key,
            [
                {
                    "user_id": user_id,
                    "cache_key": key,
                    "sake_id": rec.sake.id,
                    "rank": rec.rank,
                    "score": rec.score,
                    "similarity_score": rec.similarity_score,
                    "predicted_rating": rec.predicted_rating,
                    "recommendation_type": rec.type.value,
                    "recommendation_reason": rec.reason,
                    "expires_at": expires_at,
                }
                for rec in recommendations
            ],
        )

    def clear(self, user_id: str) -> None:
        self.service.clear_cached_recommendations(user_id)
