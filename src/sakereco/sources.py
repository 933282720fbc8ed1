"""
Boundary interfaces the recommendation core consumes, plus in-memory
implementations used by the CLI and the tests.

The core itself never fetches anything: callers resolve favorites, the
catalog and the trending list up front and pass plain lists in.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Tuple

from .models import FavoriteItem, Recommendation, SakeItem

CandidateFilter = Callable[[SakeItem], bool]
Clock = Callable[[], datetime]

CATEGORY_THRESHOLD = 1.0


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_name(name: str) -> str:
    """NFKC-fold, casefold and collapse whitespace so menu text matches catalog names."""
    folded = unicodedata.normalize("NFKC", name).casefold()
    return " ".join(folded.split())


class FavoritesSource(Protocol):
    def list_favorites(self, user_id: str) -> List[FavoriteItem]:
        """Favorites for ``user_id``, most recent first."""


class FavoritesRepository(FavoritesSource, Protocol):
    def add(self, user_id: str, sake: SakeItem, created_at: Optional[datetime] = None) -> None: ...

    def remove(self, user_id: str, sake_id: str) -> None: ...


class CatalogSource(Protocol):
    def list_candidates(self, filter: Optional[CandidateFilter] = None) -> List[SakeItem]: ...


class PopularitySource(Protocol):
    def get_trending(self, limit: int) -> List[SakeItem]:
        """Most popular items first."""


class MenuResolver(Protocol):
    def resolve_by_name(self, name: str) -> Optional[SakeItem]: ...


class RecommendationCache(Protocol):
    def get(self, user_id: str, key: str) -> Optional[List[Recommendation]]: ...

    def put(self, user_id: str, key: str, recommendations: List[Recommendation], ttl: timedelta) -> None: ...

    def clear(self, user_id: str) -> None: ...


class InMemoryCatalog:
    """Catalog, popularity signal and name resolver over a fixed list of items."""

    def __init__(self, items: Iterable[SakeItem], popularity: Optional[Dict[str, int]] = None) -> None:
        self.items: List[SakeItem] = []
        seen = set()
        for item in items:
            if item.id in seen:
                continue
            seen.add(item.id)
            self.items.append(item)
        self.popularity: Dict[str, int] = dict(popularity or {})
        self._by_name: Dict[str, SakeItem] = {}
        for item in self.items:
            self._by_name.setdefault(normalize_name(item.name), item)

    def list_candidates(self, filter: Optional[CandidateFilter] = None) -> List[SakeItem]:
        if filter is None:
            return list(self.items)
        return [item for item in self.items if filter(item)]

    def _by_popularity(self, items: Iterable[SakeItem]) -> List[SakeItem]:
        indexed = list(enumerate(items))
        indexed.sort(key=lambda pair: (-self.popularity.get(pair[1].id, 0), pair[0]))
        return [item for _, item in indexed]

    def get_trending(self, limit: int) -> List[SakeItem]:
        """Items with a positive popularity count, most popular first; empty without popularity data."""
        ranked = [item for item in self._by_popularity(self.items) if self.popularity.get(item.id, 0) > 0]
        return ranked[:limit]

    def popular_by_category(self, limit: int = 5) -> Dict[str, List[SakeItem]]:
        ranked = self._by_popularity(self.items)
        rules: Dict[str, CandidateFilter] = {
            "sweet": lambda s: s.coordinate.sweetness > CATEGORY_THRESHOLD,
            "dry": lambda s: s.coordinate.sweetness < -CATEGORY_THRESHOLD,
            "rich": lambda s: s.coordinate.richness > CATEGORY_THRESHOLD,
            "light": lambda s: s.coordinate.richness < -CATEGORY_THRESHOLD,
        }
        return {name: [s for s in ranked if rule(s)][:limit] for name, rule in rules.items()}

    def resolve_by_name(self, name: str) -> Optional[SakeItem]:
        key = normalize_name(name)
        if not key:
            return None
        exact = self._by_name.get(key)
        if exact is not None:
            return exact
        # Menu lines often carry extra text (price, glass size); prefer the
        # longest catalog name contained in the line.
        contained = [(len(k), i) for i, k in enumerate(self._by_name) if k and k in key]
        if contained:
            _, index = max(contained, key=lambda pair: (pair[0], -pair[1]))
            return list(self._by_name.values())[index]
        partial = [item for k, item in self._by_name.items() if key in k]
        if len(partial) == 1:
            return partial[0]
        return None


class InMemoryFavorites:
    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._rows: Dict[str, List[FavoriteItem]] = {}

    def list_favorites(self, user_id: str) -> List[FavoriteItem]:
        rows = list(self._rows.get(user_id, []))
        return sorted(rows, key=lambda fav: fav.created_at, reverse=True)

    def add(self, user_id: str, sake: SakeItem, created_at: Optional[datetime] = None) -> None:
        rows = self._rows.setdefault(user_id, [])
        if any(fav.sake.id == sake.id for fav in rows):
            return
        rows.append(FavoriteItem(user_id=user_id, sake=sake, created_at=created_at or self._clock()))

    def remove(self, user_id: str, sake_id: str) -> None:
        rows = self._rows.get(user_id, [])
        self._rows[user_id] = [fav for fav in rows if fav.sake.id != sake_id]


@dataclass
class _CacheEntry:
    recommendations: List[Recommendation]
    expires_at: datetime


class InMemoryRecommendationCache:
    """Recommendation cache keyed by user and request key, with per-entry expiry."""

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._entries: Dict[Tuple[str, str], _CacheEntry] = {}

    def get(self, user_id: str, key: str) -> Optional[List[Recommendation]]:
        entry = self._entries.get((user_id, key))
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[(user_id, key)]
            return None
        return list(entry.recommendations)

    def put(self, user_id: str, key: str, recommendations: List[Recommendation], ttl: timedelta) -> None:
        self._entries[(user_id, key)] = _CacheEntry(
            recommendations=list(recommendations),
            expires_at=self._clock() + ttl,
        )

    def clear(self, user_id: str) -> None:
        for entry_key in [k for k in self._entries if k[0] == user_id]:
            del self._entries[entry_key]
