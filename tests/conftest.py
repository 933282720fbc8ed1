"""Shared fixtures: a fixed clock, sake/favorite builders and a small catalog."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from sakereco.coordinates import FlavorChart
from sakereco.models import FavoriteItem, SakeItem

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def build_sake(sake_id: str, chart=(0.5, 0.5, 0.5, 0.5, 0.5, 0.5), name: str | None = None, **extra) -> SakeItem:
    return SakeItem(
        id=sake_id,
        name=name or f"Sake {sake_id}",
        brewery=extra.pop("brewery", "Test Brewery"),
        flavor_chart=FlavorChart(*chart),
        **extra,
    )


def build_favorite(sake: SakeItem, days_ago: float = 0.0, user_id: str = "user-1") -> FavoriteItem:
    return FavoriteItem(user_id=user_id, sake=sake, created_at=NOW - timedelta(days=days_ago))


@pytest.fixture()
def now() -> datetime:
    return NOW


@pytest.fixture()
def make_sake():
    return build_sake


@pytest.fixture()
def make_favorite():
    return build_favorite


@pytest.fixture()
def catalog():
    """Twelve items spread over the taste map, in a fixed order."""
    charts = [
        (0.2, 0.9, 0.8, 0.3, 0.1, 0.2),
        (0.3, 0.8, 0.7, 0.4, 0.2, 0.3),
        (0.6, 0.7, 0.3, 0.6, 0.2, 0.7),
        (0.9, 0.6, 0.2, 0.5, 0.3, 0.8),
        (0.1, 0.2, 0.8, 0.2, 0.9, 0.1),
        (0.2, 0.1, 0.3, 0.3, 0.9, 0.9),
        (0.4, 0.5, 0.5, 0.5, 0.5, 0.5),
        (0.5, 0.4, 0.6, 0.7, 0.4, 0.3),
        (0.7, 0.3, 0.2, 0.8, 0.6, 0.6),
        (0.3, 0.6, 0.9, 0.2, 0.3, 0.1),
        (0.8, 0.9, 0.1, 0.9, 0.0, 0.9),
        (0.1, 0.0, 1.0, 0.1, 1.0, 0.0),
    ]
    return [build_sake(f"s{i:02d}", chart) for i, chart in enumerate(charts)]


@pytest.fixture()
def clock():
    """A settable clock for TTL tests."""

    class _Clock:
        def __init__(self) -> None:
            self.current = NOW

        def __call__(self) -> datetime:
            return self.current

        def advance(self, **kwargs) -> None:
            self.current = self.current + timedelta(**kwargs)

    return _Clock()
