"""Exceptions raised by the recommendation core.

Recoverable outcomes (too few favorites, nothing left to recommend, menu
lines that do not match the catalog) are returned as typed results instead;
see ``InsufficientData``, ``RecommendationStatus`` and
``RestaurantRecommendationsResult.not_found``.
"""

from __future__ import annotations


class SakeRecoError(Exception):
    """Base class for errors raised by sakereco."""


class EmptyMenu(SakeRecoError, ValueError):
    """The menu recommendation request did not list any menu items."""

    def __init__(self, message: str = "Menu items are required") -> None:
        super().__init__(message)


class InsufficientPreferenceData(SakeRecoError):
    """The scorer was handed a preference the analyzer flagged as insufficient."""
