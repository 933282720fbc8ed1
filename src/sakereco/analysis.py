from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .config import AnalysisOptions
from .models import (
    AXIS_TASTE_TYPES,
    FavoriteItem,
    InsufficientData,
    PreferenceVector,
    TasteType,
    UserTastePreference,
)

LOGGER = logging.getLogger(__name__)

VECTOR_COORDINATE_LIMIT = 5.0
# Half the diagonal of the [-3, 3] taste map: the largest RMS spread a set of
# coordinates can have around its own centroid.
MAX_COORDINATE_SPREAD = 3.0 * math.sqrt(2.0)

DOMINANT_AXIS_THRESHOLD = 0.6
DOMINANT_AXIS_MARGIN = 0.15
EXPLORER_ADVENTURE_THRESHOLD = 0.6

AnalysisResult = Union[UserTastePreference, InsufficientData]


def _as_utc(value: datetime) -> pd.Timestamp:
    stamp = pd.Timestamp(value)
    if stamp.tzinfo is None:
        return stamp.tz_localize("UTC")
    return stamp.tz_convert("UTC")


def _favorites_frame(favorites: Sequence[FavoriteItem]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "position": range(len(favorites)),
            "sake_id": [fav.sake.id for fav in favorites],
            "created_at": pd.to_datetime([fav.created_at for fav in favorites], utc=True),
        }
    )


def decay_weights(created_at: pd.Series, now: datetime, time_decay_days: float) -> np.ndarray:
    """Exponential recency weights normalized to sum to 1.

    Ages are measured relative to the newest timestamp so very old sets do
    not underflow to zero; the normalized result is the same as
    ``exp(-age / time_decay_days)`` divided by its sum.
    """
    age_days = (_as_utc(now) - created_at).dt.total_seconds() / 86400.0
    age_days = age_days.fillna(0.0).clip(lower=0.0).to_numpy(dtype=float)
    decay = np.exp(-(age_days - age_days.min()) / time_decay_days)
    return decay / decay.sum()


def classify_taste(components: np.ndarray, adventure_score: float) -> TasteType:
    """Label a preference by its dominant flavor axis.

    An adventurous profile is labelled ``explorer`` regardless of which axis
    dominates.
    """
    if adventure_score >= EXPLORER_ADVENTURE_THRESHOLD:
        return TasteType.EXPLORER
    order = np.argsort(-components, kind="stable")
    top = float(components[order[0]])
    runner_up = float(components[order[1]])
    if top >= DOMINANT_AXIS_THRESHOLD or top - runner_up >= DOMINANT_AXIS_MARGIN:
        return AXIS_TASTE_TYPES[int(order[0])]
    return TasteType.BALANCED


def diversity_score(coordinates: np.ndarray) -> float:
    if len(coordinates) < 2:
        return 0.0
    centroid = coordinates.mean(axis=0)
    spread = math.sqrt(float(np.mean(np.sum((coordinates - centroid) ** 2, axis=1))))
    return min(spread / MAX_COORDINATE_SPREAD, 1.0)


def adventure_score(coordinates: np.ndarray, aggregate: np.ndarray) -> float:
    if len(coordinates) == 0:
        return 0.0
    distances = np.linalg.norm(coordinates - aggregate, axis=1)
    return min(float(distances.mean()) / MAX_COORDINATE_SPREAD, 1.0)


class PreferenceAnalyzer:
    """Aggregates a user's favorites into a decay-weighted taste preference."""

    def __init__(self, options: Optional[AnalysisOptions] = None) -> None:
        self.options = options or AnalysisOptions()

    def select_recent(self, favorites: Sequence[FavoriteItem]) -> Tuple[list, pd.DataFrame]:
        frame = _favorites_frame(favorites)
        frame = frame.sort_values(by=["created_at", "position"], ascending=[False, True])
        frame = frame.head(self.options.max_favorites).reset_index(drop=True)
        selected = [favorites[int(pos)] for pos in frame["position"]]
        return selected, frame

    def analyze(
        self,
        favorites: Sequence[FavoriteItem],
        now: datetime,
        user_id: Optional[str] = None,
    ) -> AnalysisResult:
        favorites = list(favorites)
        if user_id is None and favorites:
            user_id = favorites[0].user_id
        if len(favorites) < self.options.min_favorites:
            LOGGER.debug(
                "User %s has %d favorites, %d required for analysis",
                user_id,
                len(favorites),
                self.options.min_favorites,
            )
            return InsufficientData(
                user_id=user_id,
                favorites_count=len(favorites),
                min_favorites=self.options.min_favorites,
                message=(
                    f"At least {self.options.min_favorites} favorites are needed to analyze "
                    f"your taste (currently {len(favorites)})"
                ),
            )

        selected, frame = self.select_recent(favorites)
        weights = decay_weights(frame["created_at"], now, self.options.time_decay_days)
        profiles = np.vstack([fav.sake.profile() for fav in selected])

        aggregate = weights @ profiles
        aggregate[:2] = np.clip(aggregate[:2], -VECTOR_COORDINATE_LIMIT, VECTOR_COORDINATE_LIMIT)
        aggregate[2:] = np.clip(aggregate[2:], 0.0, 1.0)
        vector = PreferenceVector.from_array(aggregate)

        coordinates = profiles[:, :2]
        diversity = diversity_score(coordinates)
        adventure = adventure_score(coordinates, aggregate[:2])
        taste_type = classify_taste(vector.flavor_components(), adventure)

        LOGGER.debug(
            "Analyzed %d favorites for user %s: type=%s diversity=%.3f adventure=%.3f",
            len(selected),
            user_id,
            taste_type.value,
            diversity,
            adventure,
        )
        return UserTastePreference(
            user_id=user_id,
            vector=vector,
            taste_type=taste_type,
            diversity_score=diversity,
            adventure_score=adventure,
            total_favorites=len(selected),
            calculated_at=now,
            weights=tuple(float(w) for w in weights),
        )
