from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Tuple


class Mood(str, Enum):
    USUAL = "usual"
    ADVENTURE = "adventure"
    DISCOVERY = "discovery"
    SPECIAL = "special"


RECOMMENDATION_CACHE_TTL_HOURS = 12
DEFAULT_MENU_RECOMMENDATION_COUNT = 10
MAX_MENU_RECOMMENDATION_COUNT = 50

# Share of the requested count given to each pool: (similar, explore, trending).
MOOD_POOL_SHARES: Dict[Mood, Tuple[float, float, float]] = {
    Mood.USUAL: (0.7, 0.2, 0.1),
    Mood.ADVENTURE: (0.4, 0.5, 0.1),
    Mood.DISCOVERY: (0.3, 0.5, 0.2),
    Mood.SPECIAL: (0.4, 0.2, 0.4),
}


def parse_mood(value: Mood | str | None) -> Mood:
    if value is None:
        return Mood.USUAL
    if isinstance(value, Mood):
        return value
    try:
        return Mood(str(value).strip().lower())
    except ValueError:
        raise ValueError(f"Unknown mood '{value}', expected one of {[m.value for m in Mood]}") from None


@dataclass
class AnalysisOptions:
    """Parameters used when aggregating favorites into a preference vector."""

    min_favorites: int = 3
    max_favorites: int = 50
    time_decay_days: float = 30.0

    def __post_init__(self) -> None:
        if self.min_favorites < 1:
            raise ValueError("min_favorites must be at least 1")
        if self.max_favorites < self.min_favorites:
            raise ValueError("max_favorites must not be smaller than min_favorites")
        if self.time_decay_days <= 0:
            raise ValueError("time_decay_days must be positive")


@dataclass
class RecommendOptions:
    """Per-request knobs for the candidate scorer."""

    count: int = 20
    mood: Mood = Mood.USUAL
    include_similar: bool = True
    include_explore: bool = True
    include_trending: bool = True
    rating_adjustments: Dict[Mood, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.mood = parse_mood(self.mood)
        self.rating_adjustments = {
            parse_mood(mood): float(delta) for mood, delta in self.rating_adjustments.items()
        }
        if self.count < 1:
            raise ValueError("count must be at least 1")
        if not (self.include_similar or self.include_explore or self.include_trending):
            raise ValueError("At least one recommendation pool must be enabled")

    def pool_shares(self) -> Tuple[float, float, float]:
        similar, explore, trending = MOOD_POOL_SHARES[self.mood]
        return (
            similar if self.include_similar else 0.0,
            explore if self.include_explore else 0.0,
            trending if self.include_trending else 0.0,
        )

    def cache_key(self) -> str:
        """Every option that changes the result, e.g. ``"usual:n=20:pools=111:adj=0"``."""
        pools = "".join(
            "1" if enabled else "0"
            for enabled in (self.include_similar, self.include_explore, self.include_trending)
        )
        adjustment = self.rating_adjustments.get(self.mood, 0.0)
        return f"{self.mood.value}:n={self.count}:pools={pools}:adj={adjustment:g}"


@dataclass
class ScoringConfig:
    """Distance weighting and exploration band used by the scorer."""

    coordinate_weight: float = 2.0
    flavor_weight: float = 0.3
    explore_min_distance: float = 0.2
    explore_adventure_span: float = 0.2
    explore_band_width: float = 0.3
    trending_fetch_factor: int = 2


@dataclass
class PipelinePaths:
    """Input/output paths used by the command line pipeline."""

    catalog_json: Path = Path("data/catalog.json")
    favorites_json: Optional[Path] = None
    output_json: Optional[Path] = None


@dataclass
class PipelineConfig:
    paths: PipelinePaths = field(default_factory=PipelinePaths)
    analysis: AnalysisOptions = field(default_factory=AnalysisOptions)
    recommend: RecommendOptions = field(default_factory=RecommendOptions)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
