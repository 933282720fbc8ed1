"""
Flavor chart to taste-map conversion.

A flavor chart scores six sensory axes in [0, 1]:

    f1 floral, f2 mellow, f3 heavy, f4 mild, f5 dry, f6 light

The taste map projects a chart onto two axes, each clamped to [-3, 3]:

    sweetness = (f2 - f5) * 3     mellow versus dry
    richness  = (f3 - f6) * 3     heavy versus light

Catalog items and favorites must both go through ``map_to_coordinate`` so
their distances stay comparable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

import numpy as np

COORDINATE_LIMIT = 3.0
COORDINATE_SCALE = 3.0
DESCRIPTOR_THRESHOLD = 0.6

FLAVOR_AXES: Tuple[str, ...] = ("floral", "mellow", "heavy", "mild", "dry", "light")

FLAVOR_DESCRIPTORS: Tuple[str, ...] = (
    "floral aroma",
    "mellow richness",
    "heavy body",
    "gentle mildness",
    "dry finish",
    "light mouthfeel",
)
FALLBACK_DESCRIPTION = "distinctive flavor"


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class FlavorChart:
    f1: float
    f2: float
    f3: float
    f4: float
    f5: float
    f6: float
    brand_id: Optional[int] = None

    def __post_init__(self) -> None:
        for axis, value in zip(FLAVOR_AXES, self.values()):
            if value is None or not np.isfinite(value) or not 0.0 <= value <= 1.0:
                raise ValueError(f"Flavor axis '{axis}' must be within [0, 1], got {value!r}")

    def values(self) -> Tuple[float, float, float, float, float, float]:
        return (self.f1, self.f2, self.f3, self.f4, self.f5, self.f6)

    def as_array(self) -> np.ndarray:
        return np.array(self.values(), dtype=float)

    @classmethod
    def from_row(cls, row: Mapping[str, Any], brand_id: Optional[int] = None) -> "FlavorChart":
        """Build a chart from ``f1..f6`` or ``f1_floral..f6_light`` style keys."""
        values = []
        for index, axis in enumerate(FLAVOR_AXES, start=1):
            raw = row.get(f"f{index}")
            if raw is None:
                raw = row.get(f"f{index}_{axis}")
            if raw is None:
                raise ValueError(f"Flavor chart row is missing axis f{index} ({axis})")
            values.append(float(raw))
        if brand_id is None:
            brand_id = row.get("brand_id", row.get("brandId"))
        return cls(*values, brand_id=int(brand_id) if brand_id is not None else None)


@dataclass(frozen=True)
class TasteCoordinate:
    sweetness: float
    richness: float

    def as_array(self) -> np.ndarray:
        return np.array([self.sweetness, self.richness], dtype=float)


def map_to_coordinate(chart: FlavorChart) -> TasteCoordinate:
    sweetness = _clamp((chart.f2 - chart.f5) * COORDINATE_SCALE, -COORDINATE_LIMIT, COORDINATE_LIMIT)
    richness = _clamp((chart.f3 - chart.f6) * COORDINATE_SCALE, -COORDINATE_LIMIT, COORDINATE_LIMIT)
    return TasteCoordinate(sweetness=sweetness, richness=richness)


def describe_flavor(chart: FlavorChart, separator: str = ", ") -> str:
    attributes = [
        descriptor
        for descriptor, value in zip(FLAVOR_DESCRIPTORS, chart.values())
        if value > DESCRIPTOR_THRESHOLD
    ]
    return separator.join(attributes) if attributes else FALLBACK_DESCRIPTION


def coordinate_quadrant(coordinate: TasteCoordinate) -> str:
    """Name the taste-map quadrant, e.g. ``"sweet-rich"``; the origin is ``"balanced"``."""
    if coordinate.sweetness == 0 and coordinate.richness == 0:
        return "balanced"
    sweet = "sweet" if coordinate.sweetness >= 0 else "dry"
    rich = "rich" if coordinate.richness >= 0 else "light"
    return f"{sweet}-{rich}"
