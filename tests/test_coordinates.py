from __future__ import annotations

import itertools

import pytest

from sakereco.coordinates import (
    FALLBACK_DESCRIPTION,
    FlavorChart,
    TasteCoordinate,
    coordinate_quadrant,
    describe_flavor,
    map_to_coordinate,
)


def test_map_to_coordinate_uses_mellow_dry_and_heavy_light_axes():
    chart = FlavorChart(0.4, 0.8, 0.3, 0.5, 0.2, 0.6)
    coordinate = map_to_coordinate(chart)
    assert coordinate.sweetness == pytest.approx(1.8)
    assert coordinate.richness == pytest.approx(-0.9)


def test_sweetness_reaches_both_clamp_boundaries():
    assert map_to_coordinate(FlavorChart(0.5, 1.0, 0.5, 0.5, 0.0, 0.5)).sweetness == 3.0
    assert map_to_coordinate(FlavorChart(0.5, 0.0, 0.5, 0.5, 1.0, 0.5)).sweetness == -3.0


def test_richness_reaches_both_clamp_boundaries():
    assert map_to_coordinate(FlavorChart(0.5, 0.5, 1.0, 0.5, 0.5, 0.0)).richness == 3.0
    assert map_to_coordinate(FlavorChart(0.5, 0.5, 0.0, 0.5, 0.5, 1.0)).richness == -3.0


def test_map_to_coordinate_extremes_stay_within_bounds():
    for f2, f3, f5, f6 in itertools.product((0.0, 1.0), repeat=4):
        coordinate = map_to_coordinate(FlavorChart(0.5, f2, f3, 0.5, f5, f6))
        assert -3.0 <= coordinate.sweetness <= 3.0
        assert -3.0 <= coordinate.richness <= 3.0

    corner = map_to_coordinate(FlavorChart(0.0, 1.0, 1.0, 0.0, 0.0, 0.0))
    assert (corner.sweetness, corner.richness) == (3.0, 3.0)


def test_map_to_coordinate_is_deterministic():
    chart = FlavorChart(0.1, 0.35, 0.72, 0.4, 0.15, 0.27)
    assert map_to_coordinate(chart) == map_to_coordinate(chart)


@pytest.mark.parametrize("bad", [-0.01, 1.2, float("nan")])
def test_flavor_chart_rejects_values_outside_unit_interval(bad):
    with pytest.raises(ValueError):
        FlavorChart(0.5, bad, 0.5, 0.5, 0.5, 0.5)


def test_flavor_chart_from_row_accepts_named_axes():
    row = {
        "f1_floral": 0.1,
        "f2_mellow": 0.2,
        "f3_heavy": 0.3,
        "f4_mild": 0.4,
        "f5_dry": 0.5,
        "f6_light": 0.6,
        "brand_id": 42,
    }
    chart = FlavorChart.from_row(row)
    assert chart.values() == (0.1, 0.2, 0.3, 0.4, 0.5, 0.6)
    assert chart.brand_id == 42


def test_flavor_chart_from_row_requires_every_axis():
    with pytest.raises(ValueError, match="f4"):
        FlavorChart.from_row({"f1": 0.1, "f2": 0.2, "f3": 0.3, "f5": 0.5, "f6": 0.6})


def test_describe_flavor_lists_strong_axes():
    chart = FlavorChart(0.9, 0.3, 0.2, 0.6, 0.7, 0.1)
    assert describe_flavor(chart) == "floral aroma, dry finish"
    assert describe_flavor(chart, separator=" / ") == "floral aroma / dry finish"


def test_describe_flavor_falls_back_when_nothing_stands_out():
    assert describe_flavor(FlavorChart(0.5, 0.5, 0.5, 0.5, 0.5, 0.5)) == FALLBACK_DESCRIPTION


@pytest.mark.parametrize(
    "sweetness,richness,expected",
    [
        (1.0, 1.0, "sweet-rich"),
        (1.0, -1.0, "sweet-light"),
        (-1.0, 2.0, "dry-rich"),
        (-0.5, -0.5, "dry-light"),
        (0.0, 0.0, "balanced"),
    ],
)
def test_coordinate_quadrant(sweetness, richness, expected):
    assert coordinate_quadrant(TasteCoordinate(sweetness, richness)) == expected


def test_sake_item_coordinate_matches_mapper(make_sake):
    sake = make_sake("a", (0.2, 0.9, 0.1, 0.3, 0.4, 0.6))
    assert sake.coordinate == map_to_coordinate(sake.flavor_chart)
    profile = sake.profile()
    assert profile.shape == (8,)
    assert profile[0] == pytest.approx(1.5)
    assert profile[1] == pytest.approx(-1.5)
