from __future__ import annotations

import pytest

from sakereco.errors import EmptyMenu
from sakereco.menu import (
    LOGIN_MESSAGE,
    PAIRING_BOOST,
    MenuRecommendationRequest,
    MenuRecommender,
    MenuStrategy,
    pairing_score,
)
from sakereco.models import RecommendationType
from sakereco.sources import InMemoryCatalog, InMemoryFavorites

LIGHT = (0.3, 0.4, 0.1, 0.5, 0.4, 0.9)
HEAVY = (0.3, 0.5, 0.9, 0.4, 0.3, 0.1)


@pytest.fixture()
def menu_catalog(make_sake):
    return InMemoryCatalog(
        [
            make_sake("dassai", (0.7, 0.6, 0.3, 0.6, 0.3, 0.6), name="獺祭 純米大吟醸 45"),
            make_sake("juyondai", (0.6, 0.7, 0.5, 0.5, 0.2, 0.4), name="十四代 本丸"),
            make_sake("light", LIGHT, name="Kirei Light"),
            make_sake("heavy", HEAVY, name="Kokumi Heavy"),
        ],
        popularity={"heavy": 5, "dassai": 3},
    )


@pytest.fixture()
def favorites(make_sake, now):
    store = InMemoryFavorites()
    for i in range(3):
        store.add("fan", make_sake(f"fav{i}", LIGHT), created_at=now)
    store.add("newbie", make_sake("fav-x", LIGHT), created_at=now)
    return store


@pytest.fixture()
def recommender(menu_catalog, favorites):
    return MenuRecommender(resolver=menu_catalog, favorites_source=favorites, popularity_source=menu_catalog)


def test_unmatched_menu_names_are_reported(recommender, now):
    request = MenuRecommendationRequest(menu_items=["獺祭 純米大吟醸 45", "存在しない酒"])
    result = recommender.recommend_for_menu(request, now)

    assert result.not_found == ["存在しない酒"]
    assert result.total_found == 1
    assert [rec.sake.id for rec in result.recommendations] == ["dassai"]


def test_anonymous_user_gets_popularity_ranking(recommender, now):
    request = MenuRecommendationRequest(menu_items=["Kirei Light", "獺祭 純米大吟醸 45", "Kokumi Heavy"])
    result = recommender.recommend_for_menu(request, now)

    assert result.requires_more_favorites is True
    assert result.favorites_count == 0
    assert result.message == LOGIN_MESSAGE
    assert [rec.sake.id for rec in result.recommendations] == ["heavy", "dassai", "light"]
    assert all(rec.type is RecommendationType.TRENDING for rec in result.recommendations)


def test_user_with_too_few_favorites_falls_back(recommender, now):
    request = MenuRecommendationRequest(menu_items=["Kirei Light", "Kokumi Heavy"], user_id="newbie")
    result = recommender.recommend_for_menu(request, now)
    assert result.requires_more_favorites is True
    assert result.favorites_count == 1
    assert "3" in result.message


def test_personalized_ranking_stays_inside_the_menu(recommender, now):
    request = MenuRecommendationRequest(menu_items=["Kokumi Heavy", "Kirei Light"], user_id="fan")
    result = recommender.recommend_for_menu(request, now)

    assert result.requires_more_favorites is None
    assert [rec.sake.id for rec in result.recommendations] == ["light", "heavy"]
    assert result.recommendations[0].similarity_score == pytest.approx(1.0)
    assert result.total_found == 2


def test_dish_type_adds_a_bounded_boost(recommender, menu_catalog, now):
    request = MenuRecommendationRequest(
        menu_items=["Kokumi Heavy", "Kirei Light", "十四代 本丸"], user_id="fan", dish_type="grilled"
    )
    result = recommender.recommend_for_menu(request, now)
    menu_ids = {"heavy", "light", "juyondai"}
    for rec in result.recommendations:
        assert rec.sake.id in menu_ids
        boost = rec.score - rec.similarity_score
        assert boost == pytest.approx(PAIRING_BOOST * pairing_score("grilled", rec.sake))
        assert 0.0 <= boost <= PAIRING_BOOST


def test_pairing_strategy_ranks_by_dish(recommender, now):
    request = MenuRecommendationRequest(
        menu_items=["Kokumi Heavy", "Kirei Light"], dish_type="sashimi", strategy="pairing"
    )
    result = recommender.recommend_for_menu(request, now)
    assert [rec.sake.id for rec in result.recommendations] == ["light", "heavy"]
    assert result.recommendations[0].type is RecommendationType.PAIRING
    assert result.recommendations[0].reason == "Brings out the delicate flavor of sashimi"


def test_random_strategy_is_reproducible_with_a_seed(recommender, now):
    menu = ["Kokumi Heavy", "Kirei Light", "十四代 本丸", "獺祭 純米大吟醸 45"]
    first = recommender.recommend_for_menu(MenuRecommendationRequest(menu, strategy=MenuStrategy.RANDOM, seed=7), now)
    second = recommender.recommend_for_menu(MenuRecommendationRequest(menu, strategy=MenuStrategy.RANDOM, seed=7), now)

    assert len(first.recommendations) == 1
    assert first.to_dict() == second.to_dict()
    pick = first.recommendations[0]
    assert pick.type is RecommendationType.RANDOM
    assert 0.5 <= pick.similarity_score <= 0.8
    assert 3.5 <= pick.predicted_rating <= 5.0


def test_resolved_items_take_precedence_over_the_catalog(recommender, make_sake, now):
    special = make_sake("house", LIGHT, name="Kirei Light")
    request = MenuRecommendationRequest(menu_items=["Kirei Light"], resolved=[special])
    result = recommender.recommend_for_menu(request, now)
    assert [rec.sake.id for rec in result.recommendations] == ["house"]


def test_duplicate_menu_lines_resolve_once(recommender, now):
    request = MenuRecommendationRequest(menu_items=["Kirei Light", "  kirei   light ", "KIREI LIGHT"])
    result = recommender.recommend_for_menu(request, now)
    assert result.total_found == 1
    assert len(result.recommendations) == 1


def test_menu_line_with_extra_text_still_matches(recommender, now):
    request = MenuRecommendationRequest(menu_items=["十四代 本丸 (1合) 1,800円"])
    result = recommender.recommend_for_menu(request, now)
    assert result.not_found == []
    assert result.recommendations[0].sake.id == "juyondai"


def test_nothing_resolved_returns_a_message(recommender, now):
    request = MenuRecommendationRequest(menu_items=["存在しない酒", "Unknown Sake"])
    result = recommender.recommend_for_menu(request, now)
    assert result.recommendations == []
    assert result.total_found == 0
    assert result.not_found == ["存在しない酒", "Unknown Sake"]
    assert result.message


@pytest.mark.parametrize("menu_items", [[], ["", "   "]])
def test_empty_menu_is_rejected(recommender, now, menu_items):
    with pytest.raises(EmptyMenu):
        recommender.recommend_for_menu(MenuRecommendationRequest(menu_items=menu_items), now)


@pytest.mark.parametrize("count", [0, 51])
def test_count_must_be_in_range(count):
    with pytest.raises(ValueError):
        MenuRecommendationRequest(menu_items=["x"], count=count)


def test_result_serializes_with_camel_case_keys(recommender, now):
    request = MenuRecommendationRequest(menu_items=["Kirei Light", "Nope"])
    payload = recommender.recommend_for_menu(request, now).to_dict()
    assert payload["notFound"] == ["Nope"]
    assert payload["totalFound"] == 1
    assert payload["requiresMoreFavorites"] is True
    assert payload["recommendations"][0]["sake"]["name"] == "Kirei Light"
