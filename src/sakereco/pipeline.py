from __future__ import annotations

import argparse
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .analysis import PreferenceAnalyzer
from .config import (
    MAX_MENU_RECOMMENDATION_COUNT,
    AnalysisOptions,
    PipelineConfig,
    PipelinePaths,
    RecommendOptions,
    parse_mood,
)
from .menu import MenuRecommendationRequest, MenuRecommender, MenuStrategy
from .models import InsufficientData, SakeItem
from .scoring import CandidateScorer
from .service import RecommendationService
from .sources import InMemoryCatalog, InMemoryFavorites, utc_now

LOGGER = logging.getLogger(__name__)


def _parse_time(value: str) -> datetime:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    return pd.to_datetime(value, utc=True).to_pydatetime()


def _read_rows(path: Optional[Path]) -> List[Dict[str, Any]]:
    if path is None:
        return []
    return json.loads(Path(path).read_text(encoding="utf-8"))


def load_catalog(path: Path) -> List[SakeItem]:
    """Read a JSON list of sake rows; rows that fail validation are skipped."""
    items = []
    for row in _read_rows(path):
        try:
            items.append(SakeItem.from_row(row))
        except (KeyError, TypeError, ValueError) as exc:
            LOGGER.warning("Skipping catalog row %s: %s", row.get("id"), exc)
    return items


def load_favorites(rows: Sequence[Dict[str, Any]], catalog: Sequence[SakeItem]) -> InMemoryFavorites:
    """Load ``[{"user_id", "sake_id", "created_at"}, ...]`` rows into an in-memory store."""
    favorites = InMemoryFavorites()
    by_id = {item.id: item for item in catalog}
    for row in rows:
        sake = by_id.get(str(row["sake_id"]))
        if sake is None:
            LOGGER.warning("Favorite references unknown sake %s", row["sake_id"])
            continue
        created_at = _parse_time(row["created_at"]) if row.get("created_at") else None
        favorites.add(str(row["user_id"]), sake, created_at)
    return favorites


def favorite_counts(rows: Sequence[Dict[str, Any]]) -> Dict[str, int]:
    """How many times each sake was favorited, used as the trending signal."""
    if not rows:
        return {}
    counts = pd.DataFrame(list(rows))["sake_id"].astype(str).value_counts()
    return {sake_id: int(n) for sake_id, n in counts.items()}


def run_pipeline(
    config: PipelineConfig,
    user_id: Optional[str],
    now: Optional[datetime] = None,
    menu_items: Sequence[str] = (),
    dish_type: Optional[str] = None,
    strategy: MenuStrategy = MenuStrategy.SIMILARITY,
    seed: Optional[int] = None,
) -> Dict[str, Any]:
    paths = config.paths
    now = now or utc_now()
    items = load_catalog(paths.catalog_json)
    favorite_rows = _read_rows(paths.favorites_json)
    catalog = InMemoryCatalog(items, popularity=favorite_counts(favorite_rows))
    favorites = load_favorites(favorite_rows, items)
    analyzer = PreferenceAnalyzer(config.analysis)
    scorer = CandidateScorer(config.scoring)

    if menu_items:
        recommender = MenuRecommender(
            analyzer=analyzer,
            scorer=scorer,
            resolver=catalog,
            favorites_source=favorites,
            popularity_source=catalog,
        )
        request = MenuRecommendationRequest(
            menu_items=list(menu_items),
            dish_type=dish_type,
            user_id=user_id,
            count=min(config.recommend.count, MAX_MENU_RECOMMENDATION_COUNT),
            strategy=strategy,
            seed=seed,
        )
        return {"menu": recommender.recommend_for_menu(request, now).to_dict()}

    if user_id is None:
        raise ValueError("--user is required unless --menu is given")
    service = RecommendationService(
        favorites_source=favorites,
        catalog_source=catalog,
        popularity_source=catalog,
        analyzer=analyzer,
        scorer=scorer,
    )
    outcome = service.recommend_for_user(user_id, config.recommend, now=now, use_cache=False)
    preference = outcome.preference
    return {
        "userId": user_id,
        "mood": config.recommend.mood.value,
        "status": outcome.result.status.value,
        "message": outcome.result.message,
        "preference": None if isinstance(preference, InsufficientData) or preference is None else preference.to_dict(),
        "recommendations": outcome.result.to_records(),
    }


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Analyze a user's favorite sake and print recommendations (no Supabase required)."
    )
    parser.add_argument("--catalog", type=str, required=True, help="JSON list of sake master rows.")
    parser.add_argument("--favorites", type=str, default="", help="JSON list of {user_id, sake_id, created_at}.")
    parser.add_argument("--user", type=str, default=None, help="User id to recommend for.")
    parser.add_argument("--mood", type=str, default="usual", help="usual, adventure, discovery or special.")
    parser.add_argument("--count", type=int, default=20, help="How many recommendations to return.")
    parser.add_argument("--now", type=str, default="", help="ISO timestamp used as the current time.")
    parser.add_argument("--min-favorites", type=int, default=3, help="Favorites needed before analysis.")
    parser.add_argument("--decay-days", type=float, default=30.0, help="Recency decay constant in days.")
    parser.add_argument("--menu", type=str, nargs="*", default=[], help="Sake names listed on a menu.")
    parser.add_argument("--dish", type=str, default=None, help="Dish type for menu pairing.")
    parser.add_argument(
        "--strategy",
        type=str,
        default=MenuStrategy.SIMILARITY.value,
        choices=[s.value for s in MenuStrategy],
        help="Menu ranking strategy.",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for the random menu strategy.")
    parser.add_argument("--output", type=str, default="", help="Write the JSON result here instead of stdout.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None):
    args = _parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    paths = PipelinePaths(
        catalog_json=Path(args.catalog),
        favorites_json=Path(args.favorites) if args.favorites else None,
        output_json=Path(args.output) if args.output else None,
    )
    config = PipelineConfig(
        paths=paths,
        analysis=AnalysisOptions(min_favorites=args.min_favorites, time_decay_days=args.decay_days),
        recommend=RecommendOptions(count=args.count, mood=parse_mood(args.mood)),
    )
    now = _parse_time(args.now) if args.now else None
    payload = run_pipeline(
        config,
        user_id=args.user,
        now=now,
        menu_items=args.menu,
        dish_type=args.dish,
        strategy=MenuStrategy(args.strategy),
        seed=args.seed,
    )

    text = json.dumps(payload, indent=2, ensure_ascii=False)
    if paths.output_json is not None:
        paths.output_json.parent.mkdir(parents=True, exist_ok=True)
        paths.output_json.write_text(text, encoding="utf-8")
    else:
        print(text)

    if "menu" in payload:
        found = payload["menu"]["totalFound"]
        picked = len(payload["menu"]["recommendations"])
        print(f"[sakereco] {picked} menu recommendation(s) from {found} matched item(s)")
    else:
        print(f"[sakereco] {len(payload['recommendations'])} recommendation(s) for {args.user} ({payload['status']})")


if __name__ == "__main__":
    main()
