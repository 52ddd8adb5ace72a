"""
Recipe explorer: requested, recommended and trending recipe lists for a user.

Recommendations score completed recipes by how many categories they share
with the recipes the user has requested. Trending takes the most recent
completed recipes and re-ranks them by the source video's view count.
"""

import logging
from typing import List, Optional, Set

from sqlalchemy.orm import Session

from recipe_api.config import settings
from recipe_api.models.recipe import Recipe, RecipeStatus
from recipe_api.models.video_record import VideoRecord
from recipe_api.schemas.explorer import RecipeExplorerResponse, RecipeListItem
from recipe_api.services import request_history

logger = logging.getLogger(__name__)

REQUESTED_LIMIT = 20
RECOMMENDED_LIMIT = 10
TRENDING_LIMIT = 10


def _thumbnail_url(record: Optional[VideoRecord]) -> Optional[str]:
    thumbnails = (record.thumbnails if record is not None else None) or {}
    for size in ('high', 'default'):
        url = (thumbnails.get(size) or {}).get('url')
        if url:
            return url
    return None


def map_to_list_item(session: Session, recipe: Recipe) -> RecipeListItem:
    """Build a list item, joining thumbnail, channel and views from the cached video."""
    record = session.query(VideoRecord).filter_by(video_id=recipe.youtube_id).first()
    return RecipeListItem(
        id=recipe.id,
        youtube_id=recipe.youtube_id,
        title=recipe.title,
        description=recipe.description,
        thumbnail_url=_thumbnail_url(record),
        channel_name=record.channel_name if record is not None else None,
        view_count=int(record.view_count) if record is not None and record.view_count else None,
        difficulty=recipe.difficulty,
        estimated_time=recipe.estimated_time,
        servings=recipe.servings,
        categories=recipe.categories or [],
        tags=recipe.tags or [],
        created_at=recipe.created_at,
        updated_at=recipe.updated_at,
    )


def _newest_completed(session: Session, limit: int) -> List[Recipe]:
    return session.query(Recipe).filter(
        Recipe.status == RecipeStatus.COMPLETED
    ).order_by(
        Recipe.created_at.desc()
    ).limit(limit).all()


def get_user_request_history(session: Session, user_id: int, limit: int = 50) -> List[RecipeListItem]:
    """Recipes the user requested, most recent first; deleted recipes are skipped."""
    requests = request_history.find_by_user_id(session, user_id, limit)
    return [
        map_to_list_item(session, request.recipe)
        for request in requests
        if request.recipe is not None
    ]


def _recommended_recipes(session: Session, requested: List[RecipeListItem]) -> List[RecipeListItem]:
    categories: Set[str] = set()
    for item in requested:
        categories.update(item.categories)

    if not categories:
        return [map_to_list_item(session, recipe) for recipe in _newest_completed(session, RECOMMENDED_LIMIT)]

    requested_ids = {item.id for item in requested}
    candidates = _newest_completed(session, settings.recommendation_candidate_limit)

    scored = []
    for recipe in candidates:
        if recipe.id in requested_ids:
            continue
        score = sum(1 for category in (recipe.categories or []) if category in categories)
        if score > 0:
            scored.append((score, recipe))

    # Stable sort keeps newest-first order among equal scores
    scored.sort(key=lambda item: item[0], reverse=True)
    return [map_to_list_item(session, recipe) for _, recipe in scored[:RECOMMENDED_LIMIT]]


def _trending_recipes(session: Session, limit: int) -> List[RecipeListItem]:
    candidates = _newest_completed(session, settings.trending_candidate_limit)

    with_views = []
    for recipe in candidates:
        record = session.query(VideoRecord).filter_by(video_id=recipe.youtube_id).first()
        view_count = int(record.view_count) if record is not None and record.view_count else 0
        with_views.append((view_count, recipe))

    with_views.sort(key=lambda item: item[0], reverse=True)
    return [map_to_list_item(session, recipe) for _, recipe in with_views[:limit]]


def get_popular_recipes(session: Session, limit: int = TRENDING_LIMIT) -> List[RecipeListItem]:
    return _trending_recipes(session, limit)


def explore_recipes(session: Session, user_id: int) -> RecipeExplorerResponse:
    requested = get_user_request_history(session, user_id, REQUESTED_LIMIT)
    recommended = _recommended_recipes(session, requested)
    trending = _trending_recipes(session, TRENDING_LIMIT)

    logger.info(
        "Built recipe explorer lists",
        extra={
            "user_id": user_id,
            "requested": len(requested),
            "recommended": len(recommended),
            "trending": len(trending)
        }
    )
    return RecipeExplorerResponse(
        requested_recipes=requested,
        recommended_recipes=recommended,
        trending_recipes=trending,
    )
