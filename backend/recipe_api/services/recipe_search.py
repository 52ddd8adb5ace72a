import math
import logging
from collections import Counter
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from recipe_api.models.recipe import Recipe, RecipeStatus
from recipe_api.schemas.search import KeywordItem, PaginationMeta, RecipeSearchResponse
from recipe_api.services.recipe_explorer import map_to_list_item

logger = logging.getLogger(__name__)


def _completed(session: Session):
    return session.query(Recipe).filter(Recipe.status == RecipeStatus.COMPLETED)


def _ranked(counter: Counter, limit: int) -> List[KeywordItem]:
    return [KeywordItem(keyword=keyword, count=count) for keyword, count in counter.most_common(limit)]


def search_recipes(
    session: Session,
    keyword: Optional[str] = None,
    category: Optional[str] = None,
    page: int = 1,
    limit: int = 20
) -> RecipeSearchResponse:
    """
    Page through completed recipes, newest first.

    keyword matches the title case-insensitively; category must be one of the
    recipe's categories.
    """
    query = _completed(session)
    if keyword:
        query = query.filter(func.lower(Recipe.title).contains(keyword.lower(), autoescape=True))
    query = query.order_by(Recipe.created_at.desc())

    offset = (page - 1) * limit
    if category:
        # Categories are a JSON list; filter in Python so paging counts stay right
        matches = [recipe for recipe in query.all() if category in (recipe.categories or [])]
        total_items = len(matches)
        recipes = matches[offset:offset + limit]
    else:
        total_items = query.count()
        recipes = query.offset(offset).limit(limit).all()

    total_pages = math.ceil(total_items / limit) if limit else 0
    meta = PaginationMeta(
        current_page=page,
        items_per_page=limit,
        total_items=total_items,
        total_pages=total_pages,
        has_next_page=page < total_pages,
        has_previous_page=page > 1,
    )

    logger.debug(
        "Recipe search",
        extra={"keyword": keyword, "category": category, "page": page, "total_items": total_items}
    )
    return RecipeSearchResponse(items=[map_to_list_item(session, recipe) for recipe in recipes], meta=meta)


def get_popular_keywords(session: Session, limit: int = 10) -> List[KeywordItem]:
    """Categories of completed recipes, most frequent first."""
    counter: Counter = Counter()
    for recipe in _completed(session).all():
        counter.update(recipe.categories or [])
    return _ranked(counter, limit)


def get_suggested_keywords(session: Session, text: str, limit: int = 10) -> List[KeywordItem]:
    """Titles, categories and tags containing the input, most frequent first."""
    if not text or not text.strip():
        return []

    needle = text.lower()
    counter: Counter = Counter()
    for recipe in _completed(session).all():
        if recipe.title and needle in recipe.title.lower():
            counter[recipe.title] += 1
        for value in (recipe.categories or []) + (recipe.tags or []):
            if needle in value.lower():
                counter[value] += 1
    return _ranked(counter, limit)
