from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from recipe_api.database import get_db
from recipe_api.schemas import KeywordsResponse, RecipeSearchResponse
from recipe_api.services import recipe_search

router = APIRouter()


@router.get("", response_model=RecipeSearchResponse)
def search_recipes(
    keyword: Optional[str] = None,
    category: Optional[str] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """Search completed recipes by title keyword and/or category."""
    return recipe_search.search_recipes(db, keyword=keyword, category=category, page=page, limit=limit)


@router.get("/keywords/popular", response_model=KeywordsResponse)
def get_popular_keywords(
    limit: int = Query(default=10, ge=1, le=50),
    db: Session = Depends(get_db)
):
    return KeywordsResponse(keywords=recipe_search.get_popular_keywords(db, limit))


@router.get("/keywords/suggest", response_model=KeywordsResponse)
def get_suggested_keywords(
    q: str = Query(default=""),
    limit: int = Query(default=10, ge=1, le=50),
    db: Session = Depends(get_db)
):
    """Autocomplete suggestions from recipe titles, categories and tags."""
    return KeywordsResponse(keywords=recipe_search.get_suggested_keywords(db, q, limit))
