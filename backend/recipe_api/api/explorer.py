from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from recipe_api.api.deps import get_current_user
from recipe_api.database import get_db
from recipe_api.models.user import User
from recipe_api.schemas import RecipeExplorerResponse, RecipeListItem
from recipe_api.services import recipe_explorer

router = APIRouter()


@router.get("/explore", response_model=RecipeExplorerResponse)
def explore_recipes(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Requested, recommended and trending recipes for the acting user."""
    return recipe_explorer.explore_recipes(db, user.id)


@router.get("/popular", response_model=List[RecipeListItem])
def get_popular_recipes(
    limit: int = Query(default=10, ge=1, le=50),
    db: Session = Depends(get_db)
):
    return recipe_explorer.get_popular_recipes(db, limit)


@router.get("/my-requests", response_model=List[RecipeListItem])
def get_my_requests(
    limit: int = Query(default=50, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Recipes the acting user requested, most recent first."""
    return recipe_explorer.get_user_request_history(db, user.id, limit)
