"""
API endpoints for recipe generation.

Generation is asynchronous: POST /generate returns the job immediately and
clients poll GET /by-video/{video_ref} or GET /{recipe_id} for the result.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status

from recipe_api.api.deps import get_optional_user, get_recipe_generator
from recipe_api.exceptions import ValidationException
from recipe_api.models.user import User
from recipe_api.schemas import GenerateRecipeRequest, RecipeResponse
from recipe_api.services.recipe_generator import RecipeGenerator

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/generate", response_model=RecipeResponse)
async def generate_recipe(
    request: GenerateRecipeRequest,
    generator: RecipeGenerator = Depends(get_recipe_generator),
    user: Optional[User] = Depends(get_optional_user)
):
    """
    Start recipe generation for a YouTube video.

    Returns the existing job when one is already processing or completed;
    a failed job is retried. When X-User-Id is sent the request is recorded
    in that user's history.
    """
    # Validate request
    if not request.video_id_or_url.strip():
        raise ValidationException(
            "Video ID or URL must not be blank",
            details={"field": "video_id_or_url", "expected": "non-empty string"}
        )

    recipe = await generator.generate_recipe(
        request.video_id_or_url,
        user_id=user.id if user is not None else None
    )
    return RecipeResponse.model_validate(recipe)


@router.get("/by-video/{video_ref:path}", response_model=RecipeResponse)
def get_recipe_by_video(
    video_ref: str,
    generator: RecipeGenerator = Depends(get_recipe_generator)
):
    """Get the recipe job for a video ID or URL (URL-encode full URLs)."""
    return RecipeResponse.model_validate(generator.get_recipe(video_ref))


@router.get("/{recipe_id}", response_model=RecipeResponse)
def get_recipe(
    recipe_id: UUID,
    generator: RecipeGenerator = Depends(get_recipe_generator)
):
    return RecipeResponse.model_validate(generator.get_recipe_by_id(recipe_id))


@router.delete("/{recipe_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_recipe(
    recipe_id: UUID,
    generator: RecipeGenerator = Depends(get_recipe_generator)
):
    """Delete a recipe. Deleting an unknown ID is not an error."""
    generator.delete_recipe(recipe_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
