"""
Shared FastAPI dependencies.

Service singletons are created lazily so importing the app has no side
effects; tests replace them through app.dependency_overrides.
"""

import logging
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from recipe_api.config import settings
from recipe_api.database import get_db
from recipe_api.exceptions import AuthenticationException
from recipe_api.models.user import User
from recipe_api.services.recipe_extraction import get_extraction_provider, load_prompt_config
from recipe_api.services.recipe_generator import RecipeGenerator
from recipe_api.services.video_data_service import VideoDataService

logger = logging.getLogger(__name__)

_video_data_service: Optional[VideoDataService] = None
_recipe_generator: Optional[RecipeGenerator] = None


def get_video_data_service() -> VideoDataService:
    global _video_data_service
    if _video_data_service is None:
        _video_data_service = VideoDataService()
    return _video_data_service


def get_recipe_generator() -> RecipeGenerator:
    """Process-wide generator; the prompt config is loaded once here."""
    global _recipe_generator
    if _recipe_generator is None:
        _recipe_generator = RecipeGenerator(
            video_data_service=get_video_data_service(),
            provider=get_extraction_provider(),
            prompt_config=load_prompt_config(settings.prompt_config_path),
        )
        logger.info(
            "Recipe generator initialized",
            extra={"provider": _recipe_generator.provider.name}
        )
    return _recipe_generator


def active_recipe_generator() -> Optional[RecipeGenerator]:
    return _recipe_generator


def _resolve_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise AuthenticationException(f"Unknown user: {user_id}", details={"user_id": user_id})
    return user


def get_current_user(
    x_user_id: Optional[int] = Header(default=None),
    db: Session = Depends(get_db)
) -> User:
    """Acting user from the X-User-Id header; required."""
    if x_user_id is None:
        raise AuthenticationException("Missing X-User-Id header")
    return _resolve_user(db, x_user_id)


def get_optional_user(
    x_user_id: Optional[int] = Header(default=None),
    db: Session = Depends(get_db)
) -> Optional[User]:
    """Acting user when the X-User-Id header is present."""
    if x_user_id is None:
        return None
    return _resolve_user(db, x_user_id)
