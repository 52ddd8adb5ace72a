"""
Request history: which recipes each user asked for, and when.

One row per (user, recipe). Asking again only moves updated_at forward,
which is what recency ordering and recommendation signals are based on.
"""

import logging
from datetime import timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from recipe_api.database import utcnow
from recipe_api.exceptions import DatabaseException
from recipe_api.models.user_recipe_request import UserRecipeRequest

logger = logging.getLogger(__name__)


def _touch(session: Session, entry: UserRecipeRequest) -> UserRecipeRequest:
    now = utcnow()
    # Keep updated_at strictly increasing even when the clock has not ticked
    if entry.updated_at is not None and now <= entry.updated_at:
        now = entry.updated_at + timedelta(microseconds=1)
    entry.updated_at = now
    session.commit()
    return entry


def find_by_user_id_and_recipe_id(session: Session, user_id: int, recipe_id: UUID) -> Optional[UserRecipeRequest]:
    return session.query(UserRecipeRequest).filter(
        UserRecipeRequest.user_id == user_id,
        UserRecipeRequest.recipe_id == recipe_id
    ).first()


def create_or_update(session: Session, user_id: int, recipe_id: UUID) -> UserRecipeRequest:
    """
    Record that a user requested a recipe.

    An existing entry is touched (only updated_at changes); otherwise a new
    entry is inserted. A concurrent insert of the same pair is resolved by
    touching the row that won.
    """
    existing = find_by_user_id_and_recipe_id(session, user_id, recipe_id)
    if existing is not None:
        logger.debug("Touching recipe request", extra={"user_id": user_id, "recipe_id": str(recipe_id)})
        return _touch(session, existing)

    now = utcnow()
    entry = UserRecipeRequest(user_id=user_id, recipe_id=recipe_id, created_at=now, updated_at=now)
    session.add(entry)
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        existing = find_by_user_id_and_recipe_id(session, user_id, recipe_id)
        if existing is None:
            logger.error(
                "Failed to record recipe request",
                extra={"user_id": user_id, "recipe_id": str(recipe_id), "error": str(e)}
            )
            raise DatabaseException(
                "Failed to record recipe request",
                details={"user_id": user_id, "recipe_id": str(recipe_id)}
            ) from e
        return _touch(session, existing)

    logger.info("Recorded recipe request", extra={"user_id": user_id, "recipe_id": str(recipe_id)})
    return entry


def find_by_user_id(session: Session, user_id: int, limit: int = 100) -> List[UserRecipeRequest]:
    """Entries for a user, most recently requested first, with their recipe loaded."""
    return session.query(UserRecipeRequest).options(
        joinedload(UserRecipeRequest.recipe)
    ).filter(
        UserRecipeRequest.user_id == user_id
    ).order_by(
        UserRecipeRequest.updated_at.desc()
    ).limit(limit).all()


def find_recent_by_user_id(session: Session, user_id: int, days: int, limit: int = 50) -> List[UserRecipeRequest]:
    """Like find_by_user_id, restricted to requests made within the last `days` days."""
    cutoff = utcnow() - timedelta(days=days)
    return session.query(UserRecipeRequest).options(
        joinedload(UserRecipeRequest.recipe)
    ).filter(
        UserRecipeRequest.user_id == user_id,
        UserRecipeRequest.updated_at >= cutoff
    ).order_by(
        UserRecipeRequest.updated_at.desc()
    ).limit(limit).all()
