import uuid
from datetime import timedelta

from sqlalchemy import Column, DateTime, Integer, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship

from recipe_api.database import Base, utcnow


class UserRecipeRequest(Base):
    """
    Record of a user requesting a recipe.
    One row per (user, recipe) pair; a repeated request only advances updated_at.
    """
    __tablename__ = 'user_recipe_requests'
    __table_args__ = (
        UniqueConstraint('user_id', 'recipe_id', name='uq_user_recipe_requests_user_recipe'),
    )

    # Primary key
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id = Column(
        Integer,
        ForeignKey('users.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    recipe_id = Column(
        Uuid,
        ForeignKey('recipes.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )

    # First and most recent request
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    # Relationships
    user = relationship('User')
    recipe = relationship('Recipe')

    def is_recent_request(self) -> bool:
        """Requested within the last 24 hours."""
        return self.updated_at > utcnow() - timedelta(days=1)

    def get_days_since_first_request(self) -> int:
        elapsed = utcnow() - self.created_at
        return max(elapsed.days + (1 if elapsed.seconds or elapsed.microseconds else 0), 0)

    def __repr__(self):
        return f"<UserRecipeRequest(user_id={self.user_id}, recipe_id={self.recipe_id})>"
