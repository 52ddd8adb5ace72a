import enum
import uuid

from sqlalchemy import Column, String, DateTime, Integer, Text, JSON, Enum, Uuid

from recipe_api.database import Base, utcnow


class RecipeStatus(str, enum.Enum):
    PENDING = 'pending'
    PROCESSING = 'processing'
    COMPLETED = 'completed'
    FAILED = 'failed'


class Recipe(Base):
    """
    Recipe model tracking extraction of a recipe from one YouTube video.
    Exactly one row exists per video; status moves
    pending -> processing -> completed | failed, and failed -> processing on retry.
    """
    __tablename__ = 'recipes'

    # Primary key
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # YouTube video identifier (no FK to youtube_raw, the lifecycles are independent)
    youtube_id = Column(String(64), unique=True, nullable=False, index=True)

    status = Column(
        Enum(RecipeStatus, name='recipe_status', values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=RecipeStatus.PENDING,
        index=True
    )

    # Extracted recipe content
    title = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
    steps = Column(JSON, nullable=True)  # [{step_number, summary, start_time_seconds, end_time_seconds, techniques, tools}]
    ingredients = Column(JSON, nullable=True)  # [{name, amount, unit, notes}]
    nutrition = Column(JSON, nullable=True)
    categories = Column(JSON, nullable=True)
    tags = Column(JSON, nullable=True)
    difficulty = Column(String(50), nullable=True)
    estimated_time = Column(Integer, nullable=True)  # minutes
    servings = Column(Integer, nullable=True)

    # Set only when status is failed
    error_message = Column(Text, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def is_processing(self) -> bool:
        return self.status == RecipeStatus.PROCESSING

    def is_completed(self) -> bool:
        return self.status == RecipeStatus.COMPLETED

    def is_failed(self) -> bool:
        return self.status == RecipeStatus.FAILED

    def __repr__(self):
        return f"<Recipe(id={self.id}, youtube_id='{self.youtube_id}', status='{self.status.value if self.status else None}')>"
