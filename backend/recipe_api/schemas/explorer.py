from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class RecipeListItem(BaseModel):
    """Recipe card joined with video thumbnail, channel and view count."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    youtube_id: str
    title: Optional[str] = None
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    channel_name: Optional[str] = None
    view_count: Optional[int] = None
    difficulty: Optional[str] = None
    estimated_time: Optional[int] = None
    servings: Optional[int] = None
    categories: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class RecipeExplorerResponse(BaseModel):
    requested_recipes: List[RecipeListItem]
    recommended_recipes: List[RecipeListItem]
    trending_recipes: List[RecipeListItem]

