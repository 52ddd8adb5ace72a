"""
Pydantic schemas for recipe generation.

Two groups live here: the shapes the extraction model must return
(validated before anything is written) and the API request/response
shapes for recipe jobs.
"""

import math
from datetime import datetime
from typing import List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from recipe_api.models.recipe import RecipeStatus


class RecipeIngredient(BaseModel):
    name: str = Field(min_length=1)
    amount: Optional[str] = None
    unit: Optional[str] = None
    notes: Optional[str] = None

    @field_validator('amount', mode='before')
    @classmethod
    def coerce_amount(cls, v: Optional[Union[str, int, float]]) -> Optional[str]:
        # Models often answer "2" as a bare number
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return f"{v:g}"
        return v


class RecipeStep(BaseModel):
    step_number: int
    summary: str
    start_time_seconds: Optional[float] = None
    end_time_seconds: Optional[float] = None
    techniques: Optional[List[str]] = None
    tools: Optional[List[str]] = None


class NutritionInfo(BaseModel):
    calories: Optional[float] = None
    protein: Optional[float] = None
    carbohydrates: Optional[float] = None
    fat: Optional[float] = None
    fiber: Optional[float] = None
    sodium: Optional[float] = None


class ExtractedBasicInfo(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    difficulty: Optional[str] = None
    estimated_time: Optional[int] = None
    servings: Optional[int] = None

    @field_validator('estimated_time', 'servings', mode='before')
    @classmethod
    def round_fractional(cls, v: Optional[Union[int, float, str]]) -> Optional[Union[int, str]]:
        # Schema-less providers sometimes answer 12.5 minutes
        if isinstance(v, float) and math.isfinite(v):
            return round(v)
        return v


class ExtractedMetadata(BaseModel):
    categories: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)


class ExtractedRecipe(BaseModel):
    """Structured recipe as returned by the extraction model."""
    basic_info: ExtractedBasicInfo
    metadata: ExtractedMetadata = Field(default_factory=ExtractedMetadata)
    ingredients: List[RecipeIngredient] = Field(default_factory=list)
    steps: List[RecipeStep] = Field(default_factory=list)
    nutrition: Optional[NutritionInfo] = None


class GenerateRecipeRequest(BaseModel):
    """Request schema for starting recipe generation."""
    video_id_or_url: str = Field(
        min_length=1,
        description="YouTube video ID or any supported YouTube URL"
    )


class RecipeResponse(BaseModel):
    """Response schema for a recipe job. Content fields are set once completed."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    youtube_id: str
    status: RecipeStatus
    title: Optional[str] = None
    description: Optional[str] = None
    steps: Optional[List[RecipeStep]] = None
    ingredients: Optional[List[RecipeIngredient]] = None
    nutrition: Optional[NutritionInfo] = None
    categories: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    difficulty: Optional[str] = None
    estimated_time: Optional[int] = None
    servings: Optional[int] = None
    error_message: Optional[str] = None
    created_at: datetime
    updated_at: datetime
