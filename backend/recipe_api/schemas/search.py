from typing import List

from pydantic import BaseModel

from recipe_api.schemas.explorer import RecipeListItem


class PaginationMeta(BaseModel):
    current_page: int
    items_per_page: int
    total_items: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


class RecipeSearchResponse(BaseModel):
    """Response schema for a page of search results."""
    items: List[RecipeListItem]
    meta: PaginationMeta


class KeywordItem(BaseModel):
    keyword: str
    count: int


class KeywordsResponse(BaseModel):
    keywords: List[KeywordItem]
