from recipe_api.schemas.video import (
    VideoInfo,
    ChannelInfo,
    CommentAuthor,
    CommentData,
    CommentsResult,
    TranscriptSegment,
    TranscriptResult,
    VideoDataResponse,
    BulkVideoDataRequest,
    BulkVideoDataResponse,
)
from recipe_api.schemas.recipe import (
    RecipeIngredient,
    RecipeStep,
    NutritionInfo,
    ExtractedBasicInfo,
    ExtractedMetadata,
    ExtractedRecipe,
    GenerateRecipeRequest,
    RecipeResponse,
)
from recipe_api.schemas.explorer import (
    RecipeListItem,
    RecipeExplorerResponse,
)
from recipe_api.schemas.search import (
    PaginationMeta,
    RecipeSearchResponse,
    KeywordItem,
    KeywordsResponse,
)

__all__ = [
    "VideoInfo",
    "ChannelInfo",
    "CommentAuthor",
    "CommentData",
    "CommentsResult",
    "TranscriptSegment",
    "TranscriptResult",
    "VideoDataResponse",
    "BulkVideoDataRequest",
    "BulkVideoDataResponse",
    "RecipeIngredient",
    "RecipeStep",
    "NutritionInfo",
    "ExtractedBasicInfo",
    "ExtractedMetadata",
    "ExtractedRecipe",
    "GenerateRecipeRequest",
    "RecipeResponse",
    "RecipeListItem",
    "RecipeExplorerResponse",
    "PaginationMeta",
    "RecipeSearchResponse",
    "KeywordItem",
    "KeywordsResponse",
]
