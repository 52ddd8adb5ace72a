from recipe_api.services.youtube_service import (
    YoutubeClient,
    extract_video_id,
    is_youtube_url,
    is_shorts_url,
    build_watch_url,
)
from recipe_api.services.video_data_service import VideoDataService
from recipe_api.services.recipe_generator import RecipeGenerator

__all__ = [
    "YoutubeClient",
    "extract_video_id",
    "is_youtube_url",
    "is_shorts_url",
    "build_watch_url",
    "VideoDataService",
    "RecipeGenerator",
]
