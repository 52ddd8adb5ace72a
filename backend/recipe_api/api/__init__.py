from fastapi import APIRouter
from recipe_api.api.recipes import router as recipes_router
from recipe_api.api.videos import router as videos_router
from recipe_api.api.explorer import router as explorer_router
from recipe_api.api.search import router as search_router

# Create main API router with /api prefix
api_router = APIRouter(prefix="/api")

# Include recipes router
api_router.include_router(recipes_router, prefix="/recipes", tags=["recipes"])

# Include videos router
api_router.include_router(videos_router, prefix="/videos", tags=["videos"])

# Include explorer router
api_router.include_router(explorer_router, prefix="/explorer", tags=["explorer"])

# Include search router
api_router.include_router(search_router, prefix="/search", tags=["search"])
