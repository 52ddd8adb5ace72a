from recipe_api.database import Base
from recipe_api.models.video_record import VideoRecord
from recipe_api.models.recipe import Recipe, RecipeStatus
from recipe_api.models.user import User
from recipe_api.models.user_recipe_request import UserRecipeRequest

__all__ = ['Base', 'VideoRecord', 'Recipe', 'RecipeStatus', 'User', 'UserRecipeRequest']
