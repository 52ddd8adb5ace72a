"""
Recipe extraction provider abstraction.

This module provides a provider pattern for recipe extraction, allowing
switching between Gemini (default) and OpenRouter through configuration.
"""

import logging
from typing import Optional

from recipe_api.config import settings
from recipe_api.exceptions import ProviderConfigurationException
from .base import RecipeExtractionProvider
from .gemini_provider import GeminiProvider
from .openrouter_provider import OpenRouterProvider
from .parsing import build_transcript_text, parse_recipe_payload
from .prompt_config import PromptConfig, load_prompt_config

logger = logging.getLogger(__name__)


def get_extraction_provider(provider_name: Optional[str] = None) -> RecipeExtractionProvider:
    """
    Create the extraction provider selected by configuration.

    Raises:
        ProviderConfigurationException: If the provider name is unknown.
    """
    name = (provider_name or settings.recipe_extraction_provider).lower()

    logger.info("Initializing recipe extraction provider", extra={"provider": name})

    if name == "gemini":
        return GeminiProvider()
    if name == "openrouter":
        return OpenRouterProvider()
    raise ProviderConfigurationException(
        f"Unknown recipe extraction provider: {name}",
        details={"provider": name}
    )


__all__ = [
    'RecipeExtractionProvider',
    'GeminiProvider',
    'OpenRouterProvider',
    'PromptConfig',
    'load_prompt_config',
    'build_transcript_text',
    'parse_recipe_payload',
    'get_extraction_provider',
]
