"""
Base provider interface for recipe extraction.

This module defines the abstract base class that all recipe extraction providers
must implement, ensuring a consistent interface across different providers.
"""

from abc import ABC, abstractmethod

from .prompt_config import PromptConfig


class RecipeExtractionProvider(ABC):
    """
    Abstract base class for recipe extraction providers.

    All providers (Gemini, OpenRouter) turn a timestamped transcript into the
    raw JSON text of a structured recipe. Parsing and validation of that text
    happen outside the provider.
    """

    name: str = "base"

    @abstractmethod
    def extract_recipe(self, transcript_text: str, prompt_config: PromptConfig) -> str:
        """
        Extract a recipe from transcript text.

        Args:
            transcript_text: One "[12.34s] text" line per caption segment
            prompt_config: System instruction, response schema and generation settings

        Returns:
            Raw JSON text produced by the model

        Raises:
            APIProviderException: If the provider is unavailable or returns no content
            ProviderConfigurationException: If the provider is missing credentials
        """
        pass

    @abstractmethod
    def check_health(self) -> bool:
        """
        Check if the provider is available and healthy.

        Returns:
            True if the provider is reachable with the configured credentials,
            False otherwise.
        """
        pass
