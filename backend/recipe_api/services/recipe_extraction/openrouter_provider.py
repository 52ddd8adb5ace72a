"""
OpenRouter provider for recipe extraction.

This module implements the RecipeExtractionProvider interface using OpenRouter
for cloud-based LLM inference with support for multiple models.
"""

import re
import time
import logging
from typing import Any, Dict, List, Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from recipe_api.config import settings
from recipe_api.exceptions import APIProviderException, ProviderConfigurationException
from .base import RecipeExtractionProvider
from .prompt_config import PromptConfig


# Configure logger
logger = logging.getLogger(__name__)

FENCE_PATTERN = re.compile(r'^\s*```(?:json)?\s*(.*?)\s*```\s*$', flags=re.S)

# Gemini-style generation keys mapped to chat-completions parameters
GENERATION_KEY_MAP = {
    'temperature': 'temperature',
    'topP': 'top_p',
    'topK': 'top_k',
    'maxOutputTokens': 'max_tokens',
}


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` block if the model added one."""
    match = FENCE_PATTERN.match(text)
    return match.group(1) if match else text.strip()


class OpenRouterProvider(RecipeExtractionProvider):
    """
    OpenRouter-based recipe extraction provider.

    Uses OpenRouter API for cloud-based LLM inference, supporting multiple models
    from various providers (OpenAI, Anthropic, Google, etc.).
    """

    name = "openrouter"
    OPENROUTER_API_URL = "https://openrouter.ai/api/v1/chat/completions"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, timeout: Optional[float] = None):
        """Initialize OpenRouter provider with API client."""
        self.api_key = api_key if api_key is not None else settings.openrouter_api_key
        self.model = model or settings.openrouter_model
        self.site_url = settings.openrouter_site_url
        self.site_name = settings.openrouter_site_name

        # Create HTTP client with timeout configuration
        self.client = httpx.Client(timeout=timeout or settings.extraction_timeout_seconds)

        logger.info(
            "Initialized OpenRouter provider",
            extra={
                "model": self.model,
                "has_api_key": bool(self.api_key),
                "site_url": self.site_url or "not_set",
                "site_name": self.site_name or "not_set"
            }
        )

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        # Add optional headers if configured
        if self.site_url:
            headers["HTTP-Referer"] = self.site_url
        if self.site_name:
            headers["X-Title"] = self.site_name
        return headers

    def build_request(self, transcript_text: str, prompt_config: PromptConfig) -> Dict[str, Any]:
        messages: List[Dict[str, str]] = [
            {"role": "system", "content": prompt_config.system_instruction},
            {"role": "user", "content": transcript_text},
        ]
        body: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": "recipe",
                    "schema": prompt_config.response_schema,
                },
            },
        }
        for source_key, target_key in GENERATION_KEY_MAP.items():
            if source_key in prompt_config.generation_config:
                body[target_key] = prompt_config.generation_config[source_key]
        return body

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=2, min=4, max=60),
        retry=retry_if_exception_type((
            httpx.ConnectError,
            httpx.ReadTimeout,
            httpx.RemoteProtocolError
        )),
        reraise=True
    )
    def _post(self, body: Dict[str, Any]) -> httpx.Response:
        response = self.client.post(self.OPENROUTER_API_URL, headers=self._headers(), json=body)
        response.raise_for_status()
        return response

    def extract_recipe(self, transcript_text: str, prompt_config: PromptConfig) -> str:
        # Validate API key
        if not self.api_key:
            logger.error("OpenRouter API key not configured")
            raise ProviderConfigurationException(
                "OpenRouter API key is not configured. Please set OPENROUTER_API_KEY environment variable.",
                details={"provider": "openrouter"}
            )

        logger.info(
            "Calling OpenRouter to extract recipe",
            extra={"provider": "openrouter", "model": self.model, "prompt_length": len(transcript_text)}
        )
        start_time = time.time()

        try:
            response = self._post(self.build_request(transcript_text, prompt_config))
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            error_detail = e.response.text[:500]
            logger.error(
                f"OpenRouter API error: {status_code}",
                extra={"provider": "openrouter", "status_code": status_code, "error_detail": error_detail}
            )
            # Handle specific error codes
            if status_code == 401:
                message = "OpenRouter authentication failed. Please check your API key."
            elif status_code == 429:
                message = "OpenRouter rate limit exceeded. Please try again later."
            elif status_code >= 500:
                message = "OpenRouter service error. Please try again later."
            else:
                message = f"OpenRouter API error: {status_code}"
            raise APIProviderException(
                "openrouter",
                message,
                details={"status_code": status_code, "error": error_detail}
            ) from e
        except httpx.RequestError as e:
            logger.error(
                "OpenRouter connection error",
                extra={"provider": "openrouter", "error": str(e)}
            )
            raise APIProviderException(
                "openrouter",
                "Failed to connect to OpenRouter. Please check your internet connection.",
                details={"error": str(e)}
            ) from e

        response_data = response.json()
        choices = response_data.get('choices') or []
        if not choices:
            logger.error("OpenRouter response missing 'choices' field")
            raise APIProviderException("openrouter", "OpenRouter response contained no choices")

        content = (choices[0].get('message') or {}).get('content') or ''
        if not content.strip():
            raise APIProviderException("openrouter", "OpenRouter returned an empty response")

        logger.debug(
            "OpenRouter response received",
            extra={
                "provider": "openrouter",
                "response_time_seconds": round(time.time() - start_time, 2),
                "response_length": len(content),
                "model": response_data.get('model', 'unknown')
            }
        )
        return strip_code_fences(content)

    def check_health(self) -> bool:
        """
        Check if OpenRouter is healthy and accessible.

        Returns:
            True if OpenRouter is healthy and API key is valid, False otherwise.
        """
        if not self.api_key:
            logger.warning("OpenRouter API key not configured")
            return False

        try:
            # Make a minimal test request to verify API key and connectivity
            response = self.client.post(
                self.OPENROUTER_API_URL,
                headers=self._headers(),
                json={
                    "model": self.model,
                    "messages": [{"role": "user", "content": "test"}],
                    "max_tokens": 1
                },
                timeout=10.0
            )
        except httpx.HTTPError as e:
            logger.error(
                f"OpenRouter health check failed: {e}",
                extra={"provider": "openrouter"}
            )
            return False

        if response.status_code == 200:
            logger.info("OpenRouter health check passed", extra={"provider": "openrouter"})
            return True
        logger.warning(
            f"OpenRouter health check failed with status {response.status_code}",
            extra={"provider": "openrouter", "status_code": response.status_code}
        )
        return False
