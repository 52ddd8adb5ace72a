"""
Gemini provider for recipe extraction.

Calls the Gemini generateContent REST endpoint with the configured system
instruction and a JSON response schema, so the model answers with recipe JSON.
"""

import copy
import time
import logging
from typing import Any, Dict, Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception

from recipe_api.config import settings
from recipe_api.exceptions import APIProviderException, ProviderConfigurationException
from .base import RecipeExtractionProvider
from .prompt_config import PromptConfig


logger = logging.getLogger(__name__)


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code == 429 or exc.response.status_code >= 500
    return False


def to_gemini_schema(schema: Any) -> Any:
    """
    Convert a JSON schema to Gemini's OpenAPI subset.
    Type names are upper-cased and keywords Gemini rejects are dropped.
    """
    if isinstance(schema, list):
        return [to_gemini_schema(item) for item in schema]
    if not isinstance(schema, dict):
        return schema

    converted: Dict[str, Any] = {}
    for key, value in schema.items():
        if key in ('additionalProperties', '$schema'):
            continue
        if key == 'type' and isinstance(value, str):
            converted[key] = value.upper()
        elif key == 'properties' and isinstance(value, dict):
            converted[key] = {name: to_gemini_schema(prop) for name, prop in value.items()}
        else:
            converted[key] = to_gemini_schema(value)
    return converted


class GeminiProvider(RecipeExtractionProvider):
    """Gemini-based recipe extraction provider."""

    name = "gemini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout: Optional[float] = None
    ):
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.model = model or settings.gemini_model
        self.api_base = (api_base or settings.gemini_api_base).rstrip('/')
        self.client = httpx.Client(timeout=timeout or settings.extraction_timeout_seconds)

        logger.info(
            "Initialized Gemini provider",
            extra={"model": self.model, "has_api_key": bool(self.api_key)}
        )

    @property
    def generate_url(self) -> str:
        return f"{self.api_base}/models/{self.model}:generateContent"

    def build_request(self, transcript_text: str, prompt_config: PromptConfig) -> Dict[str, Any]:
        generation_config = copy.deepcopy(prompt_config.generation_config)
        generation_config['responseMimeType'] = 'application/json'
        generation_config['responseSchema'] = to_gemini_schema(prompt_config.response_schema)

        return {
            "contents": [{"role": "user", "parts": [{"text": transcript_text}]}],
            "systemInstruction": {
                "role": "system",
                "parts": [{"text": prompt_config.system_instruction}],
            },
            "generationConfig": generation_config,
        }

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=2, min=4, max=60),
        retry=retry_if_exception(_is_transient),
        reraise=True
    )
    def _post(self, body: Dict[str, Any]) -> Dict[str, Any]:
        response = self.client.post(
            self.generate_url,
            headers={"x-goog-api-key": self.api_key, "Content-Type": "application/json"},
            json=body
        )
        response.raise_for_status()
        return response.json()

    @staticmethod
    def response_text(data: Dict[str, Any]) -> str:
        """Pull the generated text out of a generateContent response."""
        candidates = data.get('candidates') or []
        if not candidates:
            block_reason = (data.get('promptFeedback') or {}).get('blockReason')
            message = "Gemini returned no candidates"
            if block_reason:
                message += f" (blocked: {block_reason})"
            raise APIProviderException("gemini", message, details={"block_reason": block_reason})

        candidate = candidates[0]
        parts = (candidate.get('content') or {}).get('parts') or []
        text = ''.join(part.get('text', '') for part in parts)
        if not text.strip():
            finish_reason = candidate.get('finishReason')
            raise APIProviderException(
                "gemini",
                f"Gemini returned an empty response (finish reason: {finish_reason})",
                details={"finish_reason": finish_reason}
            )
        return text

    def extract_recipe(self, transcript_text: str, prompt_config: PromptConfig) -> str:
        if not self.api_key:
            raise ProviderConfigurationException(
                "Gemini API key is not configured. Please set GEMINI_API_KEY environment variable.",
                details={"provider": "gemini"}
            )

        body = self.build_request(transcript_text, prompt_config)

        logger.info(
            "Calling Gemini to extract recipe",
            extra={"provider": "gemini", "model": self.model, "prompt_length": len(transcript_text)}
        )
        start_time = time.time()

        try:
            data = self._post(body)
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            error_detail = e.response.text[:500]
            logger.error(
                f"Gemini API error: {status_code}",
                extra={"provider": "gemini", "status_code": status_code, "error_detail": error_detail}
            )
            raise APIProviderException(
                "gemini",
                f"Gemini API error: {status_code}",
                details={"status_code": status_code, "error": error_detail}
            ) from e
        except httpx.RequestError as e:
            logger.error("Gemini connection error", extra={"provider": "gemini", "error": str(e)})
            raise APIProviderException(
                "gemini",
                f"Failed to connect to Gemini: {e}",
                details={"error_type": type(e).__name__}
            ) from e

        text = self.response_text(data)
        logger.info(
            "Gemini response received",
            extra={
                "provider": "gemini",
                "response_time_seconds": round(time.time() - start_time, 2),
                "response_length": len(text)
            }
        )
        return text

    def check_health(self) -> bool:
        if not self.api_key:
            logger.warning("Gemini API key not configured")
            return False

        try:
            response = self.client.get(
                f"{self.api_base}/models/{self.model}",
                headers={"x-goog-api-key": self.api_key},
                timeout=10.0
            )
        except httpx.HTTPError as e:
            logger.error(f"Gemini health check failed: {e}", extra={"provider": "gemini"})
            return False

        if response.status_code == 200:
            logger.info("Gemini health check passed", extra={"provider": "gemini"})
            return True
        logger.warning(
            f"Gemini health check failed with status {response.status_code}",
            extra={"provider": "gemini", "status_code": response.status_code}
        )
        return False
