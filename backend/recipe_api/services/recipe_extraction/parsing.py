import json
import logging
from typing import Any, Iterable, Union

from pydantic import ValidationError

from recipe_api.exceptions import ExtractionException
from recipe_api.schemas.recipe import ExtractedRecipe
from recipe_api.schemas.video import TranscriptSegment

logger = logging.getLogger(__name__)


def build_transcript_text(segments: Iterable[Union[TranscriptSegment, dict]]) -> str:
    """Render segments as "[12.34s] text" lines, start offset in seconds."""
    lines = []
    for raw in segments:
        segment = TranscriptSegment.model_validate(raw)
        lines.append(f"[{segment.start_ms / 1000:.2f}s] {segment.text}")
    return "\n".join(lines)


def parse_recipe_payload(text: Any) -> ExtractedRecipe:
    """
    Parse the model's JSON answer into an ExtractedRecipe.

    Raises:
        ExtractionException: If the text is empty, not JSON, or not recipe-shaped.
    """
    if not isinstance(text, str) or not text.strip():
        raise ExtractionException("Extraction returned an empty response")

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error(
            "Extraction returned malformed JSON",
            extra={"error": str(e), "response_preview": text[:500]}
        )
        raise ExtractionException(
            f"Extraction returned malformed JSON: {e}",
            details={"response_preview": text[:200]}
        ) from e

    if not isinstance(data, dict):
        raise ExtractionException(
            f"Extraction returned {type(data).__name__} instead of an object"
        )

    try:
        return ExtractedRecipe.model_validate(data)
    except ValidationError as e:
        problems = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()[:10]]
        logger.error(
            "Extraction payload does not match the recipe shape",
            extra={"problems": problems}
        )
        raise ExtractionException(
            f"Extraction payload does not match the recipe shape: {'; '.join(problems)}",
            details={"problems": problems}
        ) from e
