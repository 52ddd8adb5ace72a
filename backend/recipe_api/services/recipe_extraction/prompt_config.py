import logging
from pathlib import Path
from typing import Any, Dict, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from recipe_api.exceptions import ProviderConfigurationException

logger = logging.getLogger(__name__)


class PromptConfig(BaseModel):
    """Fixed extraction prompt: system instruction, response schema, generation settings."""
    model_config = ConfigDict(frozen=True)

    system_instruction: str = Field(min_length=1)
    response_schema: Dict[str, Any]
    generation_config: Dict[str, Any] = Field(default_factory=dict)


def load_prompt_config(path: Union[str, Path]) -> PromptConfig:
    """
    Load the prompt configuration from a YAML file.

    Raises:
        ProviderConfigurationException: If the file is missing or malformed.
    """
    config_path = Path(path)
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            raw = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise ProviderConfigurationException(
            f"Prompt config not found: {config_path}",
            details={"path": str(config_path)}
        ) from e
    except yaml.YAMLError as e:
        raise ProviderConfigurationException(
            f"Prompt config is not valid YAML: {e}",
            details={"path": str(config_path)}
        ) from e

    if not isinstance(raw, dict):
        raise ProviderConfigurationException(
            "Prompt config must be a mapping",
            details={"path": str(config_path)}
        )

    try:
        config = PromptConfig.model_validate(raw)
    except ValidationError as e:
        raise ProviderConfigurationException(
            f"Prompt config is incomplete: {e.error_count()} invalid field(s)",
            details={"path": str(config_path), "fields": [".".join(str(p) for p in err["loc"]) for err in e.errors()]}
        ) from e

    logger.info("Loaded recipe extraction prompt config", extra={"path": str(config_path)})
    return config
