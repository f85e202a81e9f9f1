"""Client configuration (pydantic) and YAML loading."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from .exceptions import FeatureFlagError, FeatureFlagErrorCodes

DEFAULT_API_HOST = "https://cdn.growthbook.io"


class LogSection(BaseModel):
    """Log settings."""

    level: str = "INFO"
    format: Literal["json", "text"] = "json"


class ClientConfig(BaseModel):
    """Settings for FeatureFlagClient."""

    api_host: str = DEFAULT_API_HOST
    client_key: str = ""
    cache_ttl: float = Field(default=60.0, ge=0)
    timeout: float = Field(default=10.0, gt=0)
    sticky_bucketing: bool = False
    log: LogSection = Field(default_factory=LogSection)


def load_config(path: Path) -> ClientConfig:
    """Read a YAML file and validate it into ClientConfig.

    The settings may sit at the top level or under a ``gbflags`` key.

    Raises:
        FeatureFlagError: CONFIG_ERROR on read, parse or validation failure
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise FeatureFlagError(
            code=FeatureFlagErrorCodes.CONFIG_ERROR,
            message=f"Failed to read config file: {path}",
            cause=e,
        ) from e
    try:
        data: Any = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise FeatureFlagError(
            code=FeatureFlagErrorCodes.CONFIG_ERROR,
            message=f"Failed to parse YAML: {path}",
            cause=e,
        ) from e
    if isinstance(data, dict) and isinstance(data.get("gbflags"), dict):
        data = data["gbflags"]
    try:
        return ClientConfig.model_validate(data)
    except ValidationError as e:
        raise FeatureFlagError(
            code=FeatureFlagErrorCodes.CONFIG_ERROR,
            message=f"Config validation failed: {e}",
            cause=e,
        ) from e
