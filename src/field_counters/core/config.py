"""Settings: TOML file, then environment, then explicit overrides.

Each layer wins over the one before it, key by key, including keys of
nested tables.

Environment variables use the ``FIELD_COUNTERS_`` prefix with ``__``
between nesting levels, e.g. ``FIELD_COUNTERS_PIPELINE__INPUT_TOPIC``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import tomli
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, EnvSettingsSource, SettingsConfigDict

from .enums import LogFormat, Mode
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class MappingConfig(BaseModel):
    """One ``[[mappings]]`` table: count values of ``field`` into ``counter``."""

    field: str
    counter: str

    @field_validator("field", "counter")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class PipelineConfig(BaseModel):
    input_topic: str = "records.in"
    output_topic: str | None = "records.out"  # None: count only, do not forward
    group: str = "field_counters"
    max_handler_retries: int = Field(default=3, ge=1)


class StoreConfig(BaseModel):
    counter_prefix: str = "fieldvaluecounters."
    mapping_prefix: str = "mappings."


class ObservabilityConfig(BaseModel):
    log_level: str = "INFO"
    log_format: LogFormat = LogFormat.JSON
    metrics_port: int = 0  # 0 disables the Prometheus endpoint


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FIELD_COUNTERS_", env_nested_delimiter="__",
    )

    mode: Mode = Mode.MEMORY
    redis_url: str = "redis://localhost:6379/0"

    mappings: list[MappingConfig] = Field(default_factory=list)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as f:
            return tomli.load(f)
    except tomli.TOMLDecodeError as exc:
        raise ConfigurationError(f"Invalid TOML in {path}: {exc}") from exc


def _merge(base: dict[str, Any], top: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in top.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> Settings:
    """Build :class:`Settings`.

    A config path that does not exist is skipped with a warning, so the
    defaults and environment still apply.

    Raises:
        ConfigurationError: the file is not valid TOML.
    """
    data: dict[str, Any] = {}
    if config_path is not None:
        path = Path(config_path)
        if path.is_file():
            data = _read_toml(path)
        else:
            logger.warning("Config file %s not found, using defaults", path)
    # Init kwargs outrank the environment in pydantic-settings, so the
    # environment is merged over the file before construction.
    data = _merge(data, EnvSettingsSource(Settings)())
    return Settings(**_merge(data, overrides or {}))
