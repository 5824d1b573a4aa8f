"""Application settings loaded from .env via Pydantic."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .config import EngineConfig, load_engine_config


logger = logging.getLogger(__name__)


class EngineSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="MARQUEE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    config_path: Optional[Path] = Field(
        default=None, description="YAML engine configuration (MARQUEE_CONFIG_PATH)"
    )

    @field_validator("config_path", mode="before")
    @classmethod
    def _expand_path(cls, value):
        if value is None or value == "":
            return None
        return Path(value).expanduser().resolve()

    @field_validator("config_path")
    @classmethod
    def _validate_config_path(cls, value: Optional[Path]) -> Optional[Path]:
        if value is not None and not value.is_file():
            raise ValueError(f"Engine configuration file does not exist: {value}")
        return value


_settings: Optional[EngineSettings] = None


def get_settings() -> EngineSettings:
    global _settings
    if _settings is None:
        _settings = EngineSettings()
    return _settings


def default_engine_config() -> EngineConfig:
    """Configuration named by ``MARQUEE_CONFIG_PATH``, or the built-in defaults."""
    settings = get_settings()
    if settings.config_path is None:
        return EngineConfig()
    logger.info("Loading engine configuration from %s", settings.config_path)
    return load_engine_config(settings.config_path)


def reset_settings_cache() -> None:
    global _settings
    _settings = None
