"""Configuration management for ai-parallel."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

MIN_VARIANTS = 1
MAX_VARIANTS = 10

# Eviction runs once this many owned branches exist, then trims down to MAX_KEEP.
EVICTION_TRIGGER = 20
MAX_KEEP = 19


class ParallelSettings(BaseSettings):
    """Runtime configuration sourced from environment, optional .env and .ai-parallel.yaml."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        yaml_file=".ai-parallel.yaml",
        extra="ignore",
        populate_by_name=True,
    )

    agent_path: str | None = Field(default=None, validation_alias="AI_PARALLEL_AGENT_PATH")
    agent_json: bool = Field(default=True, validation_alias="AI_PARALLEL_AGENT_JSON")
    worktree_backend: Literal["git", "gtr"] = Field(
        default="git", validation_alias="AI_PARALLEL_WORKTREE_BACKEND"
    )
    worktree_root: Path | None = Field(default=None, validation_alias="AI_PARALLEL_WORKTREE_ROOT")
    default_variants: int = Field(default=4, validation_alias="AI_PARALLEL_DEFAULT_VARIANTS")
    eviction_trigger: int = Field(
        default=EVICTION_TRIGGER, validation_alias="AI_PARALLEL_EVICTION_TRIGGER"
    )
    max_keep: int = Field(default=MAX_KEEP, validation_alias="AI_PARALLEL_MAX_KEEP")
    log_level: str = Field(default="INFO", validation_alias="AI_PARALLEL_LOG_LEVEL")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "AI_PARALLEL_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("default_variants")
    @classmethod
    def _validate_default_variants(cls, value: int) -> int:
        if not MIN_VARIANTS <= value <= MAX_VARIANTS:
            raise ValueError(
                f"AI_PARALLEL_DEFAULT_VARIANTS must be between {MIN_VARIANTS} and {MAX_VARIANTS}"
            )
        return value

    @model_validator(mode="after")
    def _validate_eviction_window(self) -> "ParallelSettings":
        if self.max_keep < 0:
            raise ValueError("AI_PARALLEL_MAX_KEEP must be >= 0")
        if self.max_keep >= self.eviction_trigger:
            raise ValueError(
                "AI_PARALLEL_MAX_KEEP must be smaller than AI_PARALLEL_EVICTION_TRIGGER"
            )
        return self


@lru_cache(maxsize=1)
def get_settings() -> ParallelSettings:
    """Return cached settings instance."""

    settings = ParallelSettings()
    if settings.worktree_root is not None:
        settings.worktree_root = settings.worktree_root.expanduser().resolve()
    return settings


__all__ = [
    "EVICTION_TRIGGER",
    "MAX_KEEP",
    "MAX_VARIANTS",
    "MIN_VARIANTS",
    "ParallelSettings",
    "get_settings",
]
