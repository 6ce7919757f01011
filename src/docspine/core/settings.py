"""
Centralized settings for docspine.

Manifesto:
    One validated, cached settings object instead of module-level
    constants. ``DocspineSettings`` reads ``DOCSPINE_*`` environment
    variables and an optional ``.env`` file.

Tags:
    docspine, configuration, settings, pydantic, caching

Doc-Types:
    api-reference
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DocspineSettings(BaseSettings):
    """Docspine configuration.

    All fields can be set via ``DOCSPINE_*`` environment variables (e.g.
    ``DOCSPINE_LOG_LEVEL=DEBUG``) or through a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json", description="json or console")
    service_name: str = Field(default="docspine")

    # ── Engine ───────────────────────────────────────────────────
    default_query: str = Field(
        default="default",
        description="Query used by get(), create() and delete()",
    )
    id_field: str = Field(
        default="id",
        description="Identifier field assigned by the in-memory adapter",
    )

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("log_format")
    @classmethod
    def _known_format(cls, value: str) -> str:
        if value not in {"json", "console"}:
            raise ValueError(f"log_format must be 'json' or 'console', got {value!r}")
        return value


# ── Settings factory with caching ────────────────────────────────────────

_settings_cache: dict[str, DocspineSettings] = {}


def get_settings(*, _force_reload: bool = False) -> DocspineSettings:
    """Load, validate, and cache a :class:`DocspineSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = DocspineSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = [
    "DocspineSettings",
    "get_settings",
    "clear_settings_cache",
]
