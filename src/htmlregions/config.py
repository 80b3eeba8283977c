"""Centralised configuration using pydantic-settings.

All environment variables are read through the Settings class.
Consumers call ``get_settings()`` to obtain a cached, validated instance.
Tests construct ``Settings(_env_file=None, ...)`` directly for isolation.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# src/htmlregions/config.py  ->  parent x3  ->  project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


# ---------------------------------------------------------------------------
# Sub-models (one per configuration domain)
# ---------------------------------------------------------------------------
class HighlightConfig(BaseModel):
    """Marker element presentation."""

    marker_tag: str = "span"
    marker_class: str = "htx-highlight"
    # Attribute carrying the owning region id; also how anchoring recognises
    # markers so it can treat them as transparent.
    marker_attribute: str = "data-region"
    resting_opacity: float = 0.3
    selected_opacity: float = 0.8
    default_color: str | None = None

    @field_validator("resting_opacity", "selected_opacity")
    @classmethod
    def opacity_in_unit_interval(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            msg = f"opacity must be within [0, 1], got {value}"
            raise ValueError(msg)
        return value


class DocumentConfig(BaseModel):
    """Document loading and record restore behaviour."""

    parser: str = "html.parser"
    strip_tags: tuple[str, ...] = ("script", "style", "noscript", "template")
    # Controls whose value is flat text/choice data rather than a span of the
    # document.  Their records are handed back to the control untouched.
    flat_control_kinds: tuple[str, ...] = ("textarea", "choices")


class AppConfig(BaseModel):
    """Runtime configuration for the command line front end."""

    log_dir: Path = Path("logs")
    log_level: str = "INFO"


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Settings with automatic .env loading and type validation.

    Environment variables use double-underscore delimiter for nesting:
    ``HIGHLIGHT__MARKER_CLASS``, ``DOCUMENT__PARSER``, ``APP__LOG_DIR``, etc.
    """

    model_config = SettingsConfigDict(
        env_file=_PROJECT_ROOT / ".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    highlight: HighlightConfig = HighlightConfig()
    document: DocumentConfig = DocumentConfig()
    app: AppConfig = AppConfig()


# ---------------------------------------------------------------------------
# Singleton access
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Call ``get_settings.cache_clear()`` in tests to reset.
    """
    settings = Settings()

    env_file = settings.model_config.get("env_file")
    if env_file is not None and Path(str(env_file)).is_file():
        logger.info("Settings loaded .env from: %s", env_file)
    else:
        logger.info("Settings: no .env file found, using env vars and defaults")

    return settings
