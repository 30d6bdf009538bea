"""
smart-lookup configuration

Settings are loaded from:
1. Environment variables (prefixed with SMART_LOOKUP_)
2. A local .env file

Key settings:
- SMART_LOOKUP_BRIDGE_URL: Host environment bridge URL (default: http://127.0.0.1:37420)
- SMART_LOOKUP_DEFAULT_VAULT: Vault used when a tool call names none
- SMART_LOOKUP_CACHE_TTL_SECONDS: How long a loaded environment stays fresh

The alias lists decide which fields of a raw collection record are read as
key, score, content and vector. List values are given as JSON arrays, e.g.
SMART_LOOKUP_CONTENT_ALIASES='["content", "data.content", "text"]'.
"""

import logging
from functools import lru_cache
from typing import List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

HARD_MAX_LIMIT = 50

DEFAULT_CONTENT_ALIASES = [
    "content",
    "data.content",
    "text",
    "data.text",
    "raw",
    "_content",
    "block.content",
    "source.content",
    "item.content",
    "item.data.content",
]
DEFAULT_KEY_ALIASES = ["key", "id", "item.key"]
DEFAULT_SCORE_ALIASES = ["score", "sim"]
DEFAULT_VECTOR_ALIASES = ["vec", "vector", "embedding", "data.vec"]


class Settings(BaseSettings):
    """smart-lookup configuration settings."""

    app_name: str = "Smart Connections Lookup"

    # Host environment bridge
    bridge_url: str = "http://127.0.0.1:37420"
    default_vault: str = "default"
    request_timeout: float = Field(default=10.0, gt=0)

    # Environment cache
    cache_ttl_seconds: int = 300

    # Result shaping
    default_limit: int = 10
    max_limit: int = HARD_MAX_LIMIT
    cutoff_fallback_count: int = Field(default=10, ge=1)

    # Raw record field aliases, tried in order
    content_aliases: List[str] = Field(default_factory=lambda: list(DEFAULT_CONTENT_ALIASES))
    key_aliases: List[str] = Field(default_factory=lambda: list(DEFAULT_KEY_ALIASES))
    score_aliases: List[str] = Field(default_factory=lambda: list(DEFAULT_SCORE_ALIASES))
    vector_aliases: List[str] = Field(default_factory=lambda: list(DEFAULT_VECTOR_ALIASES))

    # Server
    log_level: str = "INFO"
    mcp_transport: str = "stdio"
    mcp_host: str = "127.0.0.1"
    mcp_port: int = 8001

    model_config = SettingsConfigDict(
        env_prefix="SMART_LOOKUP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("cache_ttl_seconds")
    @classmethod
    def _non_negative_ttl(cls, value: int) -> int:
        if value < 0:
            raise ValueError("cache_ttl_seconds must be >= 0")
        return value

    @field_validator("max_limit")
    @classmethod
    def _cap_max_limit(cls, value: int) -> int:
        if not 1 <= value <= HARD_MAX_LIMIT:
            raise ValueError(f"max_limit must be between 1 and {HARD_MAX_LIMIT}")
        return value

    @field_validator("content_aliases", "key_aliases", "score_aliases", "vector_aliases")
    @classmethod
    def _non_empty_aliases(cls, value: List[str]) -> List[str]:
        cleaned = [alias.strip() for alias in value if alias and alias.strip()]
        if not cleaned:
            raise ValueError("alias lists must contain at least one field name")
        return cleaned

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("mcp_transport")
    @classmethod
    def _normalize_transport(cls, value: str) -> str:
        return value.strip().lower() or "stdio"

    @model_validator(mode="after")
    def _default_limit_within_max(self) -> "Settings":
        if not 1 <= self.default_limit <= self.max_limit:
            raise ValueError(
                f"default_limit must be between 1 and max_limit ({self.max_limit})"
            )
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load and cache settings."""
    return Settings()


def reload_settings() -> Settings:
    """Clear cached settings (useful for tests) and reload."""
    get_settings.cache_clear()
    return get_settings()


__all__ = [
    "Settings",
    "get_settings",
    "reload_settings",
    "HARD_MAX_LIMIT",
    "DEFAULT_CONTENT_ALIASES",
    "DEFAULT_KEY_ALIASES",
    "DEFAULT_SCORE_ALIASES",
    "DEFAULT_VECTOR_ALIASES",
]
