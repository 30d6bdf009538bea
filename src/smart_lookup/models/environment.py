"""Environment observability models."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class EnvironmentSummary(BaseModel):
    """Collection availability for the vault a lookup ran against."""

    vault_name: str
    ready: bool = False
    sources_available: bool = False
    blocks_available: bool = False
    sources_count: int = 0
    blocks_count: int = 0


class CacheStats(BaseModel):
    """Cache bookkeeping for one vault."""

    vault_key: str
    last_loaded: Optional[datetime] = Field(
        None, description="When the environment was last (re)loaded"
    )
    cache_age_seconds: Optional[float] = None
    ttl_seconds: int


__all__ = ["EnvironmentSummary", "CacheStats"]
