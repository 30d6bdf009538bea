"""Per-vault staleness bookkeeping for loaded host environments.

The manager never reloads anything itself. It only answers whether the
environment registry should ask the host to refresh a vault's data.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict

from ..models.environment import CacheStats

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    vault_key: str
    last_loaded: float
    ttl_seconds: int


class CacheManager:
    """TTL bookkeeping keyed by vault.

    Calls for the same vault are serialised by a per-vault lock; different
    vaults never contend with each other beyond the short registry lock used
    to create their lock.
    """

    def __init__(self, ttl_seconds: int = 300, clock: Callable[[], float] = time.time):
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    def _lock_for(self, vault_key: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(vault_key)
            if lock is None:
                lock = threading.Lock()
                self._locks[vault_key] = lock
            return lock

    def should_reload(self, vault_key: str) -> bool:
        """Return True if the vault was never loaded or its entry expired."""
        with self._lock_for(vault_key):
            entry = self._entries.get(vault_key)
            if entry is None:
                return True
            age = self._clock() - entry.last_loaded
            stale = age > entry.ttl_seconds
            if stale:
                logger.debug(
                    "Cache entry expired",
                    extra={"vault_key": vault_key, "cache_age_seconds": f"{age:.1f}"},
                )
            return stale

    def update_cache(self, vault_key: str) -> None:
        """Record a successful reload of the vault."""
        with self._lock_for(vault_key):
            entry = self._entries.get(vault_key)
            if entry is None:
                self._entries[vault_key] = CacheEntry(
                    vault_key=vault_key,
                    last_loaded=self._clock(),
                    ttl_seconds=self._ttl,
                )
            else:
                entry.last_loaded = self._clock()

    def get_cache_stats(self, vault_key: str) -> CacheStats:
        """Get cache statistics for debugging."""
        with self._lock_for(vault_key):
            entry = self._entries.get(vault_key)
            if entry is None:
                return CacheStats(vault_key=vault_key, ttl_seconds=self._ttl)
            return CacheStats(
                vault_key=vault_key,
                last_loaded=datetime.fromtimestamp(entry.last_loaded, tz=timezone.utc),
                cache_age_seconds=max(0.0, self._clock() - entry.last_loaded),
                ttl_seconds=entry.ttl_seconds,
            )


__all__ = ["CacheEntry", "CacheManager"]
