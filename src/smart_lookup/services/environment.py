"""Host environment contract and the per-vault environment registry."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Protocol, runtime_checkable

from ..models.environment import EnvironmentSummary
from .cache_manager import CacheManager
from .collection_adapter import BackingCollection, CollectionAdapter, CollectionKind
from .errors import EnvironmentNotReadyError

logger = logging.getLogger(__name__)


@runtime_checkable
class HostEnvironment(Protocol):
    """A loaded Smart Connections environment for one vault."""

    @property
    def vault_name(self) -> str:
        ...

    @property
    def ready(self) -> bool:
        ...

    @property
    def sources(self) -> Optional[BackingCollection]:
        ...

    @property
    def blocks(self) -> Optional[BackingCollection]:
        ...

    async def embed(self, content: str) -> List[float]:
        ...


EnvironmentFactory = Callable[[str], Awaitable[HostEnvironment]]


def build_adapters(environment: HostEnvironment) -> Dict[CollectionKind, CollectionAdapter]:
    """Wrap every collection the environment exposes."""
    adapters: Dict[CollectionKind, CollectionAdapter] = {}
    if environment.sources is not None:
        adapters[CollectionKind.SOURCES] = CollectionAdapter(CollectionKind.SOURCES, environment.sources)
    if environment.blocks is not None:
        adapters[CollectionKind.BLOCKS] = CollectionAdapter(CollectionKind.BLOCKS, environment.blocks)
    return adapters


def summarize_environment(
    environment: Optional[HostEnvironment],
    adapters: Optional[Dict[CollectionKind, CollectionAdapter]] = None,
    vault_name: str = "",
) -> EnvironmentSummary:
    """Collection availability and counts for observability."""
    if environment is None:
        return EnvironmentSummary(vault_name=vault_name)
    if adapters is None:
        adapters = build_adapters(environment)
    sources = adapters.get(CollectionKind.SOURCES)
    blocks = adapters.get(CollectionKind.BLOCKS)
    return EnvironmentSummary(
        vault_name=environment.vault_name or vault_name,
        ready=bool(environment.ready),
        sources_available=sources is not None,
        blocks_available=blocks is not None,
        sources_count=sources.item_count if sources is not None else 0,
        blocks_count=blocks.item_count if blocks is not None else 0,
    )


class EnvironmentService:
    """Loads host environments per vault and reloads them when stale.

    Loads for the same vault are serialised by an ``asyncio.Lock``; the
    ``CacheManager`` decides when a loaded environment has expired.
    """

    def __init__(self, factory: EnvironmentFactory, cache_manager: CacheManager):
        self._factory = factory
        self.cache_manager = cache_manager
        self._environments: Dict[str, HostEnvironment] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, vault_key: str) -> asyncio.Lock:
        lock = self._locks.get(vault_key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[vault_key] = lock
        return lock

    def cached(self, vault_key: str) -> Optional[HostEnvironment]:
        return self._environments.get(vault_key)

    async def get_environment(self, vault_key: str) -> HostEnvironment:
        """Return the vault's environment, loading or reloading it if needed.

        Raises:
            EnvironmentNotReadyError: If the host environment cannot be loaded
        """
        async with self._lock_for(vault_key):
            environment = self._environments.get(vault_key)
            if environment is not None and not self.cache_manager.should_reload(vault_key):
                return environment

            logger.info(
                "Loading host environment",
                extra={"vault": vault_key, "reload": environment is not None},
            )
            try:
                environment = await self._factory(vault_key)
            except EnvironmentNotReadyError:
                raise
            except Exception as exc:
                logger.error(f"Failed to load environment for vault '{vault_key}': {exc}")
                raise EnvironmentNotReadyError(
                    "Smart Connections environment not ready. Please wait for the host to finish loading.",
                    details={"vault": vault_key, "error": str(exc)},
                ) from exc

            self._environments[vault_key] = environment
            if environment.ready:
                self.cache_manager.update_cache(vault_key)
            return environment

    def invalidate(self, vault_key: str) -> None:
        """Forget a loaded environment so the next call reloads it."""
        self._environments.pop(vault_key, None)


__all__ = [
    "HostEnvironment",
    "EnvironmentFactory",
    "EnvironmentService",
    "build_adapters",
    "summarize_environment",
]
