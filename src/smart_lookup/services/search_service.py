"""Search facade used by the MCP tools."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional

from ..config import Settings, get_settings
from ..models.environment import EnvironmentSummary
from ..models.search import SearchResponse
from .bridge import BridgeEnvironment
from .cache_manager import CacheManager
from .dispatcher import QueryDispatcher
from .environment import EnvironmentFactory, EnvironmentService, summarize_environment
from .errors import EnvironmentNotReadyError, SmartLookupError
from .normalizer import ResultNormalizer

logger = logging.getLogger(__name__)


class SearchService:
    """Resolves the vault's environment and runs lookups against it."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        environment_factory: Optional[EnvironmentFactory] = None,
        cache_manager: Optional[CacheManager] = None,
    ):
        self.settings = settings or get_settings()
        self.cache_manager = cache_manager or CacheManager(ttl_seconds=self.settings.cache_ttl_seconds)
        self.environments = EnvironmentService(
            environment_factory or self._bridge_factory,
            self.cache_manager,
        )
        self.normalizer = ResultNormalizer.from_settings(self.settings)

    async def _bridge_factory(self, vault: str) -> BridgeEnvironment:
        return await BridgeEnvironment.connect(
            self.settings.bridge_url,
            vault,
            timeout=self.settings.request_timeout,
        )

    def resolve_vault(self, vault: Optional[str]) -> str:
        """Vault key a call uses: the given name, or the configured default."""
        return (vault or "").strip() or self.settings.default_vault

    async def lookup(self, payload: Mapping[str, Any], vault: Optional[str] = None) -> SearchResponse:
        """Run one lookup for a vault.

        Raises:
            SearchValidationError: If the payload is malformed
            EnvironmentNotReadyError: If the vault has no usable environment
        """
        environment = await self.environments.get_environment(self.resolve_vault(vault))
        dispatcher = QueryDispatcher(
            environment,
            normalizer=self.normalizer,
            cutoff_fallback_count=self.settings.cutoff_fallback_count,
            default_limit=self.settings.default_limit,
            max_limit=self.settings.max_limit,
        )
        return await dispatcher.execute_search(payload)

    async def embed(self, content: str, vault: Optional[str] = None) -> List[float]:
        """Embed content with the vault environment's model.

        Raises:
            EnvironmentNotReadyError: If the environment is not ready or cannot embed
        """
        vault_key = self.resolve_vault(vault)
        environment = await self.environments.get_environment(vault_key)
        if not environment.ready:
            raise EnvironmentNotReadyError(
                "Smart Connections environment not ready. Please wait for the host to finish loading.",
                details={"vault": vault_key},
            )
        try:
            return await environment.embed(content)
        except SmartLookupError as exc:
            raise EnvironmentNotReadyError(exc.message, details=exc.details) from exc
        except Exception as exc:
            logger.error(f"Embedding failed for vault '{vault_key}': {exc}")
            raise EnvironmentNotReadyError(
                "Embedding failed", details={"vault": vault_key, "error": str(exc)}
            ) from exc

    async def status(self, vault: Optional[str] = None) -> Dict[str, Any]:
        """Environment summary and cache statistics for a vault.

        An environment that cannot be loaded is reported, not raised.
        """
        vault_key = self.resolve_vault(vault)
        error: Optional[str] = None
        try:
            environment = await self.environments.get_environment(vault_key)
            summary = summarize_environment(environment, vault_name=vault_key)
        except EnvironmentNotReadyError as exc:
            error = exc.details.get("error") or exc.message
            summary = EnvironmentSummary(vault_name=vault_key)
        return {
            "environment_summary": summary.model_dump(mode="json"),
            "cache": self.cache_manager.get_cache_stats(vault_key).model_dump(mode="json"),
            "error": error,
        }


@lru_cache(maxsize=1)
def get_search_service() -> SearchService:
    """Process-wide search service."""
    return SearchService()


__all__ = ["SearchService", "get_search_service"]
