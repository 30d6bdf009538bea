"""HTTP client for a Smart Connections host environment bridge.

The bridge runs next to the host that owns the ``smart_sources`` and
``smart_blocks`` collections and exposes them over JSON:

- ``GET  /env?vault=V`` environment status, collections and capabilities
- ``POST /collections/{name}/{lookup|search|nearest|furthest}`` queries
- ``GET  /collections/{name}/items/{key}?vault=V`` entity lookup (404 = missing)
- ``POST /embed`` content embedding

Collection calls raise ``httpx`` errors on transport or status failures;
``CollectionAdapter`` isolates them per call.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from .collection_adapter import Capability
from .errors import BridgeError

logger = logging.getLogger(__name__)

CAPABILITY_NAMES: Dict[str, Capability] = {
    "lookup": Capability.LOOKUP_BY_HYPOTHETICAL,
    "search": Capability.SEARCH_BY_KEYWORD,
    "nearest": Capability.NEAREST_BY_VECTOR,
    "furthest": Capability.FURTHEST_BY_VECTOR,
    "get": Capability.RESOLVE_BY_KEY,
}

SOURCES_COLLECTION = "smart_sources"
BLOCKS_COLLECTION = "smart_blocks"


def parse_capabilities(names: Optional[List[str]]) -> Capability:
    """Translate bridge capability names into a flag set, ignoring unknown names."""
    capabilities = Capability.NONE
    for name in names or []:
        flag = CAPABILITY_NAMES.get(str(name).lower())
        if flag is None:
            logger.debug(f"Ignoring unknown bridge capability '{name}'")
            continue
        capabilities |= flag
    return capabilities


def _results_from(data: Any) -> Any:
    if isinstance(data, dict) and "results" in data:
        return data["results"]
    return data


class BridgeClient:
    """Thin JSON client shared by a bridge environment and its collections."""

    def __init__(
        self,
        base_url: str,
        vault: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.vault = vault
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        )

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        async with self._client() as client:
            response = await client.get(path, params={"vault": self.vault, **(params or {})})
            response.raise_for_status()
            return response.json()

    async def post_json(self, path: str, payload: Dict[str, Any]) -> Any:
        async with self._client() as client:
            response = await client.post(path, json={"vault": self.vault, **payload})
            response.raise_for_status()
            return response.json()

    async def get_optional(self, path: str) -> Optional[Any]:
        async with self._client() as client:
            response = await client.get(path, params={"vault": self.vault})
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()


class BridgeCollection:
    """One collection served by the bridge."""

    def __init__(self, client: BridgeClient, name: str, capabilities: Capability, item_count: int = 0):
        self._client = client
        self.name = name
        self._capabilities = capabilities
        self._item_count = item_count

    @property
    def capabilities(self) -> Capability:
        return self._capabilities

    @property
    def item_count(self) -> int:
        return self._item_count

    async def _query(self, operation: str, payload: Dict[str, Any]) -> Any:
        data = await self._client.post_json(f"/collections/{self.name}/{operation}", payload)
        return _results_from(data)

    async def lookup(self, hypotheticals: List[str], filter: Dict[str, Any]) -> Any:
        return await self._query("lookup", {"hypotheticals": hypotheticals, "filter": filter})

    async def search(self, keywords: List[str], filter: Dict[str, Any]) -> Any:
        return await self._query("search", {"keywords": keywords, "filter": filter})

    async def nearest(self, vector: List[float], filter: Dict[str, Any]) -> Any:
        return await self._query("nearest", {"vector": vector, "filter": filter})

    async def furthest(self, vector: List[float], filter: Dict[str, Any]) -> Any:
        return await self._query("furthest", {"vector": vector, "filter": filter})

    async def get(self, key: str) -> Optional[Any]:
        return await self._client.get_optional(f"/collections/{self.name}/items/{quote(key, safe='')}")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}', items={self._item_count})"


class BridgeEnvironment:
    """Host environment for one vault, as reported by the bridge."""

    def __init__(
        self,
        client: BridgeClient,
        vault_name: str,
        ready: bool,
        sources: Optional[BridgeCollection] = None,
        blocks: Optional[BridgeCollection] = None,
        embed_available: bool = False,
    ):
        self._client = client
        self._vault_name = vault_name
        self._ready = ready
        self._sources = sources
        self._blocks = blocks
        self.embed_available = embed_available

    @property
    def vault_name(self) -> str:
        return self._vault_name

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def sources(self) -> Optional[BridgeCollection]:
        return self._sources

    @property
    def blocks(self) -> Optional[BridgeCollection]:
        return self._blocks

    @classmethod
    async def connect(
        cls,
        base_url: str,
        vault: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "BridgeEnvironment":
        """Load environment status for a vault from the bridge.

        Raises:
            BridgeError: If the bridge answer is not an environment description
            httpx.HTTPError: If the bridge cannot be reached
        """
        client = BridgeClient(base_url, vault, timeout=timeout, transport=transport)
        data = await client.get_json("/env")
        if not isinstance(data, dict):
            raise BridgeError(
                "Bridge returned an invalid environment description",
                details={"vault": vault, "type": type(data).__name__},
            )

        collections = data.get("collections") or {}

        def collection(name: str) -> Optional[BridgeCollection]:
            info = collections.get(name)
            if not isinstance(info, dict):
                return None
            return BridgeCollection(
                client,
                name,
                parse_capabilities(info.get("capabilities")),
                item_count=int(info.get("count") or 0),
            )

        environment = cls(
            client,
            vault_name=str(data.get("vault_name") or vault),
            ready=bool(data.get("ready", False)),
            sources=collection(SOURCES_COLLECTION),
            blocks=collection(BLOCKS_COLLECTION),
            embed_available=bool(data.get("embed_available", False)),
        )
        logger.info(
            "Bridge environment loaded",
            extra={
                "vault": environment.vault_name,
                "ready": environment.ready,
                "sources": environment.sources is not None,
                "blocks": environment.blocks is not None,
            },
        )
        return environment

    async def embed(self, content: str) -> List[float]:
        """Embed content with the host's embedding model.

        Raises:
            BridgeError: If the host has no embedding model or returns no vector
        """
        if not self.embed_available:
            raise BridgeError(
                "Embedding model not available in this environment",
                details={"vault": self._vault_name},
            )
        data = await self._client.post_json("/embed", {"content": content})
        vector = None
        if isinstance(data, dict):
            vector = data.get("vec") or data.get("embedding")
        if not isinstance(vector, list) or not vector:
            raise BridgeError("Bridge returned no embedding", details={"vault": self._vault_name})
        return [float(v) for v in vector]


__all__ = [
    "CAPABILITY_NAMES",
    "SOURCES_COLLECTION",
    "BLOCKS_COLLECTION",
    "parse_capabilities",
    "BridgeClient",
    "BridgeCollection",
    "BridgeEnvironment",
]
