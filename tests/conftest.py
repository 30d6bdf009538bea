from typing import Any, Dict, List, Optional

import pytest

from smart_lookup.services.collection_adapter import ALL_CAPABILITIES, Capability


class FakeCollection:
    """In-memory stand-in for a host collection.

    ``responses`` maps an operation name to the records it returns, or to an
    exception instance it raises.
    """

    def __init__(
        self,
        capabilities: Capability = ALL_CAPABILITIES,
        responses: Optional[Dict[str, Any]] = None,
        entities: Optional[Dict[str, Any]] = None,
        item_count: int = 0,
    ):
        self._capabilities = capabilities
        self.responses = responses or {}
        self.entities = entities or {}
        self._item_count = item_count
        self.calls: List[tuple] = []

    @property
    def capabilities(self) -> Capability:
        return self._capabilities

    @property
    def item_count(self) -> int:
        return self._item_count

    async def _respond(self, operation: str, *args):
        self.calls.append((operation, *args))
        response = self.responses.get(operation, [])
        if isinstance(response, Exception):
            raise response
        return response

    async def lookup(self, hypotheticals, filter):
        return await self._respond("lookup", hypotheticals, filter)

    async def search(self, keywords, filter):
        return await self._respond("search", keywords, filter)

    async def nearest(self, vector, filter):
        return await self._respond("nearest", vector, filter)

    async def furthest(self, vector, filter):
        return await self._respond("furthest", vector, filter)

    async def get(self, key):
        self.calls.append(("get", key))
        return self.entities.get(key)

    def operations(self) -> List[str]:
        return [call[0] for call in self.calls]


class FakeEnvironment:
    def __init__(
        self,
        sources: Optional[FakeCollection] = None,
        blocks: Optional[FakeCollection] = None,
        ready: bool = True,
        vault_name: str = "test-vault",
        embedding: Optional[List[float]] = None,
    ):
        self._sources = sources
        self._blocks = blocks
        self._ready = ready
        self._vault_name = vault_name
        self.embedding = embedding

    @property
    def vault_name(self) -> str:
        return self._vault_name

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def sources(self):
        return self._sources

    @property
    def blocks(self):
        return self._blocks

    async def embed(self, content: str) -> List[float]:
        if self.embedding is None:
            raise RuntimeError("no embedding model")
        return list(self.embedding)


def hit(key: str, score: float, content: str = "text", **extra) -> Dict[str, Any]:
    return {"key": key, "score": score, "content": content, **extra}


@pytest.fixture
def fake_collection():
    return FakeCollection


@pytest.fixture
def fake_environment():
    return FakeEnvironment


@pytest.fixture
def make_hit():
    return hit
