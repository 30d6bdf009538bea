"""Capability-checked facade over one backing collection.

A backing collection (Smart Connections ``smart_sources`` or
``smart_blocks``) supports some subset of the query primitives. Each
collection declares that subset as a ``Capability`` flag set, and the
adapter refuses to call anything outside it. Every call is isolated: an
exception raised by the backing store becomes a FAILED outcome with zero
records, never an exception for the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, Flag, auto
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, runtime_checkable

from ..models.search import ResultType, SearchFilter

logger = logging.getLogger(__name__)


# ============================================================================
# Enumerations
# ============================================================================

class Capability(Flag):
    """Query primitives a backing collection may support."""

    NONE = 0
    LOOKUP_BY_HYPOTHETICAL = auto()
    SEARCH_BY_KEYWORD = auto()
    NEAREST_BY_VECTOR = auto()
    FURTHEST_BY_VECTOR = auto()
    RESOLVE_BY_KEY = auto()


ALL_CAPABILITIES = (
    Capability.LOOKUP_BY_HYPOTHETICAL
    | Capability.SEARCH_BY_KEYWORD
    | Capability.NEAREST_BY_VECTOR
    | Capability.FURTHEST_BY_VECTOR
    | Capability.RESOLVE_BY_KEY
)


class CollectionKind(str, Enum):
    """The two collections a host environment can expose."""

    SOURCES = "sources"
    BLOCKS = "blocks"

    @property
    def result_type(self) -> ResultType:
        return ResultType.SOURCE if self is CollectionKind.SOURCES else ResultType.BLOCK


class OutcomeStatus(str, Enum):
    OK = "ok"
    UNSUPPORTED = "unsupported"
    FAILED = "failed"


# ============================================================================
# Protocol Interface
# ============================================================================

@runtime_checkable
class BackingCollection(Protocol):
    """Contract for a searchable collection owned by the host environment.

    Only the methods named by ``capabilities`` are ever called. Filters are
    plain dicts (see ``SearchFilter.collection_params``).
    """

    @property
    def capabilities(self) -> Capability:
        ...

    @property
    def item_count(self) -> int:
        ...

    async def lookup(self, hypotheticals: List[str], filter: Dict[str, Any]) -> List[Any]:
        ...

    async def search(self, keywords: List[str], filter: Dict[str, Any]) -> List[Any]:
        ...

    async def nearest(self, vector: List[float], filter: Dict[str, Any]) -> List[Any]:
        ...

    async def furthest(self, vector: List[float], filter: Dict[str, Any]) -> List[Any]:
        ...

    async def get(self, key: str) -> Optional[Any]:
        ...


# ============================================================================
# Value Objects
# ============================================================================

@dataclass
class CollectionOutcome:
    """Result-or-failure of one adapter call.

    Attributes:
        kind: Collection that was queried
        operation: Name of the primitive that was requested
        status: OK, UNSUPPORTED (capability missing) or FAILED (store raised)
        records: Raw records from the store (empty unless status is OK)
        error: Failure description when status is FAILED
    """

    kind: CollectionKind
    operation: str
    status: OutcomeStatus = OutcomeStatus.OK
    records: List[Any] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.OK

    @property
    def failed(self) -> bool:
        return self.status is OutcomeStatus.FAILED

    @property
    def result_type(self) -> ResultType:
        return self.kind.result_type


# ============================================================================
# Adapter
# ============================================================================

class CollectionAdapter:
    """Wraps one backing collection behind capability-checked, isolated calls."""

    def __init__(self, kind: CollectionKind, collection: BackingCollection):
        self.kind = kind
        self.collection = collection
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def capabilities(self) -> Capability:
        return self.collection.capabilities

    @property
    def item_count(self) -> int:
        try:
            return int(self.collection.item_count)
        except Exception as e:
            self.logger.warning(f"Could not count items in {self.kind.value}: {e}")
            return 0

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    async def _call(
        self,
        capability: Capability,
        operation: str,
        invoke: Callable[[], Awaitable[Any]],
    ) -> CollectionOutcome:
        if not self.supports(capability):
            self.logger.debug(f"{self.kind.value} does not support {operation}, contributing no results")
            return CollectionOutcome(self.kind, operation, OutcomeStatus.UNSUPPORTED)

        try:
            records = await invoke()
        except Exception as e:
            self.logger.warning(f"{operation} failed for {self.kind.value}: {e}", exc_info=True)
            return CollectionOutcome(self.kind, operation, OutcomeStatus.FAILED, error=str(e))

        if records is None:
            records = []
        if not isinstance(records, (list, tuple)):
            self.logger.warning(
                f"{operation} on {self.kind.value} returned {type(records).__name__}, expected a list"
            )
            return CollectionOutcome(
                self.kind,
                operation,
                OutcomeStatus.FAILED,
                error=f"non-list result: {type(records).__name__}",
            )

        self.logger.debug(f"{operation} on {self.kind.value} returned {len(records)} records")
        return CollectionOutcome(self.kind, operation, OutcomeStatus.OK, records=list(records))

    async def lookup_by_hypothetical(
        self, hypotheticals: List[str], search_filter: SearchFilter
    ) -> CollectionOutcome:
        return await self._call(
            Capability.LOOKUP_BY_HYPOTHETICAL,
            "lookup",
            lambda: self.collection.lookup(list(hypotheticals), search_filter.collection_params()),
        )

    async def search_by_keyword(
        self, keywords: List[str], search_filter: SearchFilter
    ) -> CollectionOutcome:
        return await self._call(
            Capability.SEARCH_BY_KEYWORD,
            "search",
            lambda: self.collection.search(list(keywords), search_filter.collection_params()),
        )

    async def nearest_by_vector(
        self, vector: List[float], search_filter: SearchFilter
    ) -> CollectionOutcome:
        return await self._call(
            Capability.NEAREST_BY_VECTOR,
            "nearest",
            lambda: self.collection.nearest(list(vector), search_filter.collection_params()),
        )

    async def furthest_by_vector(
        self, vector: List[float], search_filter: SearchFilter
    ) -> CollectionOutcome:
        return await self._call(
            Capability.FURTHEST_BY_VECTOR,
            "furthest",
            lambda: self.collection.furthest(list(vector), search_filter.collection_params()),
        )

    async def resolve(self, key: str) -> Optional[Any]:
        """Fetch one entity by key; None when unsupported, missing or failing."""
        if not self.supports(Capability.RESOLVE_BY_KEY):
            return None
        try:
            return await self.collection.get(key)
        except Exception as e:
            self.logger.warning(f"Resolving '{key}' in {self.kind.value} failed: {e}", exc_info=True)
            return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(kind='{self.kind.value}', capabilities={self.capabilities})"


__all__ = [
    "Capability",
    "ALL_CAPABILITIES",
    "CollectionKind",
    "OutcomeStatus",
    "BackingCollection",
    "CollectionOutcome",
    "CollectionAdapter",
]
