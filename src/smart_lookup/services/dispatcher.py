"""Multi-mode query dispatch over the sources and blocks collections.

The dispatcher derives a search mode from the caller's payload, fans the
query out to the collections selected by the filter, and ranks the merged
results:

1. Plan an ordered fallback chain of strategies for the mode
2. Run strategies in order until one is accepted
3. Sort the accepted records by descending score
4. Truncate at the first score cliff (``apply_statistical_cutoff``)
5. Apply the caller's limit

Per-collection failures and missing capabilities never raise. Only a host
environment without any usable collection is fatal.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from pydantic import ValidationError

from ..models.search import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    CanonicalResult,
    CollectionScope,
    QueryMode,
    QueryType,
    SearchRequest,
    SearchResponse,
    VectorOperation,
)
from .collection_adapter import CollectionAdapter, CollectionKind, CollectionOutcome
from .cutoff import apply_statistical_cutoff
from .environment import HostEnvironment, build_adapters, summarize_environment
from .errors import EnvironmentNotReadyError, SearchValidationError
from .normalizer import ResultNormalizer

logger = logging.getLogger(__name__)

SYNTHETIC_HYPOTHETICAL = "vector search with {dimensions} dimensions"


# ============================================================================
# Request parsing and mode selection
# ============================================================================

def parse_search_request(
    payload: Union[SearchRequest, Mapping[str, Any], None],
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> SearchRequest:
    """Validate a raw caller payload.

    Raises:
        SearchValidationError: If the payload or its filter is malformed
    """
    if isinstance(payload, SearchRequest):
        request = payload
    else:
        if payload is not None and not isinstance(payload, Mapping):
            raise SearchValidationError(
                "search request must be an object", details={"payload": repr(payload)}
            )
        data: Dict[str, Any] = dict(payload or {})
        raw_filter = data.get("filter")
        if raw_filter is not None and not isinstance(raw_filter, Mapping):
            raise SearchValidationError(
                "filter must be an object", details={"filter": repr(raw_filter)}
            )
        filter_data = dict(raw_filter or {})
        if filter_data.get("limit") is None:
            filter_data["limit"] = default_limit
        data["filter"] = filter_data
        try:
            request = SearchRequest.model_validate(data)
        except ValidationError as exc:
            raise SearchValidationError(
                "Invalid search request",
                details={"errors": exc.errors(include_url=False, include_context=False)},
            ) from exc

    if request.filter.limit > max_limit:
        raise SearchValidationError(
            f"filter.limit must not exceed {max_limit}",
            details={"limit": request.filter.limit, "max_limit": max_limit},
        )
    return request


def select_mode(request: SearchRequest) -> Optional[QueryMode]:
    """Pick the search mode; the first matching rule wins.

    1. Lexical hint with keywords -> LEXICAL
    2. A direct vector -> DIRECT_VECTOR
    3. Hypotheticals -> VECTOR
    4. Nothing to search -> None (an empty result, not an error)
    """
    if request.query_type is QueryType.LEXICAL and request.keywords:
        return QueryMode.LEXICAL
    if request.direct_vector is not None:
        return QueryMode.DIRECT_VECTOR
    if request.hypotheticals:
        return QueryMode.VECTOR
    return None


# ============================================================================
# Fallback chains
# ============================================================================

@dataclass
class AttemptOutcome:
    """Result-or-failure of one strategy."""

    strategy: str
    records: List[CanonicalResult] = field(default_factory=list)
    failed: bool = False
    error: Optional[str] = None


@dataclass
class SearchStrategy:
    """One step of a fallback chain.

    ``accept`` decides whether the chain stops at this step's outcome.
    """

    name: str
    run: Callable[[], Awaitable[AttemptOutcome]]
    accept: Callable[[AttemptOutcome], bool]


@dataclass
class ChainResult:
    records: List[CanonicalResult]
    attempts: List[AttemptOutcome]
    exhausted: bool = False

    @property
    def degraded(self) -> List[str]:
        """Names of strategies that were abandoned."""
        abandoned = self.attempts if self.exhausted else self.attempts[:-1]
        return [attempt.strategy for attempt in abandoned]


def accept_always(outcome: AttemptOutcome) -> bool:
    return True


def accept_non_empty(outcome: AttemptOutcome) -> bool:
    return bool(outcome.records)


def accept_unless_failed(outcome: AttemptOutcome) -> bool:
    return not outcome.failed


async def run_fallback_chain(strategies: Sequence[SearchStrategy]) -> ChainResult:
    """Try strategies in order, stopping at the first accepted outcome.

    If no strategy is accepted the chain ends empty and exhausted.
    """
    attempts: List[AttemptOutcome] = []
    for index, strategy in enumerate(strategies):
        outcome = await strategy.run()
        attempts.append(outcome)
        if strategy.accept(outcome):
            return ChainResult(records=outcome.records, attempts=attempts)
        next_name = strategies[index + 1].name if index + 1 < len(strategies) else None
        logger.warning(
            "Search strategy degraded",
            extra={
                "strategy": strategy.name,
                "error": outcome.error,
                "result_count": len(outcome.records),
                "fallback": next_name,
            },
        )
    return ChainResult(records=[], attempts=attempts, exhausted=True)


# ============================================================================
# Dispatcher
# ============================================================================

class QueryDispatcher:
    """Runs one lookup against a host environment.

    Stateless per call; several lookups may run concurrently against the
    same dispatcher.
    """

    def __init__(
        self,
        environment: HostEnvironment,
        normalizer: Optional[ResultNormalizer] = None,
        cutoff_fallback_count: int = 10,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
    ):
        self.environment = environment
        self.normalizer = normalizer or ResultNormalizer()
        self.cutoff_fallback_count = cutoff_fallback_count
        self.default_limit = default_limit
        self.max_limit = max_limit

    async def execute_search(
        self, payload: Union[SearchRequest, Mapping[str, Any], None]
    ) -> SearchResponse:
        """Validate, dispatch, rank, truncate and limit one lookup.

        Raises:
            SearchValidationError: If the payload is malformed
            EnvironmentNotReadyError: If the environment has no usable collection
        """
        request = parse_search_request(payload, self.default_limit, self.max_limit)
        adapters = self._usable_adapters()
        mode = select_mode(request)
        start_time = time.time()

        if mode is None:
            logger.info("No valid search parameters provided, returning empty results")
            chain = ChainResult(records=[], attempts=[])
        else:
            chain = await run_fallback_chain(self.plan(mode, request, adapters))

        ranked = sorted(chain.records, key=lambda r: r.score, reverse=True)
        filtered = apply_statistical_cutoff(ranked, fallback_count=self.cutoff_fallback_count)
        results = filtered[: request.filter.limit]

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Lookup dispatched",
            extra={
                "mode": mode.value if mode else None,
                "collection": request.filter.collection.value,
                "candidates": len(ranked),
                "after_cutoff": len(filtered),
                "result_count": len(results),
                "degraded": chain.degraded,
                "duration_ms": f"{duration_ms:.2f}",
            },
        )

        return SearchResponse(
            results=results,
            count=len(results),
            total_before_limit=len(filtered),
            search_params=self._echo_params(request, mode, chain),
            environment_summary=summarize_environment(self.environment, adapters),
        )

    def _usable_adapters(self) -> Dict[CollectionKind, CollectionAdapter]:
        if self.environment is None or not self.environment.ready:
            raise EnvironmentNotReadyError(
                "Smart Connections environment not ready. Please wait for the host to finish loading."
            )
        adapters = build_adapters(self.environment)
        if not adapters:
            raise EnvironmentNotReadyError(
                "Smart Connections environment exposes no collections",
                details={"vault": self.environment.vault_name},
            )
        return adapters

    # ------------------------------------------------------------------
    # Planning
    # ------------------------------------------------------------------

    def plan(
        self,
        mode: QueryMode,
        request: SearchRequest,
        adapters: Dict[CollectionKind, CollectionAdapter],
    ) -> List[SearchStrategy]:
        """Build the ordered fallback chain for a mode."""
        search_filter = request.filter

        def vector(hypotheticals: List[str], name: str = "vector") -> SearchStrategy:
            return SearchStrategy(
                name=name,
                run=lambda: self._fan_out(
                    name,
                    adapters,
                    search_filter.collection,
                    lambda adapter: adapter.lookup_by_hypothetical(hypotheticals, search_filter),
                ),
                accept=accept_always,
            )

        if mode is QueryMode.VECTOR:
            return [vector(list(request.hypotheticals or []))]

        if mode is QueryMode.LEXICAL:
            keywords = list(request.keywords or [])
            return [
                SearchStrategy(
                    name="lexical",
                    run=lambda: self._fan_out(
                        "lexical",
                        adapters,
                        search_filter.collection,
                        lambda adapter: adapter.search_by_keyword(keywords, search_filter),
                    ),
                    accept=accept_non_empty,
                ),
                vector(keywords, name="vector_from_keywords"),
            ]

        vector_values = list(request.direct_vector or [])
        target = self._direct_target(search_filter.collection)
        strategies: List[SearchStrategy] = []

        if request.vector_operation is VectorOperation.NEAREST_TO:
            strategies.append(
                SearchStrategy(
                    name="nearest_to",
                    run=lambda: self._nearest_to(adapters.get(target), request),
                    accept=accept_unless_failed,
                )
            )

        if request.vector_operation is VectorOperation.FURTHEST:
            operation = "furthest"
            call = lambda adapter: adapter.furthest_by_vector(vector_values, search_filter)  # noqa: E731
        else:
            operation = "nearest"
            call = lambda adapter: adapter.nearest_by_vector(vector_values, search_filter)  # noqa: E731

        strategies.append(
            SearchStrategy(
                name=operation,
                run=lambda: self._single(operation, adapters.get(target), target, call),
                accept=accept_unless_failed,
            )
        )
        strategies.append(
            vector(
                [SYNTHETIC_HYPOTHETICAL.format(dimensions=len(vector_values))],
                name="vector_from_direct_vector",
            )
        )
        return strategies

    @staticmethod
    def _direct_target(scope: CollectionScope) -> CollectionKind:
        # Direct vector operations are single-collection; "both" means sources
        if scope is CollectionScope.BLOCKS:
            return CollectionKind.BLOCKS
        return CollectionKind.SOURCES

    @staticmethod
    def _kinds_in_scope(scope: CollectionScope) -> List[CollectionKind]:
        if scope is CollectionScope.SOURCES:
            return [CollectionKind.SOURCES]
        if scope is CollectionScope.BLOCKS:
            return [CollectionKind.BLOCKS]
        return [CollectionKind.SOURCES, CollectionKind.BLOCKS]

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _normalize(self, outcome: CollectionOutcome) -> List[CanonicalResult]:
        return self.normalizer.normalize_many(outcome.records, outcome.result_type)

    async def _fan_out(
        self,
        name: str,
        adapters: Dict[CollectionKind, CollectionAdapter],
        scope: CollectionScope,
        call: Callable[[CollectionAdapter], Awaitable[CollectionOutcome]],
    ) -> AttemptOutcome:
        """Query every collection in scope concurrently and concatenate."""
        selected = [adapters[kind] for kind in self._kinds_in_scope(scope) if kind in adapters]
        if not selected:
            logger.debug(f"No collections available in scope '{scope.value}' for {name}")
            return AttemptOutcome(strategy=name)

        outcomes = await asyncio.gather(*(call(adapter) for adapter in selected))

        records: List[CanonicalResult] = []
        for outcome in outcomes:
            records.extend(self._normalize(outcome))

        failures = [o for o in outcomes if o.failed]
        return AttemptOutcome(
            strategy=name,
            records=records,
            failed=len(failures) == len(outcomes),
            error="; ".join(f"{o.kind.value}: {o.error}" for o in failures) or None,
        )

    async def _single(
        self,
        name: str,
        adapter: Optional[CollectionAdapter],
        kind: CollectionKind,
        call: Callable[[CollectionAdapter], Awaitable[CollectionOutcome]],
    ) -> AttemptOutcome:
        if adapter is None:
            return AttemptOutcome(
                strategy=name, failed=True, error=f"{kind.value} collection not available"
            )
        outcome = await call(adapter)
        return AttemptOutcome(
            strategy=name,
            records=self._normalize(outcome),
            failed=outcome.failed,
            error=outcome.error,
        )

    async def _nearest_to(
        self, adapter: Optional[CollectionAdapter], request: SearchRequest
    ) -> AttemptOutcome:
        """Nearest neighbours of a stored entity, excluding the entity itself."""
        if adapter is None:
            return AttemptOutcome(strategy="nearest_to", failed=True, error="collection not available")
        if not request.entity_key:
            return AttemptOutcome(strategy="nearest_to", failed=True, error="no entity_key supplied")

        entity = await adapter.resolve(request.entity_key)
        entity_vector = self.normalizer.extract_vector(entity) if entity is not None else None
        if entity_vector is None:
            return AttemptOutcome(
                strategy="nearest_to",
                failed=True,
                error=f"entity '{request.entity_key}' could not be resolved",
            )

        outcome = await adapter.nearest_by_vector(entity_vector, request.filter)
        records = [r for r in self._normalize(outcome) if r.key != request.entity_key]
        return AttemptOutcome(
            strategy="nearest_to", records=records, failed=outcome.failed, error=outcome.error
        )

    @staticmethod
    def _echo_params(
        request: SearchRequest, mode: Optional[QueryMode], chain: ChainResult
    ) -> Dict[str, Any]:
        return {
            "query_type": request.query_type.value if request.query_type else None,
            "mode": mode.value if mode else None,
            "hypotheticals": request.hypotheticals,
            "keywords": request.keywords,
            "direct_vector": (
                f"[{len(request.direct_vector)} dimensions]"
                if request.direct_vector is not None
                else None
            ),
            "vector_operation": request.vector_operation.value,
            "entity_key": request.entity_key,
            "filter": request.filter.model_dump(mode="json", exclude_none=True),
            "degraded": chain.degraded,
        }


__all__ = [
    "SYNTHETIC_HYPOTHETICAL",
    "parse_search_request",
    "select_mode",
    "AttemptOutcome",
    "SearchStrategy",
    "ChainResult",
    "run_fallback_chain",
    "accept_always",
    "accept_non_empty",
    "accept_unless_failed",
    "QueryDispatcher",
]
