"""Service layer: dispatch, ranking, normalization and host integration."""

from .bridge import BridgeClient, BridgeCollection, BridgeEnvironment, parse_capabilities
from .cache_manager import CacheEntry, CacheManager
from .collection_adapter import (
    ALL_CAPABILITIES,
    BackingCollection,
    Capability,
    CollectionAdapter,
    CollectionKind,
    CollectionOutcome,
    OutcomeStatus,
)
from .cutoff import apply_statistical_cutoff
from .dispatcher import (
    QueryDispatcher,
    parse_search_request,
    run_fallback_chain,
    select_mode,
)
from .environment import (
    EnvironmentService,
    HostEnvironment,
    build_adapters,
    summarize_environment,
)
from .errors import (
    BridgeError,
    EnvironmentNotReadyError,
    SearchValidationError,
    SmartLookupError,
)
from .normalizer import ResultNormalizer, resolve_field
from .search_service import SearchService, get_search_service

__all__ = [
    "BridgeClient",
    "BridgeCollection",
    "BridgeEnvironment",
    "parse_capabilities",
    "CacheEntry",
    "CacheManager",
    "ALL_CAPABILITIES",
    "BackingCollection",
    "Capability",
    "CollectionAdapter",
    "CollectionKind",
    "CollectionOutcome",
    "OutcomeStatus",
    "apply_statistical_cutoff",
    "QueryDispatcher",
    "parse_search_request",
    "run_fallback_chain",
    "select_mode",
    "EnvironmentService",
    "HostEnvironment",
    "build_adapters",
    "summarize_environment",
    "BridgeError",
    "EnvironmentNotReadyError",
    "SearchValidationError",
    "SmartLookupError",
    "ResultNormalizer",
    "resolve_field",
    "SearchService",
    "get_search_service",
]
