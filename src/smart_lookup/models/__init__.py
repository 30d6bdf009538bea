"""Pydantic models for data validation and serialization."""

from .environment import CacheStats, EnvironmentSummary
from .search import (
    DEFAULT_LIMIT,
    MAX_LIMIT,
    CanonicalResult,
    CollectionScope,
    QueryMode,
    QueryType,
    ResultType,
    SearchFilter,
    SearchRequest,
    SearchResponse,
    VectorOperation,
)

__all__ = [
    "DEFAULT_LIMIT",
    "MAX_LIMIT",
    "QueryType",
    "QueryMode",
    "VectorOperation",
    "CollectionScope",
    "ResultType",
    "SearchFilter",
    "SearchRequest",
    "CanonicalResult",
    "SearchResponse",
    "EnvironmentSummary",
    "CacheStats",
]
