"""Search request/response models."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .environment import EnvironmentSummary

DEFAULT_LIMIT = 10
MAX_LIMIT = 50


class QueryType(str, Enum):
    """Mode hint supplied by the caller."""

    VECTOR = "vector"
    LEXICAL = "lexical"


class QueryMode(str, Enum):
    """Search mode actually executed, derived from the request."""

    VECTOR = "vector"
    LEXICAL = "lexical"
    DIRECT_VECTOR = "direct_vector"


class VectorOperation(str, Enum):
    NEAREST = "nearest"
    FURTHEST = "furthest"
    NEAREST_TO = "nearest_to"


class CollectionScope(str, Enum):
    SOURCES = "sources"
    BLOCKS = "blocks"
    BOTH = "both"


class ResultType(str, Enum):
    """Collection a canonical result came from."""

    SOURCE = "source"
    BLOCK = "block"
    UNKNOWN = "unknown"


class SearchFilter(BaseModel):
    """Result filter shared by every collection call."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    limit: int = Field(
        DEFAULT_LIMIT,
        ge=1,
        le=MAX_LIMIT,
        description="Maximum number of results, applied after ranking and cutoff",
    )
    collection: CollectionScope = Field(
        CollectionScope.BOTH,
        validation_alias=AliasChoices("collection", "collection_scope"),
        description="Which collection(s) to search",
    )
    key_starts_with: Optional[str] = None
    exclude_key_starts_with: Optional[str] = None
    key_starts_with_any: Optional[List[str]] = None

    @field_validator("limit", mode="before")
    @classmethod
    def _default_limit(cls, value: Any) -> Any:
        return DEFAULT_LIMIT if value is None else value

    @field_validator("collection", mode="before")
    @classmethod
    def _default_collection(cls, value: Any) -> Any:
        if value is None or value == "":
            return CollectionScope.BOTH
        return value.lower() if isinstance(value, str) else value

    def collection_params(self) -> Dict[str, Any]:
        """Filter fields forwarded to a backing collection.

        The limit stays local: it applies only after ranking and cutoff.
        """
        params: Dict[str, Any] = {}
        if self.key_starts_with:
            params["key_starts_with"] = self.key_starts_with
        if self.exclude_key_starts_with:
            params["exclude_key_starts_with"] = self.exclude_key_starts_with
        if self.key_starts_with_any:
            params["key_starts_with_any"] = list(self.key_starts_with_any)
        return params


class SearchRequest(BaseModel):
    """Caller payload for a lookup.

    The mode is derived from which fields are populated; ``query_type`` is
    only a hint.
    """

    model_config = ConfigDict(extra="ignore")

    query_type: Optional[QueryType] = None
    hypotheticals: Optional[List[str]] = None
    keywords: Optional[List[str]] = None
    direct_vector: Optional[List[float]] = None
    vector_operation: VectorOperation = VectorOperation.NEAREST
    entity_key: Optional[str] = None
    filter: SearchFilter = Field(default_factory=SearchFilter)

    @field_validator("vector_operation", mode="before")
    @classmethod
    def _default_operation(cls, value: Any) -> Any:
        return VectorOperation.NEAREST if value is None else value

    @field_validator("filter", mode="before")
    @classmethod
    def _default_filter(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator("direct_vector")
    @classmethod
    def _non_empty_vector(cls, value: Optional[List[float]]) -> Optional[List[float]]:
        if value is not None and not value:
            raise ValueError("direct_vector must contain at least one dimension")
        return value

    @field_validator("hypotheticals", "keywords")
    @classmethod
    def _drop_blank_strings(cls, value: Optional[List[str]]) -> Optional[List[str]]:
        if value is None:
            return None
        return [item for item in value if item and item.strip()]


class CanonicalResult(BaseModel):
    """One search hit in the shape returned to callers."""

    key: str
    score: float
    content: str = ""
    content_missing: bool = Field(
        ..., description="True when no recognized content field was populated"
    )
    path: str
    type: ResultType = ResultType.UNKNOWN
    breadcrumbs: Optional[Any] = None
    size: Optional[Any] = None
    last_modified: Optional[Any] = None


class SearchResponse(BaseModel):
    """Full payload returned by a lookup."""

    results: List[CanonicalResult]
    count: int
    total_before_limit: int
    search_params: Dict[str, Any]
    environment_summary: EnvironmentSummary


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
]
