"""Map raw collection records onto ``CanonicalResult``.

Collections return loosely shaped records: dicts or objects, with the score
under ``score`` or ``sim`` and the text under one of several content fields,
some of them nested. Every lookup goes through an ordered alias list and the
first populated alias wins. A record whose content aliases are all empty is
flagged with ``content_missing`` instead of silently carrying an empty
string.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any, Iterable, List, Optional, Sequence

from ..config import (
    DEFAULT_CONTENT_ALIASES,
    DEFAULT_KEY_ALIASES,
    DEFAULT_SCORE_ALIASES,
    DEFAULT_VECTOR_ALIASES,
    Settings,
)
from ..models.search import CanonicalResult, ResultType

logger = logging.getLogger(__name__)

PASSTHROUGH_FIELDS = ("breadcrumbs", "size", "last_modified")


def resolve_field(record: Any, dotted: str) -> Any:
    """Read ``a.b.c`` from nested mappings and/or attributes."""
    current = record
    for part in dotted.split("."):
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(part)
        else:
            current = getattr(current, part, None)
    return current


def _non_empty_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


def _non_blank_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _as_score(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    score = float(value)
    if math.isnan(score):
        return None
    return score


def _as_key(value: Any) -> Optional[str]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return str(value)
    return _non_blank_text(value)


class ResultNormalizer:
    """Converts raw records into canonical results using ordered alias lists."""

    def __init__(
        self,
        content_aliases: Optional[Sequence[str]] = None,
        key_aliases: Optional[Sequence[str]] = None,
        score_aliases: Optional[Sequence[str]] = None,
        vector_aliases: Optional[Sequence[str]] = None,
    ):
        self.content_aliases = tuple(content_aliases or DEFAULT_CONTENT_ALIASES)
        self.key_aliases = tuple(key_aliases or DEFAULT_KEY_ALIASES)
        self.score_aliases = tuple(score_aliases or DEFAULT_SCORE_ALIASES)
        self.vector_aliases = tuple(vector_aliases or DEFAULT_VECTOR_ALIASES)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ResultNormalizer":
        return cls(
            content_aliases=settings.content_aliases,
            key_aliases=settings.key_aliases,
            score_aliases=settings.score_aliases,
            vector_aliases=settings.vector_aliases,
        )

    def _first(self, record: Any, aliases: Iterable[str], convert) -> Any:
        for alias in aliases:
            value = convert(resolve_field(record, alias))
            if value is not None:
                return value
        return None

    def extract_key(self, record: Any) -> str:
        return self._first(record, self.key_aliases, _as_key) or ""

    def extract_score(self, record: Any) -> float:
        score = self._first(record, self.score_aliases, _as_score)
        return 0.0 if score is None else score

    def extract_content(self, record: Any) -> Optional[str]:
        return self._first(record, self.content_aliases, _non_empty_text)

    def extract_vector(self, record: Any) -> Optional[List[float]]:
        """Return the first populated numeric vector on an entity, if any."""
        for alias in self.vector_aliases:
            value = resolve_field(record, alias)
            if isinstance(value, (list, tuple)) and value:
                try:
                    return [float(v) for v in value]
                except (TypeError, ValueError):
                    continue
        return None

    def normalize(self, record: Any, result_type: ResultType = ResultType.UNKNOWN) -> CanonicalResult:
        key = self.extract_key(record)
        content = self.extract_content(record)
        path = _as_key(resolve_field(record, "path")) or key

        if content is None:
            logger.debug(
                "No content alias populated",
                extra={"key": key, "aliases": list(self.content_aliases)},
            )

        extras = {field: resolve_field(record, field) for field in PASSTHROUGH_FIELDS}
        return CanonicalResult(
            key=key,
            score=self.extract_score(record),
            content=content or "",
            content_missing=content is None,
            path=path,
            type=result_type,
            **extras,
        )

    def normalize_many(
        self, records: Iterable[Any], result_type: ResultType = ResultType.UNKNOWN
    ) -> List[CanonicalResult]:
        return [self.normalize(record, result_type) for record in records]


__all__ = ["ResultNormalizer", "resolve_field", "PASSTHROUGH_FIELDS"]
