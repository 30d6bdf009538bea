"""Score-cliff truncation for ranked result lists."""

from __future__ import annotations

import logging
from typing import Callable, List, Sequence, TypeVar

import numpy as np

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _default_score(result) -> float:
    return float(result.score)


def apply_statistical_cutoff(
    results: Sequence[T],
    score: Callable[[T], float] = _default_score,
    fallback_count: int = 10,
) -> List[T]:
    """Keep results until the gap to the next score exceeds one standard deviation.

    The input must already be sorted by descending score. Lists of two or
    fewer results are returned unchanged. The population standard deviation
    of all scores is the threshold; the result just before the first larger
    gap is the last one kept. Equal scores never produce a gap, so ties stay
    together.

    Args:
        results: Ranked results, best first
        score: Extracts the numeric score from a result
        fallback_count: How many leading results to return if the cutoff
            leaves nothing

    Returns:
        The leading run of results before the first score cliff
    """
    if len(results) <= 2:
        return list(results)

    scores = np.asarray([score(r) for r in results], dtype=float)
    std_dev = float(scores.std())

    kept: List[T] = []
    for i in range(len(results) - 1):
        kept.append(results[i])
        if abs(scores[i] - scores[i + 1]) > std_dev:
            break
    else:
        kept.append(results[-1])

    if not kept:
        return list(results[: min(fallback_count, len(results))])

    if len(kept) < len(results):
        logger.debug(
            "Statistical cutoff applied",
            extra={
                "kept": len(kept),
                "dropped": len(results) - len(kept),
                "std_dev": f"{std_dev:.4f}",
            },
        )
    return kept


__all__ = ["apply_statistical_cutoff"]
