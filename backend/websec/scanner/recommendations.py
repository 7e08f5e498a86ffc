# websec/scanner/recommendations.py
"""
Recommendation compiler.

Gathers every dimension's recommendations in pipeline order and sorts them
by priority. The sort is stable, so recommendations of equal priority keep
their dimension-traversal order. Fields are never rewritten.

In read mode (dedupe=True) exact duplicates are dropped, first occurrence
wins, so re-reading a completed scan never accumulates copies.
"""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional

from websec.scanner.base import PRIORITIES, AnalysisResult, Dimension, Recommendation

PRIORITY_RANK = {p: i for i, p in enumerate(PRIORITIES)}
UNRANKED = len(PRIORITIES)


def priority_rank(rec: Recommendation) -> int:
    return PRIORITY_RANK.get((rec.priority or "").lower(), UNRANKED)


def sort_recommendations(recs: Iterable[Recommendation], dedupe: bool = False) -> List[Recommendation]:
    ordered = sorted(recs, key=priority_rank)
    if not dedupe:
        return ordered
    seen = set()
    unique: List[Recommendation] = []
    for rec in ordered:
        if rec in seen:
            continue
        seen.add(rec)
        unique.append(rec)
    return unique


def compile_recommendations(
    results: Mapping[str, Optional[AnalysisResult]],
    dedupe: bool = False,
) -> List[Recommendation]:
    """Concatenate per-dimension recommendations and priority-sort them."""
    gathered: List[Recommendation] = []
    for dim in Dimension:
        result = results.get(dim.value)
        if result is not None:
            gathered.extend(result.recommendations)
    return sort_recommendations(gathered, dedupe=dedupe)
