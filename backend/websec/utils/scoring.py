# File: websec/utils/scoring.py
# =============================================================================
# Centralized Risk Score Calculator
# =============================================================================
# Single source of truth for turning per-dimension scores into an overall
# risk score and level. Used by: orchestrator, scans routes, analysis routes,
# scanner/analyzers/ssl_analyzer.
#
# Scale (higher = more secure):
#   >= 80   = low risk
#   60–80   = medium risk
#   40–60   = high risk
#   < 40    = critical risk
#
# Only dimensions with a result and no error count. Missing or degraded
# dimensions are dropped from both numerator and denominator.
#
# Everything here is pure: it can be recomputed at read time from stored
# results without re-running any analyzer.
# =============================================================================

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from websec.scanner.base import DIMENSION_WEIGHTS, AnalysisResult, Dimension

RISK_THRESHOLDS = (
    (80, "low"),
    (60, "medium"),
    (40, "high"),
)

SSL_GRADE_THRESHOLDS = (
    (90, "A+"),
    (80, "A"),
    (70, "B"),
    (60, "C"),
    (40, "D"),
)

PASS_THRESHOLD = 80
WARN_THRESHOLD = 60


def ssl_grade(score: float) -> str:
    """Letter grade for an SSL/TLS score."""
    for floor, grade in SSL_GRADE_THRESHOLDS:
        if score >= floor:
            return grade
    return "F"


def _usable(results: Mapping[str, Optional[AnalysisResult]]):
    """Yield (weight, score) for every dimension that produced real output."""
    for dim, weight in DIMENSION_WEIGHTS.items():
        result = results.get(dim.value) if results else None
        if result is None or result.error:
            continue
        yield weight, result.score


def calc_risk_score(results: Mapping[str, Optional[AnalysisResult]]) -> Optional[float]:
    """
    Weight-normalized mean of the usable dimension scores, rounded to 2dp.

    Returns None when no dimension produced a usable score.
    """
    total_weight = 0
    weighted = 0.0
    for weight, score in _usable(results):
        total_weight += weight
        weighted += weight * score
    if total_weight == 0:
        return None
    return round(weighted / total_weight, 2)


def risk_level(score: Optional[float]) -> str:
    """Map an aggregate score to low / medium / high / critical / unknown."""
    if score is None:
        return "unknown"
    for floor, level in RISK_THRESHOLDS:
        if score >= floor:
            return level
    return "critical"


def compute_risk_level(results: Mapping[str, Optional[AnalysisResult]]) -> str:
    return risk_level(calc_risk_score(results))


def compute_summary(results: Mapping[str, Optional[AnalysisResult]]) -> Dict[str, int]:
    """
    Check counts for list/history views.

    Each present result is one check: an errored or sub-60 result fails,
    80 and above passes, anything between is a warning.
    """
    summary = {"totalChecks": 0, "passedChecks": 0, "failedChecks": 0, "warnings": 0}

    for dim in Dimension:
        result = results.get(dim.value) if results else None
        if result is None:
            continue
        summary["totalChecks"] += 1
        if result.error or result.score < WARN_THRESHOLD:
            summary["failedChecks"] += 1
        elif result.score >= PASS_THRESHOLD:
            summary["passedChecks"] += 1
        else:
            summary["warnings"] += 1

    return summary


def risk_label_and_color(level: str) -> tuple[str, str]:
    """
    Return (label, hex_color) for display.
    """
    return {
        "low": ("Low Risk", "#22c55e"),
        "medium": ("Moderate", "#eab308"),
        "high": ("High Risk", "#f97316"),
        "critical": ("Critical", "#ef4444"),
    }.get(level, ("Unknown", "#9ca3af"))


def score_breakdown(results: Mapping[str, Optional[AnalysisResult]]) -> Dict[str, Any]:
    """Per-dimension weight/score/contribution, for the scan detail view."""
    out: Dict[str, Any] = {}
    for dim, weight in DIMENSION_WEIGHTS.items():
        result = results.get(dim.value) if results else None
        usable = result is not None and not result.error
        out[dim.value] = {
            "weight": weight,
            "score": result.score if result is not None else None,
            "counted": usable,
        }
    return out
