# websec/scanner/base.py
"""
Base classes and data structures for the websec scan pipeline.

Architecture:
    ScanRecord flows through:  Orchestrator → Analyzers → Aggregator/Compiler

Dimension:      One analyzable facet of a target. The set is closed and its
                order is the pipeline order.

BaseAnalyzer:   Produces one AnalysisResult for one dimension, either from a
                live probe or from deterministic synthesis. Analyzers never
                touch the ScanRecord; the orchestrator stores their output.

This separation means:
  - An analyzer can fail without taking the rest of the scan with it
  - Scoring rules can change without touching the pipeline
  - The store behind the orchestrator can be swapped freely
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def now_utc() -> datetime:
    """Timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


def clamp_score(value: float) -> int:
    """Round and clamp a raw score into 0–100."""
    return int(max(0, min(100, round(value))))


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ScanError(Exception):
    """Base class for scan pipeline errors."""


class ScanNotFoundError(ScanError):
    """The requested scan record does not exist in the store."""

    def __init__(self, scan_id: str):
        super().__init__(f"Scan '{scan_id}' not found")
        self.scan_id = scan_id


class ProbeError(ScanError):
    """A live probe could not reach the target."""


# ---------------------------------------------------------------------------
# Dimensions and weights
# ---------------------------------------------------------------------------

class Dimension(str, Enum):
    """Analysis dimensions, declared in pipeline order."""
    SSL = "ssl"
    HEADERS = "headers"
    TECH = "tech"
    MALWARE = "malware"
    PORTS = "ports"
    WHOIS = "whois"


# Share of total progress each step contributes. Must sum to 100.
DIMENSION_WEIGHTS: Dict[Dimension, int] = {
    Dimension.SSL: 20,
    Dimension.HEADERS: 20,
    Dimension.TECH: 15,
    Dimension.MALWARE: 20,
    Dimension.PORTS: 15,
    Dimension.WHOIS: 10,
}

TOTAL_WEIGHT = sum(DIMENSION_WEIGHTS.values())

SCAN_STATUSES = ("pending", "scanning", "completed", "failed")
TERMINAL_STATUSES = ("completed", "failed")
PRIORITIES = ("critical", "high", "medium", "low")


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Recommendation:
    """
    A single piece of remediation guidance emitted by an analyzer.

    Frozen: the recommendation compiler may reorder and drop duplicates
    but never rewrites fields.
    """
    category: str
    priority: str                       # critical, high, medium, low
    title: str
    description: str
    action: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass
class AnalysisResult:
    """
    Normalized output of one analyzer invocation.

    Fields:
        dimension:        Which dimension produced this.
        score:            0–100, higher is more secure.
        status:           Dimension-specific label (SSL grade, "clean", ...).
        recommendations:  Ordered guidance keyed to what was found.
        details:          Free-form evidence. Structure varies per analyzer.
        error:            Set when the analyzer could not produce real output.
    """
    dimension: Dimension
    score: int
    status: str
    recommendations: List[Recommendation] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        out = {
            "score": self.score,
            "status": self.status,
            "recommendations": [r.to_dict() for r in self.recommendations],
            "details": self.details,
        }
        if self.error:
            out["error"] = self.error
        return out


@dataclass
class StepError:
    step: str
    message: str
    timestamp: datetime = field(default_factory=now_utc)

    def to_dict(self) -> Dict[str, Any]:
        return {"step": self.step, "error": self.message, "timestamp": _iso(self.timestamp)}


def _empty_results() -> Dict[str, Optional[AnalysisResult]]:
    return {d.value: None for d in Dimension}


@dataclass
class ScanRecord:
    """
    One scan of one target URL.

    Created by the store in `pending`. Only the orchestrator moves it through
    scanning → completed | failed; terminal states are never left.
    """
    id: str
    url: str
    domain: str
    status: str = "pending"
    progress: int = 0
    start_time: datetime = field(default_factory=now_utc)
    end_time: Optional[datetime] = None
    results: Dict[str, Optional[AnalysisResult]] = field(default_factory=_empty_results)
    errors: List[StepError] = field(default_factory=list)
    risk_score: Optional[float] = None
    risk_level: str = "unknown"
    recommendations: List[Recommendation] = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def add_error(self, step: str, message: str):
        self.errors.append(StepError(step=step, message=message))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "domain": self.domain,
            "status": self.status,
            "progress": self.progress,
            "startTime": _iso(self.start_time),
            "endTime": _iso(self.end_time),
            "results": {
                name: (r.to_dict() if r else None) for name, r in self.results.items()
            },
            "errors": [e.to_dict() for e in self.errors],
            "riskScore": self.risk_score,
            "riskLevel": self.risk_level,
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


def degraded_result(dimension: Dimension, message: str,
                    recommendation: Optional[Recommendation] = None) -> AnalysisResult:
    """Zero-score placeholder stored when a dimension could not be analyzed."""
    recs = [recommendation] if recommendation else []
    return AnalysisResult(
        dimension=dimension,
        score=0,
        status="error",
        recommendations=recs,
        details={},
        error=message,
    )


# ---------------------------------------------------------------------------
# Abstract base class
# ---------------------------------------------------------------------------

class BaseAnalyzer(ABC):
    """
    Abstract base for dimension analyzers.

    To create a new analyzer:
        1. Subclass BaseAnalyzer
        2. Set `dimension` (and `target_kind` if it reads the full URL)
        3. Implement `analyze(target) -> AnalysisResult`
        4. Optionally override `failure_recommendation()`

    The base class handles automatically:
        - Error catching (exceptions become a degraded zero-score result)
        - Stamping the dimension on whatever analyze() returns
    """

    dimension: Dimension
    target_kind: str = "domain"         # domain or url

    def __init__(
        self,
        live: bool = False,
        timeout: float = 10,
        classifier=None,
        clock: Callable[[], datetime] = now_utc,
    ):
        self.live = live
        self.timeout = timeout
        self.clock = clock
        if classifier is not None:
            self.classifier = classifier

    @property
    def name(self) -> str:
        return self.dimension.value

    def run(self, target: str) -> AnalysisResult:
        """
        Execute the analyzer with error handling.

        DO NOT OVERRIDE THIS METHOD. Override `analyze()` instead.

        Returns AnalysisResult, always, even on failure.
        """
        try:
            result = self.analyze(target)
            result.dimension = self.dimension
            return result
        except Exception as e:
            logger.exception(f"Analyzer '{self.name}' failed for {target}")
            return degraded_result(
                self.dimension,
                f"{type(e).__name__}: {e}",
                self.failure_recommendation(),
            )

    def failure_recommendation(self) -> Recommendation:
        return Recommendation(
            category="General",
            priority="medium",
            title=f"{self.name.upper()} analysis unavailable",
            description=f"The {self.name} check could not be completed for this target.",
            action="Check connectivity to the target and run the scan again.",
        )

    @abstractmethod
    def analyze(self, target: str) -> AnalysisResult:
        """
        Perform the analysis for one target.

        `target` is the bare domain, or the full URL when target_kind is "url".
        """
        ...
