# websec/scanner/orchestrator.py
"""
Scan Orchestrator. Runs the websec scan pipeline.

Coordinates one scan end to end:

    1. Load the ScanRecord from the injected store and mark it scanning
    2. Run each dimension analyzer in pipeline order, one at a time,
       each under a timeout
    3. After every step store the result and advance progress by the
       step's weight
    4. Aggregate the risk score/level and compile recommendations
    5. Mark the record completed (or failed on an orchestration error)

Step failures (an analyzer raising, timing out, returning nothing, or
returning an errored result) are recoverable: a degraded zero-score result
and a StepError are stored and the pipeline moves on. Anything that stops
the record itself from being progressed fails the whole scan with a
"general" StepError.

Usage from scans/routes.py:
    orchestrator = get_orchestrator()
    record = store.create(url, domain)
    orchestrator.start_scan(record.id, url)
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from websec.scanner.analyzers import build_analyzers
from websec.scanner.base import (
    DIMENSION_WEIGHTS,
    TOTAL_WEIGHT,
    AnalysisResult,
    BaseAnalyzer,
    Dimension,
    ScanError,
    ScanNotFoundError,
    ScanRecord,
    degraded_result,
    now_utc,
)
from websec.scanner.recommendations import compile_recommendations
from websec.scanner.store import ScanStore
from websec.utils.scoring import calc_risk_score, risk_level

logger = logging.getLogger(__name__)

GENERAL_STEP = "general"


def progress_after(cumulative_weight: int) -> int:
    """Integer progress for a cumulative step weight."""
    return round(cumulative_weight * 100 / TOTAL_WEIGHT)


class ScanOrchestrator:
    """
    Runs scans against an injected ScanStore.

    Args:
        store:         Where ScanRecords live. The orchestrator only reads and
                       mutates records through it.
        analyzers:     Optional {Dimension: analyzer} overrides. Missing
                       dimensions get the default analyzer.
        step_delay:    Optional pause between steps, in seconds.
        step_timeout:  Max seconds one analyzer may run before the step is
                       recorded as a recoverable failure. The analyzer is
                       left running on a daemon thread.
        live_probes:   Let analyzers that support it probe the target live.
        probe_timeout: Network timeout handed to live probes.
        sleep:         Injectable sleep, for tests.
    """

    def __init__(
        self,
        store: ScanStore,
        analyzers: Optional[Dict[Dimension, BaseAnalyzer]] = None,
        step_delay: float = 0.0,
        step_timeout: float = 30.0,
        live_probes: bool = False,
        probe_timeout: float = 10,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.step_delay = max(0.0, float(step_delay or 0))
        self.step_timeout = step_timeout
        self.sleep = sleep

        defaults = build_analyzers(live=live_probes, timeout=probe_timeout)
        if analyzers:
            defaults.update(analyzers)
        self.analyzers: Dict[Dimension, BaseAnalyzer] = {d: defaults[d] for d in DIMENSION_WEIGHTS}

    # -------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------

    def start_scan(self, scan_id: str, url: str) -> threading.Thread:
        """Run the scan on a background daemon thread and return the thread."""
        thread = threading.Thread(
            target=self.run_scan,
            args=(scan_id, url),
            name=f"scan-{scan_id[:8]}",
            daemon=True,
        )
        thread.start()
        logger.info(f"Scan {scan_id} started in background for {url}")
        return thread

    def run_scan(self, scan_id: str, url: str) -> Optional[ScanRecord]:
        """
        Run the full pipeline synchronously.

        Returns the final record snapshot, or None if the record was lost.
        Never raises.
        """
        start = time.monotonic()
        try:
            record = self.store.get(scan_id)
            if record is None:
                raise ScanNotFoundError(scan_id)
            if record.is_terminal:
                logger.warning(f"Scan {scan_id} already {record.status}; not re-running")
                return record

            self.store.mutate(scan_id, _mark_scanning)
            domain = record.domain

            cumulative = 0
            steps = list(DIMENSION_WEIGHTS.items())
            for index, (dim, weight) in enumerate(steps):
                analyzer = self.analyzers[dim]
                target = url if analyzer.target_kind == "url" else domain

                result, error = self._run_step(dim, analyzer, target)
                cumulative += weight
                self.store.mutate(scan_id, _step_applier(dim, result, error, progress_after(cumulative)))

                if error:
                    logger.warning(f"Scan {scan_id}: step '{dim.value}' failed: {error}")
                else:
                    logger.info(
                        f"Scan {scan_id}: {dim.value} done "
                        f"(score={result.score}, status={result.status})"
                    )

                if self.step_delay and index < len(steps) - 1:
                    self.sleep(self.step_delay)

            final = self.store.mutate(scan_id, _finalize)
            logger.info(
                f"Scan {scan_id} completed in {time.monotonic() - start:.1f}s: "
                f"risk={final.risk_level} score={final.risk_score} "
                f"errors={len(final.errors)}"
            )
            return final

        except Exception as e:
            logger.exception(f"Scan {scan_id} failed for {url}")
            return self._fail(scan_id, f"{type(e).__name__}: {e}")

    # -------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------

    def _run_step(
        self, dim: Dimension, analyzer: BaseAnalyzer, target: str
    ) -> Tuple[AnalysisResult, Optional[str]]:
        """
        Run one analyzer under the step timeout.

        The analyzer runs on its own daemon thread. A step that times out is
        abandoned, not killed: the thread finishes (or hangs) in the
        background without holding up the scan or interpreter exit.

        Returns (result, error). On failure, including an analyzer that
        reports its own error, the result is a degraded zero-score
        placeholder and error describes what went wrong.
        """
        outcome = {}

        def work():
            try:
                outcome["result"] = analyzer.run(target)
            except Exception as e:
                outcome["error"] = f"{type(e).__name__}: {e}"

        worker = threading.Thread(target=work, name=f"step-{dim.value}", daemon=True)
        worker.start()
        worker.join(self.step_timeout)

        if worker.is_alive():
            error: Optional[str] = f"Analyzer timed out after {self.step_timeout}s"
        else:
            error = outcome.get("error")

        result = outcome.get("result")
        if error is None and result is None:
            error = "Analyzer returned no result"
        elif error is None and result.error:
            error = result.error

        if error is not None:
            return degraded_result(dim, error, analyzer.failure_recommendation()), error

        result.dimension = dim
        return result, None

    def _fail(self, scan_id: str, message: str) -> Optional[ScanRecord]:
        def apply(record: ScanRecord):
            if record.is_terminal:
                return
            record.status = "failed"
            record.end_time = now_utc()
            record.add_error(GENERAL_STEP, message)

        try:
            return self.store.mutate(scan_id, apply)
        except ScanNotFoundError:
            logger.error(f"Scan {scan_id} lost; cannot mark it failed")
            return None


# ---------------------------------------------------------------------------
# Record mutations (run under the store's per-record lock)
# ---------------------------------------------------------------------------

def _mark_scanning(record: ScanRecord):
    if record.is_terminal:
        raise ScanError(f"Scan {record.id} is already {record.status}")
    record.status = "scanning"


def _step_applier(dim: Dimension, result: AnalysisResult, error: Optional[str], progress: int):
    def apply(record: ScanRecord):
        if record.is_terminal:
            raise ScanError(f"Scan {record.id} finished while step '{dim.value}' was running")
        record.results[dim.value] = result
        if error:
            record.add_error(dim.value, error)
        record.progress = max(record.progress, progress)
    return apply


def _finalize(record: ScanRecord):
    score = calc_risk_score(record.results)
    record.risk_score = score
    record.risk_level = risk_level(score)
    record.recommendations = compile_recommendations(record.results)
    record.status = "completed"
    record.progress = 100
    record.end_time = now_utc()
