"""
Tests for the scan orchestrator.
"""

import threading
import time

import pytest

from conftest import StubAnalyzer, make_rec, stub_analyzers
from websec.scanner.base import AnalysisResult, BaseAnalyzer, Dimension
from websec.scanner.orchestrator import ScanOrchestrator, progress_after
from websec.scanner.store import ScanStore

SCORES = {"ssl": 90, "headers": 80, "tech": 70, "malware": 100, "ports": 85, "whois": 75}
URL = "https://example.com/path"


class RecordingStore(ScanStore):
    """Remembers the progress value after every mutation."""

    def __init__(self):
        super().__init__()
        self.progress_seen = []

    def mutate(self, scan_id, fn):
        snapshot = super().mutate(scan_id, fn)
        self.progress_seen.append(snapshot.progress)
        return snapshot


class BlockingAnalyzer(BaseAnalyzer):
    dimension = Dimension.TECH

    def __init__(self, release):
        super().__init__()
        self.release = release

    def analyze(self, target):
        self.release.wait(5)
        raise RuntimeError("released too late")


class NoneAnalyzer(BaseAnalyzer):
    dimension = Dimension.PORTS

    def run(self, target):
        return None

    def analyze(self, target):
        return None


class HalfFailedAnalyzer(BaseAnalyzer):
    """Reports its own error alongside a partial score."""

    dimension = Dimension.PORTS

    def analyze(self, target):
        return AnalysisResult(
            dimension=self.dimension,
            score=70,
            status="partial",
            details={"openPorts": [80]},
            error="lookup half failed",
        )


class EchoAnalyzer(StubAnalyzer):
    """Puts the target it was handed into details."""

    def analyze(self, target):
        time.sleep(0.002)
        result = super().analyze(target)
        result.details = {"target": target}
        return result


class DeletingAnalyzer(StubAnalyzer):
    """Deletes the scan record out from under the orchestrator."""

    def __init__(self, store):
        super().__init__(Dimension.HEADERS, 50)
        self.store = store

    def analyze(self, target):
        self.store.clear()
        return super().analyze(target)


def _orchestrator(store, **kwargs):
    analyzers = stub_analyzers(SCORES)
    analyzers.update(kwargs.pop("analyzers", {}))
    return ScanOrchestrator(store, analyzers=analyzers, **kwargs), analyzers


def test_progress_after():
    assert [progress_after(w) for w in (20, 40, 55, 75, 90, 100)] == [20, 40, 55, 75, 90, 100]


def test_full_scan_progress_and_risk():
    store = RecordingStore()
    orchestrator, _ = _orchestrator(store)
    record = store.create(URL, "example.com")

    final = orchestrator.run_scan(record.id, URL)

    # mark scanning, six steps, finalize
    assert store.progress_seen == [0, 20, 40, 55, 75, 90, 100, 100]
    assert final.status == "completed"
    assert final.progress == 100
    assert final.risk_score == 84.75
    assert final.risk_level == "low"
    assert final.errors == []
    assert final.end_time is not None
    assert {k: r.score for k, r in final.results.items()} == SCORES


def test_targets_domain_or_url():
    store = ScanStore()
    orchestrator, analyzers = _orchestrator(store)
    analyzers[Dimension.MALWARE].target_kind = "url"
    record = store.create(URL, "example.com")
    orchestrator.run_scan(record.id, URL)

    assert analyzers[Dimension.SSL].targets == ["example.com"]
    assert analyzers[Dimension.MALWARE].targets == [URL]


def test_recommendations_compiled_in_priority_order():
    store = ScanStore()
    analyzers = {
        Dimension.SSL: StubAnalyzer(Dimension.SSL, 90, [make_rec("low", "ssl-low")]),
        Dimension.WHOIS: StubAnalyzer(Dimension.WHOIS, 90, [make_rec("critical", "whois-crit")]),
    }
    orchestrator, _ = _orchestrator(store, analyzers=analyzers)
    record = store.create(URL, "example.com")
    final = orchestrator.run_scan(record.id, URL)
    assert [r.title for r in final.recommendations] == ["whois-crit", "ssl-low"]


def test_failing_analyzer_is_recoverable():
    store = ScanStore()
    broken = StubAnalyzer(Dimension.WHOIS, raises=RuntimeError("boom"))
    orchestrator, _ = _orchestrator(store, analyzers={Dimension.WHOIS: broken})
    record = store.create(URL, "example.com")

    final = orchestrator.run_scan(record.id, URL)

    assert final.status == "completed"
    assert final.progress == 100
    whois = final.results["whois"]
    assert whois.score == 0
    assert whois.status == "error"
    assert "boom" in whois.error
    assert [e.step for e in final.errors] == ["whois"]
    # (90*20 + 80*20 + 70*15 + 100*20 + 85*15) / 90
    assert final.risk_score == 85.83


def test_step_timeout_is_recoverable():
    store = ScanStore()
    release = threading.Event()
    orchestrator, _ = _orchestrator(
        store, analyzers={Dimension.TECH: BlockingAnalyzer(release)}, step_timeout=0.05,
    )
    record = store.create(URL, "example.com")
    try:
        final = orchestrator.run_scan(record.id, URL)
    finally:
        release.set()

    assert final.status == "completed"
    assert final.results["tech"].status == "error"
    assert "timed out" in final.errors[0].message
    assert final.errors[0].step == "tech"
    assert len(final.results["tech"].recommendations) == 1


def test_analyzer_returning_nothing_is_recoverable():
    store = ScanStore()
    orchestrator, _ = _orchestrator(store, analyzers={Dimension.PORTS: NoneAnalyzer()})
    record = store.create(URL, "example.com")
    final = orchestrator.run_scan(record.id, URL)
    assert final.status == "completed"
    assert final.results["ports"].score == 0
    assert final.errors[0].message == "Analyzer returned no result"


def test_missing_record_does_not_raise():
    orchestrator, analyzers = _orchestrator(ScanStore())
    assert orchestrator.run_scan("does-not-exist", URL) is None
    assert analyzers[Dimension.SSL].targets == []


def test_record_lost_mid_scan():
    store = ScanStore()
    orchestrator, analyzers = _orchestrator(
        store, analyzers={Dimension.HEADERS: DeletingAnalyzer(store)},
    )
    record = store.create(URL, "example.com")
    assert orchestrator.run_scan(record.id, URL) is None
    assert analyzers[Dimension.TECH].targets == []


def test_terminal_record_is_not_rerun():
    store = ScanStore()
    orchestrator, analyzers = _orchestrator(store)
    record = store.create(URL, "example.com")
    first = orchestrator.run_scan(record.id, URL)

    second = orchestrator.run_scan(record.id, URL)

    assert second.status == "completed"
    assert second.end_time == first.end_time
    assert analyzers[Dimension.SSL].targets == ["example.com"]


def test_failure_outside_a_step_fails_the_scan(monkeypatch):
    store = ScanStore()
    orchestrator, _ = _orchestrator(store)
    record = store.create(URL, "example.com")

    def explode(results):
        raise ValueError("aggregation broke")

    monkeypatch.setattr("websec.scanner.orchestrator.calc_risk_score", explode)
    final = orchestrator.run_scan(record.id, URL)

    assert final.status == "failed"
    assert final.errors[-1].step == "general"
    assert "aggregation broke" in final.errors[-1].message
    assert final.end_time is not None


def test_step_delay_between_steps_only():
    store = ScanStore()
    sleeps = []
    orchestrator, _ = _orchestrator(store, step_delay=2, sleep=sleeps.append)
    record = store.create(URL, "example.com")
    orchestrator.run_scan(record.id, URL)
    assert sleeps == [2.0] * 5


def test_no_delay_by_default():
    store = ScanStore()
    sleeps = []
    orchestrator, _ = _orchestrator(store, sleep=sleeps.append)
    record = store.create(URL, "example.com")
    orchestrator.run_scan(record.id, URL)
    assert sleeps == []


def test_start_scan_runs_in_background():
    store = ScanStore()
    orchestrator, _ = _orchestrator(store)
    record = store.create(URL, "example.com")

    thread = orchestrator.start_scan(record.id, URL)
    thread.join(5)

    assert thread.daemon
    assert not thread.is_alive()
    assert store.get(record.id).status == "completed"


@pytest.mark.parametrize("missing", ["ssl", "whois"])
def test_default_analyzers_fill_gaps(missing):
    scores = {k: v for k, v in SCORES.items() if k != missing}
    orchestrator = ScanOrchestrator(ScanStore(), analyzers=stub_analyzers(scores))
    assert list(orchestrator.analyzers) == list(Dimension)
    assert not isinstance(orchestrator.analyzers[Dimension(missing)], StubAnalyzer)


def test_errored_result_is_degraded():
    store = ScanStore()
    orchestrator, _ = _orchestrator(store, analyzers={Dimension.PORTS: HalfFailedAnalyzer()})
    record = store.create(URL, "example.com")

    final = orchestrator.run_scan(record.id, URL)

    assert final.status == "completed"
    ports = final.results["ports"]
    assert ports.score == 0
    assert ports.status == "error"
    assert ports.error == "lookup half failed"
    assert ports.details == {}
    assert [(e.step, e.message) for e in final.errors] == [("ports", "lookup half failed")]
    # ports drops out of the weighted mean: 7200 / 85
    assert final.risk_score == 84.71


def test_timed_out_step_is_left_on_a_daemon_thread():
    store = ScanStore()
    release = threading.Event()
    orchestrator, _ = _orchestrator(
        store, analyzers={Dimension.TECH: BlockingAnalyzer(release)}, step_timeout=0.05,
    )
    record = store.create(URL, "example.com")
    try:
        orchestrator.run_scan(record.id, URL)
        lingering = [t for t in threading.enumerate() if t.name == "step-tech"]
        assert lingering
        assert all(t.daemon for t in lingering)
    finally:
        release.set()


def test_concurrent_scans_stay_independent():
    store = ScanStore()
    analyzers = {d: EchoAnalyzer(d, SCORES[d.value]) for d in Dimension}
    orchestrator = ScanOrchestrator(store, analyzers=analyzers, step_delay=0.005)

    domains = [f"site{i}.com" for i in range(8)]
    records = [store.create(f"https://{d}/", d) for d in domains]
    threads = [orchestrator.start_scan(r.id, r.url) for r in records]

    seen = {r.id: [] for r in records}
    deadline = time.monotonic() + 10
    while any(t.is_alive() for t in threads) and time.monotonic() < deadline:
        for r in records:
            seen[r.id].append(store.get(r.id).progress)
        time.sleep(0.001)
    for t in threads:
        t.join(5)

    for record, domain in zip(records, domains):
        final = store.get(record.id)
        assert final.status == "completed"
        assert final.progress == 100
        assert final.url == f"https://{domain}/"
        assert final.domain == domain
        assert final.errors == []
        assert {r.details["target"] for r in final.results.values()} == {domain}

        progress = seen[record.id] + [final.progress]
        assert progress == sorted(progress)
