"""
Shared fixtures for the websec test suite.
"""

from datetime import datetime, timezone

import pytest

from websec import create_app
from websec.scanner.base import AnalysisResult, BaseAnalyzer, Dimension, Recommendation
from websec.scanner.store import ScanStore

FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class StubAnalyzer(BaseAnalyzer):
    """Returns a fixed score without touching the target."""

    def __init__(self, dimension, score=80, recommendations=None, raises=None):
        super().__init__()
        self.dimension = dimension
        self.score = score
        self.recs = list(recommendations or [])
        self.raises = raises
        self.targets = []

    def analyze(self, target):
        self.targets.append(target)
        if self.raises:
            raise self.raises
        return AnalysisResult(
            dimension=self.dimension,
            score=self.score,
            status="stub",
            recommendations=list(self.recs),
        )


def make_rec(priority, title="Fix it", category="Test"):
    return Recommendation(category, priority, title, f"{title} description", f"{title} action")


def stub_analyzers(scores):
    """{Dimension: StubAnalyzer} from {dimension value: score}."""
    return {Dimension(name): StubAnalyzer(Dimension(name), score) for name, score in scores.items()}


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def store():
    return ScanStore()


@pytest.fixture
def app():
    app = create_app({
        "TESTING": True,
        "SCAN_STEP_DELAY": 0,
        "SCAN_STEP_TIMEOUT": 5,
        "SCAN_LIVE_PROBES": False,
    })
    yield app
    app.extensions["scan_store"].clear()


@pytest.fixture
def client(app):
    return app.test_client()
