"""
Tests for the security headers analyzer.
"""

import pytest

from websec.scanner.analyzers.header_analyzer import (
    HARDENED_HEADERS,
    SECURITY_HEADERS,
    HeaderAnalyzer,
)
from websec.scanner.base import ProbeError


class TestEvaluate:

    @pytest.fixture
    def analyzer(self):
        return HeaderAnalyzer()

    def test_hardened_headers_score_full(self, analyzer):
        result = analyzer.evaluate(HARDENED_HEADERS)
        assert result.score == 100
        assert result.status == "good"
        assert result.details["missingHeaders"] == []
        assert result.recommendations == []

    def test_no_headers_scores_zero_with_one_rec_per_header(self, analyzer):
        result = analyzer.evaluate({})
        assert result.score == 0
        assert result.status == "poor"
        assert result.details["missingHeaders"] == list(SECURITY_HEADERS)
        assert len(result.recommendations) == len(SECURITY_HEADERS)
        priorities = {r.title: r.priority for r in result.recommendations}
        assert priorities["Add Content-Security-Policy header"] == "high"
        assert priorities["Add Strict-Transport-Security header"] == "high"
        assert priorities["Add X-Frame-Options header"] == "medium"
        assert priorities["Add Referrer-Policy header"] == "low"

    def test_header_names_are_case_insensitive(self, analyzer):
        result = analyzer.evaluate({"x-frame-options": "DENY"})
        assert result.details["headers"]["X-Frame-Options"]["present"] is True
        assert result.score == 20

    def test_hsts_points(self, analyzer):
        result = analyzer.evaluate({
            "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
        })
        assert result.details["headers"]["Strict-Transport-Security"]["score"] == 23

    def test_hsts_without_max_age(self, analyzer):
        result = analyzer.evaluate({"Strict-Transport-Security": "includeSubDomains"})
        assert result.details["headers"]["Strict-Transport-Security"]["score"] == 13
        assert any(r.title == "Add max-age to HSTS" for r in result.recommendations)

    def test_csp_unsafe_inline_penalized(self, analyzer):
        strict = analyzer.evaluate({"Content-Security-Policy": "default-src 'self'"})
        loose = analyzer.evaluate({"Content-Security-Policy": "default-src 'self' 'unsafe-inline'"})
        assert strict.score - loose.score == 5
        assert any(r.title == "Remove 'unsafe-inline' from CSP" for r in loose.recommendations)

    def test_optional_headers_add_points(self, analyzer):
        result = analyzer.evaluate({"Cross-Origin-Opener-Policy": "same-origin"})
        assert result.score == 10
        assert result.details["optionalHeaders"] == ["Cross-Origin-Opener-Policy"]

    def test_version_disclosure(self, analyzer):
        result = analyzer.evaluate({"Server": "nginx/1.18.0", "X-Powered-By": "PHP/7.2.24"})
        titles = {r.title for r in result.recommendations}
        assert "Hide server version" in titles
        assert "Remove X-Powered-By header" in titles

    def test_plain_server_name_is_not_disclosure(self, analyzer):
        result = analyzer.evaluate({"Server": "cloudflare"})
        assert all(r.title != "Hide server version" for r in result.recommendations)


class TestSynthesisAndProbe:

    def test_synthetic_profile_from_domain(self):
        result = HeaderAnalyzer().run("securebank.com")
        assert result.details["source"] == "synthetic:hardened"
        assert result.status == "good"

    def test_insecure_domain_gets_bare_profile(self):
        result = HeaderAnalyzer().run("insecure-site.com")
        assert result.details["source"] == "synthetic:bare"
        assert result.status == "poor"

    def test_synthetic_is_deterministic(self):
        assert HeaderAnalyzer().run("example.com").to_dict() == HeaderAnalyzer().run("example.com").to_dict()

    def test_live_mode_uses_probe(self):
        calls = []

        def fake_probe(domain, timeout):
            calls.append((domain, timeout))
            return {"headers": {"x-content-type-options": "nosniff"}}

        result = HeaderAnalyzer(live=True, timeout=3, probe=fake_probe).run("Example.com")
        assert calls == [("example.com", 3)]
        assert result.details["source"] == "live"
        assert result.score == 15

    def test_probe_failure_degrades(self):
        def failing_probe(domain, timeout):
            raise ProbeError("no response")

        result = HeaderAnalyzer(live=True, probe=failing_probe).run("example.com")
        assert result.score == 0
        assert result.status == "error"
        assert "ProbeError" in result.error
        assert len(result.recommendations) == 1
