"""
Tests for the SSL/TLS analyzer.
"""

import pytest

from websec.scanner.analyzers.ssl_analyzer import SSLAnalyzer
from websec.scanner.archetypes import FixedClassifier
from websec.utils.scoring import ssl_grade

DOMAINS = ["example.com", "shop-42.net", "acme.io", "blog.example.org", "widgets.co.uk"]


class TestSSLAnalyzer:

    @pytest.fixture
    def analyzer(self, fixed_clock):
        return SSLAnalyzer(clock=fixed_clock)

    def test_same_domain_same_result(self, analyzer):
        first = analyzer.run("example.com")
        second = analyzer.run("EXAMPLE.com")
        assert first.to_dict() == second.to_dict()

    def test_grade_matches_score(self, analyzer):
        for domain in DOMAINS:
            result = analyzer.run(domain)
            assert result.status == ssl_grade(result.score)
            assert result.details["grade"] == result.status
            assert 0 <= result.score <= 100

    def test_reputable_names_get_excellent_tier(self, analyzer):
        result = analyzer.run("mybank.com")
        assert result.details["sslQuality"] == "excellent"
        assert result.details["protocols"] == ["TLSv1.3", "TLSv1.2"]
        assert result.details["weakCiphers"] == 0
        assert result.score >= 80

    def test_insecure_is_not_mistaken_for_secure(self, analyzer):
        result = analyzer.run("insecure-portal.com")
        assert result.details["sslQuality"] == "poor"

    def test_poor_tier_flags_legacy_protocols_and_weak_ciphers(self, fixed_clock):
        analyzer = SSLAnalyzer(classifier=FixedClassifier("poor"), clock=fixed_clock)
        for domain in DOMAINS:
            result = analyzer.run(domain)
            ids = {v["id"] for v in result.details["vulnerabilities"]}
            assert "LEGACY_TLS" in ids
            assert "WEAK_CIPHERS" in ids
            assert "RC4" in ids
            assert result.status == "F"
            titles = {r.title for r in result.recommendations}
            assert "Disable legacy protocols" in titles
            assert "Review TLS configuration" in titles

    def test_expired_certificate_is_critical(self, fixed_clock):
        analyzer = SSLAnalyzer(classifier=FixedClassifier("poor"), clock=fixed_clock)
        for domain in [f"site{i}.com" for i in range(40)]:
            result = analyzer.run(domain)
            cert = result.details["certificate"]
            vulns = {v["id"]: v["severity"] for v in result.details["vulnerabilities"]}
            if cert["expired"]:
                assert vulns["CERT_EXPIRED"] == "critical"
                assert "CERT_NEAR_EXPIRY" not in vulns
                assert any(
                    r.priority == "critical" and r.title == "Renew expired certificate"
                    for r in result.recommendations
                )
            else:
                assert "CERT_EXPIRED" not in vulns

    def test_certificate_dates_follow_clock(self, analyzer):
        cert = analyzer.run("example.com").details["certificate"]
        assert cert["validFrom"] < "2024-06-01T12:00:00+00:00" < cert["validTo"] or cert["expired"]

    def test_no_tls13_recommends_enabling_it(self, fixed_clock):
        analyzer = SSLAnalyzer(classifier=FixedClassifier("development"), clock=fixed_clock)
        result = analyzer.run("example.com")
        assert "TLSv1.3" not in result.details["protocols"]
        assert any(r.title == "Enable TLS 1.3" for r in result.recommendations)

    def test_recommendations_use_ssl_category(self, analyzer):
        for domain in DOMAINS:
            for rec in analyzer.run(domain).recommendations:
                assert rec.category == "SSL/TLS"
