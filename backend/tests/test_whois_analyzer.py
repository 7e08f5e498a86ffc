"""
Tests for the WHOIS analyzer.
"""

import pytest

from websec.scanner.analyzers.whois_analyzer import (
    REGISTRARS,
    SHADY_REGISTRARS,
    YEAR,
    WhoisAnalyzer,
)


def _record(**overrides):
    record = {
        "domainAge": 11 * YEAR,
        "daysUntilExpiry": 3 * YEAR,
        "status": ["clientTransferProhibited", "clientUpdateProhibited", "clientDeleteProhibited"],
        "nameServers": ["ns1.example.net", "ns2.example.net", "ns3.example.net"],
        "registrarReputation": "reputable",
    }
    record.update(overrides)
    return record


class TestWhoisScoring:

    def test_well_kept_domain_clamps_to_100(self):
        assert WhoisAnalyzer._score(_record()) == 100

    def test_worst_case_clamps_to_zero(self):
        record = _record(
            domainAge=20,
            daysUntilExpiry=20,
            status=["clientHold"],
            nameServers=[],
            registrarReputation="suspicious",
        )
        assert WhoisAnalyzer._score(record) == 0

    def test_middling_domain(self):
        record = _record(
            domainAge=400,
            daysUntilExpiry=120,
            status=["ok"],
            nameServers=["ns1.example.net", "ns2.example.net"],
            registrarReputation="other",
        )
        # 50 + 10 (age >1y) - 10 (expiry <180d) + 3 (ok) + 5 (two NS)
        assert WhoisAnalyzer._score(record) == 58


class TestWhoisAnalyzer:

    @pytest.fixture
    def analyzer(self, fixed_clock):
        return WhoisAnalyzer(clock=fixed_clock)

    def test_deterministic(self, analyzer):
        assert analyzer.run("example.com").to_dict() == analyzer.run("example.com").to_dict()

    def test_brand_domain_is_established(self, analyzer):
        result = analyzer.run("google.com")
        assert result.details["domainAge"] > 10 * YEAR
        assert result.status == "established"
        assert result.score >= 60

    def test_throwaway_domain_expires_within_400_days(self, analyzer):
        for domain in ["test1.com", "demo-shop.com", "staging.acme.io"]:
            record = analyzer.run(domain).details
            assert 10 <= record["daysUntilExpiry"] <= 400
            assert record["domainAge"] <= int(0.3 * 20 * YEAR)

    def test_record_shape(self, analyzer):
        record = analyzer.run("example.com").details
        for key in ("registrar", "registrarReputation", "creationDate", "expirationDate",
                    "updatedDate", "domainAge", "daysUntilExpiry", "status", "nameServers",
                    "hasPrivacy", "hasDNSSEC", "contactInfo", "rawData"):
            assert key in record
        assert record["rawData"].startswith("Domain Name: EXAMPLE.COM")

    def test_status_labels(self, analyzer):
        for domain in ["a.com", "test-b.com", "demo-c.com", "d.org"]:
            result = analyzer.run(domain)
            record = result.details
            if record["domainAge"] < 90:
                assert result.status == "new"
            elif record["daysUntilExpiry"] < 90:
                assert result.status == "expiring"
            else:
                assert result.status == "established"

    def test_some_throwaway_domains_use_unvetted_registrars(self, analyzer):
        results = [analyzer.run(f"test-{i}.com") for i in range(60)]
        flagged = [r for r in results if r.details["registrarReputation"] == "suspicious"]
        assert flagged
        for result in flagged:
            assert result.details["registrar"] in SHADY_REGISTRARS
            assert "Unvetted registrar" in {r.title for r in result.recommendations}

    def test_brand_domains_keep_listed_registrars(self, analyzer):
        for domain in ["google.com", "microsoft.com", "amazon.com"]:
            assert analyzer.run(domain).details["registrar"] in REGISTRARS


class TestRegistrarReputation:

    @pytest.mark.parametrize("registrar, expected", [
        ("", "unknown"),
        ("GoDaddy.com, LLC", "reputable"),
        ("Domain Privacy Service FBO Registrant", "suspicious"),
        ("Unknown Registrar", "suspicious"),
        ("Tucows Domains Inc.", "other"),
    ])
    def test_reputation(self, registrar, expected):
        assert WhoisAnalyzer._reputation(registrar) == expected

    def test_reputation_shifts_score(self):
        middling = dict(domainAge=400, daysUntilExpiry=120, status=["ok"],
                        nameServers=["ns1.example.net", "ns2.example.net"])
        other = WhoisAnalyzer._score(_record(registrarReputation="other", **middling))
        assert WhoisAnalyzer._score(_record(registrarReputation="reputable", **middling)) == other + 5
        assert WhoisAnalyzer._score(_record(registrarReputation="suspicious", **middling)) == other - 5
        assert WhoisAnalyzer._score(_record(registrarReputation="unknown", **middling)) == other - 5
