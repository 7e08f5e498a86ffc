# websec/scanner/analyzers/ssl_analyzer.py
"""
SSL/TLS Analyzer.

Synthesizes a TLS configuration for the target from a quality tier and
scores it. The tier comes from the archetype classifier (reputable names
skew excellent, test/legacy names skew poor) or, failing that, from the
domain's seeded stream.

Vulnerabilities derived:
    CRITICAL:
        - Certificate expired
        - Heartbleed-class handshake flaw (poor tier only)
    HIGH:
        - SSLv3 enabled (POODLE)
        - RC4 cipher offered
        - Self-signed certificate
    MEDIUM:
        - TLS 1.0 / 1.1 enabled
        - Weak cipher suites offered
        - Certificate expires within 14 days

Score starts at 50 and moves with protocols, ciphers, certificate facts and
vulnerability penalties. Grade thresholds live in utils/scoring.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Dict, List

from websec.scanner.archetypes import ArchetypeClassifier
from websec.scanner.base import (
    AnalysisResult,
    BaseAnalyzer,
    Dimension,
    Recommendation,
    clamp_score,
)
from websec.scanner.synth import SeededStream
from websec.utils.scoring import ssl_grade

logger = logging.getLogger(__name__)

CATEGORY = "SSL/TLS"

SSL_TIER_CLASSIFIER = ArchetypeClassifier.from_mapping({
    "poor": ["test", "demo", "old", "legacy", "insecure"],
    "excellent": ["bank", "secure", "finance", "payment", "google", "microsoft", "amazon", "apple"],
    "development": ["dev", "staging", "localhost"],
})

# (floor, tier) for the seeded fallback draw
SEEDED_TIERS = (
    (0.8, "excellent"),
    (0.6, "good"),
    (0.4, "average"),
    (0.2, "below_average"),
)

PROTOCOL_POINTS = {
    "TLSv1.3": 20,
    "TLSv1.2": 10,
    "TLSv1.1": -5,
    "TLSv1.0": -10,
    "SSLv3": -25,
}
LEGACY_PROTOCOLS = ("SSLv3", "TLSv1.0", "TLSv1.1")

CIPHER_POOL = [
    {"name": "TLS_AES_128_GCM_SHA256", "bits": 128, "strength": "strong"},
    {"name": "TLS_AES_256_GCM_SHA384", "bits": 256, "strength": "strong"},
    {"name": "ECDHE-RSA-AES128-GCM-SHA256", "bits": 128, "strength": "strong"},
    {"name": "ECDHE-RSA-AES256-GCM-SHA384", "bits": 256, "strength": "strong"},
    {"name": "AES128-SHA", "bits": 128, "strength": "medium"},
    {"name": "AES256-SHA", "bits": 256, "strength": "medium"},
    {"name": "RC4-SHA", "bits": 128, "strength": "weak"},
    {"name": "DES-CBC3-SHA", "bits": 168, "strength": "weak"},
    {"name": "SSLv3-KRB5", "bits": 56, "strength": "weak"},
]

# Indexes into CIPHER_POOL offered by each tier
TIER_CIPHERS = {
    "excellent": (1, 0, 2, 3),
    "good": (0, 2, 4),
    "average": (2, 4, 5),
    "below_average": (4, 6, 7),
    "poor": (6, 7, 8),
    "development": (0, 4),
}

# (days since issue range, days until expiry range). Poor tier can land
# on the wrong side of expiry.
CERT_WINDOWS = {
    "excellent": ((30, 59), (275, 454)),
    "good": ((30, 119), (90, 209)),
    "average": ((60, 239), (30, 119)),
    "below_average": ((90, 454), (10, 69)),
    "poor": ((180, 909), (-10, 34)),
    "development": ((30, 120), (20, 90)),
}

VULN_PENALTIES = {"critical": 30, "high": 15, "medium": 7, "low": 3}

NEAR_EXPIRY_DAYS = 14
RENEWAL_WINDOW_DAYS = 30
LONG_VALIDITY_DAYS = 180


class SSLAnalyzer(BaseAnalyzer):
    """
    Scores a (synthesized) SSL/TLS configuration.

    Produces:
        - protocols, certificate, ciphers, vulnerabilities in details
        - a letter grade as the result status
        - recommendations keyed to each deficiency
    """

    dimension = Dimension.SSL
    classifier = SSL_TIER_CLASSIFIER

    def analyze(self, target: str) -> AnalysisResult:
        domain = target.lower()
        stream = SeededStream.for_domain(domain)

        tier = self._quality_tier(domain, stream)
        protocols = self._protocols(tier, stream)
        certificate = self._certificate(domain, tier, stream)
        ciphers = [dict(CIPHER_POOL[i]) for i in TIER_CIPHERS[tier]]
        vulns = self._vulnerabilities(protocols, ciphers, certificate, tier, stream)

        score = self._score(protocols, ciphers, certificate, vulns)
        grade = ssl_grade(score)

        details = {
            "hasSSL": True,
            "sslQuality": tier,
            "grade": grade,
            "protocols": protocols,
            "certificate": certificate,
            "ciphers": ciphers,
            "vulnerabilities": vulns,
            "chainIssues": self._chain_issues(tier, stream),
            "ocspStapling": stream.float(7) > 0.3,
            "hstsEnabled": stream.float(8) > 0.4,
            "httpRedirect": stream.float(9) > 0.2,
            "weakCiphers": sum(1 for c in ciphers if c["strength"] == "weak"),
            "strongCiphers": sum(1 for c in ciphers if c["strength"] == "strong"),
        }

        logger.debug(f"SSL {domain}: tier={tier} score={score} grade={grade}")

        return AnalysisResult(
            dimension=self.dimension,
            score=score,
            status=grade,
            recommendations=self._recommendations(protocols, ciphers, certificate, vulns, tier),
            details=details,
        )

    def failure_recommendation(self) -> Recommendation:
        return Recommendation(
            category=CATEGORY,
            priority="medium",
            title="SSL/TLS analysis failed",
            description="The TLS configuration of this host could not be evaluated.",
            action="Check that the host accepts HTTPS connections and run the scan again.",
        )

    # -------------------------------------------------------------------
    # Synthesis
    # -------------------------------------------------------------------

    def _quality_tier(self, domain: str, stream: SeededStream) -> str:
        tier = self.classifier.classify(domain)
        if tier:
            return tier
        r = stream.float(1)
        for floor, name in SEEDED_TIERS:
            if r > floor:
                return name
        return "poor"

    def _protocols(self, tier: str, stream: SeededStream) -> List[str]:
        protocols: List[str] = []

        if tier == "excellent":
            protocols += ["TLSv1.3", "TLSv1.2"]
        elif tier == "good":
            protocols.append("TLSv1.2")
            if stream.float(2) > 0.7:
                protocols.append("TLSv1.3")
            if stream.float(3) > 0.8:
                protocols.append("TLSv1.1")
        elif tier == "average":
            protocols += ["TLSv1.2", "TLSv1.1"]
            if stream.float(4) > 0.6:
                protocols.append("TLSv1.0")
        elif tier == "below_average":
            protocols += ["TLSv1.1", "TLSv1.0"]
            if stream.float(5) > 0.7:
                protocols.append("TLSv1.2")
            if stream.float(6) > 0.9:
                protocols.append("SSLv3")
        elif tier == "poor":
            protocols.append("TLSv1.0")
            if stream.float(7) > 0.5:
                protocols.append("SSLv3")
            if stream.float(8) > 0.6:
                protocols.append("TLSv1.1")
        else:
            protocols.append("TLSv1.2")
            if stream.float(9) > 0.5:
                protocols += ["TLSv1.1", "TLSv1.0"]

        return list(dict.fromkeys(protocols))

    def _certificate(self, domain: str, tier: str, stream: SeededStream) -> Dict[str, Any]:
        (issued_lo, issued_hi), (expiry_lo, expiry_hi) = CERT_WINDOWS[tier]
        issued_ago = stream.between(issued_lo, issued_hi, 10)
        expires_in = stream.between(expiry_lo, expiry_hi, 11)

        now = self.clock()
        valid_from = now - timedelta(days=issued_ago)
        valid_to = now + timedelta(days=expires_in)

        self_signed_odds = 0.35 if tier == "development" else 0.05

        return {
            "issuer": "Let's Encrypt" if stream.float(21) > 0.5 else "DigiCert",
            "subject": f"CN={domain}",
            "validFrom": valid_from.isoformat(),
            "validTo": valid_to.isoformat(),
            "daysRemaining": expires_in,
            "expired": expires_in <= 0,
            "isSelfSigned": stream.chance(22, self_signed_odds),
            "signatureAlgorithm": "rsa-sha256" if stream.float(23) > 0.6 else "ecdsa-sha256",
        }

    def _chain_issues(self, tier: str, stream: SeededStream) -> List[str]:
        issues: List[str] = []
        if tier == "poor":
            issues.append("Missing intermediate certificate(s).")
            if stream.float(31) > 0.5:
                issues.append("Certificate chain order incorrect.")
        elif tier == "development":
            issues.append("Self-signed or development CA used.")
        elif stream.float(32) > 0.85:
            issues.append("Intermediate certificate missing.")
        return issues

    # -------------------------------------------------------------------
    # Findings and scoring
    # -------------------------------------------------------------------

    def _vulnerabilities(
        self,
        protocols: List[str],
        ciphers: List[Dict[str, Any]],
        cert: Dict[str, Any],
        tier: str,
        stream: SeededStream,
    ) -> List[Dict[str, str]]:
        vulns: List[Dict[str, str]] = []

        def add(vid: str, severity: str, description: str):
            vulns.append({"id": vid, "severity": severity, "description": description})

        if "SSLv3" in protocols:
            add("POODLE", "high", "SSLv3 is vulnerable to POODLE attacks.")
        if "TLSv1.0" in protocols or "TLSv1.1" in protocols:
            add("LEGACY_TLS", "medium", "Legacy TLS versions have known weaknesses.")
        if any("RC4" in c["name"] for c in ciphers):
            add("RC4", "high", "RC4 cipher is insecure and must not be used.")
        if any(c["strength"] == "weak" for c in ciphers):
            add("WEAK_CIPHERS", "medium", "Weak cipher suites present.")
        if cert["isSelfSigned"]:
            add("SELF_SIGNED", "high", "Certificate is self-signed.")
        if cert["expired"]:
            add("CERT_EXPIRED", "critical", "Certificate has expired.")
        elif cert["daysRemaining"] < NEAR_EXPIRY_DAYS:
            add("CERT_NEAR_EXPIRY", "medium", "Certificate is near expiry.")
        if tier == "poor" and stream.float(99) > 0.7:
            add("HEARTBLEED", "critical", "Heartbleed-like flaw flagged in handshake.")

        return vulns

    def _score(
        self,
        protocols: List[str],
        ciphers: List[Dict[str, Any]],
        cert: Dict[str, Any],
        vulns: List[Dict[str, str]],
    ) -> int:
        score = 50

        for proto in protocols:
            score += PROTOCOL_POINTS.get(proto, 0)

        score += 8 * sum(1 for c in ciphers if c["strength"] == "strong")
        score -= 12 * sum(1 for c in ciphers if c["strength"] == "weak")

        if cert["expired"]:
            score -= 30
        if cert["isSelfSigned"]:
            score -= 20
        if cert["daysRemaining"] > LONG_VALIDITY_DAYS:
            score += 10
        if "ecdsa" in cert["signatureAlgorithm"]:
            score += 5

        for v in vulns:
            score -= VULN_PENALTIES.get(v["severity"], 0)

        return clamp_score(score)

    def _recommendations(
        self,
        protocols: List[str],
        ciphers: List[Dict[str, Any]],
        cert: Dict[str, Any],
        vulns: List[Dict[str, str]],
        tier: str,
    ) -> List[Recommendation]:
        recs: List[Recommendation] = []
        vuln_ids = {v["id"] for v in vulns}

        def rec(priority: str, title: str, description: str, action: str):
            recs.append(Recommendation(CATEGORY, priority, title, description, action))

        if cert["expired"]:
            rec("critical", "Renew expired certificate",
                "The TLS certificate has expired and browsers will reject the connection.",
                "Renew the TLS certificate immediately and automate future renewals.")
        elif cert["daysRemaining"] < RENEWAL_WINDOW_DAYS:
            rec("high", "Certificate expires soon",
                f"The certificate expires in {cert['daysRemaining']} days.",
                "Plan certificate renewal now or enable automatic renewal.")

        if "HEARTBLEED" in vuln_ids:
            rec("critical", "Patch TLS library",
                "The handshake shows signs of a Heartbleed-class memory disclosure flaw.",
                "Upgrade OpenSSL (or the TLS library in use) and rotate private keys.")

        if cert["isSelfSigned"]:
            rec("high", "Replace self-signed certificate",
                "Clients cannot verify a self-signed certificate.",
                "Replace it with a certificate issued by a trusted CA.")

        if any(p in protocols for p in LEGACY_PROTOCOLS):
            enabled = ", ".join(p for p in LEGACY_PROTOCOLS if p in protocols)
            rec("high" if "SSLv3" in protocols else "medium", "Disable legacy protocols",
                f"Legacy protocols are enabled: {enabled}.",
                "Disable SSLv3, TLSv1.0 and TLSv1.1 in the server configuration.")

        if any(c["strength"] == "weak" for c in ciphers):
            rec("high" if "RC4" in vuln_ids else "medium", "Remove weak cipher suites",
                "Weak cipher suites (RC4, DES or SSLv3-based) are offered.",
                "Restrict the cipher list to modern AEAD suites.")
        if not any("GCM" in c["name"] for c in ciphers):
            rec("low", "Prefer AEAD ciphers",
                "No AES-GCM or ChaCha20-Poly1305 suites are offered.",
                "Enable AES-GCM or ChaCha20-Poly1305 cipher suites.")

        if "TLSv1.3" not in protocols:
            rec("low", "Enable TLS 1.3",
                "TLS 1.3 is not supported.",
                "Enable TLSv1.3 for better performance and security.")

        if tier == "poor":
            rec("medium", "Review TLS configuration",
                "Multiple weaknesses point to an unmaintained TLS setup.",
                "Perform a full TLS configuration review and re-issue certificates as needed.")

        return recs
