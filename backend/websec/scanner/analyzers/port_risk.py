# websec/scanner/analyzers/port_risk.py
"""
Port Risk Analyzer.

Synthesizes the open-port surface of a host and classifies each open port by
risk. The host is first placed in an archetype (web server, mail server,
exposed database, dev box, hardened enterprise, legacy) by the archetype
classifier or the seeded stream; the open set is that archetype's base ports
plus a little seeded noise from a small extra-port pool.

Classification:
    CRITICAL: datastores that should never be internet-facing
    HIGH    : plaintext or commonly attacked services (FTP, SSH, Telnet,
              SMTP, DNS, POP3, IMAP)
    MEDIUM  : plain HTTP and development ports
    LOW     : HTTPS and TLS-wrapped mail

Score = 100 minus per-port deductions, +10 for HTTPS-only minimal exposure,
-15 for HTTP without HTTPS, -25 per exposed datastore. Clamped 0–100.
"""

from __future__ import annotations

import logging
from typing import Dict, List

from websec.scanner.archetypes import ArchetypeClassifier
from websec.scanner.base import (
    AnalysisResult,
    BaseAnalyzer,
    Dimension,
    Recommendation,
    clamp_score,
)
from websec.scanner.synth import SeededStream

logger = logging.getLogger(__name__)

CATEGORY = "Network Exposure"


# ---------------------------------------------------------------------------
# Port risk classification table
#
# Fields:
#   label:       Human-readable service name
#   severity:    Risk tier when this port is open
#   description: Risk explanation
#   action:      What the user should do
# ---------------------------------------------------------------------------

def _entry(label: str, severity: str, description: str, action: str) -> Dict[str, str]:
    return {"label": label, "severity": severity, "description": description, "action": action}


_DATASTORE_ACTION = "Block the port at the firewall and bind the service to a private interface."

PORT_RISK_TABLE: Dict[int, Dict[str, str]] = {
    # === CRITICAL: datastores ===
    3306: _entry("MySQL", "critical", "MySQL database should not be publicly accessible.", _DATASTORE_ACTION),
    5432: _entry("PostgreSQL", "critical", "PostgreSQL database should not be publicly accessible.", _DATASTORE_ACTION),
    27017: _entry("MongoDB", "critical", "MongoDB is a frequent target of ransom wipes when exposed.", _DATASTORE_ACTION),
    6379: _entry("Redis", "critical", "Redis often runs without authentication.", _DATASTORE_ACTION),
    5984: _entry("CouchDB", "critical", "CouchDB admin API is reachable from the internet.", _DATASTORE_ACTION),
    9200: _entry("Elasticsearch", "critical", "Elasticsearch exposes index data over plain HTTP.", _DATASTORE_ACTION),
    1433: _entry("MSSQL", "critical", "Microsoft SQL Server should not be publicly accessible.", _DATASTORE_ACTION),
    11211: _entry("Memcached", "critical", "Memcached can leak cached data and be abused for amplification.", _DATASTORE_ACTION),

    # === HIGH ===
    21: _entry("FTP", "high", "FTP sends credentials in plaintext.", "Replace FTP with SFTP or FTPS."),
    22: _entry("SSH", "high", "SSH is a constant brute-force target.",
               "Restrict SSH to known IPs or a VPN and require key-based authentication."),
    23: _entry("Telnet", "high", "Telnet is unencrypted remote access.", "Disable Telnet and use SSH."),
    25: _entry("SMTP", "high", "SMTP may allow relay abuse or plaintext mail.",
               "Require STARTTLS and verify the server is not an open relay."),
    53: _entry("DNS", "high", "Public DNS can be abused for amplification or zone transfers.",
               "Disable recursion for external clients and restrict zone transfers."),
    110: _entry("POP3", "high", "POP3 without TLS exposes mailbox credentials.", "Use POP3S on port 995 instead."),
    143: _entry("IMAP", "high", "IMAP without TLS exposes mailbox credentials.", "Use IMAPS on port 993 instead."),

    # === MEDIUM ===
    80: _entry("HTTP", "medium", "Plain HTTP traffic is unencrypted.", "Redirect all HTTP traffic to HTTPS."),
    8080: _entry("HTTP-Alt", "medium", "Alternative HTTP port, often a dev or admin server.",
                 "Close the port or put the service behind the main reverse proxy."),
    8443: _entry("HTTPS-Alt", "medium", "Alternative HTTPS port, often an admin console.",
                 "Close the port or restrict access to trusted IPs."),
    3000: _entry("Dev server", "medium", "Port 3000 is typical of development servers.",
                 "Do not expose development servers in production."),
    5000: _entry("Dev server", "medium", "Port 5000 is typical of development servers.",
                 "Do not expose development servers in production."),
    8000: _entry("Dev server", "medium", "Port 8000 is typical of development servers.",
                 "Do not expose development servers in production."),
    8888: _entry("Notebook/Dev", "medium", "Port 8888 is typical of notebook and dev servers.",
                 "Do not expose development servers in production."),

    # === LOW ===
    443: _entry("HTTPS", "low", "HTTPS web traffic.", "Keep the TLS configuration current."),
    465: _entry("SMTPS", "low", "SMTP over TLS.", "Keep the TLS configuration current."),
    587: _entry("Submission", "low", "Mail submission with STARTTLS.", "Require authentication and STARTTLS."),
    993: _entry("IMAPS", "low", "IMAP over TLS.", "Keep the TLS configuration current."),
    995: _entry("POP3S", "low", "POP3 over TLS.", "Keep the TLS configuration current."),
}

SEVERITY_DEDUCTIONS = {"critical": 30, "high": 15, "medium": 8, "low": 2}

DATASTORE_PORTS = frozenset(p for p, e in PORT_RISK_TABLE.items() if e["severity"] == "critical")
DEV_PORTS = frozenset({8080, 8443, 3000, 5000, 8000, 8888})
PLAINTEXT_PORTS = frozenset({21, 23, 25, 110, 143})

DATASTORE_PENALTY = 25
HTTP_WITHOUT_HTTPS_PENALTY = 15
HTTPS_ONLY_BONUS = 10

ARCHETYPE_PORTS: Dict[str, List[int]] = {
    "web_server": [80, 443],
    "mail_server": [25, 110, 143, 443, 465, 587, 993, 995],
    "database_exposed": [80, 443, 3306, 5432, 6379, 27017],
    "development": [22, 80, 3000, 8000, 8080],
    "secure_enterprise": [443],
    "legacy": [21, 23, 25, 80, 110],
}

NOISE_POOL = (22, 53, 8080, 8443, 3000)

PORT_ARCHETYPE_CLASSIFIER = ArchetypeClassifier.from_mapping({
    "legacy": ["old", "legacy", "ftp", "insecure"],
    "database_exposed": ["db", "database", "mongo", "sql", "redis"],
    "mail_server": ["mail", "smtp", "imap", "mx."],
    "development": ["dev", "staging", "test", "localhost", "demo"],
    "secure_enterprise": ["bank", "secure", "finance", "payment", "google", "microsoft", "amazon", "apple"],
})

# Seeded fallback draw: (floor, archetype)
SEEDED_ARCHETYPES = (
    (0.45, "web_server"),
    (0.30, "secure_enterprise"),
    (0.18, "mail_server"),
    (0.08, "development"),
    (0.03, "legacy"),
)


class PortRiskAnalyzer(BaseAnalyzer):
    """
    Classifies a host's open ports by risk.

    Produces:
        - openPorts and per-port risk entries in details
        - recommendations for datastores, plaintext services, dev ports
          and HTTP without HTTPS
    """

    dimension = Dimension.PORTS
    classifier = PORT_ARCHETYPE_CLASSIFIER

    def analyze(self, target: str) -> AnalysisResult:
        domain = target.lower()
        stream = SeededStream.for_domain(domain)

        archetype = self._archetype(domain, stream)
        open_ports = self._open_ports(archetype, stream)
        return self.evaluate(open_ports, archetype=archetype)

    def evaluate(self, open_ports: List[int], archetype: str = "") -> AnalysisResult:
        open_ports = sorted(set(open_ports))
        risky = [
            {"port": p, "service": PORT_RISK_TABLE[p]["label"], "risk": PORT_RISK_TABLE[p]["severity"],
             "description": PORT_RISK_TABLE[p]["description"]}
            for p in open_ports if p in PORT_RISK_TABLE
        ]

        score = self._score(open_ports)

        return AnalysisResult(
            dimension=self.dimension,
            score=score,
            status="secure" if score >= 80 else "moderate" if score >= 50 else "exposed",
            recommendations=self._recommendations(open_ports),
            details={
                "archetype": archetype,
                "openPorts": open_ports,
                "ports": risky,
                "openCount": len(open_ports),
                "criticalCount": sum(1 for r in risky if r["risk"] == "critical"),
                "highCount": sum(1 for r in risky if r["risk"] == "high"),
            },
        )

    # -------------------------------------------------------------------
    # Synthesis
    # -------------------------------------------------------------------

    def _archetype(self, domain: str, stream: SeededStream) -> str:
        archetype = self.classifier.classify(domain)
        if archetype:
            return archetype
        r = stream.float(200)
        for floor, name in SEEDED_ARCHETYPES:
            if r > floor:
                return name
        return "database_exposed"

    def _open_ports(self, archetype: str, stream: SeededStream) -> List[int]:
        ports = set(ARCHETYPE_PORTS[archetype])
        odds = 0.05 if archetype == "secure_enterprise" else 0.15
        for i, port in enumerate(NOISE_POOL):
            if stream.chance(210 + i, odds):
                ports.add(port)
        return sorted(ports)

    # -------------------------------------------------------------------
    # Scoring
    # -------------------------------------------------------------------

    @staticmethod
    def _score(open_ports: List[int]) -> int:
        score = 100
        for port in open_ports:
            entry = PORT_RISK_TABLE.get(port)
            if entry:
                score -= SEVERITY_DEDUCTIONS[entry["severity"]]

        if 443 in open_ports and all(
            PORT_RISK_TABLE.get(p, {}).get("severity") == "low" for p in open_ports
        ):
            score += HTTPS_ONLY_BONUS
        if 80 in open_ports and 443 not in open_ports:
            score -= HTTP_WITHOUT_HTTPS_PENALTY

        score -= DATASTORE_PENALTY * sum(1 for p in open_ports if p in DATASTORE_PORTS)
        return clamp_score(score)

    def _recommendations(self, open_ports: List[int]) -> List[Recommendation]:
        recs: List[Recommendation] = []

        datastores = [p for p in open_ports if p in DATASTORE_PORTS]
        if datastores:
            names = ", ".join(f"{p} ({PORT_RISK_TABLE[p]['label']})" for p in datastores)
            recs.append(Recommendation(
                CATEGORY, "critical", "Close exposed database ports",
                f"Datastore ports are reachable from the internet: {names}.",
                _DATASTORE_ACTION,
            ))

        plaintext = [p for p in open_ports if p in PLAINTEXT_PORTS]
        if plaintext:
            recs.append(Recommendation(
                CATEGORY, "high", "Replace unencrypted services",
                f"Plaintext services are exposed on ports {', '.join(map(str, plaintext))}.",
                "Move these services to their TLS-wrapped equivalents or disable them.",
            ))

        if 22 in open_ports:
            recs.append(Recommendation(
                CATEGORY, "medium", "Restrict SSH access",
                PORT_RISK_TABLE[22]["description"],
                PORT_RISK_TABLE[22]["action"],
            ))

        if 80 in open_ports and 443 not in open_ports:
            recs.append(Recommendation(
                CATEGORY, "high", "Enable HTTPS",
                "The site serves HTTP on port 80 without HTTPS on port 443.",
                "Enable HTTPS on port 443 and redirect all HTTP traffic to it.",
            ))

        dev = [p for p in open_ports if p in DEV_PORTS]
        if dev:
            recs.append(Recommendation(
                CATEGORY, "medium", "Close development ports",
                f"Development or alternative ports are open: {', '.join(map(str, dev))}.",
                "Close development ports in production or restrict them to trusted IPs.",
            ))

        if not open_ports:
            recs.append(Recommendation(
                CATEGORY, "low", "No open ports found",
                "None of the common ports appear open.",
                "Verify this is intentional and that the site is reachable.",
            ))

        return recs
