# websec/scanner/analyzers/malware_analyzer.py
"""
Malware / Reputation Analyzer.

Synthesizes a multi-vendor reputation verdict for a URL. A URL with no
suspicious traits comes back clean from the whole vendor panel. Each trait
found in the URL adds weight, and the number of vendors flagging it as
malicious grows with that weight.

Traits checked:
    - host is a known URL shortener
    - two or more credential-phishing keywords in host or path
    - risky top-level domain
    - raw IP address as host
    - '@' in the URL (userinfo trick)
    - excessive hyphens or subdomain depth

Score = 100 - malicious share of the panel, in percent.
"""

from __future__ import annotations

import ipaddress
import logging
from typing import List, Tuple
from urllib.parse import urlparse

from websec.scanner.base import (
    AnalysisResult,
    BaseAnalyzer,
    Dimension,
    Recommendation,
    clamp_score,
)
from websec.scanner.synth import SeededStream

logger = logging.getLogger(__name__)

CATEGORY = "Malware & Reputation"

VENDOR_PANEL_SIZE = 70

URL_SHORTENERS = {
    "bit.ly", "tinyurl.com", "goo.gl", "t.co", "ow.ly", "is.gd", "buff.ly",
    "cutt.ly", "rebrand.ly", "shorturl.at", "tiny.cc", "rb.gy",
}

PHISHING_KEYWORDS = (
    "login", "signin", "verify", "account", "update", "secure-", "banking",
    "password", "confirm", "wallet", "unlock", "suspend", "billing", "webscr",
)

RISKY_TLDS = {"tk", "ml", "ga", "cf", "gq", "xyz", "top", "zip", "mov", "work", "click", "country"}

# Trait weights. Sum drives how many vendors flag the URL.
TRAIT_WEIGHTS = {
    "url_shortener": 2,
    "phishing_keyword": 2,
    "risky_tld": 2,
    "ip_host": 3,
    "userinfo_at": 3,
    "excessive_hyphens": 1,
    "deep_subdomains": 1,
}

MAX_HYPHENS = 3
MAX_LABELS = 5
MIN_PHISHING_KEYWORDS = 2


def _host_of(url: str) -> str:
    parsed = urlparse(url if "://" in url else f"http://{url}")
    return (parsed.hostname or "").lower()


def _is_ip(host: str) -> bool:
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        return False


def detect_traits(url: str) -> List[Tuple[str, str]]:
    """(trait, evidence) pairs for every suspicious trait of the URL."""
    traits: List[Tuple[str, str]] = []
    lowered = (url or "").lower()
    host = _host_of(lowered)

    if host in URL_SHORTENERS:
        traits.append(("url_shortener", host))

    keywords = [k for k in PHISHING_KEYWORDS if k in lowered]
    if len(keywords) >= MIN_PHISHING_KEYWORDS:
        traits.append(("phishing_keyword", ", ".join(keywords)))

    tld = host.rsplit(".", 1)[-1] if "." in host else ""
    if tld in RISKY_TLDS:
        traits.append(("risky_tld", f".{tld}"))

    if host and _is_ip(host):
        traits.append(("ip_host", host))

    if "@" in lowered.split("://", 1)[-1].split("/", 1)[0]:
        traits.append(("userinfo_at", "@ in authority"))

    if host.count("-") > MAX_HYPHENS:
        traits.append(("excessive_hyphens", f"{host.count('-')} hyphens"))

    if host and not _is_ip(host) and len(host.split(".")) > MAX_LABELS:
        traits.append(("deep_subdomains", f"{len(host.split('.'))} labels"))

    return traits


class MalwareAnalyzer(BaseAnalyzer):
    """
    URL reputation across a synthetic vendor panel.

    Produces:
        - malicious / suspicious / harmless / undetected vendor counts
        - detected traits with evidence
        - status clean, suspicious or malicious
    """

    dimension = Dimension.MALWARE
    target_kind = "url"

    def analyze(self, target: str) -> AnalysisResult:
        url = target.strip()
        host = _host_of(url)
        stream = SeededStream.for_domain(host or url)

        traits = detect_traits(url)
        weight = sum(TRAIT_WEIGHTS[name] for name, _ in traits)

        if weight == 0:
            malicious = suspicious = 0
        else:
            # 3-6 vendors per weight point, capped at the panel size
            per_point = stream.between(3, 6, 101)
            malicious = min(VENDOR_PANEL_SIZE, weight * per_point)
            suspicious = min(VENDOR_PANEL_SIZE - malicious, stream.between(0, weight * 2, 102))

        remaining = VENDOR_PANEL_SIZE - malicious - suspicious
        harmless = int(remaining * (0.85 + 0.1 * stream.float(103)))
        undetected = remaining - harmless

        score = clamp_score(100 - (malicious / VENDOR_PANEL_SIZE) * 100)
        status = self._status(malicious, suspicious)

        return AnalysisResult(
            dimension=self.dimension,
            score=score,
            status=status,
            recommendations=self._recommendations(malicious, suspicious, traits),
            details={
                "url": url,
                "host": host,
                "isMalicious": malicious > 0,
                "malicious": malicious,
                "suspicious": suspicious,
                "harmless": harmless,
                "undetected": undetected,
                "totalVendors": VENDOR_PANEL_SIZE,
                "traits": [{"trait": n, "evidence": e} for n, e in traits],
                "riskWeight": weight,
            },
        )

    def failure_recommendation(self) -> Recommendation:
        return Recommendation(
            category=CATEGORY,
            priority="medium",
            title="Reputation check unavailable",
            description="The URL reputation lookup could not be completed.",
            action="Retry the scan later or check the URL with a reputation service manually.",
        )

    @staticmethod
    def _status(malicious: int, suspicious: int) -> str:
        if malicious >= 5:
            return "malicious"
        if malicious > 0 or suspicious > 0:
            return "suspicious"
        return "clean"

    def _recommendations(
        self, malicious: int, suspicious: int, traits: List[Tuple[str, str]]
    ) -> List[Recommendation]:
        recs: List[Recommendation] = []
        names = {n for n, _ in traits}

        if malicious > 0:
            recs.append(Recommendation(
                CATEGORY, "critical", "URL flagged as malicious",
                f"{malicious} of {VENDOR_PANEL_SIZE} security vendors flag this URL as malicious.",
                "Investigate the site for compromise, remove malicious content and request delisting.",
            ))
        elif suspicious > 0:
            recs.append(Recommendation(
                CATEGORY, "medium", "URL flagged as suspicious",
                f"{suspicious} security vendor(s) consider this URL suspicious.",
                "Review the site content and request a re-scan from the flagging vendors.",
            ))

        if "phishing_keyword" in names:
            recs.append(Recommendation(
                CATEGORY, "high", "Phishing-style URL",
                "The URL contains keywords common in credential-phishing pages.",
                "Avoid credential-related keywords in hostnames and verify the page is legitimate.",
            ))
        if "url_shortener" in names:
            recs.append(Recommendation(
                CATEGORY, "medium", "Shortened URL hides destination",
                "The URL goes through a link shortener, hiding its real destination.",
                "Expand the short link and scan the final destination URL.",
            ))
        if "ip_host" in names or "userinfo_at" in names:
            recs.append(Recommendation(
                CATEGORY, "high", "Obfuscated URL host",
                "The URL uses a raw IP host or an '@' userinfo trick to disguise its target.",
                "Serve the site from a registered domain name over HTTPS.",
            ))

        return recs
