# websec/scanner/analyzers/header_analyzer.py
"""
HTTP Security Headers Analyzer.

Scores the security response headers of a site's homepage. In live mode the
headers come from the HTTP probe; otherwise a header profile (hardened,
typical or bare) is synthesized from the domain.

Points per header:
    Content-Security-Policy     20, +5 per essential directive,
                                -5 unsafe-inline, -5 unsafe-eval
    Strict-Transport-Security   15, +5 max-age >= 1y (+3 >= 1d),
                                -5 no max-age, +3 includeSubDomains, +2 preload
    X-Frame-Options             DENY 20, SAMEORIGIN 15, other 5
    X-Content-Type-Options      nosniff 15, other 5
    X-XSS-Protection            "1; mode=block" 10, "1" 8, other 2
    Referrer-Policy             strict policy 10, other 5
    Permissions-Policy          non-empty 10, empty 2
    Cross-origin isolation set  10 each

Total clamped to 0–100. Each missing header yields a recommendation.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from websec.scanner.archetypes import ArchetypeClassifier
from websec.scanner.base import (
    AnalysisResult,
    BaseAnalyzer,
    Dimension,
    Recommendation,
    clamp_score,
)
from websec.scanner.engines.http_engine import probe_homepage
from websec.scanner.synth import SeededStream

logger = logging.getLogger(__name__)

CATEGORY = "Security Headers"

HEADER_PROFILE_CLASSIFIER = ArchetypeClassifier.from_mapping({
    "bare": ["test", "demo", "old", "legacy", "insecure", "dev", "staging", "localhost"],
    "hardened": ["bank", "secure", "finance", "payment", "google", "microsoft", "amazon", "apple"],
})

ONE_YEAR = 31536000
ONE_DAY = 86400

CSP_ESSENTIAL_DIRECTIVES = ("default-src", "script-src", "style-src")
STRICT_REFERRER_POLICIES = {"no-referrer", "strict-origin", "strict-origin-when-cross-origin"}

MAX_AGE_RE = re.compile(r"max-age\s*=\s*\"?(\d+)", re.IGNORECASE)
VERSION_RE = re.compile(r"\d+(\.\d+)+")

# Missing-header guidance. Order is evaluation order.
SECURITY_HEADERS: Dict[str, Dict[str, str]] = {
    "Content-Security-Policy": {
        "priority": "high",
        "description": (
            "No Content-Security-Policy header. CSP restricts which resources the "
            "browser may load and is the main defence against XSS and data injection."
        ),
        "action": "Add a Content-Security-Policy with default-src, script-src and style-src directives.",
    },
    "X-Frame-Options": {
        "priority": "medium",
        "description": (
            "No X-Frame-Options header. The page can be embedded in iframes on "
            "other sites, enabling clickjacking."
        ),
        "action": "Add: X-Frame-Options: DENY (or SAMEORIGIN if you frame your own pages).",
    },
    "X-Content-Type-Options": {
        "priority": "medium",
        "description": (
            "No X-Content-Type-Options header. Browsers may MIME-sniff responses, "
            "which can turn uploaded files into executable content."
        ),
        "action": "Add: X-Content-Type-Options: nosniff",
    },
    "Strict-Transport-Security": {
        "priority": "high",
        "description": (
            "No Strict-Transport-Security header. Users can be downgraded from "
            "HTTPS to HTTP by a man-in-the-middle."
        ),
        "action": "Add: Strict-Transport-Security: max-age=31536000; includeSubDomains",
    },
    "X-XSS-Protection": {
        "priority": "low",
        "description": "No X-XSS-Protection header for legacy browsers.",
        "action": "Add: X-XSS-Protection: 1; mode=block",
    },
    "Referrer-Policy": {
        "priority": "low",
        "description": (
            "No Referrer-Policy header. Full URLs, including query strings, may "
            "leak to third-party sites."
        ),
        "action": "Add: Referrer-Policy: strict-origin-when-cross-origin",
    },
    "Permissions-Policy": {
        "priority": "low",
        "description": (
            "No Permissions-Policy header. Browser features such as camera, "
            "microphone and geolocation are not restricted."
        ),
        "action": "Add: Permissions-Policy: camera=(), microphone=(), geolocation=()",
    },
}

OPTIONAL_HEADERS = (
    "Cross-Origin-Embedder-Policy",
    "Cross-Origin-Opener-Policy",
    "Cross-Origin-Resource-Policy",
    "X-Permitted-Cross-Domain-Policies",
)
OPTIONAL_HEADER_POINTS = 10

HARDENED_HEADERS = {
    "content-security-policy": "default-src 'self'; script-src 'self'; style-src 'self'",
    "x-frame-options": "DENY",
    "x-content-type-options": "nosniff",
    "strict-transport-security": "max-age=31536000; includeSubDomains; preload",
    "x-xss-protection": "1; mode=block",
    "referrer-policy": "strict-origin-when-cross-origin",
    "permissions-policy": "camera=(), microphone=(), geolocation=()",
}

# (header, weak value, presence odds) for the typical profile
TYPICAL_HEADERS = (
    ("content-security-policy", "default-src 'self' 'unsafe-inline'", 0.4),
    ("x-frame-options", "SAMEORIGIN", 0.7),
    ("x-content-type-options", "nosniff", 0.8),
    ("strict-transport-security", "max-age=86400", 0.6),
    ("x-xss-protection", "1", 0.5),
    ("referrer-policy", "origin", 0.4),
    ("permissions-policy", "geolocation=()", 0.3),
)

LEAKY_SERVERS = ("nginx/1.18.0", "Apache/2.4.29 (Ubuntu)", "Microsoft-IIS/8.5")
LEAKY_POWERED_BY = ("PHP/7.2.24", "Express", "ASP.NET")


class HeaderAnalyzer(BaseAnalyzer):
    """
    Checks security response headers.

    Produces:
        - per-header analysis (present, value, score, issues) in details
        - a targeted recommendation for each missing or weak header
        - version-disclosure recommendations for Server / X-Powered-By
    """

    dimension = Dimension.HEADERS
    classifier = HEADER_PROFILE_CLASSIFIER

    def __init__(self, *args, probe: Optional[Callable[..., Dict[str, Any]]] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.probe = probe or probe_homepage

    def analyze(self, target: str) -> AnalysisResult:
        domain = target.lower()

        if self.live:
            response = self.probe(domain, timeout=self.timeout)
            headers = response["headers"]
            source = "live"
        else:
            headers, source = self._synthesize(domain)

        return self.evaluate(headers, source=source)

    def evaluate(self, headers: Dict[str, str], source: str = "live") -> AnalysisResult:
        """Score an already-collected header map. Keys are matched case-insensitively."""
        lowered = {k.lower(): (v or "").strip() for k, v in headers.items()}

        score = 0
        analysis: Dict[str, Dict[str, Any]] = {}
        missing: List[str] = []
        recs: List[Recommendation] = []

        for header in SECURITY_HEADERS:
            value = lowered.get(header.lower())
            if value is None:
                missing.append(header)
                analysis[header] = {"present": False, "value": None, "score": 0, "issues": []}
                continue
            points, issues, fixes = self._score_header(header, value)
            score += points
            analysis[header] = {"present": True, "value": value, "score": points, "issues": issues}
            recs.extend(fixes)

        optional_present = [h for h in OPTIONAL_HEADERS if h.lower() in lowered]
        score += OPTIONAL_HEADER_POINTS * len(optional_present)

        for header in missing:
            meta = SECURITY_HEADERS[header]
            recs.append(Recommendation(
                CATEGORY, meta["priority"], f"Add {header} header",
                meta["description"], meta["action"],
            ))

        recs.extend(self._disclosure_recommendations(lowered))

        final = clamp_score(score)
        present = len(SECURITY_HEADERS) - len(missing)

        return AnalysisResult(
            dimension=self.dimension,
            score=final,
            status=self._status(final),
            recommendations=recs,
            details={
                "source": source,
                "headers": analysis,
                "missingHeaders": missing,
                "presentHeaders": [h for h in SECURITY_HEADERS if h not in missing],
                "optionalHeaders": optional_present,
                "summary": f"{present}/{len(SECURITY_HEADERS)} security headers present",
                "server": lowered.get("server"),
                "poweredBy": lowered.get("x-powered-by"),
            },
        )

    # -------------------------------------------------------------------
    # Per-header scoring
    # -------------------------------------------------------------------

    def _score_header(self, header: str, value: str) -> Tuple[int, List[str], List[Recommendation]]:
        v = value.lower()
        issues: List[str] = []
        fixes: List[Recommendation] = []

        def fix(priority: str, title: str, description: str, action: str):
            issues.append(description)
            fixes.append(Recommendation(CATEGORY, priority, title, description, action))

        if header == "Content-Security-Policy":
            points = 20
            present = [d for d in CSP_ESSENTIAL_DIRECTIVES if d in v]
            points += 5 * len(present)
            absent = [d for d in CSP_ESSENTIAL_DIRECTIVES if d not in v]
            if absent:
                issues.append(f"CSP missing directives: {', '.join(absent)}")
            if "'unsafe-inline'" in v:
                points -= 5
                fix("medium", "Remove 'unsafe-inline' from CSP",
                    "The CSP allows inline scripts or styles, weakening XSS protection.",
                    "Replace 'unsafe-inline' with nonces or hashes.")
            if "'unsafe-eval'" in v:
                points -= 5
                fix("medium", "Remove 'unsafe-eval' from CSP",
                    "The CSP allows eval(), weakening XSS protection.",
                    "Refactor code that relies on eval() and drop 'unsafe-eval'.")
            return max(0, points), issues, fixes

        if header == "X-Frame-Options":
            if v == "deny":
                return 20, issues, fixes
            if v == "sameorigin":
                return 15, issues, fixes
            fix("medium", "Fix X-Frame-Options value",
                f"X-Frame-Options has an ineffective value: {value}.",
                "Set X-Frame-Options to DENY or SAMEORIGIN.")
            return 5, issues, fixes

        if header == "X-Content-Type-Options":
            if v == "nosniff":
                return 15, issues, fixes
            fix("medium", "Fix X-Content-Type-Options value",
                "X-Content-Type-Options is set but not to nosniff.",
                "Set X-Content-Type-Options: nosniff")
            return 5, issues, fixes

        if header == "Strict-Transport-Security":
            points = 15
            m = MAX_AGE_RE.search(v)
            if m:
                max_age = int(m.group(1))
                if max_age >= ONE_YEAR:
                    points += 5
                elif max_age >= ONE_DAY:
                    points += 3
                    fix("low", "Increase HSTS max-age",
                        f"HSTS max-age is {max_age} seconds, below one year.",
                        "Set max-age to at least 31536000.")
                else:
                    fix("medium", "Increase HSTS max-age",
                        f"HSTS max-age is only {max_age} seconds.",
                        "Set max-age to at least 31536000.")
            else:
                points -= 5
                fix("medium", "Add max-age to HSTS",
                    "The HSTS header has no max-age and is ignored by browsers.",
                    "Set Strict-Transport-Security: max-age=31536000; includeSubDomains")
            if "includesubdomains" in v:
                points += 3
            else:
                issues.append("HSTS does not cover subdomains")
            if "preload" in v:
                points += 2
            return max(0, points), issues, fixes

        if header == "X-XSS-Protection":
            if v.replace(" ", "") == "1;mode=block":
                return 10, issues, fixes
            if v == "1":
                return 8, issues, fixes
            issues.append("X-XSS-Protection is disabled or malformed")
            return 2, issues, fixes

        if header == "Referrer-Policy":
            if v in STRICT_REFERRER_POLICIES:
                return 10, issues, fixes
            fix("low", "Tighten Referrer-Policy",
                f"Referrer-Policy '{value}' may leak URLs to other origins.",
                "Use strict-origin-when-cross-origin or no-referrer.")
            return 5, issues, fixes

        if header == "Permissions-Policy":
            if v:
                return 10, issues, fixes
            issues.append("Permissions-Policy is empty")
            return 2, issues, fixes

        return 0, issues, fixes

    def _disclosure_recommendations(self, headers: Dict[str, str]) -> List[Recommendation]:
        recs: List[Recommendation] = []
        server = headers.get("server")
        if server and VERSION_RE.search(server):
            recs.append(Recommendation(
                CATEGORY, "low", "Hide server version",
                f"The Server header discloses software and version: {server}.",
                "Configure the web server to omit version details from the Server header.",
            ))
        powered_by = headers.get("x-powered-by")
        if powered_by:
            recs.append(Recommendation(
                CATEGORY, "low", "Remove X-Powered-By header",
                f"The X-Powered-By header reveals the application stack: {powered_by}.",
                "Disable the X-Powered-By header in the framework or proxy.",
            ))
        return recs

    @staticmethod
    def _status(score: int) -> str:
        if score >= 80:
            return "good"
        if score >= 50:
            return "fair"
        return "poor"

    # -------------------------------------------------------------------
    # Synthesis
    # -------------------------------------------------------------------

    def _synthesize(self, domain: str) -> Tuple[Dict[str, str], str]:
        stream = SeededStream.for_domain(domain)
        profile = self.classifier.classify(domain)
        if not profile:
            r = stream.float(40)
            profile = "hardened" if r > 0.75 else "typical" if r > 0.25 else "bare"

        headers: Dict[str, str] = {}
        if profile == "hardened":
            headers.update(HARDENED_HEADERS)
            if stream.chance(41, 0.5):
                headers["cross-origin-opener-policy"] = "same-origin"
            if stream.chance(42, 0.3):
                headers["cross-origin-resource-policy"] = "same-origin"
        elif profile == "typical":
            for i, (name, value, odds) in enumerate(TYPICAL_HEADERS):
                if stream.chance(50 + i, odds):
                    headers[name] = value
            headers["server"] = stream.pick(("nginx", "cloudflare") + LEAKY_SERVERS, 60)
        else:
            if stream.chance(70, 0.3):
                headers["x-content-type-options"] = "nosniff"
            headers["server"] = stream.pick(LEAKY_SERVERS, 71)
            if stream.chance(72, 0.6):
                headers["x-powered-by"] = stream.pick(LEAKY_POWERED_BY, 73)

        return headers, f"synthetic:{profile}"
