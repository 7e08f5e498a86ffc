# websec/scanner/engines/http_engine.py
"""
HTTP probe.

Fetches the homepage of a domain and returns what the analyzers need:
status code, response headers, cookies, page title and a capped slice of the
body for signature matching.

Tries HTTPS first and falls back to plain HTTP. If neither answers, raises
ProbeError; the calling analyzer's base class turns that into a degraded
result.

Output structure:
    {
        "url": "https://example.com/",
        "scheme": "https",
        "status_code": 200,
        "headers": {"server": "nginx/1.21", ...},     # lower-cased keys
        "cookies": ["session", ...],
        "title": "Example Domain",
        "body": "<!doctype html>...",
        "http_to_https_redirect": true,
        "response_time_ms": 245,
    }
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Dict, List, Optional

import requests

from websec.scanner.base import ProbeError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10
HEADERS = {"User-Agent": "websec-scanner/1.0"}

# Title extraction regex
TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title>", re.IGNORECASE | re.DOTALL)

# Max response body kept for signature matching (64KB)
MAX_BODY_READ = 65536


def _extract_title(body: str) -> Optional[str]:
    m = TITLE_RE.search(body or "")
    if not m:
        return None
    return " ".join(m.group(1).split())[:200] or None


def _fetch(url: str, timeout: float) -> requests.Response:
    return requests.get(
        url,
        timeout=timeout,
        headers=HEADERS,
        allow_redirects=True,
    )


def probe_homepage(domain: str, timeout: float = DEFAULT_TIMEOUT) -> Dict[str, Any]:
    """
    Fetch https://<domain>/ (then http://) and return response metadata.

    Raises ProbeError when neither scheme responds.
    """
    errors: List[str] = []

    for scheme in ("https", "http"):
        url = f"{scheme}://{domain}/"
        start = time.monotonic()
        try:
            r = _fetch(url, timeout)
        except requests.RequestException as e:
            logger.debug(f"HTTP probe {url} failed: {e}")
            errors.append(f"{scheme}: {type(e).__name__}")
            continue

        elapsed = int((time.monotonic() - start) * 1000)
        body = (r.text or "")[:MAX_BODY_READ]

        return {
            "url": r.url,
            "scheme": scheme,
            "status_code": r.status_code,
            "headers": {k.lower(): v for k, v in r.headers.items()},
            "cookies": [c.name for c in r.cookies],
            "title": _extract_title(body),
            "body": body,
            "http_to_https_redirect": scheme == "http" and r.url.startswith("https://"),
            "response_time_ms": elapsed,
        }

    raise ProbeError(f"No HTTP response from {domain} ({'; '.join(errors)})")
