# File: websec/utils/validators.py
# =============================================================================
# Target validation
# =============================================================================
# Input checks for the HTTP layer. Malformed targets are rejected here,
# before any ScanRecord exists.
# =============================================================================

from __future__ import annotations

import ipaddress
import re
from typing import Optional
from urllib.parse import urlparse

ALLOWED_SCHEMES = ("http", "https")
MAX_URL_LENGTH = 2048


def is_valid_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
        return True
    except ValueError:
        return False


def is_valid_domain(value: str) -> bool:
    v = (value or "").strip().lower()
    if len(v) < 1 or len(v) > 253:
        return False
    if "://" in v or "/" in v:
        return False
    if "." not in v:
        return False
    labels = v.split(".")
    for label in labels:
        if not label or len(label) > 63:
            return False
        if label.startswith("-") or label.endswith("-"):
            return False
        if not re.fullmatch(r"[a-z0-9-]+", label):
            return False
    if not re.fullmatch(r"[a-z]{2,63}", labels[-1]):
        return False
    return True


def normalize_url(value: str) -> str:
    """Trim and default the scheme to https."""
    v = (value or "").strip()
    if v and "://" not in v:
        v = f"https://{v}"
    return v


def extract_domain(url: str) -> Optional[str]:
    """Lower-cased host of a URL, or None if it has none."""
    try:
        host = urlparse(url).hostname
    except ValueError:
        return None
    return host.lower().rstrip(".") if host else None


def validate_url(url: str) -> bool:
    """http(s) URL whose host is a well-formed domain, an IP, or localhost."""
    if not url or not isinstance(url, str) or len(url) > MAX_URL_LENGTH:
        return False
    try:
        parsed = urlparse(url)
        parsed.port  # raises on a malformed port
    except ValueError:
        return False
    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        return False
    host = extract_domain(url)
    if not host:
        return False
    return host == "localhost" or is_valid_ip(host) or is_valid_domain(host)
