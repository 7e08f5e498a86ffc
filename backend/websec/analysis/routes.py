# =============================================================================
# File: websec/analysis/routes.py
# Description: On-demand single-dimension analysis.
#   These are NOT scans. They don't create records or persist anything.
#   They run one analyzer synchronously and return its result immediately.
#
#   The malware dimension takes a URL; a bare domain is checked as
#   https://<domain>/.
#
#   /overview/<target> is a quick look at SSL, headers and tech together.
# =============================================================================

from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify

from websec.scanner.analyzers import ALL_ANALYZERS
from websec.scanner.base import BaseAnalyzer, Dimension, now_utc
from websec.utils.validators import is_valid_domain

logger = logging.getLogger(__name__)

analysis_bp = Blueprint("analysis", __name__, url_prefix="/api/analysis")

OVERVIEW_DIMENSIONS = (Dimension.SSL, Dimension.HEADERS, Dimension.TECH)


def _normalize_domain(d: str) -> str:
    d = (d or "").strip().lower()
    if d.startswith("http://") or d.startswith("https://"):
        d = d.split("://", 1)[1]
    d = d.split("/", 1)[0].split("?", 1)[0].split(":", 1)[0]
    return d.strip().strip(".")


def _invalid_domain():
    return jsonify(
        error="Invalid domain",
        message="Please provide a valid domain (e.g., example.com)",
    ), 400


def _build(dim: Dimension) -> BaseAnalyzer:
    return ALL_ANALYZERS[dim](
        live=current_app.config["SCAN_LIVE_PROBES"],
        timeout=current_app.config["SCAN_PROBE_TIMEOUT"],
    )


# Must stay above the <dimension> rule.
@analysis_bp.get("/overview/<path:target>")
def overview(target: str):
    domain = _normalize_domain(target)
    if not is_valid_domain(domain):
        return _invalid_domain()

    logger.info(f"Quick overview for {domain}")
    ssl, headers, tech = (_build(dim).run(domain) for dim in OVERVIEW_DIMENSIONS)

    return jsonify(
        domain=domain,
        timestamp=now_utc().isoformat(),
        ssl=ssl.to_dict(),
        headers=headers.to_dict(),
        tech=tech.to_dict(),
        summary={
            "sslGrade": "Unknown" if ssl.failed else ssl.status,
            "headerScore": 0 if headers.failed else headers.score,
            "technologies": 0 if tech.failed else len(tech.details.get("technologies", [])),
        },
    ), 200


@analysis_bp.get("/<dimension>/<path:target>")
def analyze_dimension(dimension: str, target: str):
    try:
        dim = Dimension(dimension.lower())
    except ValueError:
        return jsonify(
            error="Unknown dimension",
            message=f"Dimension must be one of: {', '.join(d.value for d in Dimension)}",
        ), 400

    domain = _normalize_domain(target)
    if not is_valid_domain(domain):
        return _invalid_domain()

    analyzer = _build(dim)
    subject = f"https://{domain}/" if analyzer.target_kind == "url" else domain

    logger.info(f"On-demand {dim.value} analysis for {domain}")
    result = analyzer.run(subject)

    return jsonify(
        domain=domain,
        dimension=dim.value,
        timestamp=now_utc().isoformat(),
        **result.to_dict(),
    ), 200
