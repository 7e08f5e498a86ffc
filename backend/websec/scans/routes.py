# =============================================================================
# File: websec/scans/routes.py
# Description: Scan routes. Start a scan, poll its status, read results,
#   list recent scans.
#   Scans run on a background thread owned by the orchestrator; these
#   handlers only create records and read snapshots from the store.
#
#   Risk level, summary and the deduplicated recommendation list are
#   recomputed at read time from stored results.
# =============================================================================

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request

from websec.extensions import get_orchestrator, get_store
from websec.scanner.recommendations import compile_recommendations
from websec.utils.scoring import (
    compute_risk_level,
    compute_summary,
    risk_label_and_color,
    score_breakdown,
)
from websec.utils.validators import extract_domain, normalize_url, validate_url

logger = logging.getLogger(__name__)

scans_bp = Blueprint("scans", __name__, url_prefix="/api/scan")

RECENT_LIMIT = 10
ESTIMATED_TIME = "30-60 seconds"


def _not_found():
    return jsonify(
        error="Scan not found",
        message="The specified scan ID does not exist",
    ), 404


@scans_bp.post("")
def start_scan():
    body = request.get_json(silent=True) or {}
    raw = body.get("url")
    url = normalize_url(raw) if isinstance(raw, str) else None

    if not url or not validate_url(url):
        return jsonify(
            error="Invalid URL",
            message="Please provide a valid URL (e.g., https://example.com)",
        ), 400

    store = get_store()
    record = store.create(url, extract_domain(url))
    get_orchestrator().start_scan(record.id, url)

    return jsonify(
        message="Security scan started successfully",
        scanId=record.id,
        status=record.status,
        estimatedTime=ESTIMATED_TIME,
    ), 201


@scans_bp.get("/<scan_id>")
def get_scan(scan_id: str):
    record = get_store().get(scan_id)
    if record is None:
        return _not_found()

    level = compute_risk_level(record.results)
    label, color = risk_label_and_color(level)

    out = record.to_dict()
    out["scanId"] = out.pop("id")
    out["riskLevel"] = level
    out["riskLabel"] = label
    out["riskColor"] = color
    out["summary"] = compute_summary(record.results)
    out["breakdown"] = score_breakdown(record.results)
    out["recommendations"] = [
        r.to_dict() for r in compile_recommendations(record.results, dedupe=True)
    ]
    return jsonify(out), 200


@scans_bp.get("/<scan_id>/status")
def get_scan_status(scan_id: str):
    record = get_store().get(scan_id)
    if record is None:
        return _not_found()

    data = record.to_dict()
    return jsonify(
        scanId=record.id,
        status=record.status,
        progress=record.progress,
        startTime=data["startTime"],
        endTime=data["endTime"],
    ), 200


@scans_bp.get("")
def list_scans():
    store = get_store()
    scans = []
    for record in store.list_recent(RECENT_LIMIT):
        data = record.to_dict()
        scans.append({
            "id": record.id,
            "url": record.url,
            "status": record.status,
            "progress": record.progress,
            "startTime": data["startTime"],
            "endTime": data["endTime"],
            "riskLevel": compute_risk_level(record.results),
            "summary": compute_summary(record.results),
        })
    return jsonify(scans=scans, total=len(store)), 200
