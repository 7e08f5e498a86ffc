# websec/extensions.py
from __future__ import annotations

from flask import current_app

from websec.scanner.orchestrator import ScanOrchestrator
from websec.scanner.store import ScanStore


def init_extensions(app):
    """Create the scan store and orchestrator and hang them off the app."""
    store = ScanStore()
    orchestrator = ScanOrchestrator(
        store,
        step_delay=app.config["SCAN_STEP_DELAY"],
        step_timeout=app.config["SCAN_STEP_TIMEOUT"],
        live_probes=app.config["SCAN_LIVE_PROBES"],
        probe_timeout=app.config["SCAN_PROBE_TIMEOUT"],
    )
    app.extensions["scan_store"] = store
    app.extensions["scan_orchestrator"] = orchestrator


def get_store() -> ScanStore:
    return current_app.extensions["scan_store"]


def get_orchestrator() -> ScanOrchestrator:
    return current_app.extensions["scan_orchestrator"]
