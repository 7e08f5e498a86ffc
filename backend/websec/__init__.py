# websec/__init__.py
"""
App factory.

    - CORS origins read from CORS_ORIGINS env var (localhost fallbacks in dev)
    - Scan engine settings read from SCAN_* env vars, overridable per app
    - Production-appropriate logging levels
    - JSON for every error; tracebacks only go to the server log
"""

from __future__ import annotations

import logging
import os
import re
import traceback
from typing import Any, Dict, Optional

from flask import Flask, jsonify
from flask_cors import CORS

from .analysis import analysis_bp
from .extensions import init_extensions
from .scans import scans_bp

error_logger = logging.getLogger("websec.errors")


def _is_production() -> bool:
    """Detect production by checking CORS_ORIGINS for https."""
    return os.getenv("CORS_ORIGINS", "").startswith("https://")


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _scan_config_from_env() -> Dict[str, Any]:
    return {
        "SCAN_STEP_DELAY": float(os.getenv("SCAN_STEP_DELAY", "1.0")),
        "SCAN_STEP_TIMEOUT": float(os.getenv("SCAN_STEP_TIMEOUT", "30")),
        "SCAN_LIVE_PROBES": _env_bool("SCAN_LIVE_PROBES"),
        "SCAN_PROBE_TIMEOUT": float(os.getenv("SCAN_PROBE_TIMEOUT", "10")),
    }


def create_app(config: Optional[Dict[str, Any]] = None) -> Flask:
    app = Flask(__name__)

    is_prod = _is_production()

    # ── Logging ──────────────────────────────────────────────────────
    if is_prod:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        app.logger.setLevel(logging.INFO)
    else:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)-7s [%(name)s] %(message)s",
            datefmt="%H:%M:%S",
        )
        app.logger.setLevel(logging.DEBUG)

    logging.getLogger("werkzeug").setLevel(logging.INFO)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    # ─────────────────────────────────────────────────────────────────

    # ── CORS ────────────────────────────────────────────────────────
    cors_env = os.getenv("CORS_ORIGINS")
    if cors_env:
        cors_origins = [o.strip() for o in cors_env.split(",") if o.strip()]
    else:
        cors_origins = [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            re.compile(r"http://192\.168\.\d+\.\d+:3000"),
        ]

    CORS(app, resources={
        r"/*": {
            "origins": cors_origins,
            "allow_headers": ["Content-Type"],
            "methods": ["GET", "POST", "OPTIONS"],
        }
    })

    # ── Scan engine ──────────────────────────────────────────────────
    app.config.update(_scan_config_from_env())
    if config:
        app.config.update(config)

    init_extensions(app)

    # ── Blueprints ───────────────────────────────────────────────────
    app.register_blueprint(scans_bp)
    app.register_blueprint(analysis_bp)

    # ── Global Error Handlers ────────────────────────────────────────

    @app.errorhandler(400)
    def bad_request(e):
        return jsonify({
            "error": "Bad request",
            "message": str(e.description) if hasattr(e, "description") else "The request was malformed or invalid.",
        }), 400

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({
            "error": "Not found",
            "message": "The requested resource was not found.",
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify({
            "error": "Method not allowed",
            "message": "This HTTP method is not allowed for this endpoint.",
        }), 405

    @app.errorhandler(500)
    def internal_error(e):
        error_logger.error(
            "500 Internal Server Error:\n%s", traceback.format_exc()
        )
        return jsonify({
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later.",
        }), 500

    @app.errorhandler(Exception)
    def catch_all(e):
        """Catch-all for any unhandled exception. Never leaks tracebacks."""
        error_logger.error(
            "Unhandled exception: %s\n%s", str(e), traceback.format_exc()
        )
        return jsonify({
            "error": "Internal server error",
            "message": "An unexpected error occurred. Please try again later.",
        }), 500

    # ─────────────────────────────────────────────────────────────────

    @app.get("/health")
    def health():
        return jsonify(status="up and running"), 200

    return app
