# websec/scans/__init__.py
"""
Scan lifecycle endpoints.

    POST /api/scan                 start a scan
    GET  /api/scan                 10 most recent scans
    GET  /api/scan/<id>            full record, risk level, summary
    GET  /api/scan/<id>/status     status and progress only
"""

from websec.scans.routes import scans_bp

__all__ = ["scans_bp"]
