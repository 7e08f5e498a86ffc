# websec/analysis/__init__.py
"""
Single-dimension analysis endpoints. Run one analyzer synchronously and
return its result without creating a scan.

    GET /api/analysis/<dimension>/<target>
"""

from websec.analysis.routes import analysis_bp

__all__ = ["analysis_bp"]
