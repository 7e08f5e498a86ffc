# websec/scanner/engines/__init__.py
"""
Live data collection. Only used when live probing is enabled.
"""
from websec.scanner.engines.http_engine import probe_homepage

__all__ = ["probe_homepage"]
