# websec/scanner/__init__.py
"""
websec scan engine

Usage:
    from websec.scanner import ScanOrchestrator, ScanStore

    store = ScanStore()
    orchestrator = ScanOrchestrator(store)
    record = store.create("https://example.com", "example.com")
    orchestrator.start_scan(record.id, record.url)

Architecture:
    Orchestrator (weighted, sequential pipeline)
    ├── Analyzers (one per dimension, pipeline order)
    │   ├── SSLAnalyzer       : synthesized TLS config, grade A+…F
    │   ├── HeaderAnalyzer    : security response headers (live or synthetic)
    │   ├── TechDetector      : technology fingerprinting (live or synthetic)
    │   ├── MalwareAnalyzer   : URL reputation across a vendor panel
    │   ├── PortRiskAnalyzer  : open-port exposure by archetype
    │   └── WhoisAnalyzer     : registration age, expiry, status
    │
    ├── Risk aggregation    : utils/scoring.py
    └── Recommendations     : scanner/recommendations.py
"""

from websec.scanner.orchestrator import ScanOrchestrator
from websec.scanner.store import ScanStore

__all__ = ["ScanOrchestrator", "ScanStore"]
