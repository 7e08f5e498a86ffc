# websec/scanner/analyzers/__init__.py
"""
Dimension analyzers.
Each analyzer produces one AnalysisResult for one dimension, from a live
probe or from deterministic synthesis.
"""
from websec.scanner.base import Dimension
from websec.scanner.analyzers.ssl_analyzer import SSLAnalyzer
from websec.scanner.analyzers.header_analyzer import HeaderAnalyzer
from websec.scanner.analyzers.tech_detector import TechDetector
from websec.scanner.analyzers.malware_analyzer import MalwareAnalyzer
from websec.scanner.analyzers.port_risk import PortRiskAnalyzer
from websec.scanner.analyzers.whois_analyzer import WhoisAnalyzer

# Closed registry: one analyzer class per dimension.
# ORDER MATTERS: this is the pipeline order, and must match DIMENSION_WEIGHTS.
ALL_ANALYZERS = {
    Dimension.SSL: SSLAnalyzer,
    Dimension.HEADERS: HeaderAnalyzer,
    Dimension.TECH: TechDetector,
    Dimension.MALWARE: MalwareAnalyzer,
    Dimension.PORTS: PortRiskAnalyzer,
    Dimension.WHOIS: WhoisAnalyzer,
}


def build_analyzers(live: bool = False, timeout: float = 10, **overrides):
    """
    Instantiate one analyzer per dimension.

    `overrides` maps a dimension value ("ssl", ...) to a ready analyzer
    instance that replaces the default.
    """
    out = {}
    for dim, cls in ALL_ANALYZERS.items():
        out[dim] = overrides.get(dim.value) or cls(live=live, timeout=timeout)
    return out


__all__ = [
    "SSLAnalyzer", "HeaderAnalyzer", "TechDetector",
    "MalwareAnalyzer", "PortRiskAnalyzer", "WhoisAnalyzer",
    "ALL_ANALYZERS", "build_analyzers",
]
