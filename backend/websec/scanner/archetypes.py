# websec/scanner/archetypes.py
"""
Domain-name archetype classification.

Several analyzers bias their synthetic output on hints in the domain name
("bank" looks well run, "staging" looks like a dev box). Those hints are
heuristics, not facts, so they live in swappable classifier objects: each
analyzer ships a default and accepts a replacement in its constructor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Tuple


@dataclass(frozen=True)
class ArchetypeRule:
    """Label a domain `name` when it contains any of `keywords`."""
    name: str
    keywords: Tuple[str, ...]

    def matches(self, domain: str) -> bool:
        return any(k in domain for k in self.keywords)


class ArchetypeClassifier:
    """
    Ordered substring rules. The first matching rule wins; `default` is
    returned when nothing matches (None lets the caller fall back to the
    seeded stream).
    """

    def __init__(self, rules: Iterable[ArchetypeRule], default: Optional[str] = None):
        self.rules = tuple(rules)
        self.default = default

    def classify(self, domain: str) -> Optional[str]:
        d = (domain or "").strip().lower()
        for rule in self.rules:
            if rule.matches(d):
                return rule.name
        return self.default

    @classmethod
    def from_mapping(cls, mapping, default: Optional[str] = None) -> "ArchetypeClassifier":
        """Build from {label: [keywords]}; mapping order is rule order."""
        return cls(
            [ArchetypeRule(name, tuple(words)) for name, words in mapping.items()],
            default=default,
        )


class FixedClassifier(ArchetypeClassifier):
    """Always returns the same label. Handy for tests and forced profiles."""

    def __init__(self, label: Optional[str]):
        super().__init__([], default=label)
