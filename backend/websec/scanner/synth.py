# websec/scanner/synth.py
"""
Deterministic pseudo-random synthesis keyed by domain.

Analyzers that cannot (or are told not to) probe a target live derive their
data from a seed computed off the domain name. Every draw is addressed by a
salt, so the same (domain, salt) pair always yields the same value and two
scans of one domain produce identical results.
"""

from __future__ import annotations

import hashlib
from typing import List, Sequence, TypeVar

T = TypeVar("T")

_FLOAT_BITS = 53


def domain_seed(domain: str) -> int:
    """First 8 hex digits of md5(lower-cased domain), as an int."""
    normalized = (domain or "").strip().lower()
    return int(hashlib.md5(normalized.encode("utf-8")).hexdigest()[:8], 16)


def next_float(seed: int, salt: int) -> float:
    """Pure function of (seed, salt) returning a float in [0, 1)."""
    digest = hashlib.sha256(f"{seed}:{salt}".encode("ascii")).digest()
    bits = int.from_bytes(digest[:8], "big") >> (64 - _FLOAT_BITS)
    return bits / float(1 << _FLOAT_BITS)


class SeededStream:
    """
    Convenience wrapper around next_float() bound to one seed.

    Holds no mutable state: every helper takes the salt explicitly.
    """

    __slots__ = ("seed",)

    def __init__(self, seed: int):
        self.seed = seed

    @classmethod
    def for_domain(cls, domain: str) -> "SeededStream":
        return cls(domain_seed(domain))

    def float(self, salt: int) -> float:
        return next_float(self.seed, salt)

    def chance(self, salt: int, probability: float) -> bool:
        return self.float(salt) < probability

    def between(self, low: int, high: int, salt: int) -> int:
        """Inclusive integer in [low, high]."""
        if high < low:
            low, high = high, low
        return low + int(self.float(salt) * (high - low + 1))

    def pick(self, options: Sequence[T], salt: int) -> T:
        if not options:
            raise ValueError("cannot pick from an empty sequence")
        return options[int(self.float(salt) * len(options))]

    def sample(self, options: Sequence[T], k: int, salt: int) -> List[T]:
        """Up to k distinct items, in their original order."""
        ranked = sorted(
            range(len(options)),
            key=lambda i: next_float(self.seed, salt * 1000 + i),
        )
        chosen = sorted(ranked[:max(0, k)])
        return [options[i] for i in chosen]

    def __repr__(self) -> str:
        return f"SeededStream(seed={self.seed})"
