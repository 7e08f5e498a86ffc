"""
Tests for deterministic domain-keyed synthesis.
"""

import pytest

from websec.scanner.synth import SeededStream, domain_seed, next_float


def test_domain_seed_is_case_insensitive():
    assert domain_seed("Example.COM") == domain_seed("example.com")


def test_domain_seed_is_first_eight_md5_hex_digits():
    # md5("example.com") = 5ababd603b22780302dd8d83498e5172
    assert domain_seed("example.com") == int("5ababd60", 16)


def test_next_float_is_pure_and_in_range():
    for salt in range(50):
        value = next_float(12345, salt)
        assert 0.0 <= value < 1.0
        assert value == next_float(12345, salt)


def test_different_salts_give_different_draws():
    draws = {next_float(42, salt) for salt in range(20)}
    assert len(draws) == 20


def test_between_is_inclusive_and_bounded():
    stream = SeededStream(7)
    values = {stream.between(1, 3, salt) for salt in range(200)}
    assert values == {1, 2, 3}


def test_between_swaps_reversed_bounds():
    stream = SeededStream(7)
    assert 5 <= stream.between(9, 5, 1) <= 9


def test_pick_from_empty_raises():
    with pytest.raises(ValueError):
        SeededStream(1).pick([], 0)


def test_sample_keeps_original_order_and_size():
    options = ["a", "b", "c", "d", "e"]
    chosen = SeededStream(99).sample(options, 3, 5)
    assert len(chosen) == 3
    assert chosen == [o for o in options if o in chosen]


def test_for_domain_matches_seed():
    assert SeededStream.for_domain("example.com").seed == domain_seed("example.com")
