"""
Tests for target validation.
"""

import pytest

from websec.utils.validators import extract_domain, is_valid_domain, normalize_url, validate_url


@pytest.mark.parametrize("url", [
    "https://example.com",
    "http://sub.example.co.uk/path?q=1",
    "https://localhost:8443",
    "http://192.168.1.10/",
])
def test_valid_urls(url):
    assert validate_url(url) is True


@pytest.mark.parametrize("url", [
    "",
    "ftp://example.com",
    "https://",
    "https://exa mple.com",
    "https://example",
    "https://-bad-.com",
    "https://example.com:notaport",
    "https://" + "a" * 2050 + ".com",
])
def test_invalid_urls(url):
    assert validate_url(url) is False


def test_normalize_url():
    assert normalize_url("  example.com ") == "https://example.com"
    assert normalize_url("http://example.com") == "http://example.com"
    assert normalize_url("") == ""


def test_extract_domain():
    assert extract_domain("https://WWW.Example.com:443/path") == "www.example.com"
    assert extract_domain("https://") is None


def test_is_valid_domain():
    assert is_valid_domain("example.com")
    assert not is_valid_domain("example")
    assert not is_valid_domain("example.c0m")
    assert not is_valid_domain("https://example.com")
