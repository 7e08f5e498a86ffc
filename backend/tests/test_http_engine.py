"""
Tests for the HTTP probe, with the network call stubbed out.
"""

from types import SimpleNamespace

import pytest
import requests

from websec.scanner.base import ProbeError
from websec.scanner.engines import http_engine


def _response(url, headers=None, text="", cookies=()):
    return SimpleNamespace(
        url=url,
        status_code=200,
        headers=headers or {},
        text=text,
        cookies=[SimpleNamespace(name=c) for c in cookies],
    )


def test_https_response(monkeypatch):
    def fake_fetch(url, timeout):
        return _response(
            url,
            headers={"Server": "nginx", "X-Frame-Options": "DENY"},
            text="<html><head><title>  Example\n Domain </title></head></html>",
            cookies=["session"],
        )

    monkeypatch.setattr(http_engine, "_fetch", fake_fetch)
    out = http_engine.probe_homepage("example.com")

    assert out["scheme"] == "https"
    assert out["url"] == "https://example.com/"
    assert out["headers"] == {"server": "nginx", "x-frame-options": "DENY"}
    assert out["title"] == "Example Domain"
    assert out["cookies"] == ["session"]
    assert out["http_to_https_redirect"] is False


def test_falls_back_to_http(monkeypatch):
    tried = []

    def fake_fetch(url, timeout):
        tried.append(url)
        if url.startswith("https://"):
            raise requests.ConnectionError("refused")
        return _response("https://example.com/")

    monkeypatch.setattr(http_engine, "_fetch", fake_fetch)
    out = http_engine.probe_homepage("example.com", timeout=2)

    assert tried == ["https://example.com/", "http://example.com/"]
    assert out["scheme"] == "http"
    assert out["http_to_https_redirect"] is True


def test_body_is_capped(monkeypatch):
    monkeypatch.setattr(
        http_engine, "_fetch",
        lambda url, timeout: _response(url, text="x" * (http_engine.MAX_BODY_READ + 100)),
    )
    assert len(http_engine.probe_homepage("example.com")["body"]) == http_engine.MAX_BODY_READ


def test_no_response_raises(monkeypatch):
    def fake_fetch(url, timeout):
        raise requests.Timeout("slow")

    monkeypatch.setattr(http_engine, "_fetch", fake_fetch)
    with pytest.raises(ProbeError):
        http_engine.probe_homepage("example.com")
