from __future__ import annotations

import sys
from pathlib import Path

import pytest
import requests

sys.path.append(str(Path(__file__).resolve().parents[1]))

from livepage.core import client as client_module
from livepage.core.client import GenerationClient, strip_fences
from livepage.core.errors import GenerationError


class FakeResponse:
    def __init__(self, status_code: int, payload) -> None:
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


def _patch(monkeypatch, response=None, exc=None) -> list:
    calls: list = []

    def fake_post(url, json=None, timeout=None):
        calls.append((url, json, timeout))
        if exc is not None:
            raise exc
        return response

    monkeypatch.setattr(client_module.requests, "post", fake_post)
    return calls


def test_generate_posts_prompt_and_model(monkeypatch) -> None:
    calls = _patch(monkeypatch, FakeResponse(200, {"success": True, "code": "<html></html>", "prompt": "cafe"}))
    result = GenerationClient("http://api.test/generate", "model-a", 5).generate("cafe")
    assert calls == [("http://api.test/generate", {"prompt": "cafe", "model": "model-a"}, 5)]
    assert result.code == "<html></html>"
    assert result.document.prompt == "cafe"


def test_generate_strips_leftover_fences(monkeypatch) -> None:
    _patch(monkeypatch, FakeResponse(200, {"success": True, "code": "```html\n<html><body>x</body></html>\n```"}))
    result = GenerationClient().generate("page", model="other")
    assert result.code == "<html><body>x</body></html>"
    assert result.model == "other"


def test_error_payload_raises_with_details(monkeypatch) -> None:
    _patch(monkeypatch, FakeResponse(500, {"error": "Failed to generate code", "details": "rate limited"}))
    with pytest.raises(GenerationError) as info:
        GenerationClient().generate("page")
    assert info.value.message == "Failed to generate code"
    assert info.value.details == "rate limited"


def test_non_json_error_response(monkeypatch) -> None:
    _patch(monkeypatch, FakeResponse(502, ValueError("no json")))
    with pytest.raises(GenerationError, match="502"):
        GenerationClient().generate("page")


def test_transport_failure_becomes_generation_error(monkeypatch) -> None:
    _patch(monkeypatch, exc=requests.ConnectionError("refused"))
    with pytest.raises(GenerationError):
        GenerationClient().generate("page")


def test_empty_prompt_is_rejected_before_request(monkeypatch) -> None:
    calls = _patch(monkeypatch, FakeResponse(200, {}))
    with pytest.raises(GenerationError, match="Prompt is required"):
        GenerationClient().generate("   ")
    assert calls == []


def test_strip_fences_passthrough() -> None:
    assert strip_fences("  <html></html> ") == "<html></html>"
