from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from livepage.core.generator import render_preview
from livepage.core.models import GeneratedDocument
from livepage.core.render import render_document
from livepage.core.viewport import DeviceClass, ViewportEmulator


def test_device_widths() -> None:
    assert DeviceClass.WIDE.width is None
    assert DeviceClass.MEDIUM.width == 768
    assert DeviceClass.NARROW.width == 390


def test_set_device_notifies_only_on_change() -> None:
    seen: list = []
    viewport = ViewportEmulator(on_change=seen.append)
    viewport.set_device("medium")
    viewport.set_device(DeviceClass.MEDIUM)
    assert seen == [DeviceClass.MEDIUM]
    assert "width: 768px" in viewport.frame_style()


def test_unknown_device_is_rejected() -> None:
    with pytest.raises(ValueError):
        ViewportEmulator().set_device("watch")


def test_preview_shell_embeds_surface_and_frame(surface) -> None:
    html = render_preview(surface, ViewportEmulator(DeviceClass.NARROW))
    assert 'data-lp-surface="true"' in html
    assert "width: 390px" in html
    assert "[data-lp-surface]" in html
    assert "qwebchannel.js" in html
    assert "<h1" in html


def test_preview_shell_escapes_title() -> None:
    surface = render_document(GeneratedDocument(code="<html><body><p>Hi there</p></body></html>",
                                                prompt="Cafe <b>bold</b>")).surface
    html = render_preview(surface)
    assert "<title>Cafe &lt;b&gt;bold&lt;/b&gt;</title>" in html
