from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from livepage.core import gradients
from livepage.core.inspector import PRESETS, PropertyInspector, page_background
from livepage.core.models import EditableProperty, GeneratedDocument, ValueKind
from livepage.core.render import render_document
from livepage.core.selection import SelectionController
from livepage.core.styles import get_inline_style

E = EditableProperty


def _open(surface, ledger, node, interactions=None):
    selection = SelectionController(surface)
    callback = (lambda: interactions.append(1)) if interactions is not None else None
    inspector = PropertyInspector(surface, ledger, callback)
    snapshot = inspector.open(selection.select(node))
    return inspector, snapshot


def test_open_samples_fixed_property_set(surface, ledger) -> None:
    _, snapshot = _open(surface, ledger, surface.root.find("p"))
    for prop in (E.COLOR, E.BACKGROUND_COLOR, E.FONT_SIZE, E.FONT_WEIGHT, E.FONT_FAMILY,
                 E.PADDING_TOP, E.PADDING_RIGHT, E.PADDING_BOTTOM, E.PADDING_LEFT,
                 E.MARGIN_TOP, E.MARGIN_RIGHT, E.MARGIN_BOTTOM, E.MARGIN_LEFT,
                 E.BORDER_RADIUS, E.BORDER, E.WIDTH, E.HEIGHT):
        assert prop in snapshot.values
    assert snapshot.get(E.COLOR).text == "#cbd5e1"
    assert snapshot.get(E.COLOR).kind is ValueKind.COLOR
    assert snapshot.get(E.PADDING_RIGHT).text == "8px"
    assert snapshot.get(E.TEXT_CONTENT).text == "Intro text"


def test_container_has_no_text_content(surface, ledger) -> None:
    _, snapshot = _open(surface, ledger, surface.root.find("section"))
    assert not snapshot.has_text


def test_gradient_text_is_sampled_as_descriptor(surface, ledger) -> None:
    _, snapshot = _open(surface, ledger, surface.root.find("h1"))
    value = snapshot.get(E.COLOR)
    assert value.kind is ValueKind.GRADIENT
    assert snapshot.gradient.colors == ["rgb(102,126,234)", "rgb(118,75,162)"]
    assert '"type": "gradient"' in value.text


def test_unreadable_gradient_falls_back_to_solid_color(ledger) -> None:
    code = (
        "<html><body><h2 style=\"color: transparent; background: linear-gradient(red, blue); "
        "background-clip: text\">Title</h2></body></html>"
    )
    surface = render_document(GeneratedDocument(code=code)).surface
    _, snapshot = _open(surface, ledger, surface.root.find("h2"))
    assert snapshot.gradient.colors == [gradients.FALLBACK_COLOR]


def test_edit_gradient_color_records_single_background_edit(surface, ledger) -> None:
    inspector, _ = _open(surface, ledger, surface.root.find("h1"))
    edit = inspector.set_gradient_color(1, "#ffffff")
    assert (edit.selector, edit.property) == (".hero-title", "background")
    assert edit.value == "linear-gradient(135deg, rgb(102,126,234) 0%, #ffffff 100%)"
    assert len(ledger) == 1
    h1 = surface.root.find("h1")
    assert get_inline_style(h1, "background") == edit.value
    assert get_inline_style(h1, "-webkit-text-fill-color") == "transparent"
    assert inspector.snapshot.gradient.colors[1] == "#ffffff"


def test_add_and_remove_gradient_colors(surface, ledger) -> None:
    inspector, _ = _open(surface, ledger, surface.root.find("h1"))
    inspector.add_gradient_color()
    assert inspector.snapshot.gradient.colors[-1] == "#ffffff"
    inspector.remove_gradient_color(0)
    inspector.remove_gradient_color(0)
    inspector.remove_gradient_color(0)
    assert inspector.snapshot.gradient.colors == ["#ffffff"]
    edit = inspector.set_gradient_direction("90deg")
    assert edit.value == "linear-gradient(90deg, #ffffff 0%)"


def test_gradient_ops_need_a_gradient(surface, ledger) -> None:
    inspector, _ = _open(surface, ledger, surface.root.find("p"))
    with pytest.raises(ValueError):
        inspector.set_gradient_color(0, "#000000")


def test_set_property_mutates_then_records(surface, ledger) -> None:
    interactions: list = []
    inspector, _ = _open(surface, ledger, surface.root.find("button"), interactions)
    edit = inspector.set_property(E.BORDER_RADIUS, "12px")
    assert get_inline_style(surface.root.find("button"), "border-radius") == "12px"
    assert (edit.selector, edit.property, edit.value) == ("#cta", "border-radius", "12px")
    assert inspector.snapshot.get(E.BORDER_RADIUS).text == "12px"
    assert interactions == [1]


def test_set_text_content_through_inspector(surface, ledger) -> None:
    inspector, _ = _open(surface, ledger, surface.root.find("p"))
    inspector.set_property("textContent", "Changed")
    assert surface.root.find("p").get_text() == "Changed"
    assert ledger.get("p:nth-of-type(1)", "textContent").value == "Changed"


def test_page_level_nodes_get_page_background(surface, ledger) -> None:
    _, snapshot = _open(surface, ledger, surface.root.find("h1"))
    assert snapshot.is_page_level
    assert snapshot.get(E.PAGE_BACKGROUND).text == "#0f172a"


def test_page_background_defaults_when_everything_is_transparent(ledger) -> None:
    surface = render_document(GeneratedDocument(code="<html><body><main><p>Copy</p></main></body></html>")).surface
    assert page_background(surface, surface.root.find("p")) == "#1a1a2e"


def test_non_page_level_nodes_have_no_page_background(surface, ledger) -> None:
    _, snapshot = _open(surface, ledger, surface.root.find("span"))
    assert not snapshot.is_page_level


def test_page_background_edit_hits_root_and_node(surface, ledger) -> None:
    inspector, _ = _open(surface, ledger, surface.root.find("section"))
    inspector.set_property(E.PAGE_BACKGROUND, "#123123")
    assert get_inline_style(surface.root, "background") == "#123123"
    assert get_inline_style(surface.root.find("section"), "background-color") == "#123123"
    assert ledger.get(".hero", "pageBackground") is not None


def test_glass_preset_expands_to_ordinary_edits(surface, ledger) -> None:
    inspector, _ = _open(surface, ledger, surface.root.find("div", class_="features"))
    edits = inspector.apply_preset("glass")
    assert [e.property for e in edits] == [prop for prop, _ in PRESETS["glass"]]
    assert all(e.selector == ".features" for e in edits)
    assert ledger.get(".features", "backdrop-filter").value == "blur(10px)"
    assert inspector.snapshot.get(E.BORDER_RADIUS).text == "16px"


def test_corner_and_shadow_presets(surface, ledger) -> None:
    inspector, _ = _open(surface, ledger, surface.root.find("button"))
    inspector.apply_preset("circle")
    inspector.apply_preset("shadow-lg")
    assert ledger.get("#cta", "border-radius").value == "50%"
    assert ledger.get("#cta", "box-shadow").value == "0 25px 50px -12px rgba(0, 0, 0, 0.25)"
    with pytest.raises(KeyError):
        inspector.apply_preset("sparkles")


def test_close_returns_to_closed_state(surface, ledger) -> None:
    inspector, _ = _open(surface, ledger, surface.root.find("p"))
    assert inspector.is_open
    inspector.close()
    assert not inspector.is_open
    assert inspector.snapshot is None


def test_leaf_nested_in_plain_top_level_div_has_no_page_background(ledger) -> None:
    code = (
        "<html><body><div class=\"features\"><div class=\"card\"><ul><li>"
        "<span>Deep leaf</span></li></ul></div></div></body></html>"
    )
    surface = render_document(GeneratedDocument(code=code)).surface
    _, snapshot = _open(surface, ledger, surface.root.find("span"))
    assert E.PAGE_BACKGROUND not in snapshot.values

    _, snapshot = _open(surface, ledger, surface.root.find("div", class_="features"))
    assert E.PAGE_BACKGROUND in snapshot.values
