from __future__ import annotations

import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from livepage.core.models import GeneratedDocument
from livepage.core.render import (
    APPLYING_ATTR,
    SURFACE_ATTR,
    is_fragment_text,
    is_page_level,
    qualifies_page_level,
    render_document,
)


def _render(body: str, head: str = ""):
    html = f"<html><head>{head}</head><body>{body}</body></html>"
    return render_document(GeneratedDocument(code=html))


def test_fragment_heuristic_removes_leaked_markup_and_keeps_emoji() -> None:
    assert is_fragment_text("...html")
    assert is_fragment_text("   ")
    assert is_fragment_text("</div>")
    assert is_fragment_text("&lt;section&gt;")
    assert not is_fragment_text("\U0001F680")
    assert not is_fragment_text("Welcome to our bakery")


def test_render_strips_fragments_but_preserves_pictographs() -> None:
    result = _render("<div><p>...html</p><p>\U0001F680</p><p>Real copy</p></div>")
    paragraphs = result.surface.root.find_all("p")
    assert [p.get_text() for p in paragraphs] == ["", "\U0001F680", "Real copy"]
    assert result.removed_fragments >= 1


def test_render_without_body_reports_warning_and_empty_surface() -> None:
    result = render_document(GeneratedDocument(code="just some words"))
    assert result.warnings
    assert result.surface.root.contents == []
    assert result.surface.root.has_attr(SURFACE_ATTR)


def test_render_scopes_document_selectors_and_adds_reset() -> None:
    result = _render("<main>Hi there</main>", "<style>html, body { background: #000; }</style>")
    stylesheet = result.surface.stylesheet
    assert "body" not in stylesheet
    assert f"[{SURFACE_ATTR}] {{ background: #000; }}" in stylesheet
    assert "box-sizing: border-box" in stylesheet


def test_render_sanitizes_scripts_and_handlers() -> None:
    result = _render(
        '<div onclick="steal()"><script>alert(1)</script>'
        '<a href="javascript:alert(1)">Link text here</a><iframe src="x"></iframe></div>'
    )
    root = result.surface.root
    assert root.find("script") is None
    assert root.find("iframe") is None
    assert not root.div.has_attr("onclick")
    assert not root.a.has_attr("href")


def test_render_collects_body_styles_and_stylesheet_links() -> None:
    result = _render(
        "<style>.x { color: red }</style><p class='x'>Styled text</p>",
        '<link rel="stylesheet" href="https://fonts.googleapis.com/css2?family=Inter">',
    )
    assert ".x { color: red }" in result.surface.stylesheet
    assert result.surface.root.find("style") is None
    assert "fonts.googleapis.com" in result.surface.head_links[0]


def test_render_replaces_placeholder_images() -> None:
    result = _render('<img src="https://via.placeholder.com/300x200" width="300" height="200"><img src="">')
    first, second = result.surface.root.find_all("img")
    assert first["src"] == "https://picsum.photos/300/200?random=1"
    assert second["src"] == "https://picsum.photos/400/300?random=2"


def test_applying_flag_is_scoped_to_context(surface) -> None:
    with surface.applying():
        assert surface.root.has_attr(APPLYING_ATTR)
        with surface.applying():
            assert surface.is_applying
        assert surface.is_applying
    assert not surface.is_applying


def test_node_ids_round_trip(surface) -> None:
    surface.assign_node_ids()
    h1 = surface.root.find("h1")
    assert surface.node_by_id(h1["data-lp-node"]) is h1
    assert surface.node_by_id(9999) is None


def test_page_level_roles(surface) -> None:
    root = surface.root
    assert is_page_level(root.find("section"), root)
    assert is_page_level(root.find("div", class_="features"), root)
    assert not is_page_level(root.find("span"), root)


def test_page_role_ancestors_qualify_but_plain_wrappers_do_not(surface) -> None:
    root = surface.root
    assert qualifies_page_level(root.find("h1"), root)
    assert qualifies_page_level(root.find("div", class_="features"), root)
    assert not qualifies_page_level(root.find("div", class_="features").find("p"), root)
    assert not qualifies_page_level(root, root)
