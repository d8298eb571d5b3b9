from __future__ import annotations

import sys
from pathlib import Path

from bs4 import BeautifulSoup

sys.path.append(str(Path(__file__).resolve().parents[1]))

from livepage.core.styles import (
    StyleResolver,
    get_inline_style,
    parse_declarations,
    remove_inline_style,
    rewrite_selector,
    scope_stylesheet,
    set_inline_style,
)

SCOPE = "[data-lp-surface]"


def test_parse_declarations_handles_important_and_nested_semicolons() -> None:
    decls = parse_declarations("color: red !important; background: url('a;b.png') no-repeat")
    assert decls["color"].value == "red"
    assert decls["color"].important
    assert decls["background"].value == "url('a;b.png') no-repeat"


def test_set_inline_style_replaces_existing_value() -> None:
    soup = BeautifulSoup('<p style="color: red; margin: 0">x</p>', "html.parser")
    set_inline_style(soup.p, "color", "blue")
    assert get_inline_style(soup.p, "color") == "blue"
    assert soup.p["style"].count("color") == 1
    remove_inline_style(soup.p, "margin")
    assert get_inline_style(soup.p, "margin") is None


def test_rewrite_selector_targets_scope() -> None:
    assert rewrite_selector("body", SCOPE) == SCOPE
    assert rewrite_selector(":root", SCOPE) == SCOPE
    assert rewrite_selector("html body .card", SCOPE) == f"{SCOPE} .card"
    assert rewrite_selector(".body-copy", SCOPE) == ".body-copy"


def test_scope_stylesheet_recurses_into_media_blocks() -> None:
    css = "body { margin: 0 } @media (max-width: 600px) { body { padding: 4px } }"
    scoped = scope_stylesheet(css, SCOPE)
    assert "body" not in scoped.replace("@media", "")
    assert scoped.count(SCOPE) == 2


def test_resolver_orders_by_specificity_then_inline() -> None:
    soup = BeautifulSoup('<div><p id="a" class="b">x</p></div>', "html.parser")
    css = "#a { color: red } .b { color: blue } p { color: green }"
    resolver = StyleResolver(css, soup.div)
    assert resolver.resolve(soup.p, "color") == "red"
    soup.p["style"] = "color: purple"
    assert resolver.resolve(soup.p, "color") == "purple"


def test_resolver_important_rule_beats_plain_inline() -> None:
    soup = BeautifulSoup('<div><p class="b" style="color: purple">x</p></div>', "html.parser")
    resolver = StyleResolver(".b { color: blue !important }", soup.div)
    assert resolver.resolve(soup.p, "color") == "blue"


def test_resolver_inherits_and_falls_back_to_initial_values() -> None:
    soup = BeautifulSoup('<div class="wrap"><span>x</span></div>', "html.parser")
    resolver = StyleResolver(".wrap { color: #123456; padding: 1px 2px 3px 4px }", soup.div)
    assert resolver.resolve(soup.span, "color") == "#123456"
    assert resolver.resolve(soup.span, "padding-left") == "0px"
    assert resolver.resolve(soup.div, "padding-left") == "4px"
    assert resolver.resolve(soup.span, "background-color") == "rgba(0, 0, 0, 0)"


def test_resolver_reads_background_color_from_shorthand() -> None:
    soup = BeautifulSoup('<div class="panel">x</div>', "html.parser")
    resolver = StyleResolver(".panel { background: #1e293b url(x.png) no-repeat }", soup.div)
    assert resolver.resolve(soup.div, "background-color") == "#1e293b"
