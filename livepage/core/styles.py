"""Inline style helpers, stylesheet parsing and a small style resolver.

The resolver answers "what value does this property have on this node" for
the rendered tree without a browser: inline declarations first, then the
matching stylesheet rules ordered by ``!important``, specificity and source
order, then inheritance for inherited properties, then CSS initial values.
Only top-level rules take part; at-rule blocks (``@media`` and friends) are
kept in the output but ignored for resolution.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import soupsieve as sv
from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

COMMENT_RE = re.compile(r"/\*.*?\*/", re.S)
IMPORTANT_RE = re.compile(r"\s*!\s*important\s*$", re.I)
ID_RE = re.compile(r"#[\w-]+")
CLASS_LIKE_RE = re.compile(r"\.[\w-]+|\[[^\]]*\]|(?<!:):(?!:)[\w-]+")
TYPE_RE = re.compile(r"(?:^|[\s>+~(])([a-zA-Z][\w-]*)")
PSEUDO_ELEMENT_RE = re.compile(r"::[\w-]+|:(?:before|after|first-line|first-letter)\b", re.I)
COLOR_TOKEN_RE = re.compile(
    r"#[0-9a-fA-F]{3,8}\b|(?:rgb|hsl)a?\([^)]*\)|\btransparent\b|\b[a-z]+\b"
)

INHERITED = frozenset(
    {
        "color",
        "font-size",
        "font-weight",
        "font-family",
        "font-style",
        "line-height",
        "letter-spacing",
        "text-align",
        "-webkit-text-fill-color",
    }
)

INITIAL_VALUES: Dict[str, str] = {
    "color": "rgb(0, 0, 0)",
    "background-color": "rgba(0, 0, 0, 0)",
    "background": "none",
    "background-image": "none",
    "background-clip": "border-box",
    "font-size": "16px",
    "font-weight": "400",
    "font-family": "serif",
    "font-style": "normal",
    "line-height": "normal",
    "letter-spacing": "normal",
    "text-align": "start",
    "border-radius": "0px",
    "border": "0px none rgb(0, 0, 0)",
    "width": "auto",
    "height": "auto",
    "padding": "0px",
    "margin": "0px",
}

# Sides of box shorthands, in CSS order.
_SIDES = ("top", "right", "bottom", "left")

# Which declared properties can supply a value for a resolved property.
_SOURCES: Dict[str, Tuple[str, ...]] = {
    "background-color": ("background-color", "background"),
    "background": ("background", "background-image"),
    "background-image": ("background-image", "background"),
    "background-clip": ("background-clip", "-webkit-background-clip", "background"),
}
for _box in ("padding", "margin"):
    for _side in _SIDES:
        _SOURCES[f"{_box}-{_side}"] = (f"{_box}-{_side}", _box)

_COLOR_KEYWORDS_IGNORED = frozenset(
    {"none", "no", "repeat", "center", "top", "bottom", "left", "right", "fixed", "scroll",
     "cover", "contain", "auto", "text", "padding", "border", "content", "box", "url"}
)


@dataclass
class Declaration:
    value: str
    important: bool = False

    def css(self) -> str:
        return f"{self.value} !important" if self.important else self.value


@dataclass
class StyleRule:
    selectors: List[str]
    declarations: Dict[str, Declaration]
    order: int


def split_top_level(text: str, separator: str) -> List[str]:
    """Split on a separator that is not nested in parentheses, brackets or quotes."""
    parts: List[str] = []
    depth = 0
    quote = ""
    current: List[str] = []
    for char in text:
        if quote:
            current.append(char)
            if char == quote:
                quote = ""
            continue
        if char in "\"'":
            quote = char
        elif char in "([":
            depth += 1
        elif char in ")]":
            depth = max(0, depth - 1)
        elif char == separator and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return parts


def parse_declarations(text: str) -> Dict[str, Declaration]:
    declarations: Dict[str, Declaration] = {}
    for chunk in split_top_level(COMMENT_RE.sub("", text or ""), ";"):
        name, sep, value = chunk.partition(":")
        if not sep:
            continue
        name = name.strip().lower()
        value = value.strip()
        if not name or not value:
            continue
        important = bool(IMPORTANT_RE.search(value))
        if important:
            value = IMPORTANT_RE.sub("", value).strip()
        # later declarations win, but must move to the end to keep source order
        declarations.pop(name, None)
        declarations[name] = Declaration(value, important)
    return declarations


def serialize_declarations(declarations: Dict[str, Declaration]) -> str:
    return "; ".join(f"{name}: {decl.css()}" for name, decl in declarations.items())


def get_inline_style(node: Tag, prop: str) -> Optional[str]:
    decl = parse_declarations(node.get("style", "")).get(prop.lower())
    return decl.value if decl else None


def set_inline_style(node: Tag, prop: str, value: str, important: bool = True) -> None:
    declarations = parse_declarations(node.get("style", ""))
    declarations.pop(prop.lower(), None)
    declarations[prop.lower()] = Declaration(value, important)
    node["style"] = serialize_declarations(declarations)


def remove_inline_style(node: Tag, prop: str) -> None:
    declarations = parse_declarations(node.get("style", ""))
    if declarations.pop(prop.lower(), None) is None:
        return
    if declarations:
        node["style"] = serialize_declarations(declarations)
    else:
        del node["style"]


# ------------------------------------------------------------- Stylesheets --
def iter_blocks(css: str) -> Iterator[Tuple[str, str]]:
    """Yield ``(prelude, body)`` for each top-level block of a stylesheet.

    Statement at-rules such as ``@import`` are yielded with a ``None``-like
    empty body so they survive rewriting.
    """
    text = COMMENT_RE.sub("", css or "")
    pos = 0
    length = len(text)
    while pos < length:
        brace = text.find("{", pos)
        semi = text.find(";", pos)
        if brace == -1:
            rest = text[pos:].strip()
            if rest.startswith("@"):
                yield rest.rstrip(";") + ";", ""
            return
        if text[pos:brace].lstrip().startswith("@") and -1 < semi < brace:
            yield text[pos:semi + 1].strip(), ""
            pos = semi + 1
            continue
        depth = 0
        end = brace
        while end < length:
            if text[end] == "{":
                depth += 1
            elif text[end] == "}":
                depth -= 1
                if depth == 0:
                    break
            end += 1
        prelude = text[pos:brace].strip()
        body = text[brace + 1:end]
        pos = end + 1
        if prelude:
            yield prelude, body


def parse_stylesheet(css: str) -> List[StyleRule]:
    rules: List[StyleRule] = []
    for prelude, body in iter_blocks(css):
        if prelude.startswith("@"):
            continue
        selectors = [s.strip() for s in split_top_level(prelude, ",") if s.strip()]
        if selectors:
            rules.append(StyleRule(selectors, parse_declarations(body), len(rules)))
    return rules


_DOCUMENT_TYPE_RE = re.compile(r"(^|[\s>+~(,])(html|body)(?=$|[\s>+~.#\[:,)])", re.I)
_ROOT_PSEUDO_RE = re.compile(r"(?<![\w-]):root\b", re.I)

# At-rules whose bodies hold ordinary rules that need scoping.
_NESTED_RULE_AT = ("@media", "@supports", "@layer", "@container", "@document")


def rewrite_selector(selector: str, scope: str) -> str:
    """Point whole-document selectors (``html``, ``body``, ``:root``) at ``scope``."""
    rewritten = _ROOT_PSEUDO_RE.sub(scope, selector)
    rewritten = _DOCUMENT_TYPE_RE.sub(lambda m: m.group(1) + scope, rewritten)
    for joiner in (" ", " > "):
        doubled = f"{scope}{joiner}{scope}"
        while doubled in rewritten:
            rewritten = rewritten.replace(doubled, scope)
    return rewritten


def scope_stylesheet(css: str, scope: str) -> str:
    out: List[str] = []
    for prelude, body in iter_blocks(css):
        if prelude.startswith("@"):
            if not body and prelude.endswith(";"):
                out.append(prelude)
            elif prelude.lower().startswith(_NESTED_RULE_AT):
                out.append(f"{prelude} {{\n{scope_stylesheet(body, scope)}\n}}")
            else:
                out.append(f"{prelude} {{{body}}}")
            continue
        selectors = [
            rewrite_selector(s.strip(), scope) for s in split_top_level(prelude, ",") if s.strip()
        ]
        out.append(f"{', '.join(dict.fromkeys(selectors))} {{{body}}}")
    return "\n".join(out)


def specificity(selector: str) -> Tuple[int, int, int]:
    bare = re.sub(r"\[[^\]]*\]", "[]", selector)
    ids = len(ID_RE.findall(bare))
    classes = len(CLASS_LIKE_RE.findall(bare))
    types = len([t for t in TYPE_RE.findall(ID_RE.sub("", bare)) if t != "not"])
    return (ids, classes, types)


def color_from_background(value: str) -> Optional[str]:
    """Pick the color layer out of a ``background`` shorthand, if it has one."""
    lowered = value.lower()
    if "var(" in lowered and "gradient(" not in lowered:
        return value.strip()
    if "gradient(" in lowered or "url(" in lowered:
        stripped = re.sub(r"[\w-]*gradient\((?:[^()]|\([^()]*\))*\)|url\([^)]*\)", " ", value)
    else:
        stripped = value
    for match in COLOR_TOKEN_RE.finditer(stripped):
        token = match.group(0)
        if token.lower() in _COLOR_KEYWORDS_IGNORED or token.lower().endswith("px"):
            continue
        return token
    return None


def _box_side(value: str, side: str) -> str:
    parts = value.split()
    if not parts:
        return value
    index = _SIDES.index(side)
    if len(parts) == 1:
        return parts[0]
    if len(parts) == 2:
        return parts[index % 2]
    if len(parts) == 3:
        return parts[(0, 1, 2, 1)[index]]
    return parts[index]


class StyleResolver:
    """Resolve property values for nodes of one rendered tree."""

    def __init__(self, css: str, root: Optional[Tag] = None) -> None:
        self.rules = parse_stylesheet(css)
        self.root = root
        self._compiled: Dict[str, Optional[sv.SoupSieve]] = {}

    def _pattern(self, selector: str) -> Optional[sv.SoupSieve]:
        if selector not in self._compiled:
            if PSEUDO_ELEMENT_RE.search(selector):
                self._compiled[selector] = None
            else:
                try:
                    self._compiled[selector] = sv.compile(selector)
                except sv.SelectorSyntaxError:
                    logger.debug("styles: skipping unsupported selector %r", selector)
                    self._compiled[selector] = None
        return self._compiled[selector]

    def matches(self, selector: str, node: Tag) -> bool:
        pattern = self._pattern(selector)
        return bool(pattern is not None and pattern.match(node))

    def _candidates(self, node: Tag, names: Sequence[str]) -> List[Tuple[tuple, str, str]]:
        found: List[Tuple[tuple, str, str]] = []
        for rule in self.rules:
            wanted = [n for n in names if n in rule.declarations]
            if not wanted:
                continue
            best: Optional[Tuple[int, int, int]] = None
            for selector in rule.selectors:
                if self.matches(selector, node):
                    spec = specificity(selector)
                    if best is None or spec > best:
                        best = spec
            if best is None:
                continue
            for name in wanted:
                decl = rule.declarations[name]
                found.append(((decl.important, False, best, rule.order, list(rule.declarations).index(name)), name, decl.value))
        inline = parse_declarations(node.get("style", ""))
        for position, (name, decl) in enumerate(inline.items()):
            if name in names:
                found.append(((decl.important, True, (1, 0, 0, 0), 0, position), name, decl.value))
        return found

    def declared(self, node: Tag, prop: str) -> Optional[str]:
        """Return the cascaded value of ``prop`` on ``node`` alone, or None."""
        prop = prop.lower()
        names = _SOURCES.get(prop, (prop,))
        candidates = self._candidates(node, names)
        while candidates:
            winner = max(candidates, key=lambda item: item[0])
            _, name, value = winner
            derived = self._derive(prop, name, value)
            if derived is not None:
                return derived
            candidates.remove(winner)
        return None

    def _derive(self, prop: str, name: str, value: str) -> Optional[str]:
        if name == prop:
            return value
        if prop == "background-color":
            return color_from_background(value) or INITIAL_VALUES["background-color"]
        if prop == "background-clip":
            if name == "-webkit-background-clip":
                return value
            return "text" if re.search(r"(?<![\w-])text(?![\w-])", value) else None
        if prop in ("background", "background-image"):
            return value
        for box in ("padding", "margin"):
            if name == box and prop.startswith(box + "-"):
                return _box_side(value, prop.split("-", 1)[1])
        return value

    def resolve(self, node: Tag, prop: str) -> str:
        prop = prop.lower()
        current: Optional[Tag] = node
        while isinstance(current, Tag) and not isinstance(current, BeautifulSoup):
            value = self.declared(current, prop)
            if value is not None and value.lower() != "inherit":
                return value
            if prop not in INHERITED and value is None:
                break
            if self.root is not None and current is self.root:
                break
            current = current.parent
        if prop == "-webkit-text-fill-color":
            return self.resolve(node, "color")
        if prop.startswith(("padding-", "margin-")):
            return INITIAL_VALUES[prop.split("-", 1)[0]]
        return INITIAL_VALUES.get(prop, "")
