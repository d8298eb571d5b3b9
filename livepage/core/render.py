"""Render host: turn a generated document into an isolated, editable surface."""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from .models import GeneratedDocument
from .styles import StyleResolver, scope_stylesheet

logger = logging.getLogger(__name__)

SURFACE_ATTR = "data-lp-surface"
SURFACE_SELECTOR = f"[{SURFACE_ATTR}]"
APPLYING_ATTR = "data-lp-applying"
SELECTED_ATTR = "data-lp-selected"
HOVER_ATTR = "data-lp-hover"
NODE_ATTR = "data-lp-node"
EDITOR_ATTR = "data-lp-inline-editor"

FRAGMENT_MAX_LENGTH = 50

# Elements that carry code or foreign documents rather than visual content.
UNSAFE_TAGS = ("script", "noscript", "iframe", "object", "embed", "base")
NON_VISUAL_TAGS = frozenset({"script", "style", "link", "meta", "title", "head", "template"})
URL_ATTRS = ("href", "src", "action", "formaction", "xlink:href", "poster")

PICTOGRAPH_RE = re.compile(
    "[\U0001F600-\U0001F64F\U0001F300-\U0001F5FF\U0001F680-\U0001F6FF\U0001F1E0-\U0001F1FF"
    "\U0001F900-\U0001F9FF\U0001FA70-\U0001FAFF☀-⛿✀-➿]"
)
LEAKED_HTML_RE = re.compile(r"^(?:\.{3}|…)?\s*html\s*(?:\.{3}|…)?$", re.I)
MARKUP_ONLY_RE = re.compile(r"^[<>/\s]*$")
PLACEHOLDER_SRC_RE = re.compile(r"^(?:#|about:blank)?$|placeholder|example\.com|placehold", re.I)

RESET_CSS = """
{scope} {{
  margin: 0 !important;
  padding: 0 !important;
  width: 100% !important;
  min-height: 100% !important;
  overflow-x: hidden !important;
  box-sizing: border-box !important;
}}
{scope} * {{
  box-sizing: border-box;
}}
{scope} [{hover}] {{
  outline: 1px solid rgba(59, 130, 246, 0.3);
  outline-offset: 1px;
}}
{scope} [{selected}] {{
  outline: 2px solid #3b82f6 !important;
  outline-offset: 2px;
}}
{scope} [{editor}] {{
  border: 2px solid #3b82f6;
  border-radius: 4px;
  outline: none;
  background: rgba(59, 130, 246, 0.05);
}}
"""


def reset_css(scope: str = SURFACE_SELECTOR) -> str:
    return RESET_CSS.format(
        scope=scope, hover=HOVER_ATTR, selected=SELECTED_ATTR, editor=EDITOR_ATTR
    )


def contains_pictograph(text: str) -> bool:
    return bool(PICTOGRAPH_RE.search(text))


def is_fragment_text(text: str) -> bool:
    """True when a text node looks like leaked markup rather than content."""
    stripped = text.strip()
    if not stripped:
        return True
    if len(stripped) >= FRAGMENT_MAX_LENGTH or contains_pictograph(stripped):
        return False
    lowered = stripped.lower()
    if "<" in stripped or ">" in stripped or "&lt;" in lowered or "&gt;" in lowered:
        return True
    if MARKUP_ONLY_RE.match(stripped) or LEAKED_HTML_RE.match(stripped):
        return True
    return "...html" in lowered or "html..." in lowered


PAGE_LEVEL_TAGS = frozenset({"body", "main"})
PAGE_LEVEL_CLASSES = frozenset({"hero", "main", "container", "page", "content"})


def has_page_role(node: Tag) -> bool:
    """Body/main/hero-like containers that stand in for the whole page."""
    if node.name in PAGE_LEVEL_TAGS:
        return True
    classes = node.get("class") or []
    return any(token in PAGE_LEVEL_CLASSES for token in classes)


def is_page_level(node: Tag, root: Optional[Tag] = None) -> bool:
    """A page-role container, or a div/section sitting directly under the surface."""
    if has_page_role(node):
        return True
    parent = node.parent
    top_level = parent is not None and (parent is root or parent.name == "body")
    return node.name in ("section", "div") and top_level


def qualifies_page_level(node: Tag, root: Tag) -> bool:
    """True for page-level nodes and for anything nested in a page-role container.

    A plain top-level div or section only counts when it is the node itself.
    """
    if node is root:
        return False
    if is_page_level(node, root):
        return True
    current = node.parent
    while isinstance(current, Tag) and current is not root:
        if has_page_role(current):
            return True
        current = current.parent
    return False


class RenderSurface:
    """The sandboxed tree a generated document is displayed and edited in."""

    def __init__(self, soup: BeautifulSoup, root: Tag, stylesheet: str,
                 head_links: Optional[List[str]] = None,
                 document: Optional[GeneratedDocument] = None) -> None:
        self.soup = soup
        self.root = root
        self.stylesheet = stylesheet
        self.head_links = head_links or []
        self.document = document
        self._resolver: Optional[StyleResolver] = None

    @property
    def resolver(self) -> StyleResolver:
        if self._resolver is None:
            self._resolver = StyleResolver(self.stylesheet, self.root)
        return self._resolver

    def contains(self, node: object) -> bool:
        current = node
        while isinstance(current, Tag):
            if current is self.root:
                return True
            current = current.parent
        return False

    def is_visual(self, node: object) -> bool:
        return (
            isinstance(node, Tag)
            and node is not self.root
            and node.name not in NON_VISUAL_TAGS
            and self.contains(node)
        )

    def elements(self) -> List[Tag]:
        return [node for node in self.root.find_all(True) if node.name not in NON_VISUAL_TAGS]

    @property
    def is_applying(self) -> bool:
        return self.root.has_attr(APPLYING_ATTR)

    @contextmanager
    def applying(self) -> Iterator[None]:
        nested = self.is_applying
        self.root[APPLYING_ATTR] = "true"
        try:
            yield
        finally:
            if not nested:
                del self.root[APPLYING_ATTR]

    def assign_node_ids(self) -> None:
        for index, node in enumerate(self.elements()):
            node[NODE_ATTR] = str(index)

    def node_by_id(self, node_id: str | int) -> Optional[Tag]:
        found = self.root.find(attrs={NODE_ATTR: str(node_id)})
        return found if isinstance(found, Tag) else None

    def html(self) -> str:
        return str(self.root)


@dataclass
class RenderResult:
    surface: RenderSurface
    warnings: List[str] = field(default_factory=list)
    removed_fragments: int = 0


def _sanitize(soup: BeautifulSoup) -> None:
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    for tag in soup.find_all(list(UNSAFE_TAGS)):
        tag.decompose()
    for tag in soup.find_all(True):
        for attr in list(tag.attrs):
            if attr.lower().startswith("on"):
                del tag[attr]
            elif attr.lower() in URL_ATTRS:
                value = tag.get(attr)
                if isinstance(value, str) and value.strip().lower().startswith("javascript:"):
                    del tag[attr]


def strip_text_fragments(container: Tag) -> int:
    removed = 0
    for text in list(container.find_all(string=True)):
        if type(text) is not NavigableString:
            continue
        if is_fragment_text(str(text)):
            logger.debug("render: removing text fragment %r", str(text)[:40])
            text.extract()
            removed += 1
    return removed


def _fix_placeholder_images(container: Tag) -> None:
    for index, img in enumerate(container.find_all("img")):
        src = img.get("src", "")
        if isinstance(src, str) and not PLACEHOLDER_SRC_RE.search(src.strip()):
            continue
        width = re.sub(r"\D", "", str(img.get("width", ""))) or "400"
        height = re.sub(r"\D", "", str(img.get("height", ""))) or "300"
        img["src"] = f"https://picsum.photos/{width}/{height}?random={index + 1}"


def render_document(document: GeneratedDocument, scope: str = SURFACE_SELECTOR) -> RenderResult:
    """Build a rendering surface for ``document``. Never raises on bad markup."""
    source = BeautifulSoup(document.code or "", "html.parser")
    soup = BeautifulSoup("", "html.parser")
    root = soup.new_tag("div", attrs={SURFACE_ATTR: "true"})
    soup.append(root)
    warnings: List[str] = []

    css_chunks: List[str] = []
    for style in source.find_all("style"):
        css_chunks.append(style.get_text())
        style.decompose()
    head_links = [
        str(link) for link in source.find_all("link")
        if "stylesheet" in (link.get("rel") or []) or link.get("rel") == "stylesheet"
    ]

    stylesheet = scope_stylesheet("\n".join(css_chunks), scope) + "\n" + reset_css(scope)

    body = source.body
    if body is None:
        message = "Generated document has no <body>; showing an empty preview."
        logger.warning("render: %s", message)
        warnings.append(message)
        surface = RenderSurface(soup, root, stylesheet, head_links, document)
        return RenderResult(surface, warnings)

    _sanitize(body)
    removed = strip_text_fragments(body)
    _fix_placeholder_images(body)
    for child in list(body.contents):
        root.append(child.extract())

    if removed:
        logger.info("render: removed %d stray text fragment(s)", removed)
    surface = RenderSurface(soup, root, stylesheet, head_links, document)
    return RenderResult(surface, warnings, removed)
