"""In-place text editing of a single text-bearing node."""

from __future__ import annotations

import logging
from typing import Optional

from bs4 import Tag

from . import gradients, selectors
from .ledger import EditLedger
from .models import TEXT_CONTENT, StyleEdit
from .render import EDITOR_ATTR, NODE_ATTR, RenderSurface
from .selection import SelectionController
from .styles import Declaration, serialize_declarations

logger = logging.getLogger(__name__)

TEXT_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6", "p", "span", "a", "button", "label"})

# Resolved on the original node and copied onto the surrogate.
MATCHED_PROPERTIES = (
    "font-size",
    "font-weight",
    "font-family",
    "font-style",
    "color",
    "line-height",
    "letter-spacing",
    "text-align",
    "padding-top",
    "padding-right",
    "padding-bottom",
    "padding-left",
    "margin-top",
    "margin-right",
    "margin-bottom",
    "margin-left",
)


def is_text_editable(node: object) -> bool:
    """Leaf text nodes of a recognised tag with non-empty text."""
    if not isinstance(node, Tag) or node.name not in TEXT_TAGS:
        return False
    if node.find(True, recursive=False) is not None:
        return False
    return bool(node.get_text().strip())


class InlineTextEditor:
    """Swap a node for an editable surrogate and commit or restore it.

    At most one edit is active. The surrogate is a ``contenteditable`` div
    carrying ``data-lp-inline-editor``; the original node is kept detached
    until the edit ends and is then put back in the same place.
    """

    def __init__(self, surface: RenderSurface, ledger: EditLedger,
                 selection: Optional[SelectionController] = None) -> None:
        self.surface = surface
        self.ledger = ledger
        self.selection = selection
        self.original: Optional[Tag] = None
        self.surrogate: Optional[Tag] = None
        self.original_text = ""

    @property
    def active(self) -> bool:
        return self.surrogate is not None

    @property
    def text(self) -> str:
        return self.surrogate.get_text() if self.surrogate is not None else ""

    def start(self, node: object) -> bool:
        if not isinstance(node, Tag) or not self.surface.is_visual(node) or not is_text_editable(node):
            return False
        if self.active:
            self.cancel()
        if self.selection is not None:
            self.selection.cancel_highlight()

        self.original = node
        self.original_text = node.get_text()
        surrogate = self.surface.soup.new_tag("div")
        surrogate[EDITOR_ATTR] = "true"
        surrogate["contenteditable"] = "true"
        if node.has_attr(NODE_ATTR):
            surrogate[NODE_ATTR] = node[NODE_ATTR]
        surrogate["style"] = self._matched_style(node)
        surrogate.string = self.original_text
        node.replace_with(surrogate)
        self.surrogate = surrogate
        logger.debug("inline: editing <%s>", node.name)
        return True

    def _matched_style(self, node: Tag) -> str:
        resolver = self.surface.resolver
        declarations = {prop: Declaration(resolver.resolve(node, prop)) for prop in MATCHED_PROPERTIES}
        descriptor = gradients.detect(node, resolver)
        if descriptor is not None:
            # Clip-to-text does not carry over; show the first stop instead of invisible text.
            declarations["color"] = Declaration(descriptor.colors[0])
        declarations["min-height"] = Declaration("1em")
        return serialize_declarations(declarations)

    def set_text(self, text: str) -> None:
        if self.surrogate is not None:
            self.surrogate.string = text

    def key_press(self, key: str, shift: bool = False) -> Optional[StyleEdit]:
        """Enter without a modifier commits, Escape restores. Other keys are ignored."""
        if not self.active:
            return None
        if key == "Enter" and not shift:
            return self.commit()
        if key == "Escape":
            self.cancel()
        return None

    def blur(self) -> Optional[StyleEdit]:
        return self.commit() if self.active else None

    def _restore(self) -> Optional[Tag]:
        original, surrogate = self.original, self.surrogate
        self.original = self.surrogate = None
        if original is None or surrogate is None:
            return None
        if surrogate.parent is not None:
            surrogate.replace_with(original)
        return original

    def commit(self, text: Optional[str] = None) -> Optional[StyleEdit]:
        if text is not None:
            self.set_text(text)
        new_text = self.text
        node = self._restore()
        if node is None:
            return None
        if new_text == self.original_text:
            return None
        node.string = new_text
        selector = selectors.compute(node, self.surface.root)
        logger.debug("inline: committed text for %s", selector)
        return self.ledger.record(selector, TEXT_CONTENT, new_text)

    def cancel(self) -> None:
        self._restore()
