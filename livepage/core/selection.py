"""Pointer-driven selection of visual nodes inside a rendering surface."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from bs4 import Tag

from . import selectors
from .render import EDITOR_ATTR, HOVER_ATTR, SELECTED_ATTR, RenderSurface

logger = logging.getLogger(__name__)

DRAG_THRESHOLD = 4


class Region(Enum):
    """Where a pointer event landed in the host window."""

    SURFACE = "surface"
    INSPECTOR = "inspector"
    CHROME = "chrome"


class SelectionState(Enum):
    IDLE = "idle"
    SELECTED = "selected"


@dataclass
class SelectedElement:
    node: Tag
    selector: str


SelectionListener = Callable[[Optional[SelectedElement]], None]


@dataclass
class _Press:
    node: Tag
    x: float
    y: float
    dragged: bool = False


class SelectionController:
    """Idle/Selected state machine for one rendering session.

    Inspector controls report interactions through ``note_panel_interaction``;
    the next outside click after such a report is ignored instead of clearing
    the selection.
    """

    def __init__(self, surface: RenderSurface, on_change: Optional[SelectionListener] = None) -> None:
        self.surface = surface
        self.on_change = on_change
        self.selected: Optional[SelectedElement] = None
        self.hovered: Optional[Tag] = None
        self._press: Optional[_Press] = None
        self._panel_interaction = False
        self._suspended = False

    @property
    def state(self) -> SelectionState:
        return SelectionState.SELECTED if self.selected is not None else SelectionState.IDLE

    def resolve_target(self, target: object) -> Optional[Tag]:
        """Return the selectable node for an event target, or None for host chrome."""
        if not isinstance(target, Tag) or not self.surface.is_visual(target):
            return None
        current: Optional[Tag] = target
        while isinstance(current, Tag) and current is not self.surface.root:
            if current.has_attr(EDITOR_ATTR):
                return None
            current = current.parent
        return target

    # ----------------------------------------------------------- Events --
    def note_panel_interaction(self) -> None:
        self._panel_interaction = True

    def pointer_down(self, target: object, x: float = 0, y: float = 0,
                     region: Region = Region.SURFACE) -> None:
        if self._suspended:
            return
        if region is Region.INSPECTOR:
            self._press = None
            return
        if region is Region.CHROME:
            self._press = None
            if self._panel_interaction:
                self._panel_interaction = False
                return
            self.clear()
            return
        self._panel_interaction = False
        node = self.resolve_target(target)
        self._press = _Press(node, x, y) if node is not None else None

    def pointer_move(self, target: object, x: float = 0, y: float = 0, buttons: int = 0) -> None:
        if self._suspended:
            return
        if buttons:
            press = self._press
            if press is not None and max(abs(x - press.x), abs(y - press.y)) > DRAG_THRESHOLD:
                press.dragged = True
            return
        node = self.resolve_target(target)
        if node is not self.hovered:
            self._clear_hover()
        if node is not None and node.get(SELECTED_ATTR) is None:
            node[HOVER_ATTR] = "true"
            self.hovered = node

    def pointer_up(self, target: object, x: float = 0, y: float = 0) -> Optional[SelectedElement]:
        press, self._press = self._press, None
        if self._suspended or press is None or press.dragged:
            return None
        node = self.resolve_target(target)
        if node is None or node is not press.node:
            return None
        return self.select(node)

    def pointer_leave(self, target: object) -> None:
        if isinstance(target, Tag) and target.has_attr(HOVER_ATTR):
            del target[HOVER_ATTR]
        if target is self.hovered:
            self.hovered = None

    # -------------------------------------------------------- Selection --
    def select(self, node: Tag) -> SelectedElement:
        if self.selected is not None:
            self._unmark(self.selected.node)
        if node.has_attr(HOVER_ATTR):
            del node[HOVER_ATTR]
        if node is self.hovered:
            self.hovered = None
        node[SELECTED_ATTR] = "true"
        self.selected = SelectedElement(node, selectors.compute(node, self.surface.root))
        logger.debug("selection: selected %s", self.selected.selector)
        if self.on_change is not None:
            self.on_change(self.selected)
        return self.selected

    def clear(self) -> None:
        if self.selected is None:
            return
        self._unmark(self.selected.node)
        self.selected = None
        if self.on_change is not None:
            self.on_change(None)

    def cancel_highlight(self) -> None:
        """Drop hover, pending press and selection marks (used when inline editing starts)."""
        self._press = None
        self._clear_hover()
        self.clear()

    def suspend(self) -> None:
        self.cancel_highlight()
        self._suspended = True

    def resume(self) -> None:
        self._suspended = False

    @property
    def suspended(self) -> bool:
        return self._suspended

    def detach(self) -> None:
        self._press = None
        self._clear_hover()
        if self.selected is not None:
            self._unmark(self.selected.node)
            self.selected = None

    def _clear_hover(self) -> None:
        if self.hovered is not None and self.hovered.has_attr(HOVER_ATTR):
            del self.hovered[HOVER_ATTR]
        self.hovered = None

    @staticmethod
    def _unmark(node: Tag) -> None:
        for attr in (SELECTED_ATTR, HOVER_ATTR):
            if node.has_attr(attr):
                del node[attr]
