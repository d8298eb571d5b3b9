"""Property inspector: sample the selected node's styles and record changes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from bs4 import Tag

from . import gradients, selectors
from .ledger import EditLedger, apply_edit
from .models import (
    SAMPLED_PROPERTIES,
    EditableProperty,
    GradientDescriptor,
    PropertyValue,
    StyleEdit,
    ValueKind,
)
from .render import RenderSurface, qualifies_page_level
from .selection import SelectedElement

logger = logging.getLogger(__name__)

DEFAULT_PAGE_BACKGROUND = "#1a1a2e"

PRESETS: Dict[str, Tuple[Tuple[str, str], ...]] = {
    "glass": (
        ("backdrop-filter", "blur(10px)"),
        ("-webkit-backdrop-filter", "blur(10px)"),
        ("background", "rgba(255, 255, 255, 0.25)"),
        ("border", "1px solid rgba(255, 255, 255, 0.18)"),
        ("border-radius", "16px"),
        ("box-shadow", "0 8px 32px 0 rgba(31, 38, 135, 0.37)"),
    ),
    "rounded": (("border-radius", "8px"),),
    "circle": (("border-radius", "50%"),),
    "square": (("border-radius", "0"),),
    "shadow-sm": (("box-shadow", "0 4px 6px -1px rgba(0, 0, 0, 0.1), 0 2px 4px -1px rgba(0, 0, 0, 0.06)"),),
    "shadow-md": (("box-shadow", "0 10px 15px -3px rgba(0, 0, 0, 0.1), 0 4px 6px -2px rgba(0, 0, 0, 0.05)"),),
    "shadow-lg": (("box-shadow", "0 25px 50px -12px rgba(0, 0, 0, 0.25)"),),
    "shadow-none": (("box-shadow", "none"),),
}


class InspectorState(Enum):
    CLOSED = "closed"
    OPEN = "open"


@dataclass
class InspectorSnapshot:
    """What the control layer shows for one selected node."""

    selector: str
    values: Dict[EditableProperty, PropertyValue] = field(default_factory=dict)

    @property
    def gradient(self) -> Optional[GradientDescriptor]:
        value = self.values.get(EditableProperty.COLOR)
        return value.gradient if value is not None else None

    @property
    def has_text(self) -> bool:
        return EditableProperty.TEXT_CONTENT in self.values

    @property
    def is_page_level(self) -> bool:
        return EditableProperty.PAGE_BACKGROUND in self.values

    def get(self, prop: EditableProperty) -> Optional[PropertyValue]:
        return self.values.get(prop)


PropertyName = Union[EditableProperty, str]


def page_background(surface: RenderSurface, node: Tag) -> str:
    """First non-transparent background from ``node`` up to the surface root."""
    current: Optional[Tag] = node
    while isinstance(current, Tag):
        value = surface.resolver.resolve(current, "background-color")
        if value and not gradients.is_transparent(value):
            return value
        if current is surface.root:
            break
        current = current.parent
    return DEFAULT_PAGE_BACKGROUND


def sample(surface: RenderSurface, node: Tag) -> Dict[EditableProperty, PropertyValue]:
    resolver = surface.resolver
    values: Dict[EditableProperty, PropertyValue] = {}
    for prop in SAMPLED_PROPERTIES:
        values[prop] = PropertyValue.for_property(prop, resolver.resolve(node, prop.value))

    source = gradients.gradient_source(node, resolver)
    if source is not None:
        descriptor = gradients.decode(source)
        if descriptor is None:
            logger.info("inspector: unreadable gradient %r, using fallback color", source)
            descriptor = GradientDescriptor([gradients.FALLBACK_COLOR])
        values[EditableProperty.COLOR] = PropertyValue.of_gradient(descriptor)

    if node.find(True, recursive=False) is None:
        text = node.get_text()
        if text.strip():
            values[EditableProperty.TEXT_CONTENT] = PropertyValue.plain(text)

    if qualifies_page_level(node, surface.root):
        values[EditableProperty.PAGE_BACKGROUND] = PropertyValue.color(page_background(surface, node))
    return values


class PropertyInspector:
    """Open/Closed inspector over one selected node.

    Every write goes through the same path: mutate the live node, derive the
    node's selector, record the edit. ``on_interaction`` is called before each
    control change so the owning session can ignore the click that caused it.
    """

    def __init__(self, surface: RenderSurface, ledger: EditLedger,
                 on_interaction: Optional[Callable[[], None]] = None) -> None:
        self.surface = surface
        self.ledger = ledger
        self.on_interaction = on_interaction
        self.state = InspectorState.CLOSED
        self.selected: Optional[SelectedElement] = None
        self.snapshot: Optional[InspectorSnapshot] = None

    @property
    def is_open(self) -> bool:
        return self.state is InspectorState.OPEN

    def open(self, selected: SelectedElement) -> InspectorSnapshot:
        self.selected = selected
        self.state = InspectorState.OPEN
        self.snapshot = InspectorSnapshot(selected.selector, sample(self.surface, selected.node))
        return self.snapshot

    def close(self) -> None:
        self.state = InspectorState.CLOSED
        self.selected = None
        self.snapshot = None

    def interact(self) -> None:
        if self.on_interaction is not None:
            self.on_interaction()

    def _node(self) -> Tag:
        if self.selected is None:
            raise RuntimeError("Inspector is closed")
        return self.selected.node

    def _write(self, prop: str, value: str) -> StyleEdit:
        node = self._node()
        apply_edit(self.surface, node, prop, value)
        selector = selectors.compute(node, self.surface.root)
        return self.ledger.record(selector, prop, value)

    def _refresh(self, prop: EditableProperty, value: PropertyValue) -> None:
        if self.snapshot is not None:
            self.snapshot.values[prop] = value

    # --------------------------------------------------------- Controls --
    def set_property(self, prop: PropertyName, value: str) -> StyleEdit:
        prop = EditableProperty(prop)
        self.interact()
        edit = self._write(prop.value, value)
        self._refresh(prop, PropertyValue.for_property(prop, value))
        return edit

    def set_gradient(self, descriptor: GradientDescriptor) -> StyleEdit:
        """Write ``descriptor`` as one ``background`` edit with clip-to-text companions."""
        self.interact()
        node = self._node()
        css = gradients.encode_descriptor(descriptor)
        gradients.apply_gradient_text(node, css)
        edit = self.ledger.record(selectors.compute(node, self.surface.root), "background", css)
        self._refresh(EditableProperty.COLOR, PropertyValue.of_gradient(descriptor))
        return edit

    def _current_gradient(self) -> GradientDescriptor:
        descriptor = self.snapshot.gradient if self.snapshot is not None else None
        if descriptor is None:
            descriptor = gradients.detect(self._node(), self.surface.resolver)
        if descriptor is None:
            raise ValueError("Selected node has no gradient text")
        return descriptor

    def set_gradient_color(self, index: int, color: str) -> StyleEdit:
        return self.set_gradient(self._current_gradient().with_color(index, color))

    def add_gradient_color(self, color: str = "#ffffff") -> StyleEdit:
        return self.set_gradient(self._current_gradient().with_added_color(color))

    def remove_gradient_color(self, index: int) -> StyleEdit:
        return self.set_gradient(self._current_gradient().without_color(index))

    def set_gradient_direction(self, direction: str) -> StyleEdit:
        return self.set_gradient(self._current_gradient().with_direction(direction))

    def apply_preset(self, name: str) -> List[StyleEdit]:
        if name not in PRESETS:
            raise KeyError(f"Unknown preset {name!r}")
        self.interact()
        edits = [self._write(prop, value) for prop, value in PRESETS[name]]
        if self.snapshot is not None:
            self.snapshot.values.update(self._sampled(PRESETS[name]))
        return edits

    def _sampled(self, declarations: Sequence[Tuple[str, str]]) -> Dict[EditableProperty, PropertyValue]:
        known = {p.value: p for p in SAMPLED_PROPERTIES}
        return {
            known[prop]: PropertyValue.for_property(known[prop], value)
            for prop, value in declarations
            if prop in known
        }

    def control_kind(self, prop: EditableProperty) -> ValueKind:
        """The control the panel should render for ``prop`` on the current node."""
        value = self.snapshot.get(prop) if self.snapshot is not None else None
        return value.kind if value is not None else prop.kind
