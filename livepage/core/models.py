"""Data models for the live page editor."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Optional

TEXT_CONTENT = "textContent"
PAGE_BACKGROUND = "pageBackground"
DEFAULT_GRADIENT_DIRECTION = "135deg"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class GeneratedDocument:
    """A self-contained markup document produced upstream. Replaced, never mutated."""

    code: str
    prompt: str = ""


@dataclass
class StyleEdit:
    selector: str
    property: str
    value: str
    timestamp: int = field(default_factory=now_ms)

    @property
    def key(self) -> tuple[str, str]:
        return (self.selector, self.property)

    def to_dict(self) -> dict:
        return {
            "selector": self.selector,
            "property": self.property,
            "value": self.value,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StyleEdit":
        return cls(
            selector=str(data.get("selector", "")),
            property=str(data.get("property", "")),
            value=str(data.get("value", "")),
            timestamp=int(data.get("timestamp") or 0),
        )


@dataclass
class GradientDescriptor:
    """Editable form of a linear-gradient value: ordered colors plus a direction."""

    colors: List[str]
    direction: str = DEFAULT_GRADIENT_DIRECTION

    def with_color(self, index: int, color: str) -> "GradientDescriptor":
        colors = list(self.colors)
        colors[index] = color
        return replace(self, colors=colors)

    def with_added_color(self, color: str = "#ffffff") -> "GradientDescriptor":
        return replace(self, colors=[*self.colors, color])

    def without_color(self, index: int) -> "GradientDescriptor":
        if len(self.colors) <= 1:
            return self
        colors = [c for i, c in enumerate(self.colors) if i != index]
        return replace(self, colors=colors)

    def with_direction(self, direction: str) -> "GradientDescriptor":
        return replace(self, direction=direction)

    def to_dict(self) -> dict:
        return {"type": "gradient", "colors": list(self.colors), "direction": self.direction}

    @classmethod
    def from_dict(cls, data: dict) -> "GradientDescriptor":
        return cls(
            colors=[str(c) for c in data.get("colors", [])],
            direction=str(data.get("direction") or DEFAULT_GRADIENT_DIRECTION),
        )

    def serialize(self) -> str:
        return json.dumps(self.to_dict())


class ValueKind(Enum):
    COLOR = "color"
    DIMENSION = "dimension"
    TEXT = "text"
    GRADIENT = "gradient"


class EditableProperty(Enum):
    """The closed set of properties the inspector can read and write."""

    COLOR = "color"
    BACKGROUND_COLOR = "background-color"
    FONT_SIZE = "font-size"
    FONT_WEIGHT = "font-weight"
    FONT_FAMILY = "font-family"
    PADDING_TOP = "padding-top"
    PADDING_RIGHT = "padding-right"
    PADDING_BOTTOM = "padding-bottom"
    PADDING_LEFT = "padding-left"
    MARGIN_TOP = "margin-top"
    MARGIN_RIGHT = "margin-right"
    MARGIN_BOTTOM = "margin-bottom"
    MARGIN_LEFT = "margin-left"
    BORDER_RADIUS = "border-radius"
    BORDER = "border"
    WIDTH = "width"
    HEIGHT = "height"
    TEXT_CONTENT = TEXT_CONTENT
    PAGE_BACKGROUND = PAGE_BACKGROUND

    @property
    def kind(self) -> ValueKind:
        return _PROPERTY_KINDS.get(self, ValueKind.DIMENSION)

    @property
    def label(self) -> str:
        if self is EditableProperty.TEXT_CONTENT:
            return "Text"
        if self is EditableProperty.PAGE_BACKGROUND:
            return "Page background"
        return self.value.replace("-", " ").capitalize()

    @property
    def is_style(self) -> bool:
        return self not in (EditableProperty.TEXT_CONTENT, EditableProperty.PAGE_BACKGROUND)


_PROPERTY_KINDS: Dict[EditableProperty, ValueKind] = {
    EditableProperty.COLOR: ValueKind.COLOR,
    EditableProperty.BACKGROUND_COLOR: ValueKind.COLOR,
    EditableProperty.PAGE_BACKGROUND: ValueKind.COLOR,
    EditableProperty.FONT_WEIGHT: ValueKind.TEXT,
    EditableProperty.FONT_FAMILY: ValueKind.TEXT,
    EditableProperty.BORDER: ValueKind.TEXT,
    EditableProperty.TEXT_CONTENT: ValueKind.TEXT,
}

SAMPLED_PROPERTIES = tuple(p for p in EditableProperty if p.is_style)


@dataclass(frozen=True)
class PropertyValue:
    """A tagged value for one editable property."""

    kind: ValueKind
    text: str = ""
    gradient: Optional[GradientDescriptor] = None

    @classmethod
    def color(cls, value: str) -> "PropertyValue":
        return cls(ValueKind.COLOR, value)

    @classmethod
    def dimension(cls, value: str) -> "PropertyValue":
        return cls(ValueKind.DIMENSION, value)

    @classmethod
    def plain(cls, value: str) -> "PropertyValue":
        return cls(ValueKind.TEXT, value)

    @classmethod
    def of_gradient(cls, descriptor: GradientDescriptor) -> "PropertyValue":
        return cls(ValueKind.GRADIENT, descriptor.serialize(), descriptor)

    @classmethod
    def for_property(cls, prop: EditableProperty, value: str) -> "PropertyValue":
        return cls(prop.kind, value)


@dataclass
class ProjectSnapshot:
    id: str
    prompt: str
    code: str
    timestamp: int = field(default_factory=now_ms)
    thumbnail: Optional[str] = None
    edits: List[StyleEdit] = field(default_factory=list)

    @property
    def document(self) -> GeneratedDocument:
        return GeneratedDocument(code=self.code, prompt=self.prompt)

    @property
    def title(self) -> str:
        prompt = " ".join(self.prompt.split())
        return prompt if len(prompt) <= 30 else prompt[:30] + "..."

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "prompt": self.prompt,
            "code": self.code,
            "timestamp": self.timestamp,
            "edits": [edit.to_dict() for edit in self.edits],
        }
        if self.thumbnail:
            data["thumbnail"] = self.thumbnail
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectSnapshot":
        edits: List[StyleEdit] = []
        for edit_data in data.get("edits") or []:
            if isinstance(edit_data, dict):
                edits.append(StyleEdit.from_dict(edit_data))
        return cls(
            id=str(data.get("id", "")),
            prompt=str(data.get("prompt", "")),
            code=str(data.get("code", "")),
            timestamp=int(data.get("timestamp") or 0),
            thumbnail=(str(data["thumbnail"]) if data.get("thumbnail") else None),
            edits=edits,
        )
