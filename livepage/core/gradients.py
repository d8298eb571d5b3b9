"""Gradient-clipped text: detection, color extraction and re-encoding."""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Union

from bs4 import Tag

from .models import DEFAULT_GRADIENT_DIRECTION, GradientDescriptor
from .styles import StyleResolver, set_inline_style

# Shown when a gradient is present but none of its colors can be read.
FALLBACK_COLOR = "#a855f7"

TRANSPARENT_VALUES = frozenset({"transparent", "rgba(0, 0, 0, 0)", "rgba(0,0,0,0)"})

# Tried in order; the first family with any match wins and families never mix.
COLOR_PATTERNS = (
    re.compile(r"rgba?\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*(?:,\s*([\d.]+))?\s*\)"),
    re.compile(r"#([0-9a-fA-F]{6})\b"),
    re.compile(r"#([0-9a-fA-F]{3})\b"),
    re.compile(r"hsla?\(\s*(\d+)\s*,\s*(\d+)%\s*,\s*(\d+)%\s*(?:,\s*([\d.]+))?\s*\)"),
)

DIRECTION_RE = re.compile(
    r"linear-gradient\(\s*(-?[\d.]+(?:deg|turn|rad|grad)|to\s+[a-z]+(?:\s+[a-z]+)?)\s*,", re.I
)


def is_transparent(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in TRANSPARENT_VALUES


def extract_colors(source: str) -> List[str]:
    for pattern in COLOR_PATTERNS:
        matches = [m.group(0) for m in pattern.finditer(source or "")]
        if matches:
            return matches
    return []


def _format_stop(percentage: float) -> str:
    return f"{percentage:.2f}".rstrip("0").rstrip(".") + "%"


def _format_angle(angle: Union[int, float, str]) -> str:
    if isinstance(angle, str):
        return angle.strip() or DEFAULT_GRADIENT_DIRECTION
    return f"{angle:g}deg"


def encode(colors: Sequence[str], angle: Union[int, float, str] = 135) -> str:
    """Build ``linear-gradient(angle, c0 0%, ..., cN 100%)`` with evenly spaced stops."""
    count = len(colors)
    stops = []
    for index, color in enumerate(colors):
        percentage = index / (count - 1) * 100 if count > 1 else 0
        stops.append(f"{color} {_format_stop(percentage)}")
    return f"linear-gradient({_format_angle(angle)}, {', '.join(stops)})"


def encode_descriptor(descriptor: GradientDescriptor) -> str:
    return encode(descriptor.colors, descriptor.direction)


def decode(source: str) -> Optional[GradientDescriptor]:
    colors = extract_colors(source)
    if not colors:
        return None
    match = DIRECTION_RE.search(source or "")
    direction = match.group(1) if match else DEFAULT_GRADIENT_DIRECTION
    return GradientDescriptor(colors=colors, direction=direction)


def gradient_source(node: Tag, resolver: StyleResolver) -> Optional[str]:
    """Return the gradient background of a gradient-clipped text node, if it is one."""
    color = resolver.resolve(node, "color")
    fill = resolver.resolve(node, "-webkit-text-fill-color")
    if not (is_transparent(color) or is_transparent(fill)):
        return None
    background_image = resolver.resolve(node, "background-image")
    background = resolver.resolve(node, "background")
    source = background_image if "gradient" in background_image else background
    if "gradient" not in source:
        return None
    return source


def detect(node: Tag, resolver: StyleResolver) -> Optional[GradientDescriptor]:
    source = gradient_source(node, resolver)
    if source is None:
        return None
    return decode(source)


def apply_gradient_text(node: Tag, css: str) -> None:
    """Write a gradient background and force the clip-to-text companions."""
    set_inline_style(node, "background", css)
    set_inline_style(node, "background-clip", "text")
    set_inline_style(node, "-webkit-background-clip", "text")
    set_inline_style(node, "-webkit-text-fill-color", "transparent")
    set_inline_style(node, "color", "transparent")
