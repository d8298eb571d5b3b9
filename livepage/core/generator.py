"""Preview shell helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup

from .render import EDITOR_ATTR, HOVER_ATTR, NODE_ATTR, SELECTED_ATTR, SURFACE_ATTR, RenderSurface
from .viewport import ViewportEmulator

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
BRIDGE_NAME = "livepage"


def _env(templates_dir: Path) -> Environment:
    return Environment(
        loader=FileSystemLoader(str(templates_dir)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )


def render_preview(
    surface: RenderSurface,
    viewport: Optional[ViewportEmulator] = None,
    templates_dir: Optional[Path] = None,
) -> str:
    """Return the full preview document for ``surface``.

    The surface markup and its scoped stylesheet come from the render host and
    are inserted verbatim; only the title is escaped.
    """
    env = _env(templates_dir or TEMPLATES_DIR)
    tpl = env.get_template("preview.html.j2")
    viewport = viewport or ViewportEmulator()
    title = surface.document.prompt if surface.document is not None else ""
    return tpl.render(
        title=" ".join(title.split())[:80] or "Preview",
        head_links=[Markup(link) for link in surface.head_links],
        stylesheet=Markup(surface.stylesheet),
        surface=Markup(surface.html()),
        frame_style=viewport.frame_style(),
        bridge_name=BRIDGE_NAME,
        attrs={
            "surface": SURFACE_ATTR,
            "node": NODE_ATTR,
            "hover": HOVER_ATTR,
            "selected": SELECTED_ATTR,
            "editor": EDITOR_ATTR,
        },
    )

