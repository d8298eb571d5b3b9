"""Per-project editing session tying the editing components together."""

from __future__ import annotations

import logging
import re
import uuid
from typing import Callable, List, Optional

from bs4 import BeautifulSoup, Tag

from .inline_edit import InlineTextEditor
from .inspector import InspectorSnapshot, PropertyInspector
from .ledger import EditLedger, ReplayReport, WriteScheduler
from .models import GeneratedDocument, ProjectSnapshot, StyleEdit
from .render import SURFACE_SELECTOR, RenderResult, RenderSurface, render_document
from .selection import Region, SelectedElement, SelectionController
from .storage import KeyValueStore, ProjectStore
from .viewport import DeviceClass, ViewportEmulator

logger = logging.getLogger(__name__)

ICON_CONTAINERS = ["div", "section", "main", "header"]
ICON_STYLE = (
    "display: inline-flex; align-items: center; justify-content: center; "
    "width: 24px; height: 24px; color: currentColor; margin: 8px;"
)

SelectionCallback = Callable[[Optional[SelectedElement], Optional[InspectorSnapshot]], None]


class EditingSession:
    """Everything that belongs to one open project.

    Built when a project is opened and torn down with ``close``. The surface,
    the selection, the inline editor and the inspector are rebuilt on every
    render; the ledger lives as long as the session.
    """

    def __init__(
        self,
        project: ProjectSnapshot,
        store: KeyValueStore,
        scheduler: Optional[WriteScheduler] = None,
        viewport: Optional[ViewportEmulator] = None,
        on_selection: Optional[SelectionCallback] = None,
        scope: str = SURFACE_SELECTOR,
    ) -> None:
        self.project = project
        self.store = store
        self.projects = ProjectStore(store)
        self.viewport = viewport or ViewportEmulator()
        self.on_selection = on_selection
        self.scope = scope
        self.ledger = EditLedger(project.id, store, scheduler)
        self.document = project.document
        self.surface: Optional[RenderSurface] = None
        self.selection: Optional[SelectionController] = None
        self.inline_editor: Optional[InlineTextEditor] = None
        self.inspector: Optional[PropertyInspector] = None
        self.warnings: List[str] = []
        self.last_replay = ReplayReport()
        self.closed = False

    @classmethod
    def open(cls, project: ProjectSnapshot, store: KeyValueStore, **kwargs) -> "EditingSession":
        session = cls(project, store, **kwargs)
        session.ledger.load(seed=project.edits)
        session.render()
        return session

    # --------------------------------------------------------- Rendering --
    def render(self, document: Optional[GeneratedDocument] = None) -> RenderResult:
        """Build a fresh surface for ``document`` (default: the current one) and replay."""
        if document is not None:
            self.document = document
        self._teardown()
        result = render_document(self.document, self.scope)
        surface = result.surface
        self.last_replay = self.ledger.replay(surface)
        surface.assign_node_ids()
        self.surface = surface
        self.warnings = list(result.warnings)
        self.selection = SelectionController(surface, self._selection_changed)
        self.inline_editor = InlineTextEditor(surface, self.ledger, self.selection)
        self.inspector = PropertyInspector(surface, self.ledger, self.selection.note_panel_interaction)
        logger.info(
            "session: rendered %s (%d edit(s) applied, %d skipped)",
            self.project.id, self.last_replay.applied, self.last_replay.skipped,
        )
        return result

    def refresh(self) -> RenderResult:
        """Re-render the last known document and replay the ledger onto it."""
        return self.render()

    def regenerate(self, document: GeneratedDocument) -> RenderResult:
        """Swap in a newly generated document. The ledger is kept and replayed."""
        self.document = document
        if document.prompt:
            self.project.prompt = document.prompt
        self.save()
        return self.render()

    def set_viewport(self, device: DeviceClass | str) -> DeviceClass:
        return self.viewport.set_device(device)

    def _teardown(self) -> None:
        if self.inline_editor is not None and self.inline_editor.active:
            self.inline_editor.cancel()
        if self.selection is not None:
            self.selection.detach()
        if self.inspector is not None:
            self.inspector.close()

    # ----------------------------------------------------------- Events --
    def _selection_changed(self, selected: Optional[SelectedElement]) -> None:
        snapshot: Optional[InspectorSnapshot] = None
        if self.inspector is not None:
            if selected is not None:
                snapshot = self.inspector.open(selected)
            else:
                self.inspector.close()
        if self.on_selection is not None:
            self.on_selection(selected, snapshot)

    def node(self, node_id: int | str) -> Optional[Tag]:
        if self.surface is None or int(node_id) < 0:
            return None
        return self.surface.node_by_id(node_id)

    def pointer_down(self, target: object, x: float = 0, y: float = 0,
                     region: Region = Region.SURFACE) -> None:
        if self.selection is not None and not self._editing():
            self.selection.pointer_down(target, x, y, region)

    def pointer_move(self, target: object, x: float = 0, y: float = 0, buttons: int = 0) -> None:
        if self.selection is not None and not self._editing():
            self.selection.pointer_move(target, x, y, buttons)

    def pointer_up(self, target: object, x: float = 0, y: float = 0) -> Optional[SelectedElement]:
        if self.selection is None or self._editing():
            return None
        return self.selection.pointer_up(target, x, y)

    def pointer_leave(self, target: object) -> None:
        if self.selection is not None:
            self.selection.pointer_leave(target)

    def panel_interaction(self) -> None:
        if self.selection is not None:
            self.selection.note_panel_interaction()

    def double_click(self, target: object) -> bool:
        if self.inline_editor is None:
            return False
        return self.inline_editor.start(target)

    def _editing(self) -> bool:
        return self.inline_editor is not None and self.inline_editor.active

    def editor_key(self, key: str, shift: bool = False, text: Optional[str] = None) -> Optional[StyleEdit]:
        if not self._editing():
            return None
        if text is not None:
            self.inline_editor.set_text(text)
        return self.inline_editor.key_press(key, shift)

    def editor_blur(self, text: Optional[str] = None) -> Optional[StyleEdit]:
        if not self._editing():
            return None
        return self.inline_editor.commit(text)

    # ------------------------------------------------------------ Icons --
    def insert_icon(self, name: str, svg: str) -> Optional[SelectedElement]:
        """Insert a decorative icon at the top of the first container and select it.

        Insertions are live only and are not written to the ledger.
        """
        if self.surface is None or self.selection is None:
            return None
        root = self.surface.root
        container = root.find(ICON_CONTAINERS) or root
        slug = re.sub(r"[^\w-]+", "-", name).strip("-") or "icon"
        wrapper = self.surface.soup.new_tag(
            "div",
            attrs={
                "id": f"lp-icon-{slug}-{uuid.uuid4().hex[:8]}",
                "class": "lp-icon",
                "style": ICON_STYLE,
                "title": name,
            },
        )
        icon = BeautifulSoup(svg, "html.parser").find("svg")
        if icon is not None:
            icon["width"] = "24"
            icon["height"] = "24"
            wrapper.append(icon)
        container.insert(0, wrapper)
        self.surface.assign_node_ids()
        logger.debug("session: inserted icon %s", name)
        return self.selection.select(wrapper)

    # ------------------------------------------------------- Lifecycle --
    def snapshot(self) -> ProjectSnapshot:
        self.project.code = self.document.code
        self.project.edits = self.ledger.entries()
        return self.project

    def save(self) -> ProjectSnapshot:
        self.ledger.flush()
        project = self.snapshot()
        self.projects.save(project)
        return project

    def close(self) -> None:
        """Flush pending ledger writes and drop the surface."""
        if self.closed:
            return
        if self._editing():
            self.inline_editor.commit()
        self.ledger.flush()
        self._teardown()
        self.surface = None
        self.selection = None
        self.inline_editor = None
        self.inspector = None
        self.closed = True

    def delete(self) -> None:
        """Delete the project together with its ledger."""
        if self._editing():
            self.inline_editor.cancel()
        self.ledger.delete()
        self.projects.delete(self.project.id)
        self.close()
