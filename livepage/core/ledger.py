"""Edit ledger: last-write-wins style/text edits per project, persisted and replayed."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Protocol, Tuple

from bs4 import Tag

from . import gradients, selectors
from .errors import SelectorError, StoreError
from .models import PAGE_BACKGROUND, TEXT_CONTENT, StyleEdit
from .render import RenderSurface, is_page_level
from .storage import KeyValueStore, edits_key, load_edits, save_edits
from .styles import set_inline_style

logger = logging.getLogger(__name__)

DEFAULT_PERSIST_DELAY = 0.3


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


class DeferredTimer:
    """Never fires on its own. The pending write runs when the owner calls flush()."""

    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay

    def cancel(self) -> None:
        pass


class WriteScheduler:
    """Debounces writes per key and can suppress scheduling while edits are replayed."""

    def __init__(self, delay: float = DEFAULT_PERSIST_DELAY,
                 timer_factory: TimerFactory = DeferredTimer) -> None:
        self.delay = delay
        self._timer_factory = timer_factory
        self._pending: Dict[str, Tuple[TimerHandle, Callable[[], None]]] = {}
        self._suppressed: Dict[str, int] = {}

    def is_suppressed(self, key: str) -> bool:
        return self._suppressed.get(key, 0) > 0

    @contextmanager
    def suppressed(self, key: str) -> Iterator[None]:
        self._suppressed[key] = self._suppressed.get(key, 0) + 1
        try:
            yield
        finally:
            self._suppressed[key] -= 1
            if not self._suppressed[key]:
                del self._suppressed[key]

    def schedule(self, key: str, write: Callable[[], None]) -> bool:
        if self.is_suppressed(key):
            return False
        previous = self._pending.pop(key, None)
        if previous is not None:
            previous[0].cancel()
        handle = self._timer_factory(self.delay, lambda: self._fire(key))
        self._pending[key] = (handle, write)
        return True

    def pending(self, key: str) -> bool:
        return key in self._pending

    def _fire(self, key: str) -> None:
        entry = self._pending.pop(key, None)
        if entry is not None:
            entry[1]()

    def flush(self, key: Optional[str] = None) -> None:
        keys = [key] if key is not None else list(self._pending)
        for name in keys:
            entry = self._pending.pop(name, None)
            if entry is not None:
                entry[0].cancel()
                entry[1]()

    def cancel(self, key: Optional[str] = None) -> None:
        keys = [key] if key is not None else list(self._pending)
        for name in keys:
            entry = self._pending.pop(name, None)
            if entry is not None:
                entry[0].cancel()


@dataclass
class ReplayReport:
    applied: int = 0
    skipped: int = 0


def apply_edit(surface: RenderSurface, node: Tag, prop: str, value: str) -> None:
    """Write one ledger value onto a live node."""
    if prop == TEXT_CONTENT:
        node.string = value
    elif prop == PAGE_BACKGROUND:
        apply_page_background(surface, node, value)
    elif prop == "background" and "gradient" in value and gradients.gradient_source(node, surface.resolver):
        gradients.apply_gradient_text(node, value)
    else:
        set_inline_style(node, prop, value)


def apply_page_background(surface: RenderSurface, node: Optional[Tag], value: str) -> None:
    set_inline_style(surface.root, "background-color", value)
    set_inline_style(surface.root, "background", value)
    if node is not None and node is not surface.root and is_page_level(node, surface.root):
        set_inline_style(node, "background-color", value)
        set_inline_style(node, "background", value)


class EditLedger:
    """The deduplicated set of edits for one project."""

    def __init__(self, project_id: str, store: KeyValueStore,
                 scheduler: Optional[WriteScheduler] = None) -> None:
        self.project_id = project_id
        self.store = store
        self.scheduler = scheduler or WriteScheduler()
        self._entries: List[StyleEdit] = []

    @property
    def key(self) -> str:
        return edits_key(self.project_id)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[StyleEdit]:
        return iter(list(self._entries))

    def entries(self) -> List[StyleEdit]:
        return list(self._entries)

    def get(self, selector: str, prop: str) -> Optional[StyleEdit]:
        for edit in self._entries:
            if edit.key == (selector, prop):
                return edit
        return None

    def load(self, seed: Optional[List[StyleEdit]] = None) -> List[StyleEdit]:
        """Read the persisted ledger; fall back to ``seed`` when nothing is stored."""
        try:
            stored = load_edits(self.store, self.project_id)
        except StoreError as exc:
            logger.warning("ledger: could not read edits for %s: %s", self.project_id, exc)
            stored = None
        entries = stored if stored is not None else list(seed or [])
        self._entries = []
        for edit in entries:
            self._replace(edit)
        return self.entries()

    def _replace(self, edit: StyleEdit) -> None:
        self._entries = [e for e in self._entries if e.key != edit.key]
        self._entries.append(edit)

    def record(self, selector: str, prop: str, value: str) -> StyleEdit:
        edit = StyleEdit(selector=selector, property=prop, value=value)
        self._replace(edit)
        if not self.scheduler.schedule(self.key, self.persist):
            logger.debug("ledger: not persisting %s %s during replay", selector, prop)
        return edit

    def persist(self) -> bool:
        try:
            save_edits(self.store, self.project_id, self._entries)
        except Exception as exc:
            logger.warning("ledger: edits for %s not saved: %s", self.project_id, exc)
            return False
        logger.debug("ledger: saved %d edit(s) for %s", len(self._entries), self.project_id)
        return True

    def flush(self) -> None:
        self.scheduler.flush(self.key)

    def replay(self, surface: RenderSurface) -> ReplayReport:
        """Re-apply every entry to all of its matches in ``surface``.

        Entries whose selector no longer matches anything are skipped.
        """
        report = ReplayReport()
        with surface.applying(), self.scheduler.suppressed(self.key):
            for edit in self.entries():
                try:
                    matches = selectors.parse(edit.selector).select(surface.root)
                except SelectorError as exc:
                    logger.warning("ledger: %s", exc)
                    matches = []
                if edit.property == PAGE_BACKGROUND:
                    apply_page_background(surface, None, edit.value)
                elif not matches:
                    logger.info("ledger: no match for %s (%s), skipping", edit.selector, edit.property)
                    report.skipped += 1
                    continue
                for node in matches:
                    apply_edit(surface, node, edit.property, edit.value)
                report.applied += 1
        return report

    def delete(self) -> None:
        """Drop the ledger from the store. Only used when the project itself is deleted."""
        self.scheduler.cancel(self.key)
        self._entries = []
        try:
            self.store.delete(self.key)
        except Exception as exc:
            logger.warning("ledger: could not delete edits for %s: %s", self.project_id, exc)
