from __future__ import annotations

import sys
import threading
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from conftest import SAMPLE_PAGE, FakeTimers
from livepage.core.errors import StoreError
from livepage.core.ledger import EditLedger, WriteScheduler
from livepage.core.models import PAGE_BACKGROUND, TEXT_CONTENT, GeneratedDocument, StyleEdit
from livepage.core.render import render_document
from livepage.core.storage import MemoryStore, load_edits
from livepage.core.styles import get_inline_style


class CountingStore(MemoryStore):
    def __init__(self) -> None:
        super().__init__()
        self.writes = 0

    def set(self, key, value) -> None:
        self.writes += 1
        super().set(key, value)


class BrokenStore(MemoryStore):
    def set(self, key, value) -> None:
        raise StoreError("disk full")


class ThreadRecordingStore(MemoryStore):
    def __init__(self) -> None:
        super().__init__()
        self.on_main_thread: list = []

    def set(self, key, value) -> None:
        self.on_main_thread.append(threading.current_thread() is threading.main_thread())
        super().set(key, value)


class ExplodingStore(MemoryStore):
    def set(self, key, value) -> None:
        raise RuntimeError("dictionary changed size during iteration")


def _fresh_surface(code: str = SAMPLE_PAGE):
    return render_document(GeneratedDocument(code=code)).surface


def test_record_same_pair_twice_keeps_last_value(ledger: EditLedger) -> None:
    ledger.record(".hero-title", "color", "#ff0000")
    ledger.record(".hero-title", "color", "#00ff00")
    assert len(ledger) == 1
    assert ledger.get(".hero-title", "color").value == "#00ff00"


def test_record_different_properties_are_kept_apart(ledger: EditLedger) -> None:
    ledger.record(".hero-title", "color", "#ff0000")
    ledger.record(".hero-title", "font-size", "40px")
    assert {edit.property for edit in ledger} == {"color", "font-size"}


def test_rapid_edits_coalesce_into_one_write(timers: FakeTimers) -> None:
    store = CountingStore()
    ledger = EditLedger("p1", store, WriteScheduler(timer_factory=timers))
    for size in ("10px", "11px", "12px"):
        ledger.record("h1:nth-of-type(1)", "font-size", size)
    assert len(timers.live) == 1
    assert store.writes == 0
    timers.fire_all()
    assert store.writes == 1
    assert [e.value for e in load_edits(store, "p1")] == ["12px"]


def test_persist_failure_is_logged_not_raised(timers: FakeTimers) -> None:
    ledger = EditLedger("p1", BrokenStore(), WriteScheduler(timer_factory=timers))
    ledger.record(".a", "color", "red")
    timers.fire_all()
    assert ledger.persist() is False
    assert ledger.get(".a", "color") is not None


def test_load_prefers_stored_entries_over_seed(store: MemoryStore, timers: FakeTimers) -> None:
    seed = [StyleEdit(".seed", "color", "red")]
    ledger = EditLedger("p1", store, WriteScheduler(timer_factory=timers))
    assert [e.selector for e in ledger.load(seed)] == [".seed"]

    store.set("edits-p1", [StyleEdit(".stored", "color", "blue").to_dict()])
    assert [e.selector for e in ledger.load(seed)] == [".stored"]


def test_replay_applies_to_every_match(ledger: EditLedger) -> None:
    surface = _fresh_surface()
    ledger.record("p:nth-of-type(1)", "color", "#ff0000")
    report = ledger.replay(surface)
    firsts = [p for p in surface.root.find_all("p") if get_inline_style(p, "color") == "#ff0000"]
    assert report.applied == 1
    assert [p.get_text() for p in firsts] == ["Intro text", "One"]


def test_replay_text_and_page_background(ledger: EditLedger) -> None:
    surface = _fresh_surface()
    ledger.record("#cta", TEXT_CONTENT, "Sign up")
    ledger.record(".hero", PAGE_BACKGROUND, "#101010")
    ledger.replay(surface)
    assert surface.root.find(id="cta").get_text() == "Sign up"
    assert get_inline_style(surface.root, "background-color") == "#101010"


def test_replay_does_not_schedule_writes(ledger: EditLedger, timers: FakeTimers) -> None:
    ledger.load([StyleEdit(".hero-title", "color", "#00ff00")])
    ledger.replay(_fresh_surface())
    assert timers.created == []
    assert not ledger.scheduler.pending(ledger.key)


def test_record_during_suppression_does_not_persist(ledger: EditLedger, timers: FakeTimers) -> None:
    with ledger.scheduler.suppressed(ledger.key):
        ledger.record(".x", "color", "red")
    assert timers.created == []
    assert len(ledger) == 1


def test_replay_is_idempotent(ledger: EditLedger) -> None:
    ledger.record(".hero-title", "color", "#00ff00")
    ledger.record("#cta", "border-radius", "50%")
    ledger.record(".features", PAGE_BACKGROUND, "#222222")
    once = _fresh_surface()
    ledger.replay(once)
    twice = _fresh_surface()
    ledger.replay(twice)
    ledger.replay(twice)
    assert once.html() == twice.html()


def test_replay_skips_orphaned_entries(ledger: EditLedger) -> None:
    ledger.record(".hero-title", "color", "#00ff00")
    ledger.record("#cta", "background-color", "#000000")
    ledger.record(".features", "padding-top", "40px")
    changed = SAMPLE_PAGE.replace('<button id="cta" class="btn primary">Get started</button>', "")
    surface = _fresh_surface(changed)
    report = ledger.replay(surface)
    assert (report.applied, report.skipped) == (2, 1)
    assert get_inline_style(surface.root.find("h1"), "color") == "#00ff00"
    assert len(ledger) == 3


def test_gradient_background_replay_restores_clip(ledger: EditLedger) -> None:
    css = "linear-gradient(135deg, rgb(102,126,234) 0%, #ffffff 100%)"
    ledger.record(".hero-title", "background", css)
    surface = _fresh_surface()
    ledger.replay(surface)
    h1 = surface.root.find("h1")
    assert get_inline_style(h1, "background") == css
    assert get_inline_style(h1, "-webkit-text-fill-color") == "transparent"


def test_delete_removes_stored_ledger(ledger: EditLedger, store: MemoryStore, timers: FakeTimers) -> None:
    ledger.record(".a", "color", "red")
    timers.fire_all()
    assert store.get("edits-p1")
    ledger.delete()
    assert store.get("edits-p1") is None
    assert len(ledger) == 0


def test_default_scheduler_waits_for_flush_and_writes_on_calling_thread() -> None:
    store = ThreadRecordingStore()
    ledger = EditLedger("p", store)
    ledger.record(".hero-title", "color", "#ff0000")
    ledger.record(".hero-title", "color", "#00ff00")
    assert store.on_main_thread == []
    assert ledger.scheduler.pending(ledger.key)

    ledger.flush()
    assert store.on_main_thread == [True]
    assert [e.value for e in load_edits(store, "p")] == ["#00ff00"]


def test_unexpected_store_failure_is_logged_not_raised(timers: FakeTimers, caplog) -> None:
    ledger = EditLedger("p1", ExplodingStore(), WriteScheduler(timer_factory=timers))
    ledger.record(".a", "color", "red")
    timers.fire_all()
    assert ledger.persist() is False
    assert "not saved" in caplog.text
    assert ledger.get(".a", "color").value == "red"
