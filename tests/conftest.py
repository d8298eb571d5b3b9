from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, List

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from livepage.core.ledger import EditLedger, WriteScheduler
from livepage.core.models import GeneratedDocument
from livepage.core.render import RenderSurface, render_document
from livepage.core.storage import MemoryStore

SAMPLE_PAGE = """<!doctype html>
<html>
<head>
<title>Sample</title>
<style>
body { background: #0f172a; font-family: Inter, sans-serif; }
.hero-title {
  color: transparent;
  background: linear-gradient(135deg, rgb(102,126,234) 0%, rgb(118,75,162) 100%);
  -webkit-background-clip: text;
  background-clip: text;
  font-size: 48px;
}
.hero p { color: #cbd5e1; padding: 4px 8px; }
#cta { background-color: #6366f1; color: white; }
</style>
</head>
<body>
<section class="hero">
  <h1 class="hero-title">Build faster</h1>
  <p>Intro text</p>
  <button id="cta" class="btn primary">Get started</button>
</section>
<div class="features">
  <p>One</p>
  <p>Two</p>
</div>
<footer><span>Small print</span></footer>
</body>
</html>
"""


class FakeTimer:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeTimers:
    """Timer factory that only fires when told to."""

    def __init__(self) -> None:
        self.created: List[FakeTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.created.append(timer)
        return timer

    @property
    def live(self) -> List[FakeTimer]:
        return [t for t in self.created if not t.cancelled]

    def fire_all(self) -> None:
        for timer in list(self.live):
            timer.cancelled = True
            timer.callback()


@pytest.fixture
def document() -> GeneratedDocument:
    return GeneratedDocument(code=SAMPLE_PAGE, prompt="A landing page")


@pytest.fixture
def surface(document: GeneratedDocument) -> RenderSurface:
    return render_document(document).surface


@pytest.fixture
def timers() -> FakeTimers:
    return FakeTimers()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def ledger(store: MemoryStore, timers: FakeTimers) -> EditLedger:
    return EditLedger("p1", store, WriteScheduler(timer_factory=timers))
