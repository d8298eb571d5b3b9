"""Main application window for the live page editor."""

from __future__ import annotations

import json
import logging
from typing import Callable, List, Optional

from PyQt6 import QtCore, QtGui, QtWidgets
from PyQt6.QtWebChannel import QWebChannel
from PyQt6.QtWebEngineWidgets import QWebEngineView

from ..core import generator
from ..core.client import GenerationClient, GenerationResult
from ..core.errors import GenerationError, LivePageError
from ..core.inspector import InspectorSnapshot
from ..core.ledger import WriteScheduler
from ..core.models import ProjectSnapshot
from ..core.selection import Region, SelectedElement
from ..core.session import EditingSession
from ..core.settings import SettingsManager, app_data_dir
from ..core.storage import JsonFileStore, ProjectStore
from ..core.viewport import DeviceClass, ViewportEmulator
from .inspector_panel import InspectorPanel

APP_TITLE = "LivePage"

logger = logging.getLogger(__name__)

_ICON_PATH = (
    '<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 24 24" fill="none" '
    'stroke="currentColor" stroke-width="2" stroke-linecap="round" stroke-linejoin="round">{}</svg>'
)
ICONS = {
    "star": _ICON_PATH.format(
        '<polygon points="12 2 15.09 8.26 22 9.27 17 14.14 18.18 21.02 12 17.77 5.82 21.02 7 14.14 2 9.27 8.91 8.26 12 2"/>'
    ),
    "heart": _ICON_PATH.format(
        '<path d="M20.84 4.61a5.5 5.5 0 0 0-7.78 0L12 5.67l-1.06-1.06a5.5 5.5 0 0 0-7.78 7.78L12 21.23l8.84-8.84a5.5 5.5 0 0 0 0-7.78z"/>'
    ),
    "check": _ICON_PATH.format('<polyline points="20 6 9 17 4 12"/>'),
    "zap": _ICON_PATH.format('<polygon points="13 2 3 14 12 14 11 22 21 10 12 10 13 2"/>'),
    "mail": _ICON_PATH.format(
        '<rect x="2" y="4" width="20" height="16" rx="2"/><polyline points="22 6 12 13 2 6"/>'
    ),
}


class _QtTimer:
    """Single-shot QTimer with the cancel() interface the write scheduler expects."""

    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self._timer = QtCore.QTimer()
        self._timer.setSingleShot(True)
        self._timer.setInterval(int(delay * 1000))
        self._timer.timeout.connect(callback)
        self._timer.start()

    def cancel(self) -> None:
        self._timer.stop()


class _GenerateWorker(QtCore.QObject):
    finished = QtCore.pyqtSignal(object)
    errored = QtCore.pyqtSignal(str)

    def __init__(self, client: GenerationClient, prompt: str, model: str) -> None:
        super().__init__()
        self.client = client
        self.prompt = prompt
        self.model = model

    def run(self) -> None:
        try:
            result = self.client.generate(self.prompt, self.model)
        except GenerationError as exc:
            self.errored.emit(str(exc))
            return
        except Exception as exc:  # noqa: BLE001
            logger.exception("generate: unexpected failure")
            self.errored.emit(str(exc))
            return
        self.finished.emit(result)


class PreviewBridge(QtCore.QObject):
    """Receives pointer and keyboard events from the preview page."""

    def __init__(self, window: "MainWindow") -> None:
        super().__init__(window)
        self.window = window

    def _session(self) -> Optional[EditingSession]:
        return self.window.session

    @QtCore.pyqtSlot(int, float, float)
    def pointerDown(self, node_id: int, x: float, y: float) -> None:  # noqa: N802
        session = self._session()
        if session is not None:
            session.pointer_down(session.node(node_id), x, y, Region.SURFACE)

    @QtCore.pyqtSlot(int, float, float, int)
    def pointerMove(self, node_id: int, x: float, y: float, buttons: int) -> None:  # noqa: N802
        session = self._session()
        if session is not None:
            session.pointer_move(session.node(node_id), x, y, buttons)

    @QtCore.pyqtSlot(int, float, float)
    def pointerUp(self, node_id: int, x: float, y: float) -> None:  # noqa: N802
        session = self._session()
        if session is not None:
            session.pointer_up(session.node(node_id), x, y)

    @QtCore.pyqtSlot(int)
    def hover(self, node_id: int) -> None:
        session = self._session()
        if session is not None:
            session.pointer_move(session.node(node_id))

    @QtCore.pyqtSlot(int)
    def leave(self, node_id: int) -> None:
        session = self._session()
        if session is not None:
            session.pointer_leave(session.node(node_id))

    @QtCore.pyqtSlot(int)
    def doubleClick(self, node_id: int) -> None:  # noqa: N802
        session = self._session()
        if session is not None and session.double_click(session.node(node_id)):
            self.window.push_surface()

    @QtCore.pyqtSlot(str, bool, str)
    def editorKey(self, key: str, shift: bool, text: str) -> None:  # noqa: N802
        session = self._session()
        if session is None:
            return
        session.editor_key(key, shift, text)
        self.window.push_surface()

    @QtCore.pyqtSlot(str)
    def editorBlur(self, text: str) -> None:  # noqa: N802
        session = self._session()
        if session is None:
            return
        session.editor_blur(text)
        self.window.push_surface()


class MainWindow(QtWidgets.QMainWindow):
    def __init__(self, settings: Optional[SettingsManager] = None) -> None:
        super().__init__()
        self.setWindowTitle(APP_TITLE)
        self.resize(1360, 860)

        self.settings = settings or SettingsManager()
        self.store = JsonFileStore(app_data_dir() / "store.json")
        self.projects = ProjectStore(self.store)
        self.client = GenerationClient(
            api_url=self.settings.get("api_url"),
            model=self.settings.get("model"),
            timeout=self.settings.get_int("request_timeout", 120),
        )
        self.viewport = ViewportEmulator(self.settings.get("viewport", DeviceClass.WIDE.value))
        self.session: Optional[EditingSession] = None

        self._threads: List[QtCore.QThread] = []
        self._workers: List[_GenerateWorker] = []

        self._build_ui()
        self._build_menu()
        self._bind_events()
        self._refresh_projects_list()

        app = QtWidgets.QApplication.instance()
        if app is not None:
            app.installEventFilter(self)

    # ------------------------------------------------------------------ UI --
    def _build_ui(self) -> None:
        splitter = QtWidgets.QSplitter(self)
        splitter.setOrientation(QtCore.Qt.Orientation.Horizontal)
        self.setCentralWidget(splitter)

        # Prompt + projects panel
        left_panel = QtWidgets.QWidget(self)
        left_layout = QtWidgets.QVBoxLayout(left_panel)
        left_layout.setContentsMargins(6, 6, 6, 6)
        left_layout.setSpacing(6)

        self.prompt_edit = QtWidgets.QPlainTextEdit(left_panel)
        self.prompt_edit.setPlaceholderText("Describe the page you want, e.g. a landing page for a coffee shop")
        self.model_edit = QtWidgets.QLineEdit(self.settings.get("model"), left_panel)
        gen_row = QtWidgets.QHBoxLayout()
        self.btn_generate = QtWidgets.QPushButton("Generate", left_panel)
        self.btn_regenerate = QtWidgets.QPushButton("Regenerate", left_panel)
        self.btn_regenerate.setToolTip("Generate a new version of the open project and keep its edits")
        gen_row.addWidget(self.btn_generate)
        gen_row.addWidget(self.btn_regenerate)

        self.projects_list = QtWidgets.QListWidget(left_panel)
        self.projects_list.setSelectionMode(QtWidgets.QAbstractItemView.SelectionMode.SingleSelection)
        proj_row = QtWidgets.QHBoxLayout()
        self.btn_open = QtWidgets.QPushButton("Open", left_panel)
        self.btn_delete = QtWidgets.QPushButton("Delete", left_panel)
        proj_row.addWidget(self.btn_open)
        proj_row.addWidget(self.btn_delete)

        left_layout.addWidget(QtWidgets.QLabel("Prompt", left_panel))
        left_layout.addWidget(self.prompt_edit, 1)
        left_layout.addWidget(QtWidgets.QLabel("Model", left_panel))
        left_layout.addWidget(self.model_edit)
        left_layout.addLayout(gen_row)
        left_layout.addWidget(QtWidgets.QLabel("Saved projects", left_panel))
        left_layout.addWidget(self.projects_list, 1)
        left_layout.addLayout(proj_row)

        # Preview
        right_panel = QtWidgets.QWidget(self)
        right_layout = QtWidgets.QVBoxLayout(right_panel)
        right_layout.setContentsMargins(6, 6, 6, 6)
        right_layout.setSpacing(6)

        toolbar = QtWidgets.QHBoxLayout()
        self.viewport_buttons: dict[DeviceClass, QtWidgets.QToolButton] = {}
        group = QtWidgets.QButtonGroup(right_panel)
        for device in DeviceClass:
            button = QtWidgets.QToolButton(right_panel)
            button.setText(device.label)
            button.setCheckable(True)
            button.setChecked(device is self.viewport.device)
            group.addButton(button)
            toolbar.addWidget(button)
            self.viewport_buttons[device] = button
        toolbar.addStretch(1)
        self.icon_combo = QtWidgets.QComboBox(right_panel)
        self.icon_combo.addItems(sorted(ICONS))
        self.btn_icon = QtWidgets.QPushButton("Insert icon", right_panel)
        self.btn_refresh = QtWidgets.QPushButton("Refresh", right_panel)
        toolbar.addWidget(self.icon_combo)
        toolbar.addWidget(self.btn_icon)
        toolbar.addWidget(self.btn_refresh)
        right_layout.addLayout(toolbar)

        self.preview = QWebEngineView(right_panel)
        self.bridge = PreviewBridge(self)
        self.channel = QWebChannel(self.preview.page())
        self.channel.registerObject(generator.BRIDGE_NAME, self.bridge)
        page = self.preview.page()
        if page is not None:
            page.setWebChannel(self.channel)
        right_layout.addWidget(self.preview, 1)

        splitter.addWidget(left_panel)
        splitter.addWidget(right_panel)
        splitter.setSizes([300, 1060])

        # Inspector dock
        self.inspector_panel = InspectorPanel(self)
        self.inspector_dock = QtWidgets.QDockWidget("Inspector", self)
        self.inspector_dock.setObjectName("inspectorDock")
        self.inspector_dock.setWidget(self.inspector_panel)
        self.addDockWidget(QtCore.Qt.DockWidgetArea.RightDockWidgetArea, self.inspector_dock)

        self.status = self.statusBar()

    def _build_menu(self) -> None:
        bar = self.menuBar()
        if bar is None:
            bar = QtWidgets.QMenuBar(self)
            self.setMenuBar(bar)

        file_menu = bar.addMenu("&File")
        self.act_save = QtGui.QAction("Save Project", self)
        self.act_save.setShortcut(QtGui.QKeySequence.StandardKey.Save)
        self.act_refresh = QtGui.QAction("Refresh Preview", self)
        self.act_refresh.setShortcut(QtGui.QKeySequence("F5"))
        self.act_quit = QtGui.QAction("Quit", self)
        if file_menu is not None:
            file_menu.addActions([self.act_save, self.act_refresh])
            file_menu.addSeparator()
            file_menu.addAction(self.act_quit)

        help_menu = bar.addMenu("&Help")
        self.act_about = QtGui.QAction("About", self)
        if help_menu is not None:
            help_menu.addAction(self.act_about)

    def _bind_events(self) -> None:
        self.btn_generate.clicked.connect(lambda: self.generate(regenerate=False))
        self.btn_regenerate.clicked.connect(lambda: self.generate(regenerate=True))
        self.btn_open.clicked.connect(self.open_selected_project)
        self.btn_delete.clicked.connect(self.delete_selected_project)
        self.projects_list.itemDoubleClicked.connect(lambda _item: self.open_selected_project())
        self.btn_refresh.clicked.connect(self.refresh_preview)
        self.btn_icon.clicked.connect(self.insert_icon)
        for device, button in self.viewport_buttons.items():
            button.clicked.connect(lambda _=False, d=device: self.set_viewport(d))

        panel = self.inspector_panel
        panel.interaction.connect(self._on_panel_interaction)
        panel.propertyChanged.connect(self._on_property_changed)
        panel.gradientColorChanged.connect(lambda i, c: self._inspect(lambda ins: ins.set_gradient_color(i, c)))
        panel.gradientColorAdded.connect(lambda: self._inspect(lambda ins: ins.add_gradient_color()))
        panel.gradientColorRemoved.connect(lambda i: self._inspect(lambda ins: ins.remove_gradient_color(i)))
        panel.gradientDirectionChanged.connect(lambda d: self._inspect(lambda ins: ins.set_gradient_direction(d)))
        panel.presetRequested.connect(lambda n: self._inspect(lambda ins: ins.apply_preset(n)))

        self.act_save.triggered.connect(self.save_project)
        self.act_refresh.triggered.connect(self.refresh_preview)
        self.act_quit.triggered.connect(self.close)
        self.act_about.triggered.connect(self.show_about)

    # ---------------------------------------------------------- Generation --
    def generate(self, regenerate: bool = False) -> None:
        prompt = self.prompt_edit.toPlainText().strip()
        if regenerate and self.session is not None and not prompt:
            prompt = self.session.project.prompt
        if not prompt:
            QtWidgets.QMessageBox.information(self, APP_TITLE, "Describe the page you want first.")
            return
        model = self.model_edit.text().strip() or self.settings.get("model")
        target = self.session.project.id if regenerate and self.session is not None else None

        thread = QtCore.QThread(self)
        worker = _GenerateWorker(self.client, prompt, model)
        worker.moveToThread(thread)

        def handle_finish(result: GenerationResult) -> None:
            self._generation_finished(result, target)
            thread.quit()

        def handle_error(message: str) -> None:
            if self.status is not None:
                self.status.showMessage("Generation failed", 5000)
            QtWidgets.QMessageBox.warning(self, "Generation failed", message)
            thread.quit()

        def cleanup() -> None:
            if thread in self._threads:
                self._threads.remove(thread)
            if worker in self._workers:
                self._workers.remove(worker)
            worker.deleteLater()
            thread.deleteLater()

        worker.finished.connect(handle_finish)
        worker.errored.connect(handle_error)
        thread.finished.connect(cleanup)
        thread.started.connect(worker.run)
        self._threads.append(thread)
        self._workers.append(worker)
        thread.start()
        if self.status is not None:
            self.status.showMessage("Generating page…")

    def _generation_finished(self, result: GenerationResult, target: Optional[str]) -> None:
        if target is not None and self.session is not None and self.session.project.id == target:
            self.session.regenerate(result.document)
            self._after_render()
        else:
            project = self.projects.create(result.document.prompt, result.document.code)
            self.open_project(project)
        self._refresh_projects_list()
        if self.status is not None:
            self.status.showMessage("Page generated", 4000)

    # ------------------------------------------------------------ Projects --
    def _refresh_projects_list(self) -> None:
        self.projects_list.clear()
        for project in self.projects.list():
            item = QtWidgets.QListWidgetItem(project.title or project.id)
            item.setData(QtCore.Qt.ItemDataRole.UserRole, project.id)
            item.setToolTip(project.prompt)
            self.projects_list.addItem(item)

    def _selected_project_id(self) -> Optional[str]:
        item = self.projects_list.currentItem()
        return item.data(QtCore.Qt.ItemDataRole.UserRole) if item is not None else None

    def open_selected_project(self) -> None:
        project_id = self._selected_project_id()
        project = self.projects.get(project_id) if project_id else None
        if project is not None:
            self.open_project(project)

    def open_project(self, project: ProjectSnapshot) -> None:
        self.close_session()
        scheduler = WriteScheduler(
            delay=self.settings.get_int("persist_delay_ms", 300) / 1000.0,
            timer_factory=_QtTimer,
        )
        self.session = EditingSession.open(
            project,
            self.store,
            scheduler=scheduler,
            viewport=self.viewport,
            on_selection=self._on_selection,
        )
        self.prompt_edit.setPlainText(project.prompt)
        self.update_window_title()
        self._after_render()

    def delete_selected_project(self) -> None:
        project_id = self._selected_project_id()
        if not project_id:
            return
        answer = QtWidgets.QMessageBox.question(self, "Delete project", "Delete this project and its edits?")
        if answer != QtWidgets.QMessageBox.StandardButton.Yes:
            return
        if self.session is not None and self.session.project.id == project_id:
            self.session.delete()
            self.session = None
            self.preview.setHtml("")
            self.inspector_panel.show_snapshot(None)
        else:
            self.projects.delete(project_id)
        self._refresh_projects_list()
        self.update_window_title()

    def save_project(self) -> None:
        if self.session is None:
            return
        try:
            self.session.save()
        except LivePageError as exc:
            QtWidgets.QMessageBox.warning(self, "Save failed", str(exc))
            return
        self._refresh_projects_list()
        if self.status is not None:
            self.status.showMessage("Project saved", 2500)

    def close_session(self) -> None:
        if self.session is None:
            return
        try:
            self.session.save()
        except LivePageError as exc:
            logger.warning("window: could not save project on close: %s", exc)
        self.session.close()
        self.session = None
        self.inspector_panel.show_snapshot(None)

    # ------------------------------------------------------------- Preview --
    def _after_render(self) -> None:
        if self.session is None or self.session.surface is None:
            return
        html = generator.render_preview(self.session.surface, self.viewport)
        self.preview.setHtml(html, QtCore.QUrl("https://livepage.local/"))
        self.inspector_panel.show_snapshot(None)
        if self.session.warnings and self.status is not None:
            self.status.showMessage(self.session.warnings[0], 6000)
        elif self.session.last_replay.skipped and self.status is not None:
            self.status.showMessage(
                f"{self.session.last_replay.skipped} saved edit(s) no longer match the page", 6000
            )

    def push_surface(self) -> None:
        """Replace the preview's surface markup with the session's current tree."""
        if self.session is None or self.session.surface is None:
            return
        page = self.preview.page()
        if page is not None:
            page.runJavaScript(f"window.livepage.replaceSurface({json.dumps(self.session.surface.html())});")

    def _mark(self, node_id: int) -> None:
        page = self.preview.page()
        if page is not None:
            page.runJavaScript(f"window.livepage.mark({int(node_id)});")

    def refresh_preview(self) -> None:
        if self.session is None:
            return
        self.session.refresh()
        self._after_render()

    def set_viewport(self, device: DeviceClass) -> None:
        self.viewport.set_device(device)
        self.settings.set("viewport", device.value)
        page = self.preview.page()
        if page is not None:
            page.runJavaScript(f"window.livepage.setFrameStyle({json.dumps(self.viewport.frame_style())});")

    def insert_icon(self) -> None:
        if self.session is None:
            return
        name = self.icon_combo.currentText()
        self.session.insert_icon(name, ICONS[name])
        self.push_surface()

    # ----------------------------------------------------------- Inspector --
    def _on_selection(self, selected: Optional[SelectedElement],
                      snapshot: Optional[InspectorSnapshot]) -> None:
        self.inspector_panel.show_snapshot(snapshot)
        if selected is None:
            self._mark(-1)
            return
        node_id = selected.node.get("data-lp-node")
        self._mark(int(node_id) if node_id is not None else -1)

    def _on_panel_interaction(self) -> None:
        if self.session is not None:
            self.session.panel_interaction()

    def _inspect(self, action: Callable) -> None:
        if self.session is None or self.session.inspector is None or not self.session.inspector.is_open:
            return
        try:
            action(self.session.inspector)
        except (ValueError, KeyError) as exc:
            logger.warning("window: inspector action failed: %s", exc)
            return
        self.push_surface()
        self.inspector_panel.show_snapshot(self.session.inspector.snapshot)

    def _on_property_changed(self, prop: str, value: str) -> None:
        self._inspect(lambda ins: ins.set_property(prop, value))

    def eventFilter(self, obj: QtCore.QObject, event: QtCore.QEvent) -> bool:  # noqa: N802 (Qt override)
        if event.type() == QtCore.QEvent.Type.MouseButtonPress and self.session is not None:
            if isinstance(obj, QtWidgets.QWidget) and obj.window() is self:
                region = self._region_of(obj)
                if region is not None:
                    self.session.pointer_down(None, region=region)
        return super().eventFilter(obj, event)

    def _region_of(self, widget: QtWidgets.QWidget) -> Optional[Region]:
        if widget is self.preview or self.preview.isAncestorOf(widget):
            return None
        if widget is self.inspector_dock or self.inspector_dock.isAncestorOf(widget):
            return Region.INSPECTOR
        return Region.CHROME

    # ---------------------------------------------------------------- Misc --
    def show_about(self) -> None:
        QtWidgets.QMessageBox.information(
            self,
            "About",
            f"{APP_TITLE}\n\nDescribe a page, then click, retext and restyle it in place.",
        )

    def update_window_title(self) -> None:
        name = self.session.project.title if self.session else "No project"
        self.setWindowTitle(f"{APP_TITLE} — {name}")

    def closeEvent(self, event: QtGui.QCloseEvent) -> None:  # noqa: N802 (Qt override)
        self.close_session()
        super().closeEvent(event)
