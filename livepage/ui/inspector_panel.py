"""Inspector dock contents: controls generated from an inspector snapshot."""

from __future__ import annotations

import re
from typing import Dict, List, Optional

from PyQt6 import QtCore, QtGui, QtWidgets

from ..core.inspector import PRESETS, InspectorSnapshot
from ..core.models import EditableProperty, GradientDescriptor, PropertyValue, ValueKind

RGB_RE = re.compile(r"rgba?\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*(?:,\s*([\d.]+))?\s*\)")

PRESET_LABELS = {
    "glass": "Glass",
    "rounded": "Rounded",
    "circle": "Circle",
    "square": "Square",
    "shadow-sm": "Shadow S",
    "shadow-md": "Shadow M",
    "shadow-lg": "Shadow L",
    "shadow-none": "No shadow",
}


def to_qcolor(value: str) -> QtGui.QColor:
    match = RGB_RE.search(value or "")
    if match:
        r, g, b, a = match.groups()
        color = QtGui.QColor(int(r), int(g), int(b))
        if a is not None:
            color.setAlphaF(max(0.0, min(1.0, float(a))))
        return color
    return QtGui.QColor(value or "#ffffff")


class ColorButton(QtWidgets.QPushButton):
    """Small helper button that opens a color dialog and shows the current color."""

    colorChanged = QtCore.pyqtSignal(str)

    def __init__(self, color: str = "#ffffff",
                 parent: Optional[QtWidgets.QWidget] = None) -> None:
        super().__init__(parent)
        self._color = color or "#ffffff"
        self.setMinimumWidth(80)
        self.clicked.connect(self._choose_color)
        self._update_style()

    def color(self) -> str:
        return self._color

    def setColor(self, color: str) -> None:
        if not color or color == self._color:
            return
        self._color = color
        self._update_style()
        self.colorChanged.emit(color)

    def _choose_color(self) -> None:
        dialog_color = QtWidgets.QColorDialog.getColor(
            to_qcolor(self._color), self.window(), "Pick a color",
            QtWidgets.QColorDialog.ColorDialogOption.ShowAlphaChannel)
        if not dialog_color.isValid():
            return
        if dialog_color.alpha() < 255:
            self.setColor(
                f"rgba({dialog_color.red()}, {dialog_color.green()}, {dialog_color.blue()}, "
                f"{dialog_color.alphaF():.2f})"
            )
        else:
            self.setColor(dialog_color.name())

    def _update_style(self) -> None:
        qcolor = to_qcolor(self._color)
        text = "#000000" if qcolor.isValid() and qcolor.lightness() > 140 else "#ffffff"
        self.setText(self._color if len(self._color) <= 22 else self._color[:20] + "...")
        self.setToolTip(self._color)
        self.setStyleSheet(
            f"background:{self._color}; color:{text}; border: 1px solid rgba(148,163,184,0.6);"
            " border-radius:4px; padding: 6px;"
        )


class InspectorPanel(QtWidgets.QWidget):
    """Renders one control per sampled property.

    Every control emits ``interaction`` before its change signal so the
    session can ignore the outside click that the control's own dialog or
    focus change may produce.
    """

    interaction = QtCore.pyqtSignal()
    propertyChanged = QtCore.pyqtSignal(str, str)
    gradientColorChanged = QtCore.pyqtSignal(int, str)
    gradientColorAdded = QtCore.pyqtSignal()
    gradientColorRemoved = QtCore.pyqtSignal(int)
    gradientDirectionChanged = QtCore.pyqtSignal(str)
    presetRequested = QtCore.pyqtSignal(str)

    def __init__(self, parent: Optional[QtWidgets.QWidget] = None) -> None:
        super().__init__(parent)
        self._controls: Dict[EditableProperty, QtWidgets.QWidget] = {}
        outer = QtWidgets.QVBoxLayout(self)
        outer.setContentsMargins(6, 6, 6, 6)
        outer.setSpacing(6)

        self.selector_label = QtWidgets.QLabel("Nothing selected", self)
        self.selector_label.setTextInteractionFlags(QtCore.Qt.TextInteractionFlag.TextSelectableByMouse)
        outer.addWidget(self.selector_label)

        scroll = QtWidgets.QScrollArea(self)
        scroll.setWidgetResizable(True)
        self.body = QtWidgets.QWidget(scroll)
        self.form = QtWidgets.QFormLayout(self.body)
        self.form.setFieldGrowthPolicy(QtWidgets.QFormLayout.FieldGrowthPolicy.AllNonFixedFieldsGrow)
        scroll.setWidget(self.body)
        outer.addWidget(scroll, 1)

        presets_box = QtWidgets.QGroupBox("Presets", self)
        grid = QtWidgets.QGridLayout(presets_box)
        for index, name in enumerate(PRESETS):
            button = QtWidgets.QPushButton(PRESET_LABELS.get(name, name), presets_box)
            button.clicked.connect(lambda _=False, n=name: self._emit_preset(n))
            grid.addWidget(button, index // 2, index % 2)
        self.presets_box = presets_box
        outer.addWidget(presets_box)

        self.show_snapshot(None)

    # ---------------------------------------------------------------- API --
    def show_snapshot(self, snapshot: Optional[InspectorSnapshot]) -> None:
        self._clear_form()
        self.presets_box.setEnabled(snapshot is not None)
        if snapshot is None:
            self.selector_label.setText("Nothing selected")
            return
        self.selector_label.setText(snapshot.selector)
        for prop in EditableProperty:
            value = snapshot.get(prop)
            if value is None:
                continue
            widget = self._build_control(prop, value)
            self._controls[prop] = widget
            self.form.addRow(prop.label, widget)

    # ----------------------------------------------------------- Controls --
    def _clear_form(self) -> None:
        self._controls.clear()
        while self.form.rowCount():
            self.form.removeRow(0)

    def _build_control(self, prop: EditableProperty, value: PropertyValue) -> QtWidgets.QWidget:
        if value.kind is ValueKind.GRADIENT and value.gradient is not None:
            return self._gradient_editor(value.gradient)
        if value.kind is ValueKind.COLOR:
            button = ColorButton(value.text, self.body)
            button.pressed.connect(self.interaction.emit)
            button.colorChanged.connect(lambda color, p=prop: self._emit_property(p, color))
            return button
        edit = QtWidgets.QLineEdit(value.text, self.body)
        edit.editingFinished.connect(lambda e=edit, p=prop: self._line_finished(p, e))
        return edit

    def _gradient_editor(self, descriptor: GradientDescriptor) -> QtWidgets.QWidget:
        box = QtWidgets.QWidget(self.body)
        layout = QtWidgets.QVBoxLayout(box)
        layout.setContentsMargins(0, 0, 0, 0)
        swatches = QtWidgets.QHBoxLayout()
        buttons: List[ColorButton] = []
        for index, color in enumerate(descriptor.colors):
            button = ColorButton(color, box)
            button.setMinimumWidth(40)
            button.pressed.connect(self.interaction.emit)
            button.colorChanged.connect(lambda c, i=index: self._emit_gradient_color(i, c))
            swatches.addWidget(button)
            buttons.append(button)
        layout.addLayout(swatches)

        row = QtWidgets.QHBoxLayout()
        add = QtWidgets.QPushButton("+", box)
        add.clicked.connect(self._emit_gradient_add)
        remove = QtWidgets.QPushButton("-", box)
        remove.setEnabled(len(descriptor.colors) > 1)
        remove.clicked.connect(lambda: self._emit_gradient_remove(len(descriptor.colors) - 1))
        direction = QtWidgets.QLineEdit(descriptor.direction, box)
        direction.setToolTip("Direction, e.g. 135deg or to right")
        direction.editingFinished.connect(lambda: self._emit_direction(direction.text()))
        row.addWidget(add)
        row.addWidget(remove)
        row.addWidget(direction, 1)
        layout.addLayout(row)
        return box

    def _line_finished(self, prop: EditableProperty, edit: QtWidgets.QLineEdit) -> None:
        if not edit.isModified():
            return
        edit.setModified(False)
        self._emit_property(prop, edit.text())

    def _emit_property(self, prop: EditableProperty, value: str) -> None:
        self.interaction.emit()
        self.propertyChanged.emit(prop.value, value)

    def _emit_gradient_color(self, index: int, color: str) -> None:
        self.interaction.emit()
        self.gradientColorChanged.emit(index, color)

    def _emit_gradient_add(self) -> None:
        self.interaction.emit()
        self.gradientColorAdded.emit()

    def _emit_gradient_remove(self, index: int) -> None:
        self.interaction.emit()
        self.gradientColorRemoved.emit(index)

    def _emit_direction(self, direction: str) -> None:
        if direction.strip():
            self.interaction.emit()
            self.gradientDirectionChanged.emit(direction.strip())

    def _emit_preset(self, name: str) -> None:
        self.interaction.emit()
        self.presetRequested.emit(name)
