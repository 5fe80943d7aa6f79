"""Left panel: field list and the properties of the selected field."""
from typing import List, Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QCheckBox, QComboBox, QFormLayout, QHBoxLayout, QLabel, QLineEdit,
    QListWidget, QListWidgetItem, QPushButton, QVBoxLayout, QWidget,
)

from form_designer.models import FONT_FAMILIES, TextField


class FieldSidebar(QWidget):
    add_requested = Signal()
    field_selected = Signal(object)         # field id or None
    field_changed = Signal(str, dict)       # field id, changes
    delete_requested = Signal(str)
    export_requested = Signal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self._fields: List[TextField] = []
        self._current: Optional[TextField] = None

        layout = QVBoxLayout(self)
        layout.setContentsMargins(4, 4, 4, 4)

        self._add_btn = QPushButton("+ Add Text Field")
        self._add_btn.clicked.connect(self.add_requested.emit)
        layout.addWidget(self._add_btn)

        layout.addWidget(QLabel("Fields"))
        self._list = QListWidget()
        self._list.currentRowChanged.connect(self._on_row_changed)
        layout.addWidget(self._list, 1)

        # Properties of the selected field
        self._props = QWidget()
        form = QFormLayout(self._props)
        form.setContentsMargins(0, 0, 0, 0)
        self._name = QLineEdit()
        self._name.setPlaceholderText("Field name")
        self._name.editingFinished.connect(self._commit_name)
        form.addRow("Name", self._name)
        self._font = QComboBox()
        self._font.addItems(list(FONT_FAMILIES))
        self._font.currentTextChanged.connect(self._commit_font)
        form.addRow("Font", self._font)
        self._required = QCheckBox("Required")
        self._required.toggled.connect(self._commit_required)
        form.addRow("", self._required)
        self._geometry = QLabel()
        self._geometry.setStyleSheet("color: gray;")
        form.addRow("Position", self._geometry)
        layout.addWidget(self._props)

        buttons = QHBoxLayout()
        self._delete_btn = QPushButton("Delete Field")
        self._delete_btn.clicked.connect(self._on_delete)
        buttons.addWidget(self._delete_btn)
        self._export_btn = QPushButton("Export PDF")
        self._export_btn.clicked.connect(self.export_requested.emit)
        buttons.addWidget(self._export_btn)
        layout.addLayout(buttons)

        self.set_document_open(False)
        self._show_properties(None)

    def set_document_open(self, is_open: bool):
        self._add_btn.setEnabled(is_open)
        self._export_btn.setEnabled(is_open)

    def set_fields(self, fields: List[TextField], selected_id: Optional[str] = None):
        self._fields = list(fields)
        self._list.blockSignals(True)
        self._list.clear()
        row = -1
        for i, f in enumerate(self._fields):
            label = f.name + (" *" if f.required else "")
            item = QListWidgetItem(label)
            item.setData(Qt.ItemDataRole.UserRole, f.id)
            self._list.addItem(item)
            if f.id == selected_id:
                row = i
        self._list.setCurrentRow(row)
        self._list.blockSignals(False)
        self._show_properties(self._fields[row] if row >= 0 else None)

    def select_field(self, field_id: Optional[str]):
        """Reflect a selection made on the canvas without re-emitting it."""
        row = next((i for i, f in enumerate(self._fields) if f.id == field_id), -1)
        self._list.blockSignals(True)
        self._list.setCurrentRow(row)
        self._list.blockSignals(False)
        self._show_properties(self._fields[row] if row >= 0 else None)

    # ── Internal ──────────────────────────────────────────────────────────────

    def _show_properties(self, field: Optional[TextField]):
        self._current = field
        self._props.setEnabled(field is not None)
        self._delete_btn.setEnabled(field is not None)
        for w in (self._name, self._font, self._required):
            w.blockSignals(True)
        if field is None:
            self._name.clear()
            self._font.setCurrentIndex(0)
            self._required.setChecked(False)
            self._geometry.clear()
        else:
            self._name.setText(field.name)
            self._font.setCurrentText(field.font_family)
            self._required.setChecked(field.required)
            self._geometry.setText(
                f"{field.x:.0f}, {field.y:.0f}  ({field.width:.0f} × {field.height:.0f})"
            )
        for w in (self._name, self._font, self._required):
            w.blockSignals(False)

    def _on_row_changed(self, row: int):
        field = self._fields[row] if 0 <= row < len(self._fields) else None
        self._show_properties(field)
        self.field_selected.emit(field.id if field else None)

    def _commit_name(self):
        name = self._name.text().strip()
        if self._current is None or name == self._current.name:
            return
        if not name:
            self._name.setText(self._current.name)
            return
        self.field_changed.emit(self._current.id, {"name": name})

    def _commit_font(self, family: str):
        if self._current is not None and family != self._current.font_family:
            self.field_changed.emit(self._current.id, {"font_family": family})

    def _commit_required(self, checked: bool):
        if self._current is not None and checked != self._current.required:
            self.field_changed.emit(self._current.id, {"required": checked})

    def _on_delete(self):
        if self._current is not None:
            self.delete_requested.emit(self._current.id)
