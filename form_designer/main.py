"""Main entry point for the PDF form designer desktop app."""
import logging
import os
import sys
from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QKeySequence
from PySide6.QtWidgets import (
    QApplication, QFileDialog, QLabel, QMainWindow, QMessageBox, QScrollArea,
    QSplitter,
)

from form_designer import documents, pdf_exporter
from form_designer.canvas_widget import DocumentCanvas
from form_designer.errors import DesignerError, ValidationError
from form_designer.settings import (
    DesignerSettings, clamp_zoom, configure_logging, load_settings,
)
from form_designer.sidebar import FieldSidebar
from form_designer.storage import FieldStore

logger = logging.getLogger(__name__)

_OPEN_FILTER = "Documents (*.pdf *.png *.jpg *.jpeg);;PDF (*.pdf);;Images (*.png *.jpg *.jpeg)"


class MainWindow(QMainWindow):
    def __init__(self, store: FieldStore, settings: DesignerSettings):
        super().__init__()
        self.setWindowTitle("PDF Form Designer")
        self.resize(1200, 900)

        self._store = store
        self._settings = settings
        self._document_id: Optional[str] = None

        self._setup_ui()
        self._update_zoom_label()

    def _setup_ui(self):
        file_menu = self.menuBar().addMenu("File")
        open_action = file_menu.addAction("Open Document…")
        open_action.setShortcut(QKeySequence.StandardKey.Open)
        open_action.triggered.connect(self._open_document)
        self._export_action = file_menu.addAction("Export Fillable PDF…")
        self._export_action.setShortcut(QKeySequence("Ctrl+E"))
        self._export_action.triggered.connect(self._export)
        self._export_action.setEnabled(False)
        file_menu.addSeparator()
        quit_action = file_menu.addAction("Quit")
        quit_action.triggered.connect(self.close)

        view_menu = self.menuBar().addMenu("View")
        zoom_in = view_menu.addAction("Zoom In")
        zoom_in.setShortcut(QKeySequence.StandardKey.ZoomIn)
        zoom_in.triggered.connect(lambda: self._step_zoom(+1))
        zoom_out = view_menu.addAction("Zoom Out")
        zoom_out.setShortcut(QKeySequence.StandardKey.ZoomOut)
        zoom_out.triggered.connect(lambda: self._step_zoom(-1))
        actual = view_menu.addAction("Actual Size")
        actual.setShortcut(QKeySequence("Ctrl+0"))
        actual.triggered.connect(lambda: self._set_zoom(self._settings.default_zoom))

        self._zoom_label = QLabel()
        self.statusBar().addPermanentWidget(self._zoom_label)

        splitter = QSplitter(Qt.Orientation.Horizontal)
        self.setCentralWidget(splitter)

        # Left: field list and properties
        self._sidebar = FieldSidebar()
        self._sidebar.add_requested.connect(self._add_field)
        self._sidebar.field_selected.connect(self._on_sidebar_selection)
        self._sidebar.field_changed.connect(self._on_field_edited)
        self._sidebar.delete_requested.connect(self._delete_field)
        self._sidebar.export_requested.connect(self._export)
        splitter.addWidget(self._sidebar)

        # Right: the document canvas
        self._canvas = DocumentCanvas(self._store, self._settings)
        self._canvas.selection_changed.connect(self._sidebar.select_field)
        self._canvas.fields_changed.connect(self._refresh_sidebar)
        self._canvas.commit_failed.connect(
            lambda msg: QMessageBox.warning(self, "Update Field", msg)
        )
        scroll = QScrollArea()
        scroll.setAlignment(Qt.AlignmentFlag.AlignCenter)
        scroll.setWidget(self._canvas)
        splitter.addWidget(scroll)

        splitter.setSizes([280, 920])

    # ── Documents ─────────────────────────────────────────────────────────────

    def _open_document(self):
        path, _ = QFileDialog.getOpenFileName(self, "Open Document", "", _OPEN_FILTER)
        if not path:
            return
        self.load_path(path)

    def load_path(self, path: str) -> bool:
        try:
            with open(path, "rb") as f:
                data = f.read()
            document = documents.ingest_upload(
                self._store, os.path.basename(path), None, data, self._settings
            )
        except OSError as exc:
            QMessageBox.warning(self, "Open Document", f"Cannot read {path}:\n{exc}")
            return False
        except ValidationError as exc:
            QMessageBox.warning(self, "Open Document", str(exc))
            return False

        # One document at a time: drop the previous one and its fields
        if self._document_id is not None:
            self._store.delete_document(self._document_id)
        self._document_id = document.id
        self._canvas.set_document(document)
        self._sidebar.set_document_open(True)
        self._export_action.setEnabled(True)
        self._refresh_sidebar()
        self.setWindowTitle(f"PDF Form Designer - {document.original_name}")
        return True

    def _export(self):
        if self._document_id is None:
            QMessageBox.warning(self, "Export", "No document open.")
            return
        # Flush a gesture that is still in progress
        self._canvas.controller.pointer_up()
        try:
            filename, pdf = pdf_exporter.export_document(
                self._store, self._document_id, self._settings
            )
        except DesignerError as exc:
            QMessageBox.critical(self, "Export", f"Failed to export PDF:\n{exc}")
            return
        path, _ = QFileDialog.getSaveFileName(self, "Export Fillable PDF", filename,
                                              "PDF (*.pdf)")
        if not path:
            return
        try:
            with open(path, "wb") as f:
                f.write(pdf)
        except OSError as exc:
            QMessageBox.critical(self, "Export", f"Cannot write {path}:\n{exc}")
            return
        logger.info("Exported %s (%d bytes)", path, len(pdf))
        self.statusBar().showMessage(f"Exported to {path}", 5000)

    # ── Fields ────────────────────────────────────────────────────────────────

    def _add_field(self):
        if self._document_id is None:
            return
        field = documents.add_default_field(self._store, self._document_id)
        self._canvas.reload_fields()
        self._canvas.select_field(field.id)
        self._refresh_sidebar()

    def _on_sidebar_selection(self, field_id):
        self._canvas.select_field(field_id)

    def _on_field_edited(self, field_id: str, changes: dict):
        try:
            self._store.update_field(field_id, **changes)
        except DesignerError as exc:
            QMessageBox.warning(self, "Update Field", str(exc))
        self._canvas.reload_fields()
        self._refresh_sidebar()

    def _delete_field(self, field_id: str):
        self._canvas.controller.field_removed(field_id)
        self._store.delete_field(field_id)
        self._canvas.reload_fields()
        self._refresh_sidebar()

    def _refresh_sidebar(self):
        self._sidebar.set_fields(self._canvas.fields(), self._canvas.controller.selected_id)

    # ── Zoom ──────────────────────────────────────────────────────────────────

    def _step_zoom(self, direction: int):
        self._set_zoom(self._canvas.zoom() + direction * self._settings.zoom_step)

    def _set_zoom(self, percent: int):
        self._canvas.set_zoom(clamp_zoom(percent, self._settings))
        self._update_zoom_label()

    def _update_zoom_label(self):
        self._zoom_label.setText(f"{self._canvas.zoom()}%")

    def closeEvent(self, event):
        self._canvas.shutdown()
        super().closeEvent(event)


def main():
    settings = load_settings()
    configure_logging(settings.debug_mode)
    app = QApplication(sys.argv)
    app.setApplicationName("PDF Form Designer")
    store = FieldStore()
    window = MainWindow(store, settings)
    if len(sys.argv) > 1:
        window.load_path(sys.argv[1])
    window.show()
    code = app.exec()
    store.clear()
    sys.exit(code)


if __name__ == "__main__":
    main()
