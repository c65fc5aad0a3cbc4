"""
Comment dialog for marks.

Opened for a freshly drawn draft ("Add Comment to Mark") or for an existing
mark that was clicked ("Edit Mark"). The dialog only collects input; the
editor decides what happens with it and closes the dialog once the
repository request has gone through.
"""

from typing import Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QDialog,
    QHBoxLayout,
    QLabel,
    QPlainTextEdit,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from markboard.editor.marks import MarkBase


class CommentDialog(QDialog):
    """
    Non-modal dialog for a mark's comment.

    Signals:
        submitted: The user pressed Add/Update; carries the raw text.
        delete_requested: The user pressed Delete (saved marks only).
        closed: The user dismissed the dialog.
    """

    submitted = Signal(str)
    delete_requested = Signal()
    closed = Signal()

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._mark: Optional[MarkBase] = None
        self._busy = False
        # Set while the editor closes the dialog itself
        self._closing_programmatically = False

        self._setup_ui()

    def _setup_ui(self) -> None:
        self.setModal(False)
        self.setMinimumWidth(360)
        self.setStyleSheet("""
            QDialog {
                background-color: #1a1a1a;
            }
            QLabel {
                color: #ddd;
            }
            QPlainTextEdit {
                background-color: #2a2a2a;
                color: #eee;
                border: 1px solid #16ad7c;
                border-radius: 4px;
                padding: 4px;
            }
        """)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(10)

        self._description = QLabel("Add or edit a comment for this mark on the image.")
        self._description.setStyleSheet("color: #999; font-size: 11px;")
        layout.addWidget(self._description)

        self._summary = QLabel("")
        layout.addWidget(self._summary)

        self._editor = QPlainTextEdit()
        self._editor.setPlaceholderText("Add a comment about this mark...")
        self._editor.setFixedHeight(90)
        self._editor.textChanged.connect(self._update_buttons)
        layout.addWidget(self._editor)

        buttons = QHBoxLayout()
        self._submit_btn = QPushButton("Add Mark")
        self._submit_btn.setDefault(True)
        self._submit_btn.clicked.connect(self._on_submit)
        buttons.addWidget(self._submit_btn)

        self._delete_btn = QPushButton("Delete")
        self._delete_btn.setStyleSheet("background-color: #ef4444; color: white;")
        self._delete_btn.clicked.connect(self.delete_requested.emit)
        buttons.addWidget(self._delete_btn)

        layout.addLayout(buttons)

    # ─── Public API ───────────────────────────────────────────────────────

    def show_for(self, mark: MarkBase, comment: str = "") -> None:
        """Populate the dialog for a mark and show it."""
        self._mark = mark
        self._busy = False

        is_new = mark.is_draft
        self.setWindowTitle("Add Comment to Mark" if is_new else "Edit Mark")
        self._summary.setText(
            f"<span style='color:{mark.color.qcolor.name()}'>&#9679;</span> "
            f"{mark.summary()}"
        )
        self._submit_btn.setText("Add Mark" if is_new else "Update Mark")
        self._delete_btn.setVisible(not is_new)

        self._editor.setPlainText(comment)
        self._editor.setFocus(Qt.FocusReason.OtherFocusReason)
        self._update_buttons()
        self.show()
        self.raise_()
        self.activateWindow()

    def dismiss(self) -> None:
        """Close the dialog without emitting ``closed``."""
        self._closing_programmatically = True
        try:
            self.hide()
        finally:
            self._closing_programmatically = False
        self._mark = None

    def set_busy(self, busy: bool) -> None:
        """Disable input while a request for this mark is in flight."""
        self._busy = busy
        self._editor.setReadOnly(busy)
        self._update_buttons()

    @property
    def mark(self) -> Optional[MarkBase]:
        return self._mark

    @property
    def text(self) -> str:
        return self._editor.toPlainText()

    # ─── Internals ────────────────────────────────────────────────────────

    def _update_buttons(self) -> None:
        has_text = bool(self._editor.toPlainText().strip())
        self._submit_btn.setEnabled(has_text and not self._busy)
        self._delete_btn.setEnabled(not self._busy)

    def _on_submit(self) -> None:
        if self._submit_btn.isEnabled():
            self.submitted.emit(self._editor.toPlainText())

    def done(self, result: int) -> None:
        """Route Escape and the window close button through ``closed``."""
        if self._closing_programmatically:
            super().done(result)
            return
        # Leave closing to the editor; it may refuse while a request runs
        self.closed.emit()

    def closeEvent(self, event) -> None:
        if self._closing_programmatically or not self.isVisible():
            super().closeEvent(event)
            return
        event.ignore()
        self.closed.emit()
