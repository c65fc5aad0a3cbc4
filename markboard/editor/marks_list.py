"""
Marks list dialog for MarkBoard.

Lists every mark on the open image with its color, shape and position,
comment, author and time. Clicking an entry opens that mark in the comment
dialog, which is the only way to reach a mark hidden under another one on
the canvas.
"""

from datetime import datetime
from typing import List, Optional, Sequence

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QIcon, QPainter, QPixmap
from PySide6.QtWidgets import (
    QDialog,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QVBoxLayout,
    QWidget,
)

from markboard.editor.marks import MarkBase


def format_timestamp(timestamp: Optional[str]) -> str:
    """Show a stored ISO timestamp in local time, or as-is if unparseable."""
    if not timestamp:
        return ""
    try:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return timestamp
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.strftime("%Y-%m-%d %H:%M")


def describe_mark(mark: MarkBase) -> str:
    """Multi-line text for a marks list entry."""
    lines = [mark.summary()]
    if mark.has_comment:
        lines.append(mark.comment)

    byline = " - ".join(
        part for part in (mark.author or "", format_timestamp(mark.timestamp)) if part
    )
    if byline:
        lines.append(byline)
    return "\n".join(lines)


def _color_dot(mark: MarkBase) -> QIcon:
    pixmap = QPixmap(12, 12)
    pixmap.fill(Qt.GlobalColor.transparent)
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    painter.setPen(Qt.PenStyle.NoPen)
    painter.setBrush(mark.color.qcolor)
    painter.drawEllipse(0, 0, 12, 12)
    painter.end()
    return QIcon(pixmap)


class MarksListDialog(QDialog):
    """
    Non-modal list of the marks on the open image.

    Signals:
        mark_activated: A mark was clicked; the dialog hides itself first.
    """

    mark_activated = Signal(object)

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._marks: List[MarkBase] = []
        self._setup_ui()

    def _setup_ui(self) -> None:
        self.setModal(False)
        self.setWindowTitle("Image Marks")
        self.setMinimumSize(340, 320)
        self.setStyleSheet("""
            QDialog {
                background-color: #1a1a1a;
            }
            QLabel {
                color: #999;
                font-size: 11px;
            }
            QListWidget {
                background-color: #1a1a1a;
                color: #ddd;
                border: none;
            }
            QListWidget::item {
                background-color: #2a2a2a;
                border-radius: 6px;
                padding: 8px;
                margin-bottom: 6px;
            }
            QListWidget::item:hover {
                background-color: #333;
            }
        """)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(10)

        layout.addWidget(QLabel("View and manage all marks on this image"))

        self._list = QListWidget()
        self._list.setWordWrap(True)
        self._list.itemClicked.connect(self._on_item_clicked)
        layout.addWidget(self._list, 1)

        self._empty = QLabel("No marks on this image")
        self._empty.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self._empty)

        self._refresh()

    # ─── Public API ───────────────────────────────────────────────────────

    def set_marks(self, marks: Sequence[MarkBase]) -> None:
        """Replace the listed marks, keeping load order."""
        self._marks = list(marks)
        self._refresh()

    def show_list(self) -> None:
        self.show()
        self.raise_()
        self.activateWindow()

    @property
    def list_widget(self) -> QListWidget:
        return self._list

    # ─── Internals ────────────────────────────────────────────────────────

    def _refresh(self) -> None:
        self._list.clear()
        for index, mark in enumerate(self._marks):
            item = QListWidgetItem(_color_dot(mark), describe_mark(mark))
            item.setData(Qt.ItemDataRole.UserRole, index)
            item.setToolTip(mark.color.label)
            self._list.addItem(item)

        has_marks = bool(self._marks)
        self._list.setVisible(has_marks)
        self._empty.setVisible(not has_marks)

    def _on_item_clicked(self, item: QListWidgetItem) -> None:
        index = item.data(Qt.ItemDataRole.UserRole)
        if index is None or not 0 <= index < len(self._marks):
            return
        mark = self._marks[index]
        self.hide()
        self.mark_activated.emit(mark)
