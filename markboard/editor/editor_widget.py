"""
Editor widget for MarkBoard - the main review UI component.

This widget composes the complete editor interface:
- Top toolbar with the marking toggle, shape buttons, color swatches and
  the marks list button
- Center canvas showing the image and its marks
- Bottom status bar with mark count, loading state and notifications

It is also where the pieces meet: canvas effects are routed to the comment
dialog or the mark controller, and controller results are fed back to the
canvas's interaction state machine.
"""

from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from PySide6.QtCore import Qt, QTimer, Signal, Slot
from PySide6.QtGui import QColor, QIcon, QImage, QPainter, QPen, QPixmap
from PySide6.QtWidgets import (
    QButtonGroup,
    QFileDialog,
    QFrame,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QScrollArea,
    QSizePolicy,
    QToolBar,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from markboard.core.mark_controller import MarkController
from markboard.editor.comment_dialog import CommentDialog
from markboard.editor.interaction import (
    CloseCommentDialog,
    DeleteRequested,
    DialogClosed,
    InteractionState,
    OpenCommentDialog,
    RequestSettled,
    SelectColor,
    SelectMark,
    SelectShape,
    SubmitComment,
    ToggleMarking,
)
from markboard.editor.mark_canvas import MarkCanvas
from markboard.editor.marks import MarkBase, MarkColor, MarkType
from markboard.editor.marks_list import MarksListDialog
from markboard.editor.renderer import MarkRenderer
from markboard.services.config_service import ConfigService
from markboard.services.image_loader import ImageLoader
from markboard.services.logging_service import get_logger


TOAST_DURATION_MS = 3000


class ColorSwatch(QPushButton):
    """Round, checkable button showing one palette color."""

    def __init__(self, color: MarkColor, parent=None):
        super().__init__(parent)
        self._color = color
        self.setCheckable(True)
        self.setFixedSize(24, 24)
        self.setToolTip(color.label)
        self._update_style()

    @property
    def color(self) -> MarkColor:
        return self._color

    def _update_style(self) -> None:
        self.setStyleSheet(f"""
            QPushButton {{
                background-color: {self._color.qcolor.name()};
                border: 2px solid transparent;
                border-radius: 12px;
            }}
            QPushButton:checked {{
                border-color: white;
            }}
            QPushButton:hover {{
                border-color: #888;
            }}
        """)


class StatusBar(QFrame):
    """
    Bottom status bar showing the mark count, a loading indicator and
    short-lived notifications.
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self._toast_timer = QTimer(self)
        self._toast_timer.setSingleShot(True)
        self._toast_timer.timeout.connect(self.clear_toast)
        self._setup_ui()

    def _setup_ui(self) -> None:
        self.setFrameStyle(QFrame.Shape.StyledPanel)
        self.setFixedHeight(32)
        self.setStyleSheet("""
            QFrame {
                background-color: #2a2a2a;
                border-top: 1px solid #3a3a3a;
            }
            QLabel {
                color: #aaa;
                font-size: 11px;
            }
        """)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(12, 0, 12, 0)
        layout.setSpacing(20)

        self._count = QLabel("0 marks")
        layout.addWidget(self._count)

        self._loading = QLabel("Loading annotations...")
        self._loading.setStyleSheet("color: #16ad7c;")
        self._loading.setVisible(False)
        layout.addWidget(self._loading)

        layout.addStretch()

        self._toast = QLabel("")
        layout.addWidget(self._toast)

    def set_mark_count(self, count: int) -> None:
        self._count.setText(f"{count} mark" if count == 1 else f"{count} marks")

    def set_loading(self, loading: bool) -> None:
        self._loading.setVisible(loading)

    def show_toast(self, text: str, error: bool = False) -> None:
        """Show a notification that disappears after a few seconds."""
        color = "#ef4444" if error else "#ddd"
        self._toast.setStyleSheet(f"color: {color};")
        self._toast.setText(text)
        self._toast_timer.start(TOAST_DURATION_MS)

    def clear_toast(self) -> None:
        self._toast.setText("")

    @property
    def mark_count_text(self) -> str:
        return self._count.text()

    @property
    def toast_text(self) -> str:
        return self._toast.text()

    @property
    def loading_visible(self) -> bool:
        return not self._loading.isHidden()


def _create_tool_icon(shape: str, color: QColor = QColor(220, 220, 220)) -> QIcon:
    """Draw a small toolbar icon."""
    size = 24
    pixmap = QPixmap(size, size)
    pixmap.fill(Qt.GlobalColor.transparent)

    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    painter.setPen(QPen(color, 2))
    painter.setBrush(Qt.BrushStyle.NoBrush)

    margin = 5

    if shape == "circle":
        painter.drawEllipse(margin, margin, size - margin * 2, size - margin * 2)

    elif shape == "rectangle":
        painter.drawRect(margin, margin, size - margin * 2, size - margin * 2)

    elif shape == "point":
        # Map pin
        painter.drawEllipse(8, 4, 8, 8)
        painter.drawLine(12, 12, 12, 20)

    elif shape == "mark":
        # Pencil
        painter.drawLine(5, 19, 17, 7)
        painter.drawLine(17, 7, 19, 9)
        painter.drawLine(19, 9, 7, 21)

    elif shape == "list":
        for y in (7, 12, 17):
            painter.drawEllipse(5, y - 1, 2, 2)
            painter.drawLine(10, y, 19, y)

    elif shape == "save":
        painter.drawRect(4, 4, 16, 16)
        painter.drawRect(7, 4, 10, 6)
        painter.drawRect(7, 12, 10, 6)

    painter.end()
    return QIcon(pixmap)


class EditorWidget(QWidget):
    """
    Main editor widget composing toolbar, canvas and status bar.

    Signals:
        image_failed: Emitted with the error message when the image
                      could not be loaded.
    """

    image_failed = Signal(str)

    def __init__(
        self,
        controller: MarkController,
        config_service: Optional[ConfigService] = None,
        image_loader: Optional[ImageLoader] = None,
        parent=None,
    ):
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._controller = controller
        self._config = config_service
        self._loader = image_loader or ImageLoader(
            timeout=config_service.request_timeout if config_service else 10,
            parent=self,
        )
        self._renderer = MarkRenderer()

        self._shape_buttons: Dict[MarkType, QToolButton] = {}
        self._swatches: Dict[MarkColor, ColorSwatch] = {}

        self._setup_ui()
        self._connect_signals()
        self._apply_defaults()

    def _setup_ui(self) -> None:
        """Build the UI layout."""
        main_layout = QVBoxLayout(self)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        # ─── Top Toolbar ──────────────────────────────────────────────
        self._toolbar = QToolBar()
        self._toolbar.setMovable(False)
        self._toolbar.setStyleSheet("""
            QToolBar {
                background-color: #2a2a2a;
                border-bottom: 1px solid #3a3a3a;
                padding: 6px 8px;
                spacing: 4px;
            }
            QToolBar::separator {
                background-color: #444;
                width: 1px;
                margin: 4px 6px;
            }
            QToolButton {
                background-color: transparent;
                color: #ddd;
                border: none;
                border-radius: 8px;
                padding: 6px 8px;
                margin: 2px;
                min-width: 32px;
                min-height: 32px;
            }
            QToolButton:hover {
                background-color: rgba(255, 255, 255, 0.1);
            }
            QToolButton:checked {
                background-color: rgba(22, 173, 124, 0.3);
            }
        """)

        # Marking mode toggle
        self._mark_btn = QToolButton()
        self._mark_btn.setIcon(_create_tool_icon("mark"))
        self._mark_btn.setText("Mark")
        self._mark_btn.setToolButtonStyle(Qt.ToolButtonStyle.ToolButtonTextBesideIcon)
        self._mark_btn.setToolTip("Toggle marking mode (M)")
        self._mark_btn.setCheckable(True)
        self._mark_btn.clicked.connect(self.toggle_marking)
        self._toolbar.addWidget(self._mark_btn)

        self._toolbar.addSeparator()

        # Shape buttons
        self._shape_group = QButtonGroup(self)
        self._shape_group.setExclusive(True)

        shape_configs = [
            (MarkType.CIRCLE, "Circle", "circle", "C"),
            (MarkType.RECTANGLE, "Rectangle", "rectangle", "R"),
            (MarkType.POINT, "Point", "point", "P"),
        ]

        for shape, tooltip, icon_shape, shortcut in shape_configs:
            btn = QToolButton()
            btn.setIcon(_create_tool_icon(icon_shape))
            btn.setToolTip(f"{tooltip} ({shortcut})")
            btn.setCheckable(True)
            btn.clicked.connect(lambda checked, s=shape: self.select_shape(s))
            self._shape_group.addButton(btn)
            self._toolbar.addWidget(btn)
            self._shape_buttons[shape] = btn

        self._toolbar.addSeparator()

        # Color swatches
        self._color_group = QButtonGroup(self)
        self._color_group.setExclusive(True)

        for index, color in enumerate(MarkColor.palette(), start=1):
            swatch = ColorSwatch(color)
            swatch.setToolTip(f"{color.label} ({index})")
            swatch.clicked.connect(lambda checked, c=color: self.select_color(c))
            self._color_group.addButton(swatch)
            self._toolbar.addWidget(swatch)
            self._swatches[color] = swatch

        self._toolbar.addSeparator()

        # Marks list
        self._marks_btn = QToolButton()
        self._marks_btn.setIcon(_create_tool_icon("list"))
        self._marks_btn.setText("Marks (0)")
        self._marks_btn.setToolButtonStyle(Qt.ToolButtonStyle.ToolButtonTextBesideIcon)
        self._marks_btn.setToolTip("View all marks on this image (L)")
        self._marks_btn.clicked.connect(self.show_marks_list)
        self._toolbar.addWidget(self._marks_btn)

        # Spacer
        spacer = QWidget()
        spacer.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Preferred)
        self._toolbar.addWidget(spacer)

        # Export button
        export_btn = QToolButton()
        export_btn.setIcon(_create_tool_icon("save"))
        export_btn.setToolTip("Export marked-up image (Ctrl+S)")
        export_btn.clicked.connect(self._export_dialog)
        self._toolbar.addWidget(export_btn)

        main_layout.addWidget(self._toolbar)

        # ─── Center Content ───────────────────────────────────────────
        self._canvas = MarkCanvas()
        self._scroll = QScrollArea()
        self._scroll.setWidgetResizable(True)
        self._scroll.setFrameShape(QFrame.Shape.NoFrame)
        self._scroll.setStyleSheet("background-color: #1a1a1a;")
        self._scroll.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        self._scroll.setWidget(self._canvas)
        main_layout.addWidget(self._scroll, 1)

        # ─── Bottom Status Bar ────────────────────────────────────────
        self._status = StatusBar()
        main_layout.addWidget(self._status)

        self._dialog = CommentDialog(self)
        self._marks_list = MarksListDialog(self)

    def _connect_signals(self) -> None:
        """Connect widget and controller signals."""
        self._canvas.effects_emitted.connect(self._handle_effects)
        self._canvas.state_changed.connect(self._on_state_changed)
        self._canvas.image_load_failed.connect(self.image_failed)

        self._dialog.submitted.connect(self._on_comment_submitted)
        self._dialog.delete_requested.connect(self._on_delete_requested)
        self._dialog.closed.connect(self._on_dialog_closed)
        self._marks_list.mark_activated.connect(self._on_mark_activated)

        self._controller.marks_changed.connect(self._on_marks_changed)
        self._controller.busy_changed.connect(self._status.set_loading)
        self._controller.error_occurred.connect(self._on_error)
        self._controller.message.connect(self._status.show_toast)
        self._controller.request_settled.connect(self._on_request_settled)

        self._loader.loaded.connect(self._canvas.set_image)
        self._loader.failed.connect(self._canvas.set_load_error)

    def _apply_defaults(self) -> None:
        """Pick the configured shape and color."""
        shape = MarkType.CIRCLE
        color = MarkColor.BLUE
        if self._config:
            try:
                shape = MarkType(self._config.default_shape)
            except ValueError:
                self._logger.warning(f"Unknown default shape: {self._config.default_shape}")
            configured = MarkColor.from_value(self._config.default_color)
            if configured != MarkColor.NONE:
                color = configured

        self.select_shape(shape)
        self.select_color(color)

    # ─── Public API ───────────────────────────────────────────────────────

    @property
    def canvas(self) -> MarkCanvas:
        return self._canvas

    @property
    def comment_dialog(self) -> CommentDialog:
        return self._dialog

    @property
    def status_bar(self) -> StatusBar:
        return self._status

    @property
    def marks_list(self) -> MarksListDialog:
        return self._marks_list

    def open_image(self, source: str, image_id: str, project_id: str) -> None:
        """Load an image and its marks."""
        self._logger.info(f"Opening image {image_id} from {source}")
        self._loader.load(source)
        self._controller.open_image(image_id, project_id)

    def set_image(self, image: QImage) -> None:
        """Show an already-loaded image."""
        self._canvas.set_image(image)

    def toggle_marking(self) -> None:
        self._canvas.dispatch(ToggleMarking())
        self._mark_btn.setChecked(self._canvas.state.marking_mode)

    def select_shape(self, shape: MarkType) -> None:
        self._canvas.dispatch(SelectShape(shape))
        self._shape_buttons[shape].setChecked(True)

    def select_color(self, color: MarkColor) -> None:
        self._canvas.dispatch(SelectColor(color))
        if color in self._swatches:
            self._swatches[color].setChecked(True)

    def show_marks_list(self) -> None:
        self._marks_list.show_list()

    def export_image(self, path: str) -> bool:
        """Save the image with its marks drawn on. Returns True on success."""
        result = self._renderer.render_to_image(self._canvas.image, self._canvas.marks)
        if result.isNull():
            self._logger.warning("Nothing to export: image not loaded")
            return False
        if result.save(path):
            self._logger.info(f"Exported to {path}")
            self._status.show_toast(f"Exported to {Path(path).name}")
            return True
        self._logger.error(f"Failed to export to {path}")
        self._status.show_toast("Export failed", error=True)
        return False

    def _export_dialog(self) -> None:
        if not self._canvas.image_loaded:
            return
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        default = Path.home() / "Pictures" / f"markboard_{timestamp}.png"
        path, _ = QFileDialog.getSaveFileName(
            self, "Export Image", str(default), "Images (*.png *.jpg)"
        )
        if path:
            self.export_image(path)

    # ─── Effect Dispatch ──────────────────────────────────────────────────

    @Slot(list)
    def _handle_effects(self, effects: List[object]) -> None:
        for effect in effects:
            if isinstance(effect, OpenCommentDialog):
                self._dialog.show_for(effect.mark, effect.comment)
            elif isinstance(effect, CloseCommentDialog):
                self._dialog.dismiss()
            elif not self._controller.apply_effect(effect):
                self._logger.warning(f"Unhandled effect: {effect!r}")

    @Slot(object)
    def _on_state_changed(self, state: InteractionState) -> None:
        self._mark_btn.setChecked(state.marking_mode)
        if self._dialog.isVisible():
            self._dialog.set_busy(state.busy)

    # ─── Signal Handlers ──────────────────────────────────────────────────

    @Slot(str)
    def _on_comment_submitted(self, text: str) -> None:
        self._canvas.dispatch(SubmitComment(text))

    @Slot()
    def _on_delete_requested(self) -> None:
        self._canvas.dispatch(DeleteRequested())

    @Slot()
    def _on_dialog_closed(self) -> None:
        self._canvas.dispatch(DialogClosed())

    @Slot(bool)
    def _on_request_settled(self, success: bool) -> None:
        self._canvas.dispatch(RequestSettled(success))

    @Slot(list)
    def _on_marks_changed(self, marks: list) -> None:
        self._canvas.set_marks(marks)
        self._status.set_mark_count(len(marks))
        self._marks_list.set_marks(marks)
        self._marks_btn.setText(f"Marks ({len(marks)})")

    @Slot(object)
    def _on_mark_activated(self, mark: MarkBase) -> None:
        self._canvas.dispatch(SelectMark(mark))
        if self._canvas.state.editing is mark:
            # Bring the mark into view behind the dialog
            pos = self._canvas.image_to_widget(mark.anchor)
            self._scroll.ensureVisible(int(pos.x()), int(pos.y()), 50, 50)

    @Slot(str)
    def _on_error(self, message: str) -> None:
        self._status.show_toast(message, error=True)

    # ─── Key Events ───────────────────────────────────────────────────────

    def keyPressEvent(self, event) -> None:
        """Handle keyboard shortcuts."""
        key = event.key()
        modifiers = event.modifiers()

        if key == Qt.Key.Key_S and modifiers & Qt.KeyboardModifier.ControlModifier:
            self._export_dialog()
            return

        if modifiers:
            super().keyPressEvent(event)
            return

        shape_shortcuts = {
            Qt.Key.Key_C: MarkType.CIRCLE,
            Qt.Key.Key_R: MarkType.RECTANGLE,
            Qt.Key.Key_P: MarkType.POINT,
        }
        color_keys = (Qt.Key.Key_1, Qt.Key.Key_2, Qt.Key.Key_3, Qt.Key.Key_4, Qt.Key.Key_5)
        color_shortcuts = dict(zip(color_keys, MarkColor.palette()))

        if key == Qt.Key.Key_M:
            self.toggle_marking()
        elif key == Qt.Key.Key_L:
            self.show_marks_list()
        elif key == Qt.Key.Key_Escape and self._canvas.state.marking_mode:
            self.toggle_marking()
        elif key in shape_shortcuts:
            self.select_shape(shape_shortcuts[key])
        elif key in color_shortcuts:
            self.select_color(color_shortcuts[key])
        else:
            super().keyPressEvent(event)
