"""
Mark canvas widget for MarkBoard.

The MarkCanvas displays the image being reviewed with its marks on top and
turns mouse input into interaction events:

- press/move/release while marking mode is on draw a new shape
- a click while marking mode is off opens the mark under the pointer

The image is always shown at the full width of the widget with its aspect
ratio preserved. Pointer positions are converted to image pixels on every
event, so marks stay put when the window is resized.

Effects the canvas cannot perform itself (dialogs, repository calls) are
emitted through ``effects_emitted`` for the editor to handle.
"""

from typing import List, Optional, Sequence

from PySide6.QtCore import QPointF, QRectF, QSize, QSizeF, Qt, Signal
from PySide6.QtGui import QColor, QImage, QMouseEvent, QPainter
from PySide6.QtWidgets import QSizePolicy, QWidget

from markboard.editor.coordinates import fit_display_size, map_to_display, map_to_image
from markboard.editor.interaction import (
    Click,
    InteractionMode,
    InteractionState,
    PointerDown,
    PointerMove,
    PointerUp,
    Redraw,
    Transition,
    transition,
)
from markboard.editor.marks import MarkBase
from markboard.editor.renderer import MarkRenderer
from markboard.services.logging_service import get_logger


BACKGROUND_COLOR = QColor(26, 26, 26)
PLACEHOLDER_COLOR = QColor(100, 100, 100)
ERROR_COLOR = QColor("#ef4444")


class MarkCanvas(QWidget):
    """
    Canvas widget for displaying and marking up an image.

    Signals:
        effects_emitted: List of effects from the last event that the
                         canvas did not handle itself (all but Redraw).
        state_changed: Emitted with the new InteractionState.
        image_load_failed: Emitted with the error message when the image
                           could not be loaded.
    """

    effects_emitted = Signal(list)
    state_changed = Signal(object)
    image_load_failed = Signal(str)

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)

        self._image: Optional[QImage] = None
        self._load_error: Optional[str] = None
        self._marks: List[MarkBase] = []
        self._state = InteractionState()
        self._renderer = MarkRenderer()

        self._setup_widget()

    def _setup_widget(self) -> None:
        """Configure widget properties."""
        self.setMouseTracking(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)
        self.setMinimumSize(200, 150)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Preferred)

    # ─── Image ────────────────────────────────────────────────────────────

    def set_image(self, image: QImage) -> None:
        """Show a newly loaded image."""
        self._image = image
        self._load_error = None
        self._update_height()
        self.update()
        self._logger.info(f"Canvas image set: {image.width()}x{image.height()}")

    def set_load_error(self, message: str) -> None:
        """Show an error in place of the image."""
        self._image = None
        self._load_error = message
        self.update()
        self._logger.error(f"Could not load image: {message}")
        self.image_load_failed.emit(message)

    @property
    def image(self) -> Optional[QImage]:
        return self._image

    @property
    def image_loaded(self) -> bool:
        return self._image is not None and not self._image.isNull()

    @property
    def load_error(self) -> Optional[str]:
        return self._load_error

    # ─── Marks ────────────────────────────────────────────────────────────

    def set_marks(self, marks: Sequence[MarkBase]) -> None:
        """Replace the marks drawn on the canvas."""
        self._marks = list(marks)
        self.update()

    @property
    def marks(self) -> List[MarkBase]:
        return list(self._marks)

    # ─── Interaction ──────────────────────────────────────────────────────

    @property
    def state(self) -> InteractionState:
        return self._state

    def dispatch(self, event: object) -> Transition:
        """
        Feed an event to the interaction state machine.

        Redraw effects are applied here; everything else is emitted.
        """
        result = transition(self._state, event)
        changed = result.state != self._state
        self._state = result.state

        others = []
        for effect in result.effects:
            if isinstance(effect, Redraw):
                self.update()
            else:
                others.append(effect)

        self._update_cursor()
        if changed:
            self.state_changed.emit(self._state)
        if others:
            self.effects_emitted.emit(others)
        return result

    # ─── Geometry ─────────────────────────────────────────────────────────

    def display_rect(self) -> QRectF:
        """Where the image is drawn, in widget coordinates."""
        if not self.image_loaded:
            return QRectF()
        size = fit_display_size(self.width(), QSizeF(self._image.size()))
        return QRectF(QPointF(0, 0), size)

    def widget_to_image(self, pos: QPointF) -> QPointF:
        """Convert widget coordinates to image coordinates."""
        return map_to_image(pos, self.display_rect(), QSizeF(self._image.size()))

    def image_to_widget(self, pos: QPointF) -> QPointF:
        """Convert image coordinates to widget coordinates."""
        if not self.image_loaded:
            return QPointF(pos)
        return map_to_display(pos, self.display_rect(), QSizeF(self._image.size()))

    def _update_height(self) -> None:
        if not self.image_loaded:
            return
        height = int(round(self.display_rect().height()))
        if height and height != self.minimumHeight():
            self.setMinimumHeight(height)

    def sizeHint(self) -> QSize:
        if self.image_loaded:
            return self._image.size()
        return QSize(640, 480)

    def _update_cursor(self) -> None:
        if self._state.mode in (InteractionMode.ARMED, InteractionMode.DRAGGING):
            self.setCursor(Qt.CursorShape.CrossCursor)
        else:
            self.setCursor(Qt.CursorShape.ArrowCursor)

    # ─── Event Handlers ───────────────────────────────────────────────────

    def paintEvent(self, event) -> None:
        """Paint the canvas."""
        painter = QPainter(self)
        painter.fillRect(self.rect(), BACKGROUND_COLOR)

        if not self.image_loaded:
            if self._load_error:
                painter.setPen(ERROR_COLOR)
                text = f"Could not load image\n{self._load_error}"
            else:
                painter.setPen(PLACEHOLDER_COLOR)
                text = "Loading image..."
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, text)
            painter.end()
            return

        rect = self.display_rect()
        painter.translate(rect.topLeft())
        painter.scale(
            rect.width() / self._image.width(),
            rect.height() / self._image.height(),
        )

        preview = None
        if self._state.mode == InteractionMode.DRAGGING:
            preview = self._state.session.preview()

        self._renderer.render(painter, self._image, self._marks, preview)
        painter.end()

    def mousePressEvent(self, event: QMouseEvent) -> None:
        """Handle mouse press."""
        if event.button() != Qt.MouseButton.LeftButton or not self.image_loaded:
            return
        if self._state.mode == InteractionMode.ARMED:
            self.dispatch(PointerDown(self.widget_to_image(event.position())))

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        """Handle mouse move."""
        if self._state.mode == InteractionMode.DRAGGING and self.image_loaded:
            self.dispatch(PointerMove(self.widget_to_image(event.position())))

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        """Handle mouse release."""
        if event.button() != Qt.MouseButton.LeftButton or not self.image_loaded:
            return

        img_pos = self.widget_to_image(event.position())
        if self._state.mode == InteractionMode.DRAGGING:
            self.dispatch(PointerUp(img_pos))
        elif self._state.mode == InteractionMode.IDLE:
            self.dispatch(Click(img_pos, tuple(self._marks)))

    def resizeEvent(self, event) -> None:
        """Keep the image at full width when the widget resizes."""
        super().resizeEvent(event)
        self._update_height()
