"""
Render loop for the mark canvas.

Every redraw is a full immediate-mode repaint:
1. Clear the target
2. Draw the base image scaled to its intrinsic size
3. Draw each mark in list order (no z-reordering)
4. Draw the live preview of a drag in progress, if any

Nothing is drawn until the base image has loaded.
"""

from typing import Optional, Sequence

from PySide6.QtCore import QRectF, Qt
from PySide6.QtGui import QColor, QImage, QPainter

from markboard.editor.marks import MarkBase


class MarkRenderer:
    """
    Paints an image and its marks onto a QPainter.

    The painter must already be transformed so that one unit equals one
    image pixel; the canvas widget takes care of display scaling.
    """

    def __init__(self, background: Optional[QColor] = None) -> None:
        self._background = background or QColor(0, 0, 0, 0)

    def render(
        self,
        painter: QPainter,
        image: Optional[QImage],
        marks: Sequence[MarkBase],
        preview: Optional[MarkBase] = None,
    ) -> bool:
        """
        Repaint image, marks and preview.

        Args:
            painter: Painter in image coordinates.
            image: The base image, or None while it is still loading.
            marks: The local mark set, in load/insertion order.
            preview: Shape being dragged, drawn in the selected color;
                not part of the mark set.

        Returns:
            False if nothing was drawn because the image is not loaded.
        """
        if image is None or image.isNull():
            return False

        target = QRectF(0, 0, image.width(), image.height())

        painter.save()
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)

        painter.setCompositionMode(QPainter.CompositionMode.CompositionMode_Source)
        painter.fillRect(target, self._background)
        painter.setCompositionMode(QPainter.CompositionMode.CompositionMode_SourceOver)

        painter.drawImage(target, image)

        for mark in marks:
            mark.paint(painter)

        if preview is not None:
            preview.paint(painter, with_indicator=False)

        painter.restore()
        return True

    def render_to_image(
        self, image: Optional[QImage], marks: Sequence[MarkBase]
    ) -> QImage:
        """
        Flatten the image and its marks into a new image.

        Used for exporting. Returns a null QImage if there is no image.
        """
        if image is None or image.isNull():
            return QImage()

        result = QImage(image.size(), QImage.Format.Format_ARGB32_Premultiplied)
        result.fill(Qt.GlobalColor.transparent)

        painter = QPainter(result)
        try:
            self.render(painter, image, marks)
        finally:
            painter.end()
        return result
