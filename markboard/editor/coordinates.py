"""
Coordinate conversion between the on-screen canvas and the image.

Marks are always stored in image-intrinsic pixels (relative to the source
image's natural width/height). The canvas, however, is displayed at whatever
size its container allows, so every pointer position has to be scaled from
display space into image space before it reaches the mark model.

The bounding rectangle changes whenever the window is resized, so callers
must pass the *current* rectangle on every pointer event rather than caching
a scale factor.
"""

from PySide6.QtCore import QPointF, QRectF, QSizeF


def _scale_factors(bounding_rect: QRectF, intrinsic_size: QSizeF) -> tuple:
    """Return (scale_x, scale_y) from display pixels to image pixels."""
    # A collapsed widget has no meaningful scale; fall back to 1:1
    scale_x = (
        intrinsic_size.width() / bounding_rect.width()
        if bounding_rect.width() > 0 else 1.0
    )
    scale_y = (
        intrinsic_size.height() / bounding_rect.height()
        if bounding_rect.height() > 0 else 1.0
    )
    return scale_x, scale_y


def map_to_image(
    client_pos: QPointF,
    bounding_rect: QRectF,
    intrinsic_size: QSizeF,
) -> QPointF:
    """
    Convert a pointer position to image-intrinsic coordinates.

    Args:
        client_pos: Pointer position in the same space as bounding_rect.
        bounding_rect: Where the canvas is currently drawn on screen.
        intrinsic_size: The canvas's intrinsic pixel size (the image's
            natural size).

    Returns:
        The position in image pixels. Not clamped: a pointer outside the
        canvas maps outside [0, width] x [0, height].
    """
    scale_x, scale_y = _scale_factors(bounding_rect, intrinsic_size)
    return QPointF(
        (client_pos.x() - bounding_rect.left()) * scale_x,
        (client_pos.y() - bounding_rect.top()) * scale_y,
    )


def map_to_display(
    image_pos: QPointF,
    bounding_rect: QRectF,
    intrinsic_size: QSizeF,
) -> QPointF:
    """Inverse of map_to_image()."""
    scale_x, scale_y = _scale_factors(bounding_rect, intrinsic_size)
    return QPointF(
        image_pos.x() / scale_x + bounding_rect.left(),
        image_pos.y() / scale_y + bounding_rect.top(),
    )


def fit_display_size(container_width: float, natural_size: QSizeF) -> QSizeF:
    """
    Display size for an image shown at the full width of its container.

    The aspect ratio is preserved: height is scaled by the same
    container_width / natural_width factor as the width.
    """
    if natural_size.width() <= 0 or container_width <= 0:
        return QSizeF(0, 0)

    scale = container_width / natural_size.width()
    return QSizeF(container_width, natural_size.height() * scale)
