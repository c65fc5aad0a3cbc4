from pytest import approx

from PySide6.QtCore import QPointF, QRectF, QSizeF

from markboard.editor.coordinates import fit_display_size, map_to_display, map_to_image


def test_map_to_image_scales_by_intrinsic_over_displayed() -> None:
    # 1600x1200 image shown at 800x600, offset by (10, 20)
    rect = QRectF(10, 20, 800, 600)
    p = map_to_image(QPointF(410, 320), rect, QSizeF(1600, 1200))
    assert p.x() == approx(800)
    assert p.y() == approx(600)


def test_map_to_image_identity_at_natural_size() -> None:
    rect = QRectF(0, 0, 640, 480)
    p = map_to_image(QPointF(12.5, 7), rect, QSizeF(640, 480))
    assert (p.x(), p.y()) == (approx(12.5), approx(7))


def test_map_to_image_not_clamped() -> None:
    rect = QRectF(0, 0, 100, 100)
    p = map_to_image(QPointF(-10, 150), rect, QSizeF(200, 200))
    assert p.x() == approx(-20)
    assert p.y() == approx(300)


def test_map_to_image_collapsed_rect_falls_back_to_one_to_one() -> None:
    p = map_to_image(QPointF(5, 6), QRectF(0, 0, 0, 0), QSizeF(100, 100))
    assert (p.x(), p.y()) == (approx(5), approx(6))


def test_map_to_display_inverts_map_to_image() -> None:
    rect = QRectF(3, 4, 400, 300)
    size = QSizeF(1000, 750)
    image_pos = map_to_image(QPointF(123, 77), rect, size)
    back = map_to_display(image_pos, rect, size)
    assert back.x() == approx(123)
    assert back.y() == approx(77)


def test_fit_display_size_preserves_aspect() -> None:
    size = fit_display_size(400, QSizeF(800, 600))
    assert size.width() == approx(400)
    assert size.height() == approx(300)


def test_fit_display_size_empty_image() -> None:
    assert fit_display_size(400, QSizeF(0, 0)).isEmpty()
