from pytest import approx

from PySide6.QtCore import QPoint, QPointF, Qt

from markboard.editor.interaction import (
    InteractionMode,
    OpenCommentDialog,
    SelectShape,
    ToggleMarking,
)
from markboard.editor.mark_canvas import MarkCanvas
from markboard.editor.marks import CircleMark, MarkType, RectangleMark


def make_canvas(qtbot, image) -> MarkCanvas:
    canvas = MarkCanvas()
    qtbot.addWidget(canvas)
    canvas.resize(400, 300)
    canvas.show()
    canvas.set_image(image)
    return canvas


def test_display_rect_fits_width(qtbot, white_image) -> None:
    canvas = make_canvas(qtbot, white_image)
    rect = canvas.display_rect()
    assert rect.width() == approx(400)
    assert rect.height() == approx(300)
    p = canvas.widget_to_image(QPointF(100, 50))
    assert (p.x(), p.y()) == (approx(200), approx(100))
    back = canvas.image_to_widget(p)
    assert (back.x(), back.y()) == (approx(100), approx(50))


def test_drag_creates_draft_in_image_coordinates(qtbot, white_image) -> None:
    canvas = make_canvas(qtbot, white_image)
    canvas.dispatch(SelectShape(MarkType.RECTANGLE))
    canvas.dispatch(ToggleMarking())
    emitted = []
    canvas.effects_emitted.connect(emitted.extend)

    qtbot.mousePress(canvas, Qt.MouseButton.LeftButton, pos=QPoint(10, 10))
    assert canvas.state.mode == InteractionMode.DRAGGING
    qtbot.mouseMove(canvas, QPoint(60, 40))
    qtbot.mouseRelease(canvas, Qt.MouseButton.LeftButton, pos=QPoint(60, 40))

    assert canvas.state.mode == InteractionMode.COMMENT_EDITING
    opened = [e for e in emitted if isinstance(e, OpenCommentDialog)]
    assert len(opened) == 1
    draft = opened[0].mark
    assert isinstance(draft, RectangleMark)
    assert (draft.x, draft.y) == (approx(20), approx(20))
    assert (draft.width, draft.height) == (approx(100), approx(60))


def test_tiny_drag_is_discarded(qtbot, white_image) -> None:
    canvas = make_canvas(qtbot, white_image)
    canvas.dispatch(ToggleMarking())
    emitted = []
    canvas.effects_emitted.connect(emitted.extend)

    qtbot.mousePress(canvas, Qt.MouseButton.LeftButton, pos=QPoint(100, 100))
    qtbot.mouseRelease(canvas, Qt.MouseButton.LeftButton, pos=QPoint(101, 100))

    assert canvas.state.mode == InteractionMode.ARMED
    assert emitted == []


def test_click_opens_mark_when_not_marking(qtbot, white_image) -> None:
    canvas = make_canvas(qtbot, white_image)
    saved = CircleMark(200, 200, 30, comment="look", mark_id="m1")
    canvas.set_marks([saved])
    emitted = []
    canvas.effects_emitted.connect(emitted.extend)

    qtbot.mouseClick(canvas, Qt.MouseButton.LeftButton, pos=QPoint(100, 100))

    assert emitted == [OpenCommentDialog(saved, "look")]


def test_pointer_ignored_until_image_loaded(qtbot) -> None:
    canvas = MarkCanvas()
    qtbot.addWidget(canvas)
    canvas.show()
    canvas.dispatch(ToggleMarking())
    qtbot.mousePress(canvas, Qt.MouseButton.LeftButton, pos=QPoint(10, 10))
    assert canvas.state.mode == InteractionMode.ARMED


def test_load_failure_is_reported(qtbot) -> None:
    canvas = MarkCanvas()
    qtbot.addWidget(canvas)
    with qtbot.waitSignal(canvas.image_load_failed) as blocker:
        canvas.set_load_error("404 Not Found")
    assert blocker.args == ["404 Not Found"]
    assert not canvas.image_loaded
    assert canvas.load_error == "404 Not Found"
