from pytest import approx, raises

from PySide6.QtCore import QPointF

from markboard.editor.marks import (
    CircleMark,
    MarkColor,
    MarkType,
    PointMark,
    RectangleMark,
    build_draft,
    find_mark_at,
    is_valid_circle,
    is_valid_rectangle,
    is_valid_point,
    mark_from_record,
    mark_to_record,
    shape_from_drag,
)
from markboard.services.errors import InvalidMarkError


def test_rectangle_drag_is_normalized() -> None:
    draft = build_draft(
        MarkType.RECTANGLE, QPointF(100, 100), QPointF(40, 30), MarkColor.RED
    )
    assert isinstance(draft, RectangleMark)
    assert (draft.x, draft.y) == (40, 30)
    assert (draft.width, draft.height) == (60, 70)
    assert draft.color == MarkColor.RED
    assert draft.is_draft


def test_circle_radius_threshold() -> None:
    assert build_draft(MarkType.CIRCLE, QPointF(0, 0), QPointF(4, 0), MarkColor.BLUE) is None
    draft = build_draft(MarkType.CIRCLE, QPointF(0, 0), QPointF(6, 0), MarkColor.BLUE)
    assert isinstance(draft, CircleMark)
    assert draft.radius == approx(6)


def test_threshold_is_strictly_greater_than_five() -> None:
    assert not is_valid_circle(5)
    assert is_valid_circle(5.01)
    assert not is_valid_rectangle(5, 100)
    assert not is_valid_rectangle(100, -5)
    assert is_valid_rectangle(-6, 6)


def test_point_needs_no_drag() -> None:
    assert is_valid_point()
    draft = build_draft(MarkType.POINT, QPointF(5, 5), QPointF(5, 5), MarkColor.PURPLE)
    assert isinstance(draft, PointMark)
    assert draft.color == MarkColor.PURPLE


def test_thin_rectangle_is_discarded() -> None:
    assert build_draft(MarkType.RECTANGLE, QPointF(0, 0), QPointF(100, 3), MarkColor.BLUE) is None


def test_point_is_placed_at_release_position() -> None:
    draft = build_draft(MarkType.POINT, QPointF(10, 10), QPointF(12, 14), MarkColor.GREEN)
    assert isinstance(draft, PointMark)
    assert (draft.x, draft.y) == (12, 14)


def test_preview_has_no_size_check() -> None:
    preview = shape_from_drag(MarkType.CIRCLE, QPointF(0, 0), QPointF(1, 0), MarkColor.BLUE)
    assert isinstance(preview, CircleMark)
    assert shape_from_drag(MarkType.POINT, QPointF(0, 0), QPointF(1, 0), MarkColor.BLUE) is None


def test_circle_hit_test_inclusive_on_boundary() -> None:
    circle = CircleMark(50, 50, 10)
    assert circle.hit_test(QPointF(60, 50))
    assert not circle.hit_test(QPointF(60.5, 50))


def test_rectangle_hit_test_inclusive_edges() -> None:
    rect = RectangleMark(10, 10, 20, 20)
    assert rect.hit_test(QPointF(10, 10))
    assert rect.hit_test(QPointF(30, 30))
    assert not rect.hit_test(QPointF(30.1, 20))


def test_point_hit_tolerance() -> None:
    point = PointMark(100, 100)
    assert point.hit_test(QPointF(106, 108))
    assert not point.hit_test(QPointF(111, 100))


def test_find_mark_at_first_match_wins() -> None:
    first = CircleMark(50, 50, 20, mark_id="a")
    second = RectangleMark(40, 40, 30, 30, mark_id="b")
    assert find_mark_at([first, second], QPointF(50, 50)).id == "a"
    assert find_mark_at([second, first], QPointF(50, 50)).id == "b"
    assert find_mark_at([first, second], QPointF(500, 500)) is None


def test_unknown_color_maps_to_none() -> None:
    assert MarkColor.from_value("magenta") == MarkColor.NONE
    assert MarkColor.from_value(None) == MarkColor.NONE
    assert MarkColor.NONE.qcolor.name() == "#6b7280"
    assert MarkColor.BLUE.qcolor.name() == "#3b82f6"


def test_indicator_positions() -> None:
    c = CircleMark(100, 100, 20)
    assert (c.indicator_center.x(), c.indicator_center.y()) == (125, 75)
    r = RectangleMark(10, 20, 30, 40)
    assert (r.indicator_center.x(), r.indicator_center.y()) == (45, 15)
    p = PointMark(10, 20)
    assert (p.indicator_center.x(), p.indicator_center.y()) == (18, 12)


def test_negative_radius_rejected() -> None:
    with raises(InvalidMarkError):
        CircleMark(0, 0, -1)


def test_mark_to_record_rounds_half_up() -> None:
    draft = CircleMark(10.5, 20.4, 7.5, color=MarkColor.PURPLE)
    record = mark_to_record(draft, "img", "proj", "u1", "Alice", "look")
    assert record["x_coordinate"] == 11
    assert record["y_coordinate"] == 20
    assert record["radius"] == 8
    assert "width" not in record
    assert record["mark_type"] == "circle"
    assert record["color"] == "purple"
    assert record["comment"] == "look"
    assert record["author_name"] == "Alice"


def test_point_record_has_no_extents() -> None:
    record = mark_to_record(PointMark(1, 2), "img", "proj", "u1", "Alice")
    assert "radius" not in record
    assert "width" not in record
    assert "height" not in record


def test_mark_from_record() -> None:
    mark = mark_from_record({
        "id": "m1",
        "mark_type": "rectangle",
        "x_coordinate": 5,
        "y_coordinate": 6,
        "width": 70,
        "height": 80,
        "color": "yellow",
        "comment": "here",
        "author_name": "Bob",
        "created_at": "2024-01-01T00:00:00+00:00",
    })
    assert isinstance(mark, RectangleMark)
    assert mark.id == "m1"
    assert (mark.width, mark.height) == (70, 80)
    assert mark.color == MarkColor.YELLOW
    assert mark.has_comment
    assert mark.author == "Bob"
    assert not mark.is_draft


def test_mark_from_record_missing_extent_defaults_to_zero() -> None:
    mark = mark_from_record({"id": "m2", "mark_type": "circle", "x_coordinate": 1, "y_coordinate": 1})
    assert mark.radius == 0
    assert mark.comment == ""


def test_mark_from_record_unknown_type() -> None:
    with raises(InvalidMarkError):
        mark_from_record({"mark_type": "triangle"})

