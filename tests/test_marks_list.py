from markboard.editor.marks import MarkColor, PointMark, RectangleMark
from markboard.editor.marks_list import MarksListDialog, describe_mark, format_timestamp


def test_format_timestamp() -> None:
    assert format_timestamp(None) == ""
    assert format_timestamp("yesterday") == "yesterday"
    # naive timestamps are shown as stored
    assert format_timestamp("2024-05-01T10:30:59") == "2024-05-01 10:30"
    assert format_timestamp("2024-05-01T10:30:00Z")


def test_describe_mark() -> None:
    bare = PointMark(3.4, 7.6)
    assert describe_mark(bare) == "point at (3, 8)"

    full = RectangleMark(
        10, 20, 30, 40, comment="crop here", author="Dana",
        timestamp="2024-05-01T10:30:00", mark_id="m1",
    )
    assert describe_mark(full) == "rectangle at (10, 20)\ncrop here\nDana - 2024-05-01 10:30"


def test_clicking_row_emits_mark(qtbot) -> None:
    dialog = MarksListDialog()
    qtbot.addWidget(dialog)
    marks = [
        PointMark(1, 1, color=MarkColor.RED, mark_id="a"),
        PointMark(2, 2, color=MarkColor.GREEN, mark_id="b"),
    ]
    dialog.set_marks(marks)
    dialog.show_list()
    assert dialog.list_widget.item(0).toolTip() == "Red"

    with qtbot.waitSignal(dialog.mark_activated) as blocker:
        dialog.list_widget.itemClicked.emit(dialog.list_widget.item(1))

    assert blocker.args == [marks[1]]
    assert not dialog.isVisible()
