"""
Mark models for the MarkBoard annotation canvas.

A mark is a single geometric annotation placed on an image, optionally
carrying a comment. There are exactly three kinds:

- PointMark: a pin at (x, y)
- CircleMark: centre (x, y) and a radius
- RectangleMark: top-left (x, y) and positive width/height

Each mark knows how to:
- Paint itself on a QPainter (already set up in image coordinates)
- Hit-test a click for selection
- Convert to and from a database record

All coordinates are image-intrinsic pixels. Geometry is fixed once a mark
is built; only the comment can change afterwards.
"""

import math
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QColor, QPainter, QPen

from markboard.services.errors import InvalidMarkError


# Gestures at or below this many pixels do not produce a circle/rectangle
MIN_SHAPE_SIZE = 5

# Clicks within this distance of a point mark select it
POINT_HIT_TOLERANCE = 10

STROKE_WIDTH = 4
POINT_RADIUS = 5
INDICATOR_RADIUS = 6
INDICATOR_OFFSET = 5
POINT_INDICATOR_OFFSET = 8

COMMENT_INDICATOR_COLOR = QColor("#11ffb4")
NEUTRAL_COLOR = QColor("#6b7280")


class MarkType(Enum):
    """The closed set of mark shapes. Values are the wire names."""
    POINT = "point"
    CIRCLE = "circle"
    RECTANGLE = "rectangle"


class MarkColor(Enum):
    """Palette a mark can be drawn in. Values are the wire names."""
    BLUE = "blue"
    GREEN = "green"
    RED = "red"
    YELLOW = "yellow"
    PURPLE = "purple"
    # Legacy records may carry "none"; drawn in a neutral grey
    NONE = "none"

    @classmethod
    def palette(cls) -> List["MarkColor"]:
        """Colors offered when drawing."""
        return [cls.BLUE, cls.GREEN, cls.RED, cls.YELLOW, cls.PURPLE]

    @classmethod
    def from_value(cls, value: Optional[str]) -> "MarkColor":
        """Parse a wire value, mapping anything unrecognised to NONE."""
        try:
            return cls(value)
        except ValueError:
            return cls.NONE

    @property
    def qcolor(self) -> QColor:
        return QColor(_COLOR_VALUES.get(self, NEUTRAL_COLOR))

    @property
    def label(self) -> str:
        return self.value.capitalize()


_COLOR_VALUES = {
    MarkColor.BLUE: QColor("#3b82f6"),
    MarkColor.GREEN: QColor("#10b981"),
    MarkColor.RED: QColor("#ef4444"),
    MarkColor.YELLOW: QColor("#f59e0b"),
    MarkColor.PURPLE: QColor("#8b5cf6"),
}


def _distance(a: QPointF, b: QPointF) -> float:
    return math.hypot(a.x() - b.x(), a.y() - b.y())


def _round_half_up(value: float) -> int:
    """Round like the backend does (0.5 always goes up)."""
    return int(math.floor(value + 0.5))


# ─── Validation ───────────────────────────────────────────────────────────────

def is_valid_circle(radius: float) -> bool:
    return radius > MIN_SHAPE_SIZE


def is_valid_rectangle(width: float, height: float) -> bool:
    return abs(width) > MIN_SHAPE_SIZE and abs(height) > MIN_SHAPE_SIZE


def is_valid_point() -> bool:
    # Points are never too small
    return True


# ─── Mark Classes ─────────────────────────────────────────────────────────────

class MarkBase(ABC):
    """
    Base class for all marks.

    Holds the fields every shape shares: anchor, color, comment and the
    bookkeeping assigned by the persistence layer (id, author, timestamp).
    A mark with no id is a draft that has not been saved yet.
    """

    def __init__(
        self,
        x: float,
        y: float,
        color: MarkColor = MarkColor.BLUE,
        comment: str = "",
        mark_id: Optional[str] = None,
        author: Optional[str] = None,
        timestamp: Optional[str] = None,
    ) -> None:
        self._x = float(x)
        self._y = float(y)
        self._color = color
        self._comment = comment or ""
        self._id = mark_id
        self._author = author
        self._timestamp = timestamp

    # ─── Fields ───────────────────────────────────────────────────────────

    @property
    def id(self) -> Optional[str]:
        return self._id

    @property
    def x(self) -> float:
        return self._x

    @property
    def y(self) -> float:
        return self._y

    @property
    def anchor(self) -> QPointF:
        return QPointF(self._x, self._y)

    @property
    def color(self) -> MarkColor:
        return self._color

    @property
    def comment(self) -> str:
        return self._comment

    @property
    def author(self) -> Optional[str]:
        return self._author

    @property
    def timestamp(self) -> Optional[str]:
        return self._timestamp

    @property
    def is_draft(self) -> bool:
        return self._id is None

    @property
    def has_comment(self) -> bool:
        return bool(self._comment.strip())

    # ─── Shape Interface ──────────────────────────────────────────────────

    @property
    @abstractmethod
    def mark_type(self) -> MarkType:
        """Return the shape of this mark."""
        pass

    @property
    @abstractmethod
    def bounding_rect(self) -> QRectF:
        """Return the area covered by the shape, in image coordinates."""
        pass

    @property
    @abstractmethod
    def indicator_center(self) -> QPointF:
        """Where the "has a comment" dot is drawn."""
        pass

    @abstractmethod
    def hit_test(self, point: QPointF) -> bool:
        """
        Test if a click lands on this mark.

        Args:
            point: The click position (in image coordinates).
        """
        pass

    @abstractmethod
    def geometry(self) -> Dict[str, float]:
        """The shape-specific fields, keyed by their wire names."""
        pass

    @abstractmethod
    def _paint_shape(self, painter: QPainter) -> None:
        pass

    # ─── Painting ─────────────────────────────────────────────────────────

    def paint(self, painter: QPainter, with_indicator: bool = True) -> None:
        """
        Paint the mark outline and, if it has a comment, the indicator dot.

        Args:
            painter: The QPainter to use (already scaled to image pixels).
            with_indicator: False for previews, which never have a comment.
        """
        self._apply_color(painter, self._color)
        self._paint_shape(painter)

        if with_indicator and self.has_comment:
            painter.setPen(Qt.PenStyle.NoPen)
            painter.setBrush(COMMENT_INDICATOR_COLOR)
            painter.drawEllipse(
                self.indicator_center, INDICATOR_RADIUS, INDICATOR_RADIUS
            )

    def _apply_color(self, painter: QPainter, color: MarkColor) -> None:
        pen = QPen(color.qcolor)
        pen.setWidth(STROKE_WIDTH)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)

    # ─── Display ──────────────────────────────────────────────────────────

    def summary(self) -> str:
        """Short human description, e.g. "circle at (120, 48)"."""
        return (
            f"{self.mark_type.value} at "
            f"({_round_half_up(self._x)}, {_round_half_up(self._y)})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MarkBase):
            return NotImplemented
        return (
            self.mark_type == other.mark_type
            and self.geometry() == other.geometry()
            and self._color == other._color
            and self._comment == other._comment
            and self._id == other._id
        )

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={v!r}" for k, v in self.geometry().items())
        return (
            f"{type(self).__name__}(id={self._id!r}, {fields}, "
            f"color={self._color.value!r}, comment={self._comment!r})"
        )


class PointMark(MarkBase):
    """A pin dropped at a single position."""

    @property
    def mark_type(self) -> MarkType:
        return MarkType.POINT

    @property
    def bounding_rect(self) -> QRectF:
        return QRectF(
            self._x - POINT_RADIUS, self._y - POINT_RADIUS,
            POINT_RADIUS * 2, POINT_RADIUS * 2,
        )

    @property
    def indicator_center(self) -> QPointF:
        return QPointF(
            self._x + POINT_INDICATOR_OFFSET, self._y - POINT_INDICATOR_OFFSET
        )

    def hit_test(self, point: QPointF) -> bool:
        # Fixed tolerance so a 5px dot is still easy to click
        return _distance(point, self.anchor) <= POINT_HIT_TOLERANCE

    def geometry(self) -> Dict[str, float]:
        return {"x": self._x, "y": self._y}

    def _paint_shape(self, painter: QPainter) -> None:
        painter.setPen(Qt.PenStyle.NoPen)
        painter.setBrush(self._color.qcolor)
        painter.drawEllipse(self.anchor, POINT_RADIUS, POINT_RADIUS)


class CircleMark(MarkBase):
    """A circle centred on (x, y)."""

    def __init__(self, x: float, y: float, radius: float, **kwargs: Any) -> None:
        super().__init__(x, y, **kwargs)
        if radius < 0:
            raise InvalidMarkError(f"Circle radius must be non-negative, got {radius}")
        self._radius = float(radius)

    @property
    def radius(self) -> float:
        return self._radius

    @property
    def mark_type(self) -> MarkType:
        return MarkType.CIRCLE

    @property
    def bounding_rect(self) -> QRectF:
        r = self._radius
        return QRectF(self._x - r, self._y - r, r * 2, r * 2)

    @property
    def indicator_center(self) -> QPointF:
        r = self._radius
        return QPointF(self._x + r + INDICATOR_OFFSET, self._y - r - INDICATOR_OFFSET)

    def hit_test(self, point: QPointF) -> bool:
        return _distance(point, self.anchor) <= self._radius

    def geometry(self) -> Dict[str, float]:
        return {"x": self._x, "y": self._y, "radius": self._radius}

    def _paint_shape(self, painter: QPainter) -> None:
        if self._radius > 0:
            painter.drawEllipse(self.anchor, self._radius, self._radius)


class RectangleMark(MarkBase):
    """An axis-aligned rectangle anchored at its top-left corner."""

    def __init__(
        self, x: float, y: float, width: float, height: float, **kwargs: Any
    ) -> None:
        super().__init__(x, y, **kwargs)
        if width < 0 or height < 0:
            raise InvalidMarkError(
                f"Rectangle extents must be non-negative, got {width}x{height}"
            )
        self._width = float(width)
        self._height = float(height)

    @property
    def width(self) -> float:
        return self._width

    @property
    def height(self) -> float:
        return self._height

    @property
    def mark_type(self) -> MarkType:
        return MarkType.RECTANGLE

    @property
    def bounding_rect(self) -> QRectF:
        return QRectF(self._x, self._y, self._width, self._height)

    @property
    def indicator_center(self) -> QPointF:
        return QPointF(self._x + self._width + INDICATOR_OFFSET, self._y - INDICATOR_OFFSET)

    def hit_test(self, point: QPointF) -> bool:
        # Inclusive on every edge
        return (
            self._x <= point.x() <= self._x + self._width
            and self._y <= point.y() <= self._y + self._height
        )

    def geometry(self) -> Dict[str, float]:
        return {
            "x": self._x, "y": self._y,
            "width": self._width, "height": self._height,
        }

    def _paint_shape(self, painter: QPainter) -> None:
        if self._width > 0 and self._height > 0:
            painter.drawRect(self.bounding_rect)


# ─── Construction From Gestures ───────────────────────────────────────────────

def shape_from_drag(
    mark_type: MarkType,
    start: QPointF,
    end: QPointF,
    color: MarkColor,
) -> Optional[MarkBase]:
    """
    Build the shape described by a drag, without any size check.

    Used for the live preview. Points have no preview and return None.
    """
    if mark_type == MarkType.CIRCLE:
        return CircleMark(start.x(), start.y(), _distance(start, end), color=color)

    if mark_type == MarkType.RECTANGLE:
        dx = end.x() - start.x()
        dy = end.y() - start.y()
        return RectangleMark(
            min(start.x(), end.x()),
            min(start.y(), end.y()),
            abs(dx),
            abs(dy),
            color=color,
        )

    return None


def build_draft(
    mark_type: MarkType,
    start: QPointF,
    end: QPointF,
    color: MarkColor,
) -> Optional[MarkBase]:
    """
    Build an unsaved mark from a completed gesture.

    Args:
        mark_type: The shape selected in the drawing session.
        start: Where the pointer went down (image coordinates).
        end: Where it came up (image coordinates).
        color: The selected color.

    Returns:
        The draft, or None when the gesture is below the minimum size.
        Rectangles are normalized to their top-left corner regardless of
        drag direction.
    """
    if mark_type == MarkType.POINT:
        if not is_valid_point():
            return None
        return PointMark(end.x(), end.y(), color=color)

    if mark_type == MarkType.CIRCLE:
        radius = _distance(start, end)
        if not is_valid_circle(radius):
            return None
        return CircleMark(start.x(), start.y(), radius, color=color)

    if mark_type == MarkType.RECTANGLE:
        if not is_valid_rectangle(end.x() - start.x(), end.y() - start.y()):
            return None
        return shape_from_drag(mark_type, start, end, color)

    raise ValueError(f"Unknown mark type: {mark_type}")


# ─── Hit Testing ──────────────────────────────────────────────────────────────

def find_mark_at(marks: Iterable[MarkBase], pos: QPointF) -> Optional[MarkBase]:
    """
    Find the mark under a click (image coordinates).

    Overlapping marks resolve to the first match in list order.
    """
    for mark in marks:
        if mark.hit_test(pos):
            return mark
    return None


# ─── Records ──────────────────────────────────────────────────────────────────

def mark_to_record(
    mark: MarkBase,
    image_id: str,
    project_id: str,
    author_id: str,
    author_name: str,
    comment: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Convert a draft into an ``image_marks`` row for insertion.

    Coordinates and extents are rounded to whole pixels; the id and
    timestamps are left for the database to assign.
    """
    record: Dict[str, Any] = {
        "image_id": image_id,
        "project_id": project_id,
        "author_id": author_id,
        "author_name": author_name,
        "mark_type": mark.mark_type.value,
        "x_coordinate": _round_half_up(mark.x),
        "y_coordinate": _round_half_up(mark.y),
        "color": mark.color.value,
        "comment": mark.comment if comment is None else comment,
    }

    geometry = mark.geometry()
    if "radius" in geometry:
        record["radius"] = _round_half_up(geometry["radius"])
    if "width" in geometry:
        record["width"] = _round_half_up(geometry["width"])
        record["height"] = _round_half_up(geometry["height"])

    return record


def mark_from_record(record: Dict[str, Any]) -> MarkBase:
    """Build a saved mark from an ``image_marks`` row."""
    try:
        mark_type = MarkType(record.get("mark_type"))
    except ValueError:
        raise InvalidMarkError(f"Unknown mark type: {record.get('mark_type')!r}")

    common = dict(
        color=MarkColor.from_value(record.get("color")),
        comment=record.get("comment") or "",
        mark_id=record.get("id"),
        author=record.get("author_name"),
        timestamp=record.get("created_at"),
    )
    x = record.get("x_coordinate") or 0
    y = record.get("y_coordinate") or 0

    if mark_type == MarkType.CIRCLE:
        return CircleMark(x, y, record.get("radius") or 0, **common)
    if mark_type == MarkType.RECTANGLE:
        return RectangleMark(
            x, y, record.get("width") or 0, record.get("height") or 0, **common
        )
    return PointMark(x, y, **common)
