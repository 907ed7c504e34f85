"""
Stroke Data Models

Brush strokes in image-pixel space, the builder used while a stroke is being
captured, and the undo/redo log of sealed strokes.
"""
import math
import uuid
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from .types import StrokeMode

DAB_WEIGHT = 0.8  # ink score of a single-point stroke, per pixel of size
MIN_POINT_SPACING = 0.8
MIN_INK_SCORE = 30.0
MIN_INK_RATIO = 0.003  # of the image's longer side


@dataclass(frozen=True)
class Point:
    """2D point in image pixels"""
    x: float
    y: float

    def distance_to(self, other: "Point") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


def _new_stroke_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class Stroke:
    """
    Sealed brush stroke

    Attributes:
        id: Unique identifier for the stroke
        points: Ordered points in image pixels (at least one)
        size: Brush diameter in image pixels
        mode: Draw (mark for removal) or erase (restore)
    """
    points: Tuple[Point, ...]
    size: float
    mode: StrokeMode = StrokeMode.DRAW
    id: str = field(default_factory=_new_stroke_id)

    @property
    def is_erase(self) -> bool:
        return self.mode == StrokeMode.ERASE

    @property
    def length(self) -> float:
        """Polyline length in image pixels"""
        return sum(a.distance_to(b) for a, b in zip(self.points, self.points[1:]))


class StrokeBuilder:
    """
    Mutable stroke under construction

    Owned by whoever captures pointer input; `seal()` hands the points over
    to an immutable Stroke.
    """

    def __init__(self, point: Point, size: float, mode: StrokeMode = StrokeMode.DRAW):
        self.id = _new_stroke_id()
        self.size = max(1.0, float(size))
        self.mode = StrokeMode(mode)
        self.points: List[Point] = [point]

    @classmethod
    def begin(cls, point: Point, size: float, mode: StrokeMode = StrokeMode.DRAW) -> "StrokeBuilder":
        """Start a new stroke at `point`"""
        return cls(point, size, mode)

    @property
    def min_spacing(self) -> float:
        """Points closer than this to the previous one are dropped"""
        return max(MIN_POINT_SPACING, self.size / 10)

    def append(self, point: Point) -> bool:
        """
        Add a point if it is far enough from the last one

        Returns:
            True if the point was added
        """
        if self.points and self.points[-1].distance_to(point) < self.min_spacing:
            return False
        self.points.append(point)
        return True

    def seal(self) -> Optional[Stroke]:
        """Freeze into a Stroke, or None when no points were captured"""
        if not self.points:
            return None
        return Stroke(points=tuple(self.points), size=self.size, mode=self.mode, id=self.id)


class StrokeLog:
    """Ordered sealed strokes plus a redo buffer"""

    def __init__(self, strokes: Optional[Iterable[Stroke]] = None):
        self._strokes: List[Stroke] = list(strokes or [])
        self._redo: List[Stroke] = []

    @property
    def strokes(self) -> Tuple[Stroke, ...]:
        return tuple(self._strokes)

    @property
    def can_undo(self) -> bool:
        return bool(self._strokes)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    def __len__(self) -> int:
        return len(self._strokes)

    def __iter__(self):
        return iter(tuple(self._strokes))

    def seal(self, stroke) -> Optional[Stroke]:
        """
        Commit a stroke (or a builder) to the log

        Any append clears the redo buffer. Builders without points are
        discarded.

        Returns:
            The committed Stroke, or None if nothing was committed
        """
        if isinstance(stroke, StrokeBuilder):
            stroke = stroke.seal()
        if stroke is None or not stroke.points:
            return None
        self._strokes.append(stroke)
        self._redo.clear()
        return stroke

    def undo(self) -> Optional[Stroke]:
        """Move the last stroke to the redo buffer"""
        if not self._strokes:
            return None
        stroke = self._strokes.pop()
        self._redo.append(stroke)
        return stroke

    def redo(self) -> Optional[Stroke]:
        """Move the last undone stroke back to the log"""
        if not self._redo:
            return None
        stroke = self._redo.pop()
        self._strokes.append(stroke)
        return stroke

    def reset(self) -> None:
        """Clear strokes and the redo buffer"""
        self._strokes.clear()
        self._redo.clear()

    def ink_score(self) -> float:
        return ink_score(self._strokes)


def ink_score(strokes: Iterable[Stroke]) -> float:
    """
    Estimate how much has been painted

    Single-point strokes count as a dab proportional to their size;
    longer strokes count their polyline length.
    """
    score = 0.0
    for stroke in strokes:
        if not stroke.points:
            continue
        if len(stroke.points) == 1:
            score += max(1.0, stroke.size) * DAB_WEIGHT
        else:
            score += stroke.length
    return score


def min_ink_score(image_width: float, image_height: float) -> float:
    """Ink score required before an export may be submitted"""
    return max(MIN_INK_SCORE, max(image_width, image_height) * MIN_INK_RATIO)


def has_enough_ink(strokes: Iterable[Stroke], image_width: float, image_height: float) -> bool:
    """Whether the strokes carry enough ink for a meaningful mask"""
    strokes = list(strokes)
    if not strokes or not image_width or not image_height:
        return False
    return ink_score(strokes) >= min_ink_score(image_width, image_height)
