"""
Pointer capture for brush strokes

Turns container-relative pointer events into strokes in image-pixel space.
The capture owns the in-progress StrokeBuilder; nothing else sees it until
it is sealed into the log.
"""
from typing import Optional

import config

from .coords import ImageRect, compute_contain_rect, screen_point_to_image_point
from .strokes import Stroke, StrokeBuilder, StrokeLog
from .types import StrokeMode


class StrokeCapture:
    """
    Stroke capture for one annotation session

    The display rect is recomputed on every layout change; strokes already
    captured stay in image pixels and are never rescaled.
    """

    def __init__(self, image_width: int, image_height: int, log: Optional[StrokeLog] = None):
        """
        Initialize capture

        Args:
            image_width: Width of the displayed (upright) image in pixels
            image_height: Height of the displayed (upright) image in pixels
            log: Stroke log to commit into (default: new empty log)
        """
        self.image_width = image_width
        self.image_height = image_height
        self.log = log if log is not None else StrokeLog()
        self.rect = ImageRect()
        self.disabled = False
        self._current: Optional[StrokeBuilder] = None

    @property
    def is_capturing(self) -> bool:
        return self._current is not None

    def update_layout(self, container_width: float, container_height: float) -> ImageRect:
        """Recompute the image placement for a new container size"""
        self.rect = compute_contain_rect(
            container_width, container_height, self.image_width, self.image_height
        )
        return self.rect

    def pointer_down(
        self,
        x: float,
        y: float,
        brush_size: float = config.DEFAULT_BRUSH_SIZE,
        mode: StrokeMode = StrokeMode.DRAW,
    ) -> bool:
        """
        Start a stroke at a screen point

        Args:
            x: Container-relative x
            y: Container-relative y
            brush_size: Brush diameter in screen pixels
            mode: Draw or erase

        Returns:
            True if a stroke was started
        """
        if self.disabled or self.rect.is_empty or not self.rect.scale:
            return False

        point = screen_point_to_image_point(x, y, self.rect)
        if point is None:
            return False

        size_in_image = max(1.0, float(brush_size) / self.rect.scale)
        self._current = StrokeBuilder.begin(point, size_in_image, mode)
        return True

    def pointer_move(self, x: float, y: float) -> bool:
        """Extend the current stroke; points outside the image are ignored"""
        if self.disabled or self._current is None:
            return False
        point = screen_point_to_image_point(x, y, self.rect)
        if point is None:
            return False
        return self._current.append(point)

    def pointer_up(self) -> Optional[Stroke]:
        """Seal the current stroke into the log"""
        builder, self._current = self._current, None
        if builder is None:
            return None
        return self.log.seal(builder)

    def pointer_cancel(self) -> Optional[Stroke]:
        """Treat a cancelled gesture like a release"""
        return self.pointer_up()
