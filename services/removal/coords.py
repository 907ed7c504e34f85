"""
Screen <-> image pixel mapping for an image displayed with contain fit
"""
import math
from dataclasses import dataclass
from typing import Optional

from .strokes import Point


@dataclass(frozen=True)
class ImageRect:
    """Placement of a contain-fit image inside its container"""
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    scale: float = 1.0

    @property
    def is_empty(self) -> bool:
        return not self.width or not self.height

    @property
    def image_width(self) -> float:
        return self.width / self.scale if self.scale else 0.0

    @property
    def image_height(self) -> float:
        return self.height / self.scale if self.scale else 0.0


def clamp(value: float, lo: float, hi: float) -> float:
    """Clamp value into [lo, hi]; non-finite values map to lo"""
    try:
        n = float(value)
    except (TypeError, ValueError):
        return lo
    if not math.isfinite(n):
        return lo
    return min(hi, max(lo, n))


def _size(value) -> float:
    try:
        n = float(value)
    except (TypeError, ValueError):
        return 0.0
    return n if math.isfinite(n) and n > 0 else 0.0


def compute_contain_rect(container_w, container_h, image_w, image_h) -> ImageRect:
    """
    Place an image inside a container with contain fit, centred

    Args:
        container_w: Container width
        container_h: Container height
        image_w: Image width in pixels
        image_h: Image height in pixels

    Returns:
        ImageRect; all zeros with scale=1 when any input is zero or invalid
    """
    cw, ch = _size(container_w), _size(container_h)
    iw, ih = _size(image_w), _size(image_h)
    if not cw or not ch or not iw or not ih:
        return ImageRect()

    scale = min(cw / iw, ch / ih)
    width = iw * scale
    height = ih * scale
    return ImageRect(
        x=(cw - width) / 2,
        y=(ch - height) / 2,
        width=width,
        height=height,
        scale=scale,
    )


def screen_point_to_image_point(x: float, y: float, rect: Optional[ImageRect]) -> Optional[Point]:
    """
    Convert a container-relative screen point into image pixel coordinates

    Returns None when the point falls outside the placed image.
    """
    if rect is None or not rect.scale or rect.is_empty:
        return None

    image_w = rect.image_width
    image_h = rect.image_height
    ix = (x - rect.x) / rect.scale
    iy = (y - rect.y) / rect.scale

    if not (0 <= ix <= image_w and 0 <= iy <= image_h):
        return None

    return Point(x=clamp(ix, 0, image_w), y=clamp(iy, 0, image_h))


def image_point_to_screen_point(point: Point, rect: ImageRect) -> tuple:
    """Convert an image pixel coordinate back to container coordinates"""
    return (rect.x + point.x * rect.scale, rect.y + point.y * rect.scale)
