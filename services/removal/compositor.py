"""
Mask and marked-image compositor

Renders the sealed stroke log at the provider-safe target size:

- mask: black ("keep") canvas with draw strokes in white ("edit") and
  erase strokes painted back to black, in log order
- marked: the resized seed with draw strokes painted in solid red; erase
  strokes clear red from a separate overlay, so they never touch the seed

Drawing is done without anti-aliasing so outputs are binary and
deterministic.
"""
from typing import Iterable, List, Optional, Tuple

import numpy as np
from PIL import Image, ImageDraw

import config

from .assets import RasterAsset
from .errors import EmptyAnnotation, InvalidGeometry
from .safe_size import TargetSize
from .strokes import Stroke

KEEP = 0
EDIT = 255
CLEAR = (0, 0, 0, 0)


def _validate_target(target: Optional[TargetSize]) -> TargetSize:
    if target is None or not target.width or not target.height or target.width < 0 or target.height < 0:
        raise InvalidGeometry(
            "Invalid export size.", meta={"target": target.to_dict() if target else None}
        )
    if not target.scale_x or not target.scale_y:
        raise InvalidGeometry("Invalid source size.", meta={"target": target.to_dict()})
    return target


def _drawable_strokes(strokes: Iterable[Stroke]) -> List[Stroke]:
    drawable = [s for s in strokes if s.points]
    if not drawable:
        raise EmptyAnnotation("No strokes to export.")
    return drawable


def stroke_width(stroke: Stroke, target: TargetSize) -> float:
    """Brush diameter in target pixels"""
    return max(1.0, stroke.size * target.stroke_scale)


def draw_stroke(draw: ImageDraw.ImageDraw, stroke: Stroke, target: TargetSize, fill) -> None:
    """
    Draw one stroke scaled into target space

    Single points become a filled disc; longer strokes a polyline with
    round caps and joins (a disc at every vertex).
    """
    width = stroke_width(stroke, target)
    radius = width / 2
    points = [(p.x * target.scale_x, p.y * target.scale_y) for p in stroke.points]

    if len(points) > 1:
        draw.line(points, fill=fill, width=max(1, int(round(width))))

    for x, y in points:
        draw.ellipse((x - radius, y - radius, x + radius, y + radius), fill=fill)


def _mask(strokes: List[Stroke], target: TargetSize) -> Image.Image:
    mask = Image.new("L", target.size, KEEP)
    draw = ImageDraw.Draw(mask)
    for stroke in strokes:
        draw_stroke(draw, stroke, target, KEEP if stroke.is_erase else EDIT)
    return mask


def render_mask_image(strokes: Iterable[Stroke], target: TargetSize) -> Image.Image:
    """Render the binary mask as an `L` mode PIL Image"""
    target = _validate_target(target)
    return _mask(_drawable_strokes(strokes), target)


def render_mask(strokes: Iterable[Stroke], target: TargetSize) -> RasterAsset:
    """
    Render the edit mask as a PNG

    Args:
        strokes: Sealed strokes in image-pixel space (a StrokeLog works)
        target: Output size and scale from image pixels

    Returns:
        PNG RasterAsset of target size

    Raises:
        InvalidGeometry: If the target size is missing or zero
        EmptyAnnotation: If there are no strokes with points
        EncodeError: If the mask can't be encoded
    """
    return RasterAsset.from_image(render_mask_image(strokes, target), format="PNG")


def _seed_base(seed: Optional[RasterAsset], target: TargetSize) -> Image.Image:
    """Decode the seed as RGBA at the target size"""
    if seed is None:
        raise InvalidGeometry("Missing seed image.")
    with seed.open() as decoded:
        base = decoded.convert("RGBA")
    if base.size != target.size:
        base = base.resize(target.size, Image.Resampling.LANCZOS)
    return base


def _composite(
    strokes: List[Stroke],
    target: TargetSize,
    base: Image.Image,
    color: Tuple[int, int, int, int],
) -> Image.Image:
    overlay = Image.new("RGBA", target.size, CLEAR)
    draw = ImageDraw.Draw(overlay)
    for stroke in strokes:
        draw_stroke(draw, stroke, target, CLEAR if stroke.is_erase else color)
    return Image.alpha_composite(base, overlay).convert("RGB")


def render_marked_image(
    strokes: Iterable[Stroke],
    target: TargetSize,
    seed: RasterAsset,
    color: Tuple[int, int, int, int] = config.MARK_COLOR,
) -> Image.Image:
    """Render the marked composite as an RGB PIL Image"""
    target = _validate_target(target)
    drawable = _drawable_strokes(strokes)
    return _composite(drawable, target, _seed_base(seed, target), color)


def render_marked(
    strokes: Iterable[Stroke],
    target: TargetSize,
    seed: RasterAsset,
    color: Tuple[int, int, int, int] = config.MARK_COLOR,
) -> RasterAsset:
    """
    Render the seed image with the strokes painted over it, as a PNG

    Args:
        strokes: Sealed strokes in image-pixel space (a StrokeLog works)
        target: Output size and scale from image pixels
        seed: Seed asset already resized to the target size
        color: RGBA colour of draw strokes

    Returns:
        PNG RasterAsset of target size

    Raises:
        InvalidGeometry: If the target size or seed is missing
        EmptyAnnotation: If there are no strokes with points
        DecodeError: If the seed can't be decoded
        EncodeError: If the output can't be encoded
    """
    image = render_marked_image(strokes, target, seed, color=color)
    return RasterAsset.from_image(image, format="PNG")


def render_outputs(
    strokes: Iterable[Stroke],
    target: TargetSize,
    seed: RasterAsset,
    color: Tuple[int, int, int, int] = config.MARK_COLOR,
) -> Tuple[RasterAsset, RasterAsset]:
    """
    Render (mask, marked) for one export attempt

    Inputs are validated and the seed decoded before either canvas is
    allocated.
    """
    target = _validate_target(target)
    drawable = _drawable_strokes(strokes)
    base = _seed_base(seed, target)

    mask = _mask(drawable, target)
    marked = _composite(drawable, target, base, color)
    return RasterAsset.from_image(mask, format="PNG"), RasterAsset.from_image(marked, format="PNG")


def mask_coverage(mask: RasterAsset) -> float:
    """Fraction of mask pixels marked for editing"""
    with mask.open() as image:
        pixels = np.asarray(image.convert("L"))
    if not pixels.size:
        return 0.0
    return float(np.count_nonzero(pixels)) / pixels.size
