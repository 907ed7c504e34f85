"""
Upright rasterizer

Bakes the EXIF orientation into the pixels so that consumers which ignore
EXIF render the same picture the user saw. Identity orientations pass the
original bytes through untouched; anything else is re-encoded as a PNG with
no orientation metadata.
"""
from dataclasses import dataclass
from typing import Optional

from PIL import Image

from .assets import RasterAsset
from .diagnostics import NullDiagnostics
from .errors import DecodeError
from .exif import is_mirrored, read_orientation, rotation_degrees

# Transpose that brings each EXIF orientation upright (PIL rotates
# counter-clockwise, so a 90 degree clockwise fix is ROTATE_270)
ORIENTATION_TRANSPOSE = {
    2: Image.Transpose.FLIP_LEFT_RIGHT,
    3: Image.Transpose.ROTATE_180,
    4: Image.Transpose.FLIP_TOP_BOTTOM,
    5: Image.Transpose.TRANSPOSE,
    6: Image.Transpose.ROTATE_270,
    7: Image.Transpose.TRANSVERSE,
    8: Image.Transpose.ROTATE_90,
}


@dataclass(frozen=True)
class UprightResult:
    """Upright asset plus what was done to produce it"""
    asset: RasterAsset
    orientation: Optional[int]
    degrees: int
    mirrored: bool
    rotated: bool


def ensure_upright(
    asset: RasterAsset,
    orientation: Optional[int] = None,
    mime_type: Optional[str] = None,
    strict: bool = True,
    diagnostics=None,
) -> UprightResult:
    """
    Return an upright, orientation-free version of an asset

    Args:
        asset: Encoded source asset
        orientation: Known EXIF orientation; detected from the bytes when None
        mime_type: Declared MIME type of the source (used for detection)
        strict: Raise on decode failure instead of returning the input.
            Paths that must stay pixel-aligned with the user's strokes keep
            this on; preview-only paths may turn it off.
        diagnostics: Diagnostics sink

    Returns:
        UprightResult

    Raises:
        DecodeError: If rotation is needed, decoding fails and `strict` is set
    """
    diagnostics = diagnostics or NullDiagnostics()

    if not orientation:
        orientation = read_orientation(asset.data, mime_type=mime_type or asset.mime_type)
    degrees = rotation_degrees(orientation)
    mirrored = is_mirrored(orientation)
    transpose = ORIENTATION_TRANSPOSE.get(orientation)

    diagnostics.log("upright:computed", {"orientation": orientation, "degrees": degrees, "mirrored": mirrored})
    if transpose is None:
        return UprightResult(asset, orientation, 0, False, False)

    try:
        with asset.open() as image:
            upright = image.transpose(transpose)
    except DecodeError as e:
        if strict:
            raise
        diagnostics.warn("upright:fallback_unrotated", {"orientation": orientation, "message": str(e)})
        return UprightResult(asset, orientation, 0, False, False)

    # Palette/CMYK sources can't all be stored as PNG; keep alpha when present
    if upright.mode not in ("RGB", "RGBA", "L", "LA"):
        has_alpha = "A" in upright.getbands() or "transparency" in upright.info
        upright = upright.convert("RGBA" if has_alpha else "RGB")

    result = RasterAsset.from_image(upright, format="PNG")
    diagnostics.log("upright:done", {
        "source": [asset.width, asset.height],
        "output": [result.width, result.height],
    })
    return UprightResult(result, orientation, degrees, mirrored, True)
