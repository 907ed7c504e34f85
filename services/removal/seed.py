"""
Seed resizer

Scales the upright source image to the provider-safe target size. The
target aspect ratio differs slightly from the source after snapping, so
each axis is scaled independently and nothing is cropped.
"""
from typing import Optional, Tuple

from PIL import Image

from .assets import RasterAsset
from .diagnostics import NullDiagnostics
from .errors import InvalidGeometry
from .safe_size import ProviderConstraints, TargetSize, resolve_safe_size


def resize_image(image: Image.Image, width: int, height: int) -> Image.Image:
    """
    Resize image to an exact size

    Args:
        image: PIL Image
        width: Output width in pixels
        height: Output height in pixels

    Returns:
        Resized RGB PIL Image
    """
    if image.mode != "RGB":
        image = image.convert("RGB")
    if image.size == (width, height):
        return image
    return image.resize((width, height), Image.Resampling.LANCZOS)


def resize_seed(
    asset: Optional[RasterAsset],
    target: Optional[TargetSize],
    diagnostics=None,
) -> RasterAsset:
    """
    Resize a seed asset to the target size and encode it as PNG

    Args:
        asset: Upright source asset
        target: Provider-safe output size

    Returns:
        RasterAsset of exactly target.width x target.height

    Raises:
        InvalidGeometry: If the asset is missing or any size is non-positive
        DecodeError: If the asset can't be decoded
        EncodeError: If the output can't be encoded
    """
    diagnostics = diagnostics or NullDiagnostics()

    if asset is None:
        raise InvalidGeometry("Missing seed image.")
    if not asset.width or not asset.height or asset.width < 0 or asset.height < 0:
        raise InvalidGeometry("Invalid resize parameters.", meta={"source": [asset.width, asset.height]})
    if target is None or target.width <= 0 or target.height <= 0:
        raise InvalidGeometry(
            "Invalid resize parameters.",
            meta={"target": target.to_dict() if target else None},
        )

    with asset.open() as image:
        resized = resize_image(image, target.width, target.height)

    result = RasterAsset.from_image(resized, format="PNG")
    diagnostics.log("seed:resized", {
        "source": [asset.width, asset.height],
        "target": [target.width, target.height],
    })
    return result


def resize_seed_for_provider(
    asset: RasterAsset,
    constraints: ProviderConstraints,
    diagnostics=None,
) -> Tuple[RasterAsset, TargetSize]:
    """Resolve the provider-safe size for an asset and resize it"""
    target = resolve_safe_size(asset.width, asset.height, constraints)
    return resize_seed(asset, target, diagnostics=diagnostics), target
