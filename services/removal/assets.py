"""
Raster assets and the byte sources they are read from

An asset source may be a file path, a `file://` URI, a
`data:<mime>;base64,` URI, raw bytes, or an open binary file handle.
"""
import base64
import binascii
import io
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote

from PIL import Image, UnidentifiedImageError

from .errors import DecodeError, EncodeError

AssetSource = Union[str, Path, bytes, bytearray, memoryview, io.IOBase]

_FORMAT_MIME = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
    "BMP": "image/bmp",
    "TIFF": "image/tiff",
}


@dataclass(frozen=True)
class RasterAsset:
    """Encoded image bytes with their decoded pixel size"""
    data: bytes
    width: int
    height: int
    format: str = "PNG"

    @property
    def mime_type(self) -> str:
        return _FORMAT_MIME.get(self.format.upper(), "application/octet-stream")

    @property
    def size(self) -> tuple:
        return (self.width, self.height)

    def open(self) -> Image.Image:
        """Decode the asset into a PIL Image"""
        try:
            image = Image.open(io.BytesIO(self.data))
            image.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise DecodeError(
                "Could not decode image.",
                cause=e,
                meta={"bytes": len(self.data), "format": self.format},
            ) from e
        return image

    def to_data_uri(self) -> str:
        """Encode as a base64 data URI"""
        return f"data:{self.mime_type};base64,{base64.b64encode(self.data).decode()}"

    @classmethod
    def from_bytes(cls, data: bytes) -> "RasterAsset":
        """
        Build an asset from encoded bytes, probing only the image header

        Args:
            data: Encoded image bytes

        Returns:
            RasterAsset with the stored (pre-orientation) pixel size

        Raises:
            DecodeError: If the bytes are not a recognizable image
        """
        if not data:
            raise DecodeError("Empty image data.")
        try:
            with Image.open(io.BytesIO(data)) as image:
                width, height = image.size
                fmt = image.format or "PNG"
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise DecodeError(
                "Could not read image header.", cause=e, meta={"bytes": len(data)}
            ) from e
        return cls(data=bytes(data), width=width, height=height, format=fmt)

    @classmethod
    def from_image(cls, image: Image.Image, format: str = "PNG") -> "RasterAsset":
        """Encode a PIL Image losslessly (no metadata) into an asset"""
        buffered = io.BytesIO()
        try:
            image.save(buffered, format=format)
        except (OSError, ValueError, KeyError) as e:
            raise EncodeError(
                "Could not encode image.",
                cause=e,
                meta={"mode": image.mode, "width": image.width, "height": image.height},
            ) from e
        return cls(data=buffered.getvalue(), width=image.width, height=image.height, format=format)


def _base64_prefix(encoded: str, max_bytes: Optional[int]) -> bytes:
    clean = "".join(ch for ch in encoded if ch.isalnum() or ch in "+/=")
    if max_bytes:
        # 4 base64 chars per 3 bytes, aligned so the prefix stays decodable
        max_chars = min(len(clean), -(-max_bytes // 3) * 4)
        clean = clean[: max_chars - (max_chars % 4)]
    else:
        clean = clean[: len(clean) - (len(clean) % 4)]
    data = base64.b64decode(clean)
    return data[:max_bytes] if max_bytes else data


def read_source_bytes(source: AssetSource, max_bytes: Optional[int] = None) -> bytes:
    """
    Read bytes from an asset source

    Args:
        source: Path, file:// URI, data URI, bytes or binary file handle
        max_bytes: Read at most this many leading bytes (None = everything)

    Returns:
        The (possibly truncated) bytes

    Raises:
        DecodeError: If the source cannot be read
    """
    try:
        if isinstance(source, (bytes, bytearray, memoryview)):
            data = bytes(source)
            return data[:max_bytes] if max_bytes else data

        if isinstance(source, str) and source.startswith("data:"):
            idx = source.find("base64,")
            if idx == -1:
                raise DecodeError("Data URI is not base64 encoded.")
            return _base64_prefix(source[idx + len("base64,"):], max_bytes)

        if isinstance(source, (str, Path)):
            path = str(source)
            if path.lower().startswith("file://"):
                path = unquote(path[len("file://"):])
            with open(path, "rb") as f:
                return f.read(max_bytes) if max_bytes else f.read()

        if hasattr(source, "read"):
            start = source.tell() if source.seekable() else None
            data = source.read(max_bytes) if max_bytes else source.read()
            if start is not None:
                source.seek(start)
            return bytes(data)
    except (OSError, binascii.Error, ValueError) as e:
        raise DecodeError(
            "Could not read image.", cause=e, meta={"source": describe_source(source)}
        ) from e

    raise DecodeError(f"Unsupported image source: {type(source)}")


def load_asset(source: AssetSource) -> RasterAsset:
    """Read a whole asset source into a RasterAsset"""
    return RasterAsset.from_bytes(read_source_bytes(source))


def describe_source(source: AssetSource, max_len: int = 140) -> str:
    """Short human-readable description of a source for diagnostics"""
    if isinstance(source, RasterAsset):
        return f"<{source.format} {source.width}x{source.height}>"
    if isinstance(source, (bytes, bytearray, memoryview)):
        return f"<{len(source)} bytes>"
    if isinstance(source, str) and source.startswith("data:"):
        return f"{source[:32]}..."
    text = str(source)
    return text if len(text) <= max_len else f"{text[:max_len]}..."
