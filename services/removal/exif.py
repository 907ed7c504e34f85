"""
EXIF orientation reader

Finds the JPEG Orientation tag (0x0112) by walking marker segments in a
bounded byte window. Metadata problems never raise: anything malformed,
truncated or unexpected yields None ("orientation unknown").
"""
import struct
from typing import Optional

import config

from .assets import AssetSource, describe_source, read_source_bytes
from .diagnostics import NullDiagnostics
from .errors import DecodeError

SOI = b"\xff\xd8"
MARKER_SOS = 0xDA
MARKER_EOI = 0xD9
MARKER_APP1 = 0xE1
EXIF_SIGNATURE = b"Exif\x00\x00"
TAG_ORIENTATION = 0x0112
TYPE_SHORT = 3
IFD_ENTRY_SIZE = 12

JPEG_MIME_TYPES = ("image/jpeg", "image/jpg")

# Clockwise rotation component of each orientation
_ROTATION = {1: 0, 2: 0, 3: 180, 4: 180, 5: 90, 6: 90, 7: 270, 8: 270}
_MIRRORED = (2, 4, 5, 7)


def rotation_degrees(orientation: Optional[int]) -> int:
    """Clockwise rotation (0, 90, 180, 270) needed to display upright"""
    return _ROTATION.get(orientation, 0)


def is_mirrored(orientation: Optional[int]) -> bool:
    """Whether the orientation also includes a horizontal mirror"""
    return orientation in _MIRRORED


def _parse_tiff(data: bytes, tiff: int) -> Optional[int]:
    if tiff + 8 > len(data):
        return None

    byte_order = data[tiff:tiff + 2]
    if byte_order == b"II":
        prefix = "<"
    elif byte_order == b"MM":
        prefix = ">"
    else:
        return None

    (magic,) = struct.unpack_from(prefix + "H", data, tiff + 2)
    if magic != 0x002A:
        return None

    (ifd_offset,) = struct.unpack_from(prefix + "I", data, tiff + 4)
    ifd = tiff + ifd_offset
    if ifd + 2 > len(data):
        return None

    (count,) = struct.unpack_from(prefix + "H", data, ifd)
    for n in range(count):
        entry = ifd + 2 + n * IFD_ENTRY_SIZE
        if entry + IFD_ENTRY_SIZE > len(data):
            break

        tag, value_type, value_count = struct.unpack_from(prefix + "HHI", data, entry)
        if tag != TAG_ORIENTATION:
            continue
        if value_type != TYPE_SHORT or value_count != 1:
            return None

        (value,) = struct.unpack_from(prefix + "H", data, entry + 8)
        return value if 1 <= value <= 8 else None

    return None


def orientation_from_jpeg_bytes(data: bytes) -> Optional[int]:
    """
    Extract the EXIF orientation from JPEG bytes

    Args:
        data: Leading bytes of a JPEG file (need not be the whole file)

    Returns:
        Orientation 1-8, or None if absent, unsupported or malformed
    """
    if not data or len(data) < 4 or data[:2] != SOI:
        return None

    offset = 2
    while offset + 4 < len(data):
        if data[offset] != 0xFF:
            offset += 1
            continue

        marker = data[offset + 1]
        if marker in (MARKER_SOS, MARKER_EOI):
            break

        (length,) = struct.unpack_from(">H", data, offset + 2)
        if length < 2:
            return None

        segment_start = offset + 4
        segment_end = offset + 2 + length
        if segment_end > len(data):
            return None

        if marker == MARKER_APP1 and data[segment_start:segment_start + 6] == EXIF_SIGNATURE:
            return _parse_tiff(data[:segment_end], segment_start + 6)

        offset = segment_end

    return None


def read_orientation(
    data: bytes,
    mime_type: Optional[str] = None,
    max_bytes: int = config.EXIF_SCAN_BYTES,
) -> Optional[int]:
    """
    Read the EXIF orientation from an in-memory byte prefix

    Args:
        data: Image bytes (only the first `max_bytes` are inspected)
        mime_type: Optional declared MIME type; non-JPEG types are skipped
        max_bytes: Scan window size

    Returns:
        Orientation 1-8, or None
    """
    if mime_type and mime_type.lower() not in JPEG_MIME_TYPES:
        return None
    try:
        return orientation_from_jpeg_bytes(bytes(data[:max_bytes]))
    except (struct.error, TypeError, ValueError):
        return None


def read_orientation_from_source(
    source: AssetSource,
    mime_type: Optional[str] = None,
    max_bytes: int = config.EXIF_SCAN_BYTES,
    diagnostics=None,
) -> Optional[int]:
    """
    Read the EXIF orientation from any asset source without loading it whole

    Args:
        source: Path, file:// URI, data URI, bytes or binary file handle
        mime_type: Optional declared MIME type
        max_bytes: Scan window size
        diagnostics: Diagnostics sink

    Returns:
        Orientation 1-8, or None
    """
    diagnostics = diagnostics or NullDiagnostics()
    if mime_type and mime_type.lower() not in JPEG_MIME_TYPES:
        return None

    try:
        prefix = read_source_bytes(source, max_bytes=max_bytes)
    except DecodeError as e:
        diagnostics.warn("exif:read_error", {"source": describe_source(source), "message": str(e)})
        return None

    orientation = read_orientation(prefix, max_bytes=max_bytes)
    if orientation is None:
        diagnostics.log("exif:unknown", {
            "source": describe_source(source),
            "bytes": len(prefix),
            "signature": prefix[:8].hex(" "),
            "is_jpeg_soi": prefix[:2] == SOI,
        })
    else:
        diagnostics.log("exif:found", {"source": describe_source(source), "orientation": orientation})
    return orientation
