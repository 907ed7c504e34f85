"""
Object Removal Service

Turns brush strokes drawn over a photo into the two rasters an inpainting
provider needs (a binary mask and a marked composite) at a provider-safe
size, and submits them.

Usage:
    from services.removal import (
        ExportSession, HttpRemovalClient, RemovalPipeline, StrokeMode,
    )

    pipeline = RemovalPipeline(HttpRemovalClient(endpoint="https://..."))
    session = await ExportSession.open(pipeline, "photo.jpg", mime_type="image/jpeg")

    # Feed pointer events (container-relative screen coordinates)
    session.capture.update_layout(390, 520)
    session.capture.pointer_down(120, 200, brush_size=22, mode=StrokeMode.DRAW)
    session.capture.pointer_move(160, 210)
    session.capture.pointer_up()

    if session.can_submit:
        outcome = await session.export()
        print(outcome.status, outcome.result_url)

    # Building blocks can also be used on their own
    from services.removal import resolve_safe_size, ProviderConstraints, render_mask
    target = resolve_safe_size(3000, 4000, ProviderConstraints.for_provider("runware"))
    mask = render_mask(session.log, target)
"""
from .assets import RasterAsset, load_asset, read_source_bytes
from .cache import ExportCache
from .cancellation import CancellationToken
from .capture import StrokeCapture
from .client import HttpRemovalClient, RemovalClient, RemovalPayload, RemovalResponse
from .compositor import render_marked, render_mask, render_outputs
from .coords import ImageRect, compute_contain_rect, screen_point_to_image_point
from .diagnostics import LoggingDiagnostics, NullDiagnostics, setup_logging
from .errors import (
    AppError,
    DecodeError,
    EmptyAnnotation,
    EncodeError,
    ExportCancelled,
    InvalidGeometry,
    InvalidResponse,
    ProviderConstraintError,
    RemovalHttpError,
    RequestFailed,
    RequestTimeout,
)
from .exif import read_orientation, read_orientation_from_source, rotation_degrees
from .orchestrator import ExportOutcome, ExportSession, RemovalPipeline
from .safe_size import ProviderConstraints, TargetSize, resolve_safe_size
from .seed import resize_seed, resize_seed_for_provider
from .strokes import Point, Stroke, StrokeBuilder, StrokeLog, has_enough_ink, ink_score
from .types import ExportStatus, StrokeMode
from .upright import UprightResult, ensure_upright

__all__ = [
    "RasterAsset",
    "load_asset",
    "read_source_bytes",
    "ExportCache",
    "CancellationToken",
    "StrokeCapture",
    "HttpRemovalClient",
    "RemovalClient",
    "RemovalPayload",
    "RemovalResponse",
    "render_marked",
    "render_mask",
    "render_outputs",
    "ImageRect",
    "compute_contain_rect",
    "screen_point_to_image_point",
    "LoggingDiagnostics",
    "NullDiagnostics",
    "setup_logging",
    "AppError",
    "DecodeError",
    "EmptyAnnotation",
    "EncodeError",
    "ExportCancelled",
    "InvalidGeometry",
    "InvalidResponse",
    "ProviderConstraintError",
    "RemovalHttpError",
    "RequestFailed",
    "RequestTimeout",
    "read_orientation",
    "read_orientation_from_source",
    "rotation_degrees",
    "ExportOutcome",
    "ExportSession",
    "RemovalPipeline",
    "ProviderConstraints",
    "TargetSize",
    "resolve_safe_size",
    "resize_seed",
    "resize_seed_for_provider",
    "Point",
    "Stroke",
    "StrokeBuilder",
    "StrokeLog",
    "has_enough_ink",
    "ink_score",
    "ExportStatus",
    "StrokeMode",
    "UprightResult",
    "ensure_upright",
]
