"""
Submission orchestrator

Sequences one export attempt: detect orientation -> upright -> safe size ->
resize seed -> render mask and marked image -> submit. Blocking stages run
in worker threads so stroke capture stays responsive, and the cancellation
token is checked before every expensive stage.
"""
import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Union

import config

from .assets import AssetSource, RasterAsset, describe_source, load_asset
from .cache import ExportCache
from .cancellation import CancellationToken
from .capture import StrokeCapture
from .client import RemovalClient, RemovalPayload
from .compositor import mask_coverage, render_outputs
from .diagnostics import NullDiagnostics, default_diagnostics
from .errors import (
    EMPTY_ANNOTATION_MESSAGE,
    GENERIC_ERROR_MESSAGE,
    AppError,
    EmptyAnnotation,
    ExportCancelled,
    to_error_log_meta,
)
from .exif import read_orientation_from_source
from .safe_size import ProviderConstraints, TargetSize, resolve_safe_size
from .seed import resize_seed
from .strokes import Stroke, StrokeLog, has_enough_ink, ink_score, min_ink_score
from .types import ExportStatus
from .upright import UprightResult, ensure_upright


@dataclass
class ExportOutcome:
    """Result of one export attempt"""
    status: ExportStatus
    result_url: Optional[str] = None
    message: Optional[str] = None
    target: Optional[TargetSize] = None
    mask_path: Optional[Path] = None
    marked_path: Optional[Path] = None

    @property
    def ok(self) -> bool:
        return self.status == ExportStatus.COMPLETED


class RemovalPipeline:
    """
    Export pipeline for the object remover

    Stateless between runs; each call to `run` renders fresh outputs. With
    `persist_outputs`, a completed export leaves its mask and marked PNGs on
    disk and reports their paths; any other outcome removes them.
    """

    def __init__(
        self,
        client: RemovalClient,
        constraints: Optional[ProviderConstraints] = None,
        diagnostics=None,
        exif_scan_bytes: int = config.EXIF_SCAN_BYTES,
        persist_outputs: bool = False,
        cache_dir: Optional[str] = None,
    ):
        """
        Initialize pipeline

        Args:
            client: Removal client to submit through
            constraints: Provider size limits (default: configured provider)
            diagnostics: Diagnostics sink (default: from configuration)
            exif_scan_bytes: EXIF scan window
            persist_outputs: Write mask/marked PNGs to an export cache and
                keep them when the export completes
            cache_dir: Directory for persisted outputs (default: a new temp
                dir per attempt)
        """
        self.client = client
        self.constraints = constraints or ProviderConstraints.for_provider()
        self.diagnostics = diagnostics or default_diagnostics("pipeline")
        self.exif_scan_bytes = exif_scan_bytes
        self.persist_outputs = persist_outputs
        self.cache_dir = cache_dir

    async def load_upright(
        self,
        source: Union[AssetSource, RasterAsset],
        mime_type: Optional[str] = None,
        orientation: Optional[int] = None,
        token: Optional[CancellationToken] = None,
    ) -> UprightResult:
        """
        Read a source and bake its orientation into the pixels

        EXIF problems are not errors: an unreadable orientation means no
        rotation.
        """
        token = token or CancellationToken()

        if isinstance(source, RasterAsset):
            asset = source
            if orientation is None:
                orientation = await asyncio.to_thread(
                    read_orientation_from_source, source.data, mime_type,
                    self.exif_scan_bytes, self.diagnostics,
                )
        else:
            token.raise_if_cancelled("orientation")
            if orientation is None:
                orientation = await asyncio.to_thread(
                    read_orientation_from_source, source, mime_type,
                    self.exif_scan_bytes, self.diagnostics,
                )
            token.raise_if_cancelled("read")
            asset = await asyncio.to_thread(load_asset, source)

        token.raise_if_cancelled("upright")
        return await asyncio.to_thread(
            ensure_upright, asset, orientation or 1, mime_type, True, self.diagnostics
        )

    async def run(
        self,
        source: Union[AssetSource, RasterAsset],
        strokes: Iterable[Stroke],
        token: Optional[CancellationToken] = None,
        mime_type: Optional[str] = None,
        orientation: Optional[int] = None,
        meta: Optional[dict] = None,
    ) -> ExportOutcome:
        """
        Run one export attempt

        Args:
            source: Image source the strokes were drawn on
            strokes: Sealed strokes in upright image pixels
            token: Cancellation token (checked at every stage boundary)
            mime_type: Declared MIME type of the source
            orientation: Known EXIF orientation (detected when None)
            meta: Extra metadata forwarded to the provider

        Returns:
            ExportOutcome; failures are reported, never raised
        """
        token = token or CancellationToken()
        strokes = list(strokes)
        cache = None
        target = None
        outputs = {}
        completed = False

        self.diagnostics.time("export", {"source": describe_source(source), "strokes": len(strokes)})
        try:
            if not any(s.points for s in strokes):
                raise EmptyAnnotation("No strokes to export.")

            upright = await self.load_upright(source, mime_type, orientation, token)
            image = upright.asset

            if not has_enough_ink(strokes, image.width, image.height):
                raise EmptyAnnotation(
                    "Not enough ink to export.",
                    meta={
                        "score": ink_score(strokes),
                        "required": min_ink_score(image.width, image.height),
                    },
                )

            target = resolve_safe_size(image.width, image.height, self.constraints)
            self.diagnostics.log("export:target", target.to_dict())

            token.raise_if_cancelled("resize")
            seed = await asyncio.to_thread(resize_seed, image, target, self.diagnostics)

            token.raise_if_cancelled("render")
            mask, marked = await asyncio.to_thread(render_outputs, strokes, target, seed)
            coverage = await asyncio.to_thread(mask_coverage, mask)
            self.diagnostics.log("export:rendered", {"mask_coverage": round(coverage, 4)})

            if self.persist_outputs:
                cache = ExportCache(self.cache_dir, diagnostics=self.diagnostics)
                outputs["mask_path"] = await asyncio.to_thread(cache.add, mask, "mask")
                outputs["marked_path"] = await asyncio.to_thread(cache.add, marked, "marked")

            token.raise_if_cancelled("submit")
            payload = RemovalPayload(
                seed_image=seed.to_data_uri(),
                mask_image=mask.to_data_uri(),
                marked_image=marked.to_data_uri(),
                width=target.width,
                height=target.height,
                meta=meta,
            )
            result_url = await asyncio.to_thread(self.client.submit, payload, target, token)
            token.raise_if_cancelled("result")

            completed = True
            return ExportOutcome(ExportStatus.COMPLETED, result_url=result_url, target=target, **outputs)

        except ExportCancelled as e:
            self.diagnostics.log("export:cancelled", e.meta)
            return ExportOutcome(ExportStatus.CANCELLED, target=target)
        except EmptyAnnotation as e:
            self.diagnostics.log("export:empty", e.meta)
            return ExportOutcome(ExportStatus.EMPTY, message=EMPTY_ANNOTATION_MESSAGE, target=target)
        except AppError as e:
            self.diagnostics.error("export:failed", {
                **to_error_log_meta(e),
                "constraints": self.constraints.to_dict(),
                "target": target.to_dict() if target else None,
            })
            return ExportOutcome(ExportStatus.FAILED, message=GENERIC_ERROR_MESSAGE, target=target)
        except Exception as e:
            self.diagnostics.error("export:failed", {
                **to_error_log_meta(e),
                "unexpected": True,
                "target": target.to_dict() if target else None,
            })
            return ExportOutcome(ExportStatus.FAILED, message=GENERIC_ERROR_MESSAGE, target=target)
        finally:
            if cache is not None and not completed:
                cache.clear()
            self.diagnostics.time_end("export")


class ExportSession:
    """
    One annotation session over one image

    Owns the stroke capture and a single export slot: starting an export
    cancels whatever export is still in flight.
    """

    def __init__(
        self,
        pipeline: RemovalPipeline,
        upright: RasterAsset,
        mime_type: Optional[str] = None,
        log: Optional[StrokeLog] = None,
    ):
        """
        Initialize session

        Args:
            pipeline: Export pipeline
            upright: Upright asset shown to the user
            mime_type: MIME type of the original source
            log: Existing stroke log to continue (default: new log)
        """
        self.pipeline = pipeline
        self.upright = upright
        self.mime_type = mime_type
        self.capture = StrokeCapture(upright.width, upright.height, log=log)
        self.diagnostics = pipeline.diagnostics or NullDiagnostics()
        self._task: Optional[asyncio.Task] = None
        self._token: Optional[CancellationToken] = None

    @classmethod
    async def open(
        cls,
        pipeline: RemovalPipeline,
        source: AssetSource,
        mime_type: Optional[str] = None,
        orientation: Optional[int] = None,
    ) -> "ExportSession":
        """Load a source upright and start a session on it"""
        upright = await pipeline.load_upright(source, mime_type, orientation)
        return cls(pipeline, upright.asset, mime_type=mime_type)

    @property
    def log(self) -> StrokeLog:
        return self.capture.log

    @property
    def is_exporting(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def can_submit(self) -> bool:
        return has_enough_ink(self.log.strokes, self.upright.width, self.upright.height)

    def start_export(self, meta: Optional[dict] = None) -> asyncio.Task:
        """
        Start an export of the current strokes, replacing any stale one

        Must be called from a running event loop.
        """
        if self.is_exporting:
            self.diagnostics.log("session:export_superseded")
        self.cancel("superseded")

        token = CancellationToken()
        # The upright asset is already oriented; orientation 1 skips detection
        coro = self.pipeline.run(self.upright, self.log.strokes, token, self.mime_type, 1, meta)
        task = asyncio.ensure_future(coro)
        task.add_done_callback(lambda t: self._release(t, token))

        self._token = token
        self._task = task
        self.capture.disabled = True
        return task

    async def export(self, meta: Optional[dict] = None) -> ExportOutcome:
        """Start an export and wait for its outcome"""
        task = self.start_export(meta)
        try:
            return await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            return ExportOutcome(ExportStatus.CANCELLED)

    def cancel(self, reason: str = "cancelled") -> None:
        """Cancel the in-flight export, if any"""
        if self._token is not None:
            self._token.cancel(reason)
        if self._task is not None and not self._task.done():
            self._task.cancel()

    def _release(self, task: asyncio.Task, token: CancellationToken) -> None:
        if self._token is token:
            self._task = None
            self._token = None
            self.capture.disabled = False
