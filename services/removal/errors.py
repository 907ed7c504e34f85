"""
Error types for the object removal pipeline

Every failure raised by the pipeline is an AppError carrying a short
machine-readable code, an optional cause and free-form diagnostic metadata.
Only GENERIC_ERROR_TITLE / GENERIC_ERROR_MESSAGE are ever shown to users.
"""
from typing import Any, Dict, Optional

GENERIC_ERROR_TITLE = "Something went wrong"
GENERIC_ERROR_MESSAGE = "Please try again."
EMPTY_ANNOTATION_MESSAGE = "Paint over the object you want to remove."


class AppError(Exception):
    """Base class for pipeline errors"""

    code = "app_error"

    def __init__(
        self,
        message: Optional[str] = None,
        code: Optional[str] = None,
        cause: Optional[BaseException] = None,
        meta: Optional[Dict[str, Any]] = None,
    ):
        self.code = code or self.code
        self.cause = cause
        self.meta = meta or {}
        super().__init__(message or self.code)


class DecodeError(AppError):
    """Image bytes could not be read or decoded"""
    code = "decode_failed"


class EncodeError(AppError):
    """Raster could not be encoded"""
    code = "encode_failed"


class InvalidGeometry(AppError):
    """Non-positive or missing size inputs"""
    code = "invalid_geometry"


class ProviderConstraintError(AppError):
    """Source size or constraints cannot produce a provider-safe size"""
    code = "invalid_source_size"


class EmptyAnnotation(AppError):
    """Not enough strokes to build a meaningful mask"""
    code = "empty_annotation"


class ExportCancelled(AppError):
    """The export was cancelled by its owner"""
    code = "cancelled"


class RequestFailed(AppError):
    """The removal request could not be completed"""
    code = "request_failed"


class RequestTimeout(RequestFailed):
    """The removal request hit the local timeout"""
    code = "request_timeout"


class RemovalHttpError(RequestFailed):
    """The removal provider answered with a non-success status"""
    code = "http_error"

    @property
    def status(self) -> Optional[int]:
        return self.meta.get("status")


class InvalidResponse(RequestFailed):
    """The removal provider answered without a result URL"""
    code = "invalid_response"


def to_error_log_meta(error: Optional[BaseException]) -> Dict[str, Any]:
    """
    Flatten an exception into a dict suitable for diagnostics

    Args:
        error: Any exception (or None)

    Returns:
        Dict with name, code, message, cause and meta fields
    """
    if error is None:
        return {"name": "UnknownError", "message": ""}

    cause = getattr(error, "cause", None) or error.__cause__
    out = {
        "name": type(error).__name__,
        "code": getattr(error, "code", None),
        "message": str(error),
    }
    if cause is not None:
        out["cause_name"] = type(cause).__name__
        out["cause_message"] = str(cause)
    meta = getattr(error, "meta", None)
    if meta:
        out["meta"] = meta
    return out
