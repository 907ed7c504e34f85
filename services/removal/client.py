"""
Removal provider client

`RemovalClient` is the interface the orchestrator submits through.
`HttpRemovalClient` posts JSON to a removal endpoint with requests, retrying
only when the local timeout fires and never after cancellation.
"""
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import requests

import config

from .cancellation import CancellationToken
from .diagnostics import NullDiagnostics
from .errors import (
    ExportCancelled,
    InvalidGeometry,
    InvalidResponse,
    RemovalHttpError,
    RequestFailed,
    RequestTimeout,
)
from .safe_size import TargetSize

MAX_RESPONSE_TEXT = 800

# Providers have returned the result URL under several names; they are tried
# in this order
RESULT_URL_FIELDS: Tuple[Tuple[str, ...], ...] = (
    ("imageURL",),
    ("imageUrl",),
    ("url",),
    ("data", "imageURL"),
    ("data", "imageUrl"),
    ("data", "url"),
)


def truncate(value: Any, max_len: int = MAX_RESPONSE_TEXT) -> str:
    text = value if isinstance(value, str) else ""
    if len(text) <= max_len:
        return text
    return f"{text[:max_len]}...(+{len(text) - max_len})"


@dataclass
class RemovalPayload:
    """Request body for one removal attempt"""
    seed_image: str  # data URI
    mask_image: str  # data URI
    width: int
    height: int
    marked_image: Optional[str] = None  # data URI
    meta: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        body = {
            "seedImage": self.seed_image,
            "maskImage": self.mask_image,
            "width": self.width,
            "height": self.height,
            "meta": self.meta,
        }
        if self.marked_image:
            body["maskedImage"] = self.marked_image
        return body

    def describe(self, clip: int = 64) -> Dict[str, Any]:
        """Payload summary for diagnostics (image data clipped)"""
        return {
            "seed_image": f"{self.seed_image[:clip]} (len {len(self.seed_image)})",
            "mask_image": f"{self.mask_image[:clip]} (len {len(self.mask_image)})",
            "marked_image": len(self.marked_image) if self.marked_image else None,
            "width": self.width,
            "height": self.height,
        }


@dataclass
class RemovalResponse:
    """Parsed provider response"""
    image_url: Optional[str] = None
    source_field: Optional[str] = None
    raw: Any = field(default=None, repr=False)

    @classmethod
    def from_json(cls, data: Any) -> "RemovalResponse":
        """Pick the result URL from the first field in RESULT_URL_FIELDS that carries one"""
        for path in RESULT_URL_FIELDS:
            value = data
            for key in path:
                value = value.get(key) if isinstance(value, dict) else None
            if isinstance(value, str) and value:
                return cls(image_url=value, source_field=".".join(path), raw=data)
        return cls(raw=data)


class RemovalClient(ABC):
    """Interface of the network client that performs object removal"""

    @abstractmethod
    def submit(
        self,
        payload: RemovalPayload,
        target: TargetSize,
        token: Optional[CancellationToken] = None,
    ) -> str:
        """
        Submit a removal request

        Args:
            payload: Seed, mask and marked images
            target: Output size the images were rendered at
            token: Cancellation token for the export

        Returns:
            URL of the result image

        Raises:
            ExportCancelled: If the token was cancelled
            RequestFailed: On any request failure (subclasses distinguish
                timeouts, HTTP errors and unusable responses)
        """
        pass


class HttpRemovalClient(RemovalClient):
    """Removal client posting JSON over HTTP"""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = config.REQUEST_TIMEOUT,
        timeout_retries: int = config.TIMEOUT_RETRIES,
        timeout_backoff: float = config.TIMEOUT_BACKOFF,
        session: Optional[requests.Session] = None,
        diagnostics=None,
    ):
        """
        Initialize client

        Args:
            endpoint: Removal endpoint URL (default: config.REMOVAL_ENDPOINT)
            api_key: API key sent as bearer token (default: config.REMOVAL_API_KEY)
            timeout: Per-attempt timeout in seconds
            timeout_retries: Extra attempts allowed after a timeout
            timeout_backoff: Base wait before a retry; doubles each retry
            session: requests Session to use
            diagnostics: Diagnostics sink
        """
        self.endpoint = endpoint if endpoint is not None else config.REMOVAL_ENDPOINT
        self.api_key = api_key if api_key is not None else config.REMOVAL_API_KEY
        self.timeout = timeout
        self.timeout_retries = max(0, int(timeout_retries))
        self.timeout_backoff = max(0.0, float(timeout_backoff))
        self.session = session or requests.Session()
        self.diagnostics = diagnostics or NullDiagnostics()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _send(self, body: Dict[str, Any]) -> Any:
        meta = {"url": self.endpoint, "method": "POST"}
        try:
            response = self.session.post(
                self.endpoint, json=body, headers=self._headers(), timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            raise RequestTimeout(
                "Removal request timed out.", cause=e, meta={**meta, "timeout": self.timeout}
            ) from e
        except requests.exceptions.RequestException as e:
            raise RequestFailed("Removal request failed.", cause=e, meta=meta) from e

        text = response.text or ""
        if not response.ok:
            raise RemovalHttpError(
                f"Removal request failed with status {response.status_code}",
                meta={**meta, "status": response.status_code, "response_text": truncate(text)},
            )

        try:
            return response.json() if text else None
        except ValueError:
            return None

    def _post(self, body: Dict[str, Any], token: CancellationToken) -> Any:
        """
        Send one attempt on a request thread, abandoning it on cancellation

        Cancelling the token closes the session, which drops its pooled
        connections, and raises ExportCancelled without waiting for the
        response.
        """
        done = threading.Event()
        outcome: Dict[str, Any] = {}

        def send():
            try:
                outcome["data"] = self._send(body)
            except Exception as e:
                outcome["error"] = e
            finally:
                done.set()

        token.add_callback(done.set)
        try:
            if not token.cancelled:
                threading.Thread(target=send, name="removal-request", daemon=True).start()
                done.wait()
        finally:
            token.remove_callback(done.set)

        if "data" not in outcome and "error" not in outcome:
            self.diagnostics.warn("request:aborted", {"reason": token.reason})
            self.session.close()
            raise ExportCancelled(meta={"stage": "request", "reason": token.reason})
        if "error" in outcome:
            raise outcome["error"]
        return outcome["data"]

    def request_json(self, body: Dict[str, Any], token: CancellationToken) -> Any:
        """
        POST body, retrying on local timeouts only

        Raises:
            ExportCancelled: If the token is cancelled before, during or between attempts
            RequestTimeout: If every attempt timed out
            RemovalHttpError / RequestFailed: On other failures (not retried)
        """
        attempts = self.timeout_retries + 1
        for attempt in range(attempts):
            token.raise_if_cancelled("request")
            try:
                return self._post(body, token)
            except RequestTimeout as e:
                if token.cancelled:
                    raise ExportCancelled(cause=e, meta={"stage": "request", "reason": token.reason}) from e
                if attempt + 1 >= attempts:
                    raise
                backoff = self.timeout_backoff * (2 ** attempt)
                self.diagnostics.warn("request:timeout_retry", {"attempt": attempt + 1, "backoff": backoff})
                if token.wait(backoff):
                    token.raise_if_cancelled("backoff")
        raise RequestFailed("Removal request was not attempted.")

    def submit(
        self,
        payload: RemovalPayload,
        target: TargetSize,
        token: Optional[CancellationToken] = None,
    ) -> str:
        token = token or CancellationToken()
        if not self.endpoint:
            raise RequestFailed("Removal endpoint is not configured.", code="not_configured")
        if target is None or target.width <= 0 or target.height <= 0:
            raise InvalidGeometry("Invalid image size.", code="invalid_image_size")

        self.diagnostics.log("request:start", payload.describe())
        data = self.request_json(payload.to_dict(), token)
        token.raise_if_cancelled("response")

        response = RemovalResponse.from_json(data)
        if not response.image_url:
            raise InvalidResponse(
                "Removal response has no result URL.", meta={"has_json": data is not None}
            )
        self.diagnostics.log("request:done", {"field": response.source_field})
        return response.image_url
