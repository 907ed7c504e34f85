"""
Diagnostics sinks for pipeline tracing

Components take a `diagnostics` argument instead of reaching for a global
logger. The default sink drops everything; `LoggingDiagnostics` forwards
events to a standard library logger configured with `setup_logging`.
"""
import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

import config

LOGGER_NAME = "object_removal"
MAX_META_STRING = 600
MAX_META_ITEMS = 20


def _truncate(value: Any, max_len: int = MAX_META_STRING) -> Any:
    if not isinstance(value, str) or len(value) <= max_len:
        return value
    return f"{value[:max_len]}...(+{len(value) - max_len})"


def _safe_json(value: Any) -> str:
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return "[unserializable]"


def sanitize_meta(meta: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Bound the size of event metadata

    Long strings are truncated and lists are capped, so a base64 payload
    accidentally passed as metadata cannot flood the log.

    Args:
        meta: Event metadata

    Returns:
        Sanitized copy, or None if no metadata was given
    """
    if not meta:
        return None

    out = {}
    for key, value in meta.items():
        if value is None or isinstance(value, (bool, int, float)):
            out[key] = value
        elif isinstance(value, str):
            out[key] = _truncate(value)
        elif isinstance(value, (list, tuple)):
            out[key] = [_truncate(v) for v in list(value)[:MAX_META_ITEMS]]
        elif isinstance(value, dict):
            out[key] = _truncate(_safe_json(value))
        else:
            out[key] = _truncate(str(value))
    return out


class NullDiagnostics:
    """Diagnostics sink that discards every event"""

    def log(self, event: str, meta: Optional[Dict[str, Any]] = None) -> None:
        pass

    def warn(self, event: str, meta: Optional[Dict[str, Any]] = None) -> None:
        pass

    def error(self, event: str, meta: Optional[Dict[str, Any]] = None) -> None:
        pass

    def time(self, label: str, meta: Optional[Dict[str, Any]] = None) -> None:
        pass

    def time_end(self, label: str, meta: Optional[Dict[str, Any]] = None) -> None:
        pass


class LoggingDiagnostics(NullDiagnostics):
    """
    Diagnostics sink backed by a `logging.Logger`

    Events are written as `[scope] event {json meta}`.
    """

    def __init__(self, logger: Optional[logging.Logger] = None, scope: str = "removal"):
        """
        Initialize sink

        Args:
            logger: Target logger (default: the LOGGER_NAME logger)
            scope: Prefix identifying the emitting component
        """
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.scope = scope
        self._timers: Dict[str, tuple] = {}

    def child(self, scope: str) -> "LoggingDiagnostics":
        """Create a sink with a different scope sharing the same logger"""
        return LoggingDiagnostics(self.logger, scope)

    def _emit(self, level: int, event: str, meta: Optional[Dict[str, Any]]) -> None:
        payload = sanitize_meta(meta)
        if payload:
            self.logger.log(level, f"[{self.scope}] {event} {_safe_json(payload)}")
        else:
            self.logger.log(level, f"[{self.scope}] {event}")

    def log(self, event: str, meta: Optional[Dict[str, Any]] = None) -> None:
        self._emit(logging.INFO, event, meta)

    def warn(self, event: str, meta: Optional[Dict[str, Any]] = None) -> None:
        self._emit(logging.WARNING, event, meta)

    def error(self, event: str, meta: Optional[Dict[str, Any]] = None) -> None:
        self._emit(logging.ERROR, event, meta)

    def time(self, label: str, meta: Optional[Dict[str, Any]] = None) -> None:
        self._timers[label] = (time.perf_counter(), meta or {})
        self.log(f"{label}:start", meta)

    def time_end(self, label: str, meta: Optional[Dict[str, Any]] = None) -> None:
        entry = self._timers.pop(label, None)
        if entry is None:
            self.warn(f"{label}:end_without_start", meta)
            return
        started, start_meta = entry
        elapsed_ms = round((time.perf_counter() - started) * 1000)
        self.log(f"{label}:end", {**start_meta, **(meta or {}), "ms": elapsed_ms})


def setup_logging(
    name: str = LOGGER_NAME,
    level: Union[int, str] = logging.INFO,
    log_dir: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """
    Attach diagnostics handlers to a logger

    Installs a stderr handler, plus `<log_dir>/<name>.log` when a log
    directory is given. Handlers are added once per logger; later calls
    only update the level.

    Args:
        name: Logger name
        level: Logging level (number or name)
        log_dir: Directory for the log file (optional)

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    installed = {handler.get_name() for handler in logger.handlers}
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")

    if f"{name}.console" not in installed:
        console = logging.StreamHandler()
        console.set_name(f"{name}.console")
        console.setFormatter(formatter)
        logger.addHandler(console)

    if log_dir and f"{name}.file" not in installed:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / f"{name}.log", encoding="utf-8")
        file_handler.set_name(f"{name}.file")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def default_diagnostics(scope: str = "removal") -> NullDiagnostics:
    """
    Diagnostics sink chosen from configuration

    Returns a LoggingDiagnostics on the configured logger when
    OBJECT_REMOVAL_LOGS is enabled, otherwise a NullDiagnostics.
    """
    if not config.LOGS_ENABLED:
        return NullDiagnostics()
    logger = setup_logging(level=config.LOG_LEVEL, log_dir=config.LOG_DIR or None)
    return LoggingDiagnostics(logger, scope=scope)
