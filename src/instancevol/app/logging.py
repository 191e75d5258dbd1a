"""JSON logging for instancevol.

Every record is a single JSON object on stdout. Two context variables are
stamped onto records:

- trace_id: set per HTTP request by LoggingMiddleware (X-Trace-ID)
- volume_id: set by the reconciler for the volume being worked on, so
  client-side logs (retries, stable-state polls) are attributable too

The delete and wait loops log once per poll. RateLimitFilter caps
identical messages per volume so a volume stuck attached cannot flood the
output or starve the logs of other volumes.
"""

import logging
import sys
import time
from collections import defaultdict
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pythonjsonlogger import jsonlogger

from instancevol.app.config import get_settings

trace_id_ctx: ContextVar[str | None] = ContextVar("trace_id", default=None)
volume_id_ctx: ContextVar[str | None] = ContextVar("volume_id", default=None)


def get_trace_id() -> str | None:
    return trace_id_ctx.get()


def set_trace_id(trace_id: str | None = None) -> str:
    """Bind a trace id to the current request, generating one if missing."""
    tid = trace_id or str(uuid4())
    trace_id_ctx.set(tid)
    return tid


def clear_trace_context() -> None:
    trace_id_ctx.set(None)


def get_volume_id() -> str | None:
    return volume_id_ctx.get()


@contextmanager
def volume_context(zoned_id: str) -> Iterator[None]:
    """Attach ``zoned_id`` to every record logged inside the block."""
    token = volume_id_ctx.set(zoned_id)
    try:
        yield
    finally:
        volume_id_ctx.reset(token)


class RateLimitFilter(logging.Filter):
    """Cap repeated messages at ``rate_per_minute`` per call site and volume.

    The first suppressed record is let through with a ``[RATE LIMITED]``
    marker. ERROR and above are never suppressed.
    """

    def __init__(self, rate_per_minute: int = 100) -> None:
        super().__init__()
        self.rate_per_minute = rate_per_minute
        self._counts: dict[str, list[float]] = defaultdict(list)
        self._warned: set[str] = set()

    @staticmethod
    def _key(record: logging.LogRecord) -> str:
        volume_id = getattr(record, "volume_id", None) or get_volume_id()
        return f"{record.name}:{record.lineno}:{record.msg}:{volume_id}"

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno >= logging.ERROR:
            return True

        key = self._key(record)
        now = time.time()
        window = [t for t in self._counts[key] if now - t < 60]
        self._counts[key] = window

        if len(window) >= self.rate_per_minute:
            if key in self._warned:
                return False
            self._warned.add(key)
            record.msg = f"[RATE LIMITED] {record.msg} (max {self.rate_per_minute}/min)"
        elif key in self._warned and len(window) < self.rate_per_minute // 2:
            self._warned.discard(key)

        window.append(now)
        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Adds timestamp, level, logger, schema_version, service, and the
    trace/volume context to each record."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        settings = get_settings()
        self._schema_version = settings.logging.schema_version
        self._service = settings.logging.service_name

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.fromtimestamp(
            record.created, tz=timezone.utc
        ).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["schema_version"] = self._schema_version
        log_record["service"] = self._service

        if trace_id := get_trace_id():
            log_record["trace_id"] = trace_id
        # An explicit volume_id extra wins over the bound context
        if not log_record.get("volume_id") and (volume_id := get_volume_id()):
            log_record["volume_id"] = volume_id

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        log_record.pop("color_message", None)


def setup_logging(level: int | None = None) -> None:
    """Install the JSON handler on the root and uvicorn loggers.

    Args:
        level: Log level. If None, uses LOGGING_LEVEL from settings.
    """
    settings = get_settings()

    if level is None:
        level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomJsonFormatter())
    handler.addFilter(RateLimitFilter(settings.logging.rate_limit_per_minute))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in ("uvicorn", "uvicorn.error"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers.clear()
        uv_logger.propagate = False
        uv_logger.addHandler(handler)

    # LoggingMiddleware emits the request line
    logging.getLogger("uvicorn.access").disabled = True

    # One line per poll otherwise
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
