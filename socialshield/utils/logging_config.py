"""
Structured logging and in-process metrics for SocialShield.

Every log line carries the scan context (request id, user id) plus the
keyword fields passed to StructuredLogger. Production writes one JSON
object per line; development writes a readable console line with the
fields appended as key=value pairs.
"""

import json
import logging
import sys
import threading
import time
import traceback
from collections import deque
from contextvars import ContextVar
from datetime import datetime
from typing import Any, Deque, Dict, Optional

from socialshield.config import settings


request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)

# LogRecord attribute holding StructuredLogger keyword fields
FIELDS_ATTR = "socialshield_fields"


def _context() -> Dict[str, Any]:
    context = {}
    if request_id_var.get():
        context["request_id"] = request_id_var.get()
    if user_id_var.get():
        context["user_id"] = user_id_var.get()
    return context


class JSONFormatter(logging.Formatter):
    """One JSON object per record, fields flattened next to the message."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.utcnow().isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
            "environment": settings.environment,
        }
        entry.update(_context())
        entry.update(getattr(record, FIELDS_ATTR, None) or {})

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc, tb = record.exc_info
            entry["error_type"] = exc_type.__name__
            entry["error_message"] = str(exc)
            entry["traceback"] = "".join(traceback.format_exception(exc_type, exc, tb))

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable line for development."""

    def __init__(self):
        super().__init__("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = {**_context(), **(getattr(record, FIELDS_ATTR, None) or {})}
        if fields:
            line += " | " + " ".join(f"{k}={v}" for k, v in fields.items())
        return line


class StructuredLogger:
    """
    Logger that takes keyword fields instead of format args.

        logger = StructuredLogger(__name__)
        logger.warning("catalog_empty", user_id=user_id)
        logger.error("Stats update failed", record_id=7, exc_info=True)
    """

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, event: str, exc_info: bool = False, **fields):
        if self._logger.isEnabledFor(level):
            self._logger.log(
                level,
                event,
                exc_info=exc_info,
                extra={FIELDS_ATTR: fields},
                stacklevel=3,
            )

    def debug(self, event: str, **fields):
        self._log(logging.DEBUG, event, **fields)

    def info(self, event: str, **fields):
        self._log(logging.INFO, event, **fields)

    def warning(self, event: str, **fields):
        self._log(logging.WARNING, event, **fields)

    def error(self, event: str, exc_info: bool = False, **fields):
        self._log(logging.ERROR, event, exc_info=exc_info, **fields)


def setup_logging(level: str = "INFO", json_format: bool = True, log_file: Optional[str] = None):
    """Replace root handlers with a console handler and an optional JSON file handler."""
    level_no = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level_no)
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(JSONFormatter() if json_format else ConsoleFormatter())
    root.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(JSONFormatter())
        root.addHandler(file_handler)

    # Quiet noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def init_logging():
    """Configure logging from settings."""
    is_prod = settings.is_production
    setup_logging(
        level=settings.log_level or ("INFO" if is_prod else "DEBUG"),
        json_format=is_prod if settings.log_json is None else settings.log_json,
        log_file=settings.log_file or None,
    )


# ============== METRICS ==============


class MetricsCollector:
    """
    Thread-safe counters, gauges and latency samples for /admin/metrics.

    Sync endpoints run in a worker thread pool, so updates take a lock.
    """

    def __init__(self, window: int = 1000):
        self._window = window
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = {}
        self._gauges: Dict[str, float] = {}
        self._timings: Dict[str, Deque[float]] = {}
        self._started = time.time()

    def increment(self, name: str, value: int = 1):
        with self._lock:
            self._counters[name] = self._counters.get(name, 0) + value

    def gauge(self, name: str, value: float):
        with self._lock:
            self._gauges[name] = value

    def timing(self, name: str, seconds: float):
        with self._lock:
            samples = self._timings.get(name)
            if samples is None:
                samples = self._timings[name] = deque(maxlen=self._window)
            samples.append(seconds)

    def counter(self, name: str) -> int:
        with self._lock:
            return self._counters.get(name, 0)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            timings = {}
            for name, samples in self._timings.items():
                if not samples:
                    continue
                ordered = sorted(samples)
                timings[name] = {
                    "count": len(ordered),
                    "avg_ms": round(1000 * sum(ordered) / len(ordered), 3),
                    "p50_ms": round(1000 * ordered[len(ordered) // 2], 3),
                    "p95_ms": round(1000 * ordered[int(len(ordered) * 0.95)], 3),
                    "max_ms": round(1000 * ordered[-1], 3),
                }
            return {
                "uptime_seconds": round(time.time() - self._started, 1),
                "counters": dict(self._counters),
                "gauges": dict(self._gauges),
                "timings": timings,
            }

    def reset(self):
        with self._lock:
            self._counters.clear()
            self._gauges.clear()
            self._timings.clear()


metrics = MetricsCollector(window=settings.metrics_window)
