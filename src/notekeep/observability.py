"""Logging setup and per-tool timing for the Notekeep server.

Each MCP tool call runs inside ``timed_operation``, which tags its log
lines with a short correlation id and feeds the process-wide ``metrics``
collector reported by ``nk_metrics``.
"""
import logging
import time
import uuid
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_LOG_DIR = Path.home() / ".notekeep" / "logs"
LOG_FILE_NAME = "notekeep.log"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def configure_logging(
    log_dir: Optional[Union[str, Path]] = None,
    level: int = logging.INFO,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
    console: bool = True,
) -> Path:
    """Send everything under the ``notekeep`` logger to a rotating file.

    Args:
        log_dir: Where ``notekeep.log`` goes (``~/.notekeep/logs`` if unset)
        level: Level for the logger and its handlers
        max_bytes: File size that triggers a rollover
        backup_count: Rolled-over files kept next to the live one
        console: Mirror log lines on stderr as well

    Returns:
        The directory holding the log file.
    """
    directory = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
    directory.mkdir(parents=True, exist_ok=True)
    log_file = directory / LOG_FILE_NAME

    package_logger = logging.getLogger("notekeep")
    package_logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    handlers = [
        RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    ]
    has_console = any(
        type(h) is logging.StreamHandler for h in package_logger.handlers
    )
    # stdout belongs to the MCP stdio transport; StreamHandler defaults to stderr
    if console and not has_console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    package_logger.info(f"Writing logs to {log_file}")
    return directory


@dataclass
class OperationMetrics:
    """Running totals for one tool."""

    count: int = 0
    success_count: int = 0
    error_count: int = 0
    total_duration_ms: float = 0.0
    max_duration_ms: float = 0.0
    last_error: Optional[str] = None
    last_error_time: Optional[datetime] = None

    def add(self, duration_ms: float, error: Optional[str]) -> None:
        self.count += 1
        self.total_duration_ms += duration_ms
        self.max_duration_ms = max(self.max_duration_ms, duration_ms)
        if error is None:
            self.success_count += 1
        else:
            self.error_count += 1
            self.last_error = error
            self.last_error_time = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        average = self.total_duration_ms / self.count if self.count else 0
        return {
            "count": self.count,
            "success_count": self.success_count,
            "error_count": self.error_count,
            "avg_duration_ms": round(average, 2),
            "max_duration_ms": round(self.max_duration_ms, 2),
            "last_error": self.last_error,
            "last_error_time": (
                self.last_error_time.isoformat() if self.last_error_time else None
            ),
        }


class MetricsCollector:
    """Thread-safe per-tool counters, kept in memory for the process lifetime."""

    def __init__(self):
        self._lock = Lock()
        self._by_operation: Dict[str, OperationMetrics] = defaultdict(OperationMetrics)
        self._started = datetime.now(timezone.utc)

    def record_operation(
        self,
        operation: str,
        duration_ms: float,
        success: bool,
        error: Optional[str] = None,
    ) -> None:
        # a failure without a message still counts as a failure
        outcome = None if success else (error or "")
        with self._lock:
            self._by_operation[operation].add(duration_ms, outcome)

    def get_metrics(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return {name: m.to_dict() for name, m in self._by_operation.items()}

    def get_summary(self) -> Dict[str, Any]:
        with self._lock:
            totals = list(self._by_operation.values())
            uptime = datetime.now(timezone.utc) - self._started
        return {
            "uptime_seconds": uptime.total_seconds(),
            "total_operations": sum(m.count for m in totals),
            "total_errors": sum(m.error_count for m in totals),
        }

    def reset(self) -> None:
        with self._lock:
            self._by_operation.clear()
            self._started = datetime.now(timezone.utc)


metrics = MetricsCollector()


@contextmanager
def timed_operation(operation: str, **context):
    """Time the block and record the outcome under ``operation``.

    The yielded dict collects result details for the closing debug line;
    it already holds the ``correlation_id``. Exceptions are recorded and
    re-raised.

    Example:
        with timed_operation("nk_get_note", note_id=note_id) as op:
            op["found"] = note is not None
    """
    correlation_id = uuid.uuid4().hex[:8]
    details: Dict[str, Any] = {"correlation_id": correlation_id}
    logger.debug(
        f"[{correlation_id}] {operation} started "
        f"({', '.join(f'{k}={v}' for k, v in context.items())})"
    )
    started = time.perf_counter()
    error: Optional[str] = None
    try:
        yield details
    except Exception as e:
        error = str(e)
        raise
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        metrics.record_operation(operation, elapsed_ms, error is None, error)
        outcome = "ok" if error is None else f"failed: {error}"
        extras = ", ".join(f"{k}={v}" for k, v in details.items() if k != "correlation_id")
        logger.debug(
            f"[{correlation_id}] {operation} {outcome} in {elapsed_ms:.2f}ms {extras}"
        )
