"""Logging setup and per-operation timing for notekeep.

Collection operations are coroutines; ``traced`` wraps them so each call is
timed, counted in the shared ``MetricsCollector`` and logged at DEBUG with a
short correlation ID that ties its START and END lines together.
"""
import functools
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
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

DEFAULT_LOG_DIR = Path.home() / ".notekeep" / "logs"
LOG_FILE_NAME = "notekeep.log"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

F = TypeVar("F", bound=Callable[..., Any])

_logging_configured = False


def _has_file_handler(target: logging.Logger, log_file: Path) -> bool:
    return any(
        isinstance(h, RotatingFileHandler) and Path(h.baseFilename) == log_file.resolve()
        for h in target.handlers
    )


def _has_console_handler(target: logging.Logger) -> bool:
    return any(
        type(h) is logging.StreamHandler for h in target.handlers
    )


def configure_logging(
    log_dir: Optional[Union[str, Path]] = None,
    level: int = logging.INFO,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    console: bool = True,
) -> Path:
    """Send the ``notekeep`` logger hierarchy to a rotating file.

    Calling this again with the same directory does not add a second
    handler, so it is safe from tests and from repeated CLI runs.

    Args:
        log_dir: Directory for ``notekeep.log``. Defaults to ~/.notekeep/logs/
        level: Level for the package logger and its handlers
        max_bytes: Size at which the file is rotated
        backup_count: Rotated files kept
        console: Also log to stderr

    Returns:
        The log directory in use
    """
    global _logging_configured

    log_path = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
    log_path.mkdir(parents=True, exist_ok=True)
    log_file = log_path / LOG_FILE_NAME

    package_logger = logging.getLogger("notekeep")
    package_logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    handlers = []
    if not _has_file_handler(package_logger, log_file):
        handlers.append(RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        ))
    if console and not _has_console_handler(package_logger):
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        package_logger.addHandler(handler)

    _logging_configured = True
    package_logger.info(f"Logging to {log_file}")
    return log_path


def is_logging_configured() -> bool:
    return _logging_configured


@dataclass
class OperationMetrics:
    """Running totals for one operation name."""
    count: int = 0
    success_count: int = 0
    error_count: int = 0
    total_duration_ms: float = 0.0
    min_duration_ms: float = float("inf")
    max_duration_ms: float = 0.0
    last_error: Optional[str] = None
    last_error_time: Optional[datetime] = None

    def add(self, duration_ms: float, error: Optional[str]) -> None:
        self.count += 1
        self.total_duration_ms += duration_ms
        self.min_duration_ms = min(self.min_duration_ms, duration_ms)
        self.max_duration_ms = max(self.max_duration_ms, duration_ms)
        if error is None:
            self.success_count += 1
        else:
            self.error_count += 1
            self.last_error = error
            self.last_error_time = datetime.now(timezone.utc)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "count": self.count,
            "success_count": self.success_count,
            "error_count": self.error_count,
            "success_rate": self.success_count / self.count if self.count else 0,
            "avg_duration_ms": round(self.total_duration_ms / self.count, 2) if self.count else 0,
            "min_duration_ms": round(self.min_duration_ms, 2) if self.count else 0,
            "max_duration_ms": round(self.max_duration_ms, 2),
            "last_error": self.last_error,
            "last_error_time": (
                self.last_error_time.isoformat() if self.last_error_time else None
            ),
        }


class MetricsCollector:
    """In-process, thread-safe timing and failure counts keyed by operation."""

    def __init__(self):
        self._lock = Lock()
        self._metrics: Dict[str, OperationMetrics] = defaultdict(OperationMetrics)
        self._started = datetime.now(timezone.utc)

    def record_operation(
        self,
        operation: str,
        duration_ms: float,
        success: bool,
        error: Optional[str] = None,
    ) -> None:
        with self._lock:
            self._metrics[operation].add(
                duration_ms, None if success else (error or "unknown error")
            )

    def get_metrics(self) -> Dict[str, Dict[str, Any]]:
        """Per-operation snapshot, e.g. ``{"notes.add": {"count": 3, ...}}``."""
        with self._lock:
            return {name: m.snapshot() for name, m in self._metrics.items()}

    def get_summary(self) -> Dict[str, Any]:
        with self._lock:
            total = sum(m.count for m in self._metrics.values())
            succeeded = sum(m.success_count for m in self._metrics.values())
            return {
                "uptime_seconds": (datetime.now(timezone.utc) - self._started).total_seconds(),
                "total_operations": total,
                "total_success": succeeded,
                "total_errors": total - succeeded,
                "overall_success_rate": succeeded / total if total else 1.0,
                "operations_tracked": list(self._metrics),
            }

    def reset(self) -> None:
        with self._lock:
            self._metrics.clear()
            self._started = datetime.now(timezone.utc)


metrics = MetricsCollector()


@contextmanager
def timed_operation(operation: str, **context: Any) -> Iterator[Dict[str, Any]]:
    """Time the enclosed block and record it under ``operation``.

    Works around awaits too; the yielded dict collects result details that
    are appended to the END log line.

    Example:
        with timed_operation("notes.group", by="month") as op:
            groups = await notes.group("month")
            op["group_count"] = len(groups)
    """
    correlation_id = uuid.uuid4().hex[:8]
    info: Dict[str, Any] = {}
    started = time.perf_counter()
    logger.debug(
        f"[{correlation_id}] START {operation} "
        f"({', '.join(f'{k}={v}' for k, v in context.items())})"
    )

    error: Optional[str] = None
    try:
        yield info
    except Exception as e:
        error = str(e) or type(e).__name__
        raise
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        metrics.record_operation(operation, elapsed_ms, error is None, error)
        logger.debug(
            f"[{correlation_id}] END {operation} ({elapsed_ms:.2f}ms) "
            f"[{'OK' if error is None else 'ERROR: ' + error}] "
            f"{', '.join(f'{k}={v}' for k, v in info.items())}"
        )


def traced(operation_name: Optional[str] = None) -> Callable[[F], F]:
    """Wrap a coroutine function in ``timed_operation``.

    List and dict results add ``result_count`` to the END line.
    """
    def decorator(func: F) -> F:
        name = operation_name or func.__qualname__

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            with timed_operation(name) as op:
                result = await func(*args, **kwargs)
                if isinstance(result, (list, dict)):
                    op["result_count"] = len(result)
                return result

        return wrapper  # type: ignore
    return decorator
