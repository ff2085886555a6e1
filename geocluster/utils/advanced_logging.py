"""
Logging for the clustering library.

Two layers live here:
- Process-wide structlog setup used by the command line (JSON or console
  output, optionally mirrored to a rotating file).
- The ClusteringLogger capability that strategies and the engine receive
  at construction, plus timing helpers built on top of it.
"""

import contextlib
import functools
import logging
import logging.handlers
import time
import traceback
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

import structlog
from structlog.types import EventDict, Processor

LOG_FILE_MAX_BYTES = 20 * 1024 * 1024
LOG_FILE_BACKUPS = 3


# =============================================================================
# Process-wide setup
# =============================================================================


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name}")
    return level


def _stamp_service(service_name: str, _logger: Any, _method: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", service_name)
    return event_dict


def add_service_context(service_name: str) -> Processor:
    """Processor that tags every event with the service name."""
    return functools.partial(_stamp_service, service_name)


def _build_processors(service_name: str, log_format: str) -> List[Processor]:
    renderer: Processor
    if log_format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    return [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_context(service_name),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        renderer,
    ]


def _attach_file_handler(log_file: str, level: int) -> None:
    target = Path(log_file)
    target.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        target,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    handler.setLevel(level)
    logging.getLogger().addHandler(handler)


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[str] = None,
    service_name: str = "geocluster",
) -> None:
    """
    Route structlog through the standard library and pick a renderer.

    Args:
        log_level: Minimum level name, e.g. "INFO" or "debug"
        log_format: "json" for machine-readable lines, "console" for humans
        log_file: Also write events to this file (rotated by size)
        service_name: Value of the ``service`` field on every event
    """
    level = _resolve_level(log_level)
    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)

    if log_file:
        _attach_file_handler(log_file, level)

    structlog.configure(
        processors=_build_processors(service_name, log_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return the structlog logger registered under ``name``."""
    return structlog.get_logger(name)


# =============================================================================
# Injectable clustering logger
# =============================================================================


class ClusteringLogger(ABC):
    """
    Logging capability handed to strategies and the engine at construction.

    Calls are side channels only: a no-op implementation must leave every
    clustering result unchanged.
    """

    @abstractmethod
    def debug(self, message: str, error: Optional[BaseException] = None,
              stack_trace: Optional[str] = None, **fields: Any) -> None:
        """Log a debug event."""

    @abstractmethod
    def info(self, message: str, error: Optional[BaseException] = None,
             stack_trace: Optional[str] = None, **fields: Any) -> None:
        """Log an informational event."""

    @abstractmethod
    def warning(self, message: str, error: Optional[BaseException] = None,
                stack_trace: Optional[str] = None, **fields: Any) -> None:
        """Log a warning event."""

    @abstractmethod
    def error(self, message: str, error: Optional[BaseException] = None,
              stack_trace: Optional[str] = None, **fields: Any) -> None:
        """Log an error event."""


class NoOpClusteringLogger(ClusteringLogger):
    """Logger that discards everything."""

    def debug(self, message, error=None, stack_trace=None, **fields):
        pass

    def info(self, message, error=None, stack_trace=None, **fields):
        pass

    def warning(self, message, error=None, stack_trace=None, **fields):
        pass

    def error(self, message, error=None, stack_trace=None, **fields):
        pass


class StructlogClusteringLogger(ClusteringLogger):
    """
    ClusteringLogger that writes through structlog.

    Accepts either a logger name or an already bound logger. Exceptions
    passed as ``error`` are flattened into ``error``, ``error_type`` and
    ``stack_trace`` fields so JSON output stays serializable.
    """

    def __init__(self, name_or_logger: Union[str, Any] = "geocluster"):
        if isinstance(name_or_logger, str):
            name_or_logger = get_logger(name_or_logger)
        self._logger = name_or_logger

    @staticmethod
    def _error_fields(
        error: Optional[Union[BaseException, str]],
        stack_trace: Optional[str],
    ) -> Dict[str, Any]:
        extra: Dict[str, Any] = {}
        if isinstance(error, BaseException):
            extra["error"] = str(error)
            extra["error_type"] = type(error).__name__
            if stack_trace is None and error.__traceback__ is not None:
                stack_trace = "".join(traceback.format_tb(error.__traceback__))
        elif error is not None:
            extra["error"] = str(error)
        if stack_trace is not None:
            extra["stack_trace"] = stack_trace
        return extra

    def _log(self, level: str, message: str, error, stack_trace, fields: Dict[str, Any]) -> None:
        fields.update(self._error_fields(error, stack_trace))
        getattr(self._logger, level)(message, **fields)

    def debug(self, message, error=None, stack_trace=None, **fields):
        self._log("debug", message, error, stack_trace, fields)

    def info(self, message, error=None, stack_trace=None, **fields):
        self._log("info", message, error, stack_trace, fields)

    def warning(self, message, error=None, stack_trace=None, **fields):
        self._log("warning", message, error, stack_trace, fields)

    def error(self, message, error=None, stack_trace=None, **fields):
        self._log("error", message, error, stack_trace, fields)


# =============================================================================
# Timing
# =============================================================================


class PerformanceLogger:
    """
    Times a block and reports it through a ClusteringLogger.

    Emits ``operation_started`` at debug level on entry, then either
    ``operation_completed`` at ``log_level`` or ``operation_failed`` at
    error level. Exceptions are never suppressed.

    Example:
        with PerformanceLogger("distance_clustering", logger=log, item_count=len(items)) as perf:
            clusters = strategy.calculate_clusters(items, params)
        print(perf.elapsed_ms)
    """

    def __init__(
        self,
        operation: str,
        logger: Optional[ClusteringLogger] = None,
        log_level: str = "info",
        item_count: Optional[int] = None,
        **extra_context: Any,
    ):
        self.operation = operation
        self.logger = logger or StructlogClusteringLogger(__name__)
        self.log_level = log_level
        self.item_count = item_count
        self.extra_context = extra_context
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

    def _summary(self) -> Dict[str, Any]:
        seconds = self.elapsed_time
        summary: Dict[str, Any] = {"operation": self.operation, "duration_ms": round(seconds * 1000, 3)}
        if self.item_count and seconds > 0:
            summary["item_count"] = self.item_count
            summary["items_per_second"] = round(self.item_count / seconds, 2)
        summary.update(self.extra_context)
        return summary

    def __enter__(self) -> "PerformanceLogger":
        self.logger.debug("operation_started", operation=self.operation, **self.extra_context)
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.end_time = time.perf_counter()
        if exc_type is None:
            emit = getattr(self.logger, self.log_level)
            emit("operation_completed", **self._summary())
        else:
            self.logger.error("operation_failed", error=exc_val, **self._summary())

    @property
    def elapsed_time(self) -> float:
        """Seconds since entry; keeps counting until the block exits."""
        if self.start_time is None:
            return 0.0
        stop = self.end_time if self.end_time is not None else time.perf_counter()
        return stop - self.start_time

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed_time * 1000


@contextlib.contextmanager
def log_exceptions(
    logger: Optional[ClusteringLogger] = None,
    operation: Optional[str] = None,
    reraise: bool = True,
) -> Iterator[None]:
    """
    Report any exception raised in the block as ``exception_caught``.

    Args:
        logger: Where to report; a structlog-backed logger when omitted
        operation: Added to the event as ``operation`` when given
        reraise: Set to False to swallow the exception after reporting it
    """
    sink = logger or StructlogClusteringLogger(__name__)
    context = {"operation": operation} if operation else {}
    try:
        yield
    except Exception as exc:
        sink.error("exception_caught", error=exc, **context)
        if reraise:
            raise
