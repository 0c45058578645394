"""Correlated logging and per-derivative timing for the media pipeline."""

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from .logging_config import get_logger


def new_correlation_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True)
class LogContext:
    """
    Identity of one file's run, threaded through every log line it causes.

    The coordinator creates one per file; workers derive a child with their
    own ``operation`` (``render:<variant>``) and keep the correlation id.
    """

    correlation_id: str = field(default_factory=new_correlation_id)
    operation: str = ""
    component: str = ""
    owner_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def with_operation(self, operation: str) -> "LogContext":
        return replace(self, operation=operation, metadata=dict(self.metadata))

    def with_metadata(self, **kwargs: Any) -> "LogContext":
        return replace(self, metadata={**self.metadata, **kwargs})

    def fields(self) -> Dict[str, Any]:
        values = dict(self.metadata)
        if self.owner_id:
            values["owner_id"] = self.owner_id
        return values


def render_message(message: str, context: Optional[LogContext], fields: Dict[str, Any]) -> str:
    """``[operation] [correlation] message (k=v, ...)``, omitting empty parts."""
    prefix = ""
    if context is not None:
        prefix = f"[{context.correlation_id}] "
        if context.operation:
            prefix = f"[{context.operation}] {prefix}"
        fields = {**context.fields(), **fields}
    suffix = f" ({', '.join(f'{k}={v}' for k, v in fields.items())})" if fields else ""
    return f"{prefix}{message}{suffix}"


class StructuredLogger:
    """Logger accepting a LogContext and keyword fields on every call."""

    def __init__(self, name: str, level: Optional[int] = None):
        self._logger = get_logger(name)
        if level is not None:
            self._logger.setLevel(level)

    @property
    def level(self) -> int:
        return self._logger.level

    def _log(self, level: int, message: str, context: Optional[LogContext], fields: Dict[str, Any]):
        if self._logger.isEnabledFor(level):
            self._logger.log(level, render_message(message, context, fields), stacklevel=3)

    def debug(self, message: str, context: Optional[LogContext] = None, **kwargs: Any):
        self._log(logging.DEBUG, message, context, kwargs)

    def info(self, message: str, context: Optional[LogContext] = None, **kwargs: Any):
        self._log(logging.INFO, message, context, kwargs)

    def warning(self, message: str, context: Optional[LogContext] = None, **kwargs: Any):
        self._log(logging.WARNING, message, context, kwargs)

    def error(self, message: str, context: Optional[LogContext] = None, **kwargs: Any):
        self._log(logging.ERROR, message, context, kwargs)


@dataclass
class OperationTiming:
    """One timed operation, e.g. rendering and storing a single derivative."""

    operation: str
    started_at: float
    finished_at: float
    success: bool
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> float:
        return self.finished_at - self.started_at


class MetricsCollector:
    """Thread-safe sink for operation timings, shared by all workers."""

    def __init__(self):
        self._timings: List[OperationTiming] = []
        self._lock = threading.Lock()

    def record(
        self,
        operation: str,
        started_at: float,
        success: bool,
        error: Optional[str] = None,
        **metadata: Any,
    ) -> OperationTiming:
        """Record an operation that started at ``started_at`` and ends now."""
        timing = OperationTiming(
            operation=operation,
            started_at=started_at,
            finished_at=time.time(),
            success=success,
            error=error,
            metadata=metadata,
        )
        with self._lock:
            self._timings.append(timing)
        return timing

    def get_metrics(self, operation: Optional[str] = None) -> List[OperationTiming]:
        with self._lock:
            timings = list(self._timings)
        if operation:
            return [t for t in timings if t.operation == operation]
        return timings

    def get_summary(self, operation: Optional[str] = None) -> Dict[str, Any]:
        """Counts and durations (seconds) of the recorded operations."""
        timings = self.get_metrics(operation)
        if not timings:
            return {}

        durations = [t.duration for t in timings]
        succeeded = sum(1 for t in timings if t.success)
        return {
            "total": len(timings),
            "succeeded": succeeded,
            "failed": len(timings) - succeeded,
            "success_rate": succeeded / len(timings),
            "avg_duration": sum(durations) / len(durations),
            "max_duration": max(durations),
        }

    def clear(self) -> None:
        with self._lock:
            self._timings.clear()


def create_logger(name: str, debug: bool = False) -> StructuredLogger:
    """Create a structured logger, forcing DEBUG when requested."""
    return StructuredLogger(name, logging.DEBUG if debug else None)
