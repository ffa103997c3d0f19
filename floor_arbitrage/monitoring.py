"""
In-process performance and error monitoring.

PerformanceMonitor keeps a bounded window of operation timings and raises
alerts when latency, error rate or throughput cross their thresholds.
ErrorHandler logs normalized errors at a severity-derived level and counts
them. Observability bundles both with ServiceMetrics; one instance is
constructed by the caller and passed to every component that reports.
"""

import logging
from collections import Counter as TallyCounter
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Iterator, List, Optional

from prometheus_client import CollectorRegistry

from .constants import (
    ALERT_ERROR_RATE,
    ALERT_LATENCY_MS,
    ALERT_THROUGHPUT_PER_MINUTE,
    PERFORMANCE_WINDOW_SIZE,
    RECENT_ERROR_LIMIT,
    ErrorSeverity,
)
from .exceptions import ReservoirError, normalize_error
from .interfaces import SystemTimeProvider, TimeProvider
from .metrics import ServiceMetrics
from .utils import timestamp_to_iso

logger = logging.getLogger(__name__)


@dataclass
class PerformanceMetric:
    operation: str
    duration_ms: float
    success: bool
    timestamp: float
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PerformanceAlert:
    """Threshold breach raised by PerformanceMonitor."""

    type: str  # latency | error_rate | throughput
    message: str
    threshold: float
    current_value: float
    timestamp: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "message": self.message,
            "threshold": self.threshold,
            "current_value": self.current_value,
            "timestamp": timestamp_to_iso(self.timestamp),
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class AlertThresholds:
    latency_ms: float = ALERT_LATENCY_MS
    error_rate: float = ALERT_ERROR_RATE
    throughput_per_minute: float = ALERT_THROUGHPUT_PER_MINUTE


AlertListener = Callable[[PerformanceAlert], None]


class PerformanceMonitor:
    """Rolling window of operation timings with threshold alerts."""

    def __init__(
        self,
        max_metrics: int = PERFORMANCE_WINDOW_SIZE,
        thresholds: Optional[AlertThresholds] = None,
        time_provider: Optional[TimeProvider] = None,
    ):
        self.thresholds = thresholds or AlertThresholds()
        self._time = time_provider or SystemTimeProvider()
        self._metrics: Deque[PerformanceMetric] = deque(maxlen=max_metrics)
        self._listeners: List[AlertListener] = []

    def add_alert_listener(self, listener: AlertListener) -> None:
        self._listeners.append(listener)

    @contextmanager
    def track(self, operation: str, **metadata) -> Iterator[Dict[str, Any]]:
        """
        Time the enclosed block and record it as one metric.

        The yielded dict is merged into the metric's metadata, so callers
        can attach results discovered inside the block. An exception marks
        the metric as failed and propagates.
        """
        started = self._time.current_timestamp()
        extra: Dict[str, Any] = {}
        success = True
        try:
            yield extra
        except BaseException:
            success = False
            raise
        finally:
            duration_ms = (self._time.current_timestamp() - started) * 1000
            merged = dict(metadata)
            merged.update(extra)
            self.record_metric(operation, duration_ms, success, merged)

    def record_metric(
        self,
        operation: str,
        duration_ms: float,
        success: bool,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> PerformanceMetric:
        metric = PerformanceMetric(
            operation=operation,
            duration_ms=duration_ms,
            success=success,
            timestamp=self._time.current_timestamp(),
            metadata=metadata or {},
        )
        self._metrics.append(metric)
        self._check_thresholds(metric)
        return metric

    def get_metrics(
        self,
        operation: Optional[str] = None,
        time_range: Optional[float] = None,
        success: Optional[bool] = None,
    ) -> List[PerformanceMetric]:
        """Filter the window; time_range is in seconds back from now."""
        now = self._time.current_timestamp()
        result = []
        for metric in self._metrics:
            if operation and metric.operation != operation:
                continue
            if success is not None and metric.success != success:
                continue
            if time_range is not None and now - metric.timestamp > time_range:
                continue
            result.append(metric)
        return result

    def get_average_latency(
        self, operation: Optional[str] = None, time_range: Optional[float] = None
    ) -> float:
        relevant = self.get_metrics(operation, time_range, success=True)
        if not relevant:
            return 0.0
        return sum(m.duration_ms for m in relevant) / len(relevant)

    def get_error_rate(
        self, operation: Optional[str] = None, time_range: Optional[float] = None
    ) -> float:
        relevant = self.get_metrics(operation, time_range)
        if not relevant:
            return 0.0
        return sum(1 for m in relevant if not m.success) / len(relevant)

    def get_throughput(
        self, operation: Optional[str] = None, time_range: float = 60.0
    ) -> float:
        """Operations per minute over the last time_range seconds."""
        relevant = self.get_metrics(operation, time_range)
        return len(relevant) * 60.0 / time_range

    def prune(self, max_age: float = 3600.0) -> int:
        """Drop metrics older than max_age seconds."""
        cutoff = self._time.current_timestamp() - max_age
        before = len(self._metrics)
        kept = [m for m in self._metrics if m.timestamp > cutoff]
        self._metrics.clear()
        self._metrics.extend(kept)
        return before - len(kept)

    def _check_thresholds(self, metric: PerformanceMetric) -> None:
        if metric.duration_ms > self.thresholds.latency_ms:
            self._emit(
                "latency",
                f"High latency detected for operation {metric.operation}",
                self.thresholds.latency_ms,
                metric.duration_ms,
                metric.metadata,
            )

        error_rate = self.get_error_rate(metric.operation, 60.0)
        if error_rate > self.thresholds.error_rate:
            self._emit(
                "error_rate",
                f"High error rate detected for operation {metric.operation}",
                self.thresholds.error_rate,
                error_rate,
                metric.metadata,
            )

        throughput = self.get_throughput(metric.operation)
        if throughput > self.thresholds.throughput_per_minute:
            self._emit(
                "throughput",
                f"High throughput detected for operation {metric.operation}",
                self.thresholds.throughput_per_minute,
                throughput,
                metric.metadata,
            )

    def _emit(
        self,
        alert_type: str,
        message: str,
        threshold: float,
        current_value: float,
        metadata: Dict[str, Any],
    ) -> None:
        alert = PerformanceAlert(
            type=alert_type,
            message=message,
            threshold=threshold,
            current_value=current_value,
            timestamp=self._time.current_timestamp(),
            metadata=metadata,
        )
        logger.warning(f"{message} ({current_value:.3f} > {threshold})")
        for listener in self._listeners:
            listener(alert)


_SEVERITY_LEVELS = {
    ErrorSeverity.CRITICAL: logging.ERROR,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.LOW: logging.INFO,
}

ErrorListener = Callable[[ReservoirError, Dict[str, Any]], None]


class ErrorHandler:
    """Central sink for normalized errors."""

    def __init__(
        self,
        metrics: Optional[ServiceMetrics] = None,
        history_size: int = RECENT_ERROR_LIMIT,
    ):
        self.metrics = metrics
        self._recent: Deque[Dict[str, Any]] = deque(maxlen=history_size)
        self._counts: TallyCounter = TallyCounter()
        self._listeners: List[ErrorListener] = []

    def add_listener(self, listener: ErrorListener) -> None:
        self._listeners.append(listener)

    def handle_error(
        self, error: BaseException, context: Optional[Dict[str, Any]] = None
    ) -> ReservoirError:
        """Normalize, log, count and fan out an error; returns the normalized form."""
        normalized = normalize_error(error)
        context = context or {}

        level = _SEVERITY_LEVELS.get(normalized.severity, logging.ERROR)
        where = context.get("operation", "unknown")
        logger.log(
            level,
            f"[{normalized.code.value}] {where}: {normalized.message} "
            f"(severity={normalized.severity.value}, retryable={normalized.retryable})",
        )

        self._counts[normalized.code.value] += 1
        record = normalized.to_dict()
        record["context"] = context
        self._recent.append(record)

        if self.metrics:
            self.metrics.record_error(normalized.code.value, normalized.severity.value)
        for listener in self._listeners:
            listener(normalized, context)
        return normalized

    def get_recent_errors(self) -> List[Dict[str, Any]]:
        return list(self._recent)

    def get_error_summary(self) -> Dict[str, int]:
        return dict(self._counts)


class Observability:
    """Metrics, performance monitor and error handler shared by components."""

    def __init__(
        self,
        metrics: Optional[ServiceMetrics] = None,
        monitor: Optional[PerformanceMonitor] = None,
        error_handler: Optional[ErrorHandler] = None,
        time_provider: Optional[TimeProvider] = None,
    ):
        self.metrics = metrics or ServiceMetrics(CollectorRegistry(), time_provider)
        self.monitor = monitor or PerformanceMonitor(time_provider=time_provider)
        self.error_handler = error_handler or ErrorHandler(self.metrics)
