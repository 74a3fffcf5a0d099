"""Metrics collection for engine operations."""

from abc import ABC, abstractmethod
from collections import Counter, defaultdict
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class MetricsBackend(ABC):
    """Abstract base class for metrics backends."""

    @abstractmethod
    def increment(self, name: str, value: int = 1, tags: dict[str, str] | None = None) -> None:
        pass

    @abstractmethod
    def gauge(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        pass

    @abstractmethod
    def timing(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        pass


class LoggerBackend(MetricsBackend):
    """
    Simple in-memory metrics backend that aggregates stats for logging.
    """

    def __init__(self) -> None:
        self.counters: Counter[str] = Counter()
        self.gauges: dict[str, float] = {}
        self.timings: dict[str, list[float]] = defaultdict(list)

    def increment(self, name: str, value: int = 1, tags: dict[str, str] | None = None) -> None:
        """Increment a counter."""
        self.counters[self._format_key(name, tags)] += value

    def gauge(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        """Set a gauge value (last value wins)."""
        self.gauges[self._format_key(name, tags)] = value

    def timing(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        """Record a timing."""
        self.timings[self._format_key(name, tags)].append(value)

    def _format_key(self, name: str, tags: dict[str, str] | None) -> str:
        if not tags:
            return name
        tag_str = ",".join(f"{k}={v}" for k, v in sorted(tags.items()))
        return f"{name}[{tag_str}]"

    def get_summary(self) -> dict[str, Any]:
        """Return a summary of collected metrics."""
        summary: dict[str, Any] = {
            "counters": dict(self.counters),
            "gauges": dict(self.gauges),
            "timings": {},
        }

        for name, values in self.timings.items():
            if values:
                summary["timings"][name] = {
                    "count": len(values),
                    "avg": sum(values) / len(values),
                    "min": min(values),
                    "max": max(values),
                }
        return summary


class MetricsCollector:
    """
    Collects history and storage metrics for one engine.
    """

    def __init__(self, backend: str = "logger") -> None:
        """
        Initialize Metrics Collector.

        Args:
            backend: Backend type to use. Only "logger" is supported.
        """
        self.backend: MetricsBackend

        if backend != "logger":
            logger.warning("Unknown metrics backend, defaulting to 'logger'", backend=backend)
        self.backend = LoggerBackend()

    def count_operation(self, operation: str, status: str) -> None:
        """Record an engine operation outcome ("ok" or an error class name)."""
        self.backend.increment(
            "savepoints_operation_total",
            tags={"operation": operation, "status": status},
        )

    def record_store_latency(self, operation: str, duration_ms: float) -> None:
        """Record how long a store read/write/delete took."""
        self.backend.timing(
            "savepoints_store_duration_ms",
            duration_ms,
            tags={"operation": operation},
        )

    def update_history_size(self, committed: int, rewound: int) -> None:
        """Update history size gauges."""
        self.backend.gauge("savepoints_committed", float(committed))
        self.backend.gauge("savepoints_rewound", float(rewound))

    def get_summary(self) -> dict[str, Any]:
        """Get summary from backend if supported."""
        if isinstance(self.backend, LoggerBackend):
            return self.backend.get_summary()
        return {}
