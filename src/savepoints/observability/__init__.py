"""Observability - Logging and metrics."""

from .logger import LogContext, configure_logging
from .metrics import LoggerBackend, MetricsBackend, MetricsCollector

__all__ = [
    "MetricsCollector",
    "MetricsBackend",
    "LoggerBackend",
    "configure_logging",
    "LogContext",
]
