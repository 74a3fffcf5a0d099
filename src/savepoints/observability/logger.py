"""Structured logging configuration.

The engine logs saves, loads and restarts at INFO and individual history
operations (add, rewind, fast-forward) at DEBUG. Fields bound with
``LogContext`` (for example the active save slot) are attached to every line
logged inside the block, including from worker threads started there.
"""

import logging
import sys
from pathlib import Path
from typing import Any

import structlog


class LogContext:
    """
    Context manager for adding context to logs.

    Usage:
        with LogContext(save_data_key="slot1"):
            logger.info("Loading save data")
    """

    def __init__(self, **kwargs: Any) -> None:
        self.new_context = kwargs
        self.tokens: dict[str, Any] = {}

    def __enter__(self) -> "LogContext":
        self.tokens = structlog.contextvars.bind_contextvars(**self.new_context)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        structlog.contextvars.reset_contextvars(**self.tokens)
        self.tokens = {}


def get_log_level(level: str) -> int:
    """
    Get numeric log level from string.

    Args:
        level: Standard level name, case-insensitive

    Returns:
        Numeric log level, INFO for unknown names
    """
    return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)


def configure_logging(
    level: str = "INFO",
    json_logs: bool = False,
    log_file: str | Path | None = None,
    log_filter: str | None = None,
) -> None:
    """
    Configure structured logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: Whether to output logs in JSON format
        log_file: Optional path to write logs to file
        log_filter: Comma-separated module names to keep (e.g., "engine,file_store");
            all other loggers are raised to WARNING
    """
    log_level = get_log_level(level)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        file_path = Path(log_file)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(file_path))

    logging.basicConfig(
        format="%(message)s",
        level=log_level,
        handlers=handlers,
        force=True,
    )
    # basicConfig may leave an existing root level in place
    logging.getLogger().setLevel(log_level)

    if log_filter:
        components = [c.strip() for c in log_filter.split(",") if c.strip()]
        for name in list(logging.root.manager.loggerDict):
            if not any(comp in name for comp in components):
                logging.getLogger(name).setLevel(logging.WARNING)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
