from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from pathlib import Path

_LOGGING_CONFIGURED = False
_LOG_FILE: str | None = None
_LOG_LEVEL = logging.INFO


def setup_logging(filename: str | Path | None = None, level: int = logging.INFO) -> structlog.BoundLogger:
    """Set up structured logging for the code_combiner package.

    The first call configures structlog; a later call with a new `filename` or
    `level` reconfigures it.

    Args:
        filename: Optional path to a log file. If None, logs are written to stderr.
        level: Minimum stdlib logging level to emit.

    Returns:
        A structlog logger instance configured for the code_combiner package.
    """
    global _LOGGING_CONFIGURED, _LOG_FILE, _LOG_LEVEL  # noqa: PLW0603
    target = str(filename) if filename else None
    if not _LOGGING_CONFIGURED or target != _LOG_FILE or level != _LOG_LEVEL:
        handlers: list[logging.Handler] = []
        if target:
            handlers.append(logging.FileHandler(target, encoding="utf-8"))
        else:
            handlers.append(logging.StreamHandler(sys.stderr))

        logging.basicConfig(
            level=level,
            handlers=handlers,
            format="%(message)s",
            force=True,
        )
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(level),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        _LOGGING_CONFIGURED = True
        _LOG_FILE = target
        _LOG_LEVEL = level

    return structlog.get_logger("code_combiner")


logger = setup_logging()
