"""structlog configuration for applications embedding the resolver."""

from __future__ import annotations

import sys
from typing import TextIO

import structlog


def configure_logging(stream: TextIO | None = None) -> None:
    """Configure structlog for JSON output to stderr.

    A console renderer is used instead when the stream is an interactive
    terminal. Library modules only call ``structlog.get_logger()``; nothing is
    configured at import time.

    Args:
        stream: Destination for log lines. Defaults to ``sys.stderr``.
    """
    stream = stream if stream is not None else sys.stderr
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer() if stream.isatty() else structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.PrintLoggerFactory(file=stream),
    )
