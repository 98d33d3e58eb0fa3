from __future__ import annotations

import logging
from typing import Any, Optional, TextIO

import structlog


def configure_logging(level: int = logging.INFO, *, json_output: bool = True, stream: Optional[TextIO] = None) -> None:
    """Route structlog and stdlib logging through one renderer.

    ``stream`` defaults to stdout for structlog; commands that print their own
    output to stdout pass ``sys.stderr``.
    """
    logging.basicConfig(format="%(message)s", level=level, stream=stream)
    renderer: Any = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(stream),
        cache_logger_on_first_use=True,
    )


def get_logger(**initial_values: Any) -> structlog.BoundLogger:
    return structlog.get_logger().bind(**initial_values)


__all__ = ["configure_logging", "get_logger"]
