"""Structured logging configuration."""

import logging
import sys
from typing import TextIO

import structlog


def parse_log_level(name: str) -> int:
    """Translate a level name such as ``"debug"`` into a logging constant.

    Args:
        name: Case-insensitive standard level name.

    Returns:
        Numeric logging level.

    Raises:
        ValueError: If the name is not a standard level.
    """
    level = logging.getLevelNamesMapping().get(name.upper())
    if level is None:
        msg = f"Unknown log level: {name}"
        raise ValueError(msg)
    return level


def configure_logging(
    level: int = logging.WARNING,
    output: TextIO = sys.stderr,
    json_format: bool = True,
) -> None:
    """Configure structured logging for the CLI.

    Logs go to stderr by default so they never mix with the ranking output
    and prompts written to stdout.

    Args:
        level: Logging level (default: WARNING).
        output: Output stream (default: stderr).
        json_format: Whether to render JSON lines instead of console text.
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=output.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=output,
        level=level,
    )


def bind_session_context(session_id: str) -> None:
    """Bind a voting session id to all subsequent log messages.

    Args:
        session_id: Unique session identifier.
    """
    structlog.contextvars.bind_contextvars(session_id=session_id)


def clear_session_context() -> None:
    """Remove the session id from log messages."""
    structlog.contextvars.unbind_contextvars("session_id")
