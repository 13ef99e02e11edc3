"""Observability module for logging."""

from src.observability.logging import (
    bind_session_context,
    clear_session_context,
    configure_logging,
    parse_log_level,
)


__all__ = [
    "bind_session_context",
    "clear_session_context",
    "configure_logging",
    "parse_log_level",
]
