"""
Logging infrastructure for sandbox-stream.

Exports logging configuration and utilities.
"""

from sandbox_stream.infrastructure.logging.logging_config import (
    configure_logging,
    get_logger,
    bind_context,
    clear_context,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
]
