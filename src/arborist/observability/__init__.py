"""Observability module for Arborist.

Provides structured logging through structlog, rendered by rich on the console.
"""

from arborist.observability.logging import (
    close_file_logging,
    configure_logging,
    get_logger,
)

__all__ = [
    "close_file_logging",
    "configure_logging",
    "get_logger",
]
