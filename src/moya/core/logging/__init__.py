"""Structured logging module.

This module provides utilities for structured logging using structlog and logfire.
"""

from .base import get_logger
from .context import (
    bind_log_context,
    clear_log_context,
    get_log_context,
    update_log_context,
)
from .setup import setup_logging

__all__ = [
    "bind_log_context",
    "clear_log_context",
    "get_log_context",
    "get_logger",
    "setup_logging",
    "update_log_context",
]
