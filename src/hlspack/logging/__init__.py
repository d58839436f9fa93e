"""Structured logging module for hlspack.

Provides configurable logging with JSON format support and file rotation.
Includes job context support for parallel variant processing.
"""

from hlspack.logging.config import configure_logging
from hlspack.logging.context import (
    JobContextFilter,
    clear_job_context,
    get_job_context,
    job_context,
    set_job_context,
)
from hlspack.logging.handlers import JSONFormatter

__all__ = [
    "JSONFormatter",
    "JobContextFilter",
    "clear_job_context",
    "configure_logging",
    "get_job_context",
    "job_context",
    "set_job_context",
]
