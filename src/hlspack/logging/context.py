"""Job context for structured logging.

Provides context propagation for packaging jobs using contextvars,
enabling automatic injection of job_id and task into log records.
Variant tasks running in worker threads set their own task context.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

_job_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "job_id", default=None
)
_task: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "task", default=None
)


def set_job_context(job_id: str, task: str | None = None) -> None:
    """Set the current job context.

    Args:
        job_id: Job identifier.
        task: Task within the job (e.g., "720p", "audio:eng").
    """
    _job_id.set(job_id)
    _task.set(task)


def clear_job_context() -> None:
    """Clear the current job context."""
    _job_id.set(None)
    _task.set(None)


@contextmanager
def job_context(
    job_id: str,
    task: str | None = None,
) -> Generator[None, None, None]:
    """Context manager for job processing context.

    Sets job context on entry, restores the previous context on exit.

    Example:
        with job_context("a1b2c3", "720p"):
            logger.info("Segmenting variant")  # Automatically includes context
    """
    old_job_id = _job_id.get()
    old_task = _task.get()
    try:
        set_job_context(job_id, task)
        yield
    finally:
        _job_id.set(old_job_id)
        _task.set(old_task)


def get_job_context() -> tuple[str | None, str | None]:
    """Get current job context.

    Returns:
        Tuple of (job_id, task), either may be None.
    """
    return _job_id.get(), _task.get()


class JobContextFilter(logging.Filter):
    """Logging filter that injects job context into log records.

    Adds job_id and task attributes to LogRecord from contextvars. For text
    format, also adds a formatted job_tag like [Ja1b2c3:720p].
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Inject job context into log record. Never filters records out."""
        job_id, task = get_job_context()

        record.job_id = job_id
        record.task = task

        if job_id:
            if task:
                record.job_tag = f"[J{job_id}:{task}] "
            else:
                record.job_tag = f"[J{job_id}] "
        else:
            record.job_tag = ""

        return True
