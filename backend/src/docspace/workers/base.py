"""Base utilities for background tasks.

Every task receives its identifiers as UUID strings in keyword arguments
(JSON serializable). BaseTask rejects malformed ids before the task body
runs, so a bad enqueue fails fast instead of deep inside a query.

Task Signature Pattern:

    @shared_task(name="extraction.process_job", base=BaseTask, bind=True)
    def process_extraction_job(self, job_id: str, correlation_id: str = None):
        job_uuid = UUID(job_id)
        with get_db_session() as db:
            ...
"""

from typing import Any, Dict
from uuid import UUID

from celery import Task


def validate_uuid_kwargs(kwargs: Dict[str, Any]) -> None:
    """Check that every ``*_id`` keyword argument is a UUID string.

    Raises:
        ValueError: If a present id is not a valid UUID
    """
    for name, value in kwargs.items():
        if not name.endswith("_id") or value is None:
            continue
        try:
            UUID(str(value))
        except (ValueError, AttributeError, TypeError) as e:
            raise ValueError(f"Invalid {name} format '{value}': {str(e)}")


class BaseTask(Task):
    """Base Celery task class that validates id arguments.

    Usage:
        @shared_task(base=BaseTask, bind=True)
        def my_task(self, session_id: str):
            ...
    """

    def __call__(self, *args, **kwargs):
        validate_uuid_kwargs(kwargs)
        return super().__call__(*args, **kwargs)
