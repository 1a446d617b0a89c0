"""Hand work from HTTP handlers to Celery.

Tasks are sent by name so the API process never imports worker code.
Dispatch is fire-and-forget: the database row is the durable state, so a
broker outage leaves the job queued for the synchronous worker endpoint
or the next dispatch instead of failing the request.
"""

import logging
from typing import Optional
from uuid import UUID

from kombu.exceptions import OperationalError

from .celery_app import celery_app

logger = logging.getLogger(__name__)


class TaskDispatcher:
    """Enqueues background tasks by name."""

    def _send(self, task_name: str, **kwargs) -> bool:
        try:
            celery_app.send_task(task_name, kwargs=kwargs)
            return True
        except OperationalError:
            logger.exception(f"Failed to enqueue {task_name}", extra={k: v for k, v in kwargs.items() if k.endswith("_id")})
            return False

    def enqueue_extraction(self, job_id: UUID, correlation_id: Optional[UUID] = None) -> bool:
        return self._send(
            "extraction.process_job",
            job_id=str(job_id),
            correlation_id=str(correlation_id) if correlation_id else None,
        )

    def enqueue_qa(self, job_id: UUID) -> bool:
        return self._send("qa.generate_for_blob", job_id=str(job_id))

    def enqueue_agent_loop(self, session_id: UUID, message: Optional[str] = None) -> bool:
        return self._send("agents.run_loop", session_id=str(session_id), message=message)
