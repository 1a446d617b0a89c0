"""Extraction worker - Celery task that runs queued extraction jobs.

The HTTP trigger claims blobs and inserts queued jobs; this task drains
them. Duplicate deliveries are harmless: run_extraction_job only starts
a job that is still queued.
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from celery import shared_task

from .base import BaseTask
from ..database import get_db_session
from ..dependencies import get_blob_store, get_llm_factory
from ..extraction.service import run_extraction_job

logger = logging.getLogger(__name__)


@shared_task(name="extraction.process_job", base=BaseTask, bind=True)
def process_extraction_job(self, job_id: str, correlation_id: Optional[str] = None) -> Dict[str, Any]:
    """Run one extraction job (background task).

    Args:
        job_id: UUID string of the queued extraction job
        correlation_id: Trigger correlation id, for log correlation

    Returns:
        Worker result: status completed|failed|skipped plus job details

    Example:
        celery_app.send_task(
            "extraction.process_job",
            kwargs={"job_id": str(job.job_id), "correlation_id": str(correlation_id)},
        )
    """
    logger.info(
        "Received extraction job",
        extra={"job_id": job_id, "correlation_id": correlation_id},
    )
    with get_db_session() as db:
        return run_extraction_job(db, UUID(job_id), get_blob_store(), get_llm_factory())
