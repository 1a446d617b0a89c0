"""Q&A worker - Celery task that generates question/answer pairs."""

import logging
from typing import Any, Dict
from uuid import UUID

from celery import shared_task

from .base import BaseTask
from ..database import get_db_session
from ..dependencies import get_blob_store, get_llm_factory
from ..qa.service import generate_qa_for_job

logger = logging.getLogger(__name__)


@shared_task(name="qa.generate_for_blob", base=BaseTask, bind=True)
def generate_qa_task(self, job_id: str) -> Dict[str, Any]:
    """Generate Q&A pairs for every chunk of a pending QAGenerationJob.

    Args:
        job_id: UUID string of the pending job created by POST /qa/generate
    """
    logger.info("Received Q&A generation job", extra={"job_id": job_id})
    with get_db_session() as db:
        return generate_qa_for_job(db, UUID(job_id), get_blob_store(), get_llm_factory())
