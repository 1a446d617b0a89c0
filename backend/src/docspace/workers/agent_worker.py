"""Agent worker - Celery task that runs the autonomous agent loop."""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from celery import shared_task

from .base import BaseTask
from ..agents.service import run_agent_loop
from ..database import get_db_session
from ..dependencies import get_blob_store, get_llm_factory

logger = logging.getLogger(__name__)


@shared_task(name="agents.run_loop", base=BaseTask, bind=True)
def run_agent_loop_task(self, session_id: str, message: Optional[str] = None) -> Dict[str, Any]:
    """Work on a session until the goal is met, the plan pauses or max_steps runs out.

    Args:
        session_id: UUID string of an active session
        message: Optional user message recorded before the first iteration
    """
    logger.info("Received agent loop request", extra={"session_id": session_id})
    with get_db_session() as db:
        return run_agent_loop(db, UUID(session_id), get_llm_factory(), get_blob_store(), message=message)
