"""Celery application initialization.

Run a worker locally:
  celery -A docspace.workers.celery_app.celery_app worker --loglevel=info
"""

from celery import Celery
from celery.signals import setup_logging

from ..config import settings
from ..observability.logging_config import configure_logging

celery_app = Celery(
    "docspace",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "docspace.workers.extraction_worker",
        "docspace.workers.qa_worker",
        "docspace.workers.agent_worker",
    ],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=100,
    broker_connection_retry_on_startup=True,
)


@setup_logging.connect
def _configure_worker_logging(**kwargs):
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)
