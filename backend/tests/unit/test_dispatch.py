"""Unit tests for background task dispatch

Tests cover:
- Task names and keyword arguments sent to Celery
- Broker outages reported as False instead of raising
- UUID validation of task keyword arguments
"""

from uuid import uuid4

import pytest
from kombu.exceptions import OperationalError

from docspace.workers.base import validate_uuid_kwargs
from docspace.workers.celery_app import celery_app
from docspace.workers.dispatch import TaskDispatcher


@pytest.fixture
def sent(monkeypatch):
    calls = []
    monkeypatch.setattr(celery_app, "send_task", lambda name, kwargs=None: calls.append((name, kwargs)))
    return calls


class TestTaskDispatcher:
    def test_extraction(self, sent):
        job_id, correlation_id = uuid4(), uuid4()

        assert TaskDispatcher().enqueue_extraction(job_id, correlation_id) is True
        assert sent == [("extraction.process_job", {"job_id": str(job_id), "correlation_id": str(correlation_id)})]

    def test_extraction_without_correlation(self, sent):
        job_id = uuid4()

        TaskDispatcher().enqueue_extraction(job_id)

        assert sent[0][1]["correlation_id"] is None

    def test_qa(self, sent):
        job_id = uuid4()

        TaskDispatcher().enqueue_qa(job_id)

        assert sent == [("qa.generate_for_blob", {"job_id": str(job_id)})]

    def test_agent_loop(self, sent):
        session_id = uuid4()

        TaskDispatcher().enqueue_agent_loop(session_id, "Start")

        assert sent == [("agents.run_loop", {"session_id": str(session_id), "message": "Start"})]

    def test_broker_outage(self, monkeypatch):
        def unreachable(name, kwargs=None):
            raise OperationalError("Connection refused")

        monkeypatch.setattr(celery_app, "send_task", unreachable)

        assert TaskDispatcher().enqueue_qa(uuid4()) is False


class TestValidateUUIDKwargs:
    def test_valid_ids(self):
        validate_uuid_kwargs({"job_id": str(uuid4()), "correlation_id": None, "message": "not an id"})

    def test_invalid_id(self):
        with pytest.raises(ValueError, match="Invalid session_id format"):
            validate_uuid_kwargs({"session_id": "abc"})
