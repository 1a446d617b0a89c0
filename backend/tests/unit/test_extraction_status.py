"""Unit tests for the blob and extraction job state machines

Tests cover:
- Allowed and forbidden transitions for both machines
- transition_blob / transition_job guards
- Claimable blob statuses
"""

from types import SimpleNamespace

import pytest

from docspace.domain.extraction import (
    BlobStatus,
    JobStatus,
    CLAIMABLE_BLOB_STATUSES,
    InvalidTransitionError,
    can_transition,
    transition_blob,
    transition_job,
)


class TestBlobTransitions:
    """Blob flow: pending -> processing -> extracted | failed"""

    @pytest.mark.parametrize("source,target", [
        ("pending", "processing"),
        ("processing", "extracted"),
        ("processing", "failed"),
        ("processing", "pending"),
        ("failed", "processing"),
    ])
    def test_allowed(self, source, target):
        assert can_transition("blob", source, target) is True

    @pytest.mark.parametrize("source,target", [
        ("pending", "extracted"),
        ("extracted", "processing"),
        ("extracted", "pending"),
        ("failed", "extracted"),
    ])
    def test_forbidden(self, source, target):
        assert can_transition("blob", source, target) is False

    def test_extracted_is_terminal(self):
        for target in BlobStatus:
            assert can_transition("blob", BlobStatus.EXTRACTED, target) is False

    def test_unknown_status_is_not_allowed(self):
        assert can_transition("blob", "pending", "archived") is False

    def test_unknown_machine_raises(self):
        with pytest.raises(ValueError, match="Unknown state machine"):
            can_transition("order", "pending", "processing")


class TestJobTransitions:
    """Job flow: queued -> running -> completed | failed"""

    def test_queued_to_running(self):
        assert can_transition("job", JobStatus.QUEUED, JobStatus.RUNNING) is True

    def test_queued_can_fail_directly(self):
        """Stuck-job reset fails jobs that never started"""
        assert can_transition("job", "queued", "failed") is True

    def test_completed_cannot_restart(self):
        assert can_transition("job", "completed", "running") is False

    def test_failed_is_terminal(self):
        for target in JobStatus:
            assert can_transition("job", JobStatus.FAILED, target) is False


class TestTransitionHelpers:
    def test_transition_blob_updates_status(self):
        blob = SimpleNamespace(status="pending")
        transition_blob(blob, BlobStatus.PROCESSING)
        assert blob.status == "processing"

    def test_transition_blob_rejects_invalid_move(self):
        blob = SimpleNamespace(status="extracted")
        with pytest.raises(InvalidTransitionError) as exc_info:
            transition_blob(blob, "processing")
        assert exc_info.value.from_status == "extracted"
        assert exc_info.value.to_status == "processing"
        assert blob.status == "extracted"

    def test_transition_job_accepts_strings(self):
        job = SimpleNamespace(status="running")
        transition_job(job, "completed")
        assert job.status == "completed"

    def test_transition_job_rejects_invalid_move(self):
        job = SimpleNamespace(status="completed")
        with pytest.raises(InvalidTransitionError, match="completed -> failed"):
            transition_job(job, JobStatus.FAILED)


def test_only_pending_and_failed_blobs_are_claimable():
    assert set(CLAIMABLE_BLOB_STATUSES) == {"pending", "failed"}
