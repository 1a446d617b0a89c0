"""Blob and extraction job state machines

Blob flow:
    pending -> processing -> extracted | failed
    failed -> processing (retry)
    processing -> pending (stuck-job reset)

Job flow:
    queued -> running -> completed | failed
    queued -> failed (stuck-job reset)
"""

from enum import Enum
from typing import Dict, List, Union


class BlobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    EXTRACTED = "extracted"
    FAILED = "failed"


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


BLOB_TRANSITIONS: Dict[BlobStatus, List[BlobStatus]] = {
    BlobStatus.PENDING: [BlobStatus.PROCESSING],
    BlobStatus.PROCESSING: [BlobStatus.EXTRACTED, BlobStatus.FAILED, BlobStatus.PENDING],
    BlobStatus.EXTRACTED: [],
    BlobStatus.FAILED: [BlobStatus.PROCESSING],
}

JOB_TRANSITIONS: Dict[JobStatus, List[JobStatus]] = {
    JobStatus.QUEUED: [JobStatus.RUNNING, JobStatus.FAILED],
    JobStatus.RUNNING: [JobStatus.COMPLETED, JobStatus.FAILED],
    JobStatus.COMPLETED: [],
    JobStatus.FAILED: [],
}

ALLOWED_TRANSITIONS = {
    "blob": BLOB_TRANSITIONS,
    "job": JOB_TRANSITIONS,
}

# Blob statuses from which an extraction may be triggered
CLAIMABLE_BLOB_STATUSES = (BlobStatus.PENDING.value, BlobStatus.FAILED.value)


class InvalidTransitionError(ValueError):
    """Raised when a status change is not allowed by the state machine."""

    def __init__(self, kind: str, from_status: str, to_status: str):
        self.kind = kind
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Invalid {kind} status transition: {from_status} -> {to_status}")


def can_transition(kind: str, from_status: Union[str, Enum], to_status: Union[str, Enum]) -> bool:
    """Check whether a status change is allowed.

    Example:
        >>> can_transition("blob", "pending", "processing")
        True
        >>> can_transition("job", "completed", "running")
        False
    """
    transitions = ALLOWED_TRANSITIONS.get(kind)
    if transitions is None:
        raise ValueError(f"Unknown state machine: {kind}")

    status_type = BlobStatus if kind == "blob" else JobStatus
    try:
        source = status_type(from_status)
        target = status_type(to_status)
    except ValueError:
        return False
    return target in transitions[source]


def transition_blob(blob, to_status: Union[str, BlobStatus]) -> None:
    """Move a BlobInventory row to a new status or raise InvalidTransitionError."""
    target = BlobStatus(to_status)
    if not can_transition("blob", blob.status, target):
        raise InvalidTransitionError("blob", blob.status, target.value)
    blob.status = target.value


def transition_job(job, to_status: Union[str, JobStatus]) -> None:
    """Move an ExtractionJob row to a new status or raise InvalidTransitionError."""
    target = JobStatus(to_status)
    if not can_transition("job", job.status, target):
        raise InvalidTransitionError("job", job.status, target.value)
    job.status = target.value
