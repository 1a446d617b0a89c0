"""Pydantic schemas for extraction endpoints"""

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class TriggerRequest(BaseModel):
    """Queue extraction for one blob, or for up to 100 pending blobs."""
    blob_id: Optional[UUID] = None
    process_all: bool = False


class TriggerResponse(BaseModel):
    message: str
    correlation_id: UUID
    jobs_created: int
    job_ids: List[UUID]


class WorkerRequest(BaseModel):
    job_id: Optional[UUID] = None
    process_next: bool = False


class ResetStuckRequest(BaseModel):
    older_than_minutes: int = Field(30, ge=1, le=24 * 60)


class ResetStuckResponse(BaseModel):
    message: str
    jobs_reset: int
    blobs_reset: int
