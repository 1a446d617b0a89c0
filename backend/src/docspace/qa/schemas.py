"""Pydantic schemas for Q&A endpoints"""

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel


class GenerateRequest(BaseModel):
    blob_id: Optional[UUID] = None
    file_id: Optional[UUID] = None
    questions_per_chunk: int = 3


class QAPairUpdate(BaseModel):
    question: Optional[str] = None
    answer: Optional[str] = None
    status: Optional[str] = None


class BulkApproveRequest(BaseModel):
    """Either explicit ids, or approve_all for one blob or file."""
    qa_ids: Optional[List[UUID]] = None
    approve_all: bool = False
    blob_id: Optional[UUID] = None
    file_id: Optional[UUID] = None
