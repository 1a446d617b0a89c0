"""Q&A generation and review endpoints"""

import logging
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth.dependencies import AuthContext, get_auth_context, authorize_access
from ..database import get_db
from ..dependencies import get_blob_store, get_dispatcher
from ..domain.storage.ports import BlobStorePort
from ..extraction.queries import resolve_blob, latest_output, load_chunk_records
from ..models import BlobInventory, QAGenerationJob, ChunkQAPair, QA_PAIR_STATUSES
from ..models.base import utcnow
from ..workers.dispatch import TaskDispatcher
from .schemas import GenerateRequest, QAPairUpdate, BulkApproveRequest
from .service import MIN_QUESTIONS_PER_CHUNK, MAX_QUESTIONS_PER_CHUNK

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/qa", tags=["Q&A"])


def _accessible_blob(db: Session, ctx: AuthContext, blob_id: Optional[UUID], file_id: Optional[UUID]) -> BlobInventory:
    if blob_id is None and file_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="blob_id or file_id is required")
    blob = resolve_blob(db, blob_id=blob_id, file_id=file_id)
    if blob is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blob not found")
    if not authorize_access(ctx, blob.tenant_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return blob


def _accessible_pair(db: Session, ctx: AuthContext, qa_id: UUID) -> ChunkQAPair:
    pair = db.query(ChunkQAPair).filter(ChunkQAPair.qa_id == qa_id).first()
    if not pair:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Q&A pair not found")
    if not authorize_access(ctx, pair.tenant_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
    return pair


def _validate_status(value: str) -> None:
    if value not in QA_PAIR_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid status. Must be one of: {', '.join(QA_PAIR_STATUSES)}",
        )


@router.post("/generate", status_code=status.HTTP_202_ACCEPTED)
async def generate(
    request: GenerateRequest,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
    blob_store: Annotated[BlobStorePort, Depends(get_blob_store)],
    dispatcher: Annotated[TaskDispatcher, Depends(get_dispatcher)],
):
    """Create a Q&A generation job for the blob's latest extraction.

    Raises:
        HTTPException 400: questions_per_chunk out of range, or no chunks
        HTTPException 403: Blob belongs to another tenant
        HTTPException 404: Unknown blob, or no extraction output
    """
    if not MIN_QUESTIONS_PER_CHUNK <= request.questions_per_chunk <= MAX_QUESTIONS_PER_CHUNK:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="questions_per_chunk must be between 1 and 10")

    blob = _accessible_blob(db, ctx, request.blob_id, request.file_id)

    found = latest_output(db, blob.blob_id)
    if found is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No extraction output found for this blob")
    records = load_chunk_records(blob_store, found[0])
    if records is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Extraction content not found")
    if not records:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No chunks found in extraction output")

    job = QAGenerationJob(
        blob_id=blob.blob_id,
        tenant_id=blob.tenant_id,
        questions_per_chunk=request.questions_per_chunk,
        total_chunks=len(records),
        status="pending",
        created_by=ctx.user_id,
    )
    db.add(job)
    db.commit()
    db.refresh(job)

    dispatcher.enqueue_qa(job.job_id)
    logger.info("Q&A generation queued", extra={"job_id": str(job.job_id), "tenant_id": str(blob.tenant_id)})
    return job.to_dict()


@router.get("")
async def list_pairs(
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
    blob_id: Optional[UUID] = None,
    file_id: Optional[UUID] = None,
    status_filter: Annotated[Optional[str], Query(alias="status")] = None,
):
    """Pairs of the blob's latest generation job, with review stats."""
    if status_filter:
        _validate_status(status_filter)
    blob = _accessible_blob(db, ctx, blob_id, file_id)

    job = (
        db.query(QAGenerationJob)
        .filter(QAGenerationJob.blob_id == blob.blob_id)
        .order_by(QAGenerationJob.created_at.desc())
        .first()
    )
    stats = {"total": 0, **{s: 0 for s in QA_PAIR_STATUSES}}
    if job is None:
        return {"job": None, "qa_pairs": [], "stats": stats}

    for pair_status, count in (
        db.query(ChunkQAPair.status, func.count(ChunkQAPair.qa_id))
        .filter(ChunkQAPair.job_id == job.job_id)
        .group_by(ChunkQAPair.status)
        .all()
    ):
        stats[pair_status] = count
        stats["total"] += count

    query = db.query(ChunkQAPair).filter(ChunkQAPair.job_id == job.job_id)
    if status_filter:
        query = query.filter(ChunkQAPair.status == status_filter)
    pairs = query.order_by(ChunkQAPair.chunk_index, ChunkQAPair.created_at).all()

    return {"job": job.to_dict(), "qa_pairs": [p.to_dict() for p in pairs], "stats": stats}


@router.patch("/{qa_id}")
async def update_pair(
    qa_id: UUID,
    request: QAPairUpdate,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    if request.question is None and request.answer is None and request.status is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="At least one field is required")
    if request.status is not None:
        _validate_status(request.status)

    pair = _accessible_pair(db, ctx, qa_id)
    if request.question is not None:
        pair.question = request.question
    if request.answer is not None:
        pair.answer = request.answer
    if request.status is not None:
        pair.status = request.status
        pair.reviewed_at = utcnow()
        pair.reviewed_by = ctx.user_id

    db.commit()
    db.refresh(pair)
    return pair.to_dict()


@router.post("/bulk-approve")
async def bulk_approve(
    request: BulkApproveRequest,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    """Approve pending pairs by id, or all pending pairs of a blob.

    Pairs the caller cannot access are skipped.
    """
    query = db.query(ChunkQAPair).filter(ChunkQAPair.status == "pending")
    if request.qa_ids:
        query = query.filter(ChunkQAPair.qa_id.in_(request.qa_ids))
    elif request.approve_all:
        blob = _accessible_blob(db, ctx, request.blob_id, request.file_id)
        query = query.filter(ChunkQAPair.blob_id == blob.blob_id)
    else:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="qa_ids or approve_all with blob_id/file_id is required")

    now = utcnow()
    approved = 0
    for pair in query.all():
        if not authorize_access(ctx, pair.tenant_id):
            continue
        pair.status = "approved"
        pair.reviewed_at = now
        pair.reviewed_by = ctx.user_id
        approved += 1
    db.commit()

    return {"approved_count": approved}


@router.delete("/{qa_id}")
async def delete_pair(
    qa_id: UUID,
    ctx: Annotated[AuthContext, Depends(get_auth_context)],
    db: Annotated[Session, Depends(get_db)],
):
    pair = _accessible_pair(db, ctx, qa_id)
    db.delete(pair)
    db.commit()
    return {"message": "Q&A pair deleted"}
