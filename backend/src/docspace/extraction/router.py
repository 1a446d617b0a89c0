"""Extraction pipeline endpoints (admin only)"""

import logging
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..auth.dependencies import AuthContext, require_admin
from ..database import get_db
from ..dependencies import get_blob_store, get_llm_factory, get_dispatcher
from ..domain.extraction import BlobStatus, JobStatus
from ..domain.storage.ports import BlobStorePort
from ..infrastructure.ai.factory import LLMProviderFactory
from ..models import BlobInventory, ExtractionJob
from ..workers.dispatch import TaskDispatcher
from . import queries
from .schemas import TriggerRequest, TriggerResponse, WorkerRequest, ResetStuckRequest, ResetStuckResponse
from .service import (
    BlobNotAvailableError,
    ExtractionRequestError,
    trigger_extraction,
    run_extraction_job,
    process_next_job,
    reset_stuck_jobs,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/extraction", tags=["Extraction"])

BLOB_STATUS_VALUES = {s.value for s in BlobStatus}
JOB_STATUS_VALUES = {s.value for s in JobStatus}


@router.post("/trigger", response_model=TriggerResponse)
def trigger(
    request: TriggerRequest,
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
    dispatcher: Annotated[TaskDispatcher, Depends(get_dispatcher)],
):
    """Claim blobs, record queued jobs and hand them to the worker.

    Raises:
        HTTPException 400: Neither blob_id nor process_all
        HTTPException 404: Blob missing or already claimed
    """
    try:
        result = trigger_extraction(db, blob_id=request.blob_id, process_all=request.process_all)
    except ExtractionRequestError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except BlobNotAvailableError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    for job_id in result.job_ids:
        dispatcher.enqueue_extraction(job_id, result.correlation_id)

    return TriggerResponse(
        message=f"Created {len(result.job_ids)} extraction job(s)",
        correlation_id=result.correlation_id,
        jobs_created=len(result.job_ids),
        job_ids=result.job_ids,
    )


@router.post("/worker")
def worker(
    request: WorkerRequest,
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
    blob_store: Annotated[BlobStorePort, Depends(get_blob_store)],
    llm_factory: Annotated[LLMProviderFactory, Depends(get_llm_factory)],
):
    """Run a job synchronously in the request."""
    if request.job_id is not None:
        return run_extraction_job(db, request.job_id, blob_store, llm_factory)
    if request.process_next:
        return process_next_job(db, blob_store, llm_factory)
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Either job_id or process_next is required",
    )


@router.post("/reset-stuck", response_model=ResetStuckResponse)
async def reset_stuck(
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
    request: Optional[ResetStuckRequest] = None,
):
    minutes = request.older_than_minutes if request else 30
    counts = reset_stuck_jobs(db, older_than_minutes=minutes)
    return ResetStuckResponse(
        message=f"Reset {counts['jobs_reset']} stuck job(s)",
        **counts,
    )


@router.get("/inventory")
async def list_inventory(
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
    status_filter: Annotated[Optional[str], Query(alias="status")] = None,
    tenant_id: Optional[UUID] = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    if status_filter and status_filter not in BLOB_STATUS_VALUES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid status: {status_filter}")

    blobs, total = queries.list_inventory(db, status_filter, tenant_id, limit, offset)
    return {"blobs": [b.to_dict() for b in blobs], "total": total}


@router.get("/inventory/{blob_id}")
async def get_inventory_blob(
    blob_id: UUID,
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    blob = db.query(BlobInventory).filter(BlobInventory.blob_id == blob_id).first()
    if not blob:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blob not found")
    return {"blob": blob.to_dict(), "lineage": queries.blob_lineage(db, blob_id)}


@router.get("/jobs")
async def list_jobs(
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
    status_filter: Annotated[Optional[str], Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
):
    if status_filter and status_filter not in JOB_STATUS_VALUES:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid status: {status_filter}")
    return {"jobs": queries.list_jobs(db, status_filter, limit, offset)}


# Declared before /jobs/{job_id} so "stats" is not parsed as a job id
@router.get("/jobs/stats")
async def job_stats(
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    return queries.job_stats(db)


@router.get("/jobs/{job_id}")
async def get_job(
    job_id: UUID,
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
):
    job = db.query(ExtractionJob).filter(ExtractionJob.job_id == job_id).first()
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")

    blob = job.blob
    return {
        "job": job.to_dict(),
        "blob": {
            "blob_id": str(blob.blob_id),
            "file_name": blob.file_name,
            "mime_type": blob.mime_type,
            "size_bytes": blob.size_bytes,
            "status": blob.status,
        },
        "outputs": [o.to_dict() for o in job.outputs],
    }


@router.get("/content")
async def get_content(
    ctx: Annotated[AuthContext, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
    blob_store: Annotated[BlobStorePort, Depends(get_blob_store)],
    blob_id: Optional[UUID] = None,
    file_id: Optional[UUID] = None,
):
    """Latest extracted content of a blob, addressed by blob or file id."""
    if blob_id is None and file_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="blob_id or file_id is required")

    blob = queries.resolve_blob(db, blob_id=blob_id, file_id=file_id)
    if blob is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No extraction output found for this blob")

    try:
        content = queries.extraction_content(db, blob_store, blob.blob_id)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if content is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No extraction output found for this blob")
    return content
