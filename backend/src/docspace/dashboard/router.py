"""Dashboard statistics for the caller's tenant"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth.dependencies import AuthContext, require_tenant_context
from ..database import get_db
from ..domain.extraction import BlobStatus, JobStatus
from ..models import BlobInventory, ChunkQAPair, ExtractionJob, File, Folder, QAGenerationJob
from ..models.base import isoformat

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])

RECENT_EXTRACTIONS_LIMIT = 5


def _status_counts(db: Session, column, tenant_column, tenant_id) -> dict:
    rows = db.query(column, func.count()).filter(tenant_column == tenant_id).group_by(column).all()
    return dict(rows)


@router.get("/stats")
async def dashboard_stats(
    ctx: Annotated[AuthContext, Depends(require_tenant_context)],
    db: Annotated[Session, Depends(get_db)],
):
    """File, extraction and Q&A counts plus the latest extraction jobs."""
    tenant_id = ctx.tenant_id

    total_files = db.query(func.count(File.file_id)).filter(File.tenant_id == tenant_id).scalar()
    total_folders = db.query(func.count(Folder.folder_id)).filter(Folder.tenant_id == tenant_id).scalar()

    blob_counts = _status_counts(db, BlobInventory.status, BlobInventory.tenant_id, tenant_id)
    total_chunks = (
        db.query(func.coalesce(func.sum(ExtractionJob.chunk_count), 0))
        .join(BlobInventory, BlobInventory.blob_id == ExtractionJob.blob_id)
        .filter(BlobInventory.tenant_id == tenant_id, ExtractionJob.status == JobStatus.COMPLETED.value)
        .scalar()
    )

    pair_counts = _status_counts(db, ChunkQAPair.status, ChunkQAPair.tenant_id, tenant_id)
    total_jobs = (
        db.query(func.count(QAGenerationJob.job_id)).filter(QAGenerationJob.tenant_id == tenant_id).scalar()
    )

    activity_at = func.coalesce(ExtractionJob.completed_at, ExtractionJob.started_at, ExtractionJob.queued_at)
    recent = (
        db.query(ExtractionJob, BlobInventory.file_name)
        .join(BlobInventory, BlobInventory.blob_id == ExtractionJob.blob_id)
        .filter(BlobInventory.tenant_id == tenant_id)
        .order_by(activity_at.desc())
        .limit(RECENT_EXTRACTIONS_LIMIT)
        .all()
    )

    return {
        "total_files": total_files or 0,
        "total_folders": total_folders or 0,
        "extraction": {
            "pending": blob_counts.get(BlobStatus.PENDING.value, 0),
            "processing": blob_counts.get(BlobStatus.PROCESSING.value, 0),
            "extracted": blob_counts.get(BlobStatus.EXTRACTED.value, 0),
            "failed": blob_counts.get(BlobStatus.FAILED.value, 0),
            "total_chunks": int(total_chunks or 0),
        },
        "qa": {
            "total_pairs": sum(pair_counts.values()),
            "pending": pair_counts.get("pending", 0),
            "approved": pair_counts.get("approved", 0),
            "rejected": pair_counts.get("rejected", 0),
            "total_jobs": total_jobs or 0,
        },
        "recent_extractions": [
            {
                "job_id": str(job.job_id),
                "blob_id": str(job.blob_id),
                "file_name": file_name,
                "status": job.status,
                "timestamp": isoformat(job.completed_at or job.started_at or job.queued_at),
            }
            for job, file_name in recent
        ],
    }
