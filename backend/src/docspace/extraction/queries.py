"""Read-side queries over the extraction ledger and chunk outputs."""

import json
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..domain.extraction import JobStatus
from ..domain.storage.ports import BlobStorePort
from ..models import BlobInventory, ExtractionJob, ExtractionOutput, File
from ..models.base import utcnow, isoformat

STATS_WINDOW_DAYS = 30


def list_inventory(
    db: Session,
    status: Optional[str] = None,
    tenant_id: Optional[UUID] = None,
    limit: int = 50,
    offset: int = 0,
) -> Tuple[List[BlobInventory], int]:
    query = db.query(BlobInventory)
    if status:
        query = query.filter(BlobInventory.status == status)
    if tenant_id:
        query = query.filter(BlobInventory.tenant_id == tenant_id)

    total = query.count()
    blobs = query.order_by(BlobInventory.discovered_at.desc()).offset(offset).limit(limit).all()
    return blobs, total


def blob_lineage(db: Session, blob_id: UUID) -> List[Dict[str, Any]]:
    """Jobs for a blob, newest first, each with its outputs."""
    jobs = (
        db.query(ExtractionJob)
        .filter(ExtractionJob.blob_id == blob_id)
        .order_by(ExtractionJob.queued_at.desc())
        .all()
    )
    return [
        {"job": job.to_dict(), "outputs": [o.to_dict() for o in job.outputs]}
        for job in jobs
    ]


def list_jobs(
    db: Session,
    status: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    query = (
        db.query(ExtractionJob, BlobInventory.file_name, BlobInventory.mime_type)
        .join(BlobInventory, BlobInventory.blob_id == ExtractionJob.blob_id)
    )
    if status:
        query = query.filter(ExtractionJob.status == status)

    rows = query.order_by(ExtractionJob.queued_at.desc()).offset(offset).limit(limit).all()
    return [
        {**job.to_dict(), "file_name": file_name, "mime_type": mime_type}
        for job, file_name, mime_type in rows
    ]


def job_stats(db: Session) -> Dict[str, Any]:
    """Daily completion stats for the last 30 days plus status counts."""
    since = utcnow() - timedelta(days=STATS_WINDOW_DAYS)
    day = func.date(ExtractionJob.completed_at)

    daily_rows = (
        db.query(
            day.label("day"),
            func.count(ExtractionJob.job_id),
            func.coalesce(func.sum(ExtractionJob.chunk_count), 0),
            func.avg(ExtractionJob.processing_time_ms),
            func.coalesce(
                func.sum(
                    func.coalesce(ExtractionJob.input_tokens, 0)
                    + func.coalesce(ExtractionJob.output_tokens, 0)
                ),
                0,
            ),
        )
        .filter(
            ExtractionJob.status == JobStatus.COMPLETED.value,
            ExtractionJob.completed_at >= since,
        )
        .group_by(day)
        .order_by(day.desc())
        .all()
    )
    daily = [
        {
            "date": str(row_day),
            "jobs_completed": count,
            "total_chunks": int(chunks or 0),
            "avg_processing_ms": int(round(avg_ms)) if avg_ms is not None else None,
            "total_tokens": int(tokens or 0),
        }
        for row_day, count, chunks, avg_ms, tokens in daily_rows
    ]

    summary = {status.value: 0 for status in JobStatus}
    for status, count in (
        db.query(ExtractionJob.status, func.count(ExtractionJob.job_id))
        .group_by(ExtractionJob.status)
        .all()
    ):
        summary[status] = count

    return {"daily": daily, "summary": summary}


def resolve_blob(db: Session, blob_id: Optional[UUID] = None, file_id: Optional[UUID] = None) -> Optional[BlobInventory]:
    """Look up a blob directly or through the file that owns its blob_key."""
    if blob_id is not None:
        return db.query(BlobInventory).filter(BlobInventory.blob_id == blob_id).first()
    if file_id is None:
        return None

    file = db.query(File).filter(File.file_id == file_id).first()
    if file is None:
        return None
    return db.query(BlobInventory).filter(BlobInventory.blob_key == file.blob_key).first()


def latest_output(db: Session, blob_id: UUID) -> Optional[Tuple[ExtractionOutput, ExtractionJob]]:
    """Newest output of a completed job for the blob, by job completion."""
    row = (
        db.query(ExtractionOutput, ExtractionJob)
        .join(ExtractionJob, ExtractionJob.job_id == ExtractionOutput.job_id)
        .filter(
            ExtractionOutput.blob_id == blob_id,
            ExtractionJob.status == JobStatus.COMPLETED.value,
        )
        .order_by(ExtractionJob.completed_at.desc())
        .first()
    )
    return (row[0], row[1]) if row else None


def load_chunk_records(blob_store: BlobStorePort, output: ExtractionOutput) -> Optional[List[Dict[str, Any]]]:
    """Parsed JSONL records of an output, or None if the object is gone."""
    stored = blob_store.get(output.output_store, output.output_blob_key)
    if stored is None:
        return None
    return [
        json.loads(line)
        for line in stored.data.decode("utf-8").splitlines()
        if line.strip()
    ]


def assemble_content(records: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Document view of chunk records with 1-based chunk indexes."""
    chunks = []
    for index, record in enumerate(records, start=1):
        content = record.get("content") or {}
        provenance = record.get("provenance") or {}
        chunks.append({
            "index": index,
            "text": content.get("chunkText", ""),
            "page_start": provenance.get("pageStart"),
            "page_end": provenance.get("pageEnd"),
            "section_path": provenance.get("sectionPath") or [],
        })

    first = (records[0].get("content") or {}) if records else {}
    return {
        "title": first.get("title"),
        "language": first.get("language"),
        "full_text": "\n\n".join(chunk["text"] for chunk in chunks),
        "chunks": chunks,
    }


def extraction_content(
    db: Session,
    blob_store: BlobStorePort,
    blob_id: UUID,
) -> Optional[Dict[str, Any]]:
    """Latest extracted content for a blob.

    Raises:
        LookupError: Output row exists but its JSONL object is missing
    """
    found = latest_output(db, blob_id)
    if found is None:
        return None
    output, job = found

    records = load_chunk_records(blob_store, output)
    if records is None:
        raise LookupError("Extraction content not found in blob store")

    return {
        "blob_id": str(blob_id),
        "output_id": str(output.output_id),
        "chunk_count": output.chunk_count,
        "extracted_at": isoformat(job.completed_at),
        "content": assemble_content(records),
    }
