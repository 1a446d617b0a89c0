"""Extraction job lifecycle: trigger, run, reset.

The blob_inventory row is the queue and extraction_jobs is the ledger.
Both are only ever moved with conditional UPDATEs, so concurrent
triggers and duplicate worker dispatches cannot double-process a blob.

Lifecycle:
    trigger_extraction  blob pending|failed -> processing, job queued
    run_extraction_job  job queued -> running -> completed|failed,
                        blob processing -> extracted|failed
    reset_stuck_jobs    job queued|running -> failed, blob processing -> pending
"""

import hashlib
import logging
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from ..domain.ai.ports import LLMResponse
from ..domain.extraction import (
    BlobStatus,
    JobStatus,
    CLAIMABLE_BLOB_STATUSES,
    SCHEMA_VERSION,
    build_chunk_records,
    parse_extraction_response,
    to_jsonl,
)
from ..domain.storage.ports import BlobStorePort, EXTRACTED_CHUNKS
from ..models import BlobInventory, ExtractionJob, ExtractionOutput, ChunkIndex
from ..models.base import utcnow
from ..observability.tracing import get_tracer
from ..observability.metrics import (
    extraction_jobs_total,
    extraction_duration_seconds,
    extraction_chunks_total,
)
from ..prompts.service import resolve_prompt, prompt_hash
from .document_input import build_document_input, build_extraction_request

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

EXTRACTION_VERSION = "2026-01-10"
MODEL_VERSION = "gemini-2.5-pro-preview"
PROCESS_ALL_LIMIT = 100
DEFAULT_STUCK_MINUTES = 30
EXTRACTION_PROMPT_NAME = "extraction"


class ExtractionRequestError(ValueError):
    """The trigger request names nothing to extract."""


class BlobNotAvailableError(LookupError):
    """The blob does not exist or is not in a claimable status."""


class ExtractionFailure(Exception):
    """A job-level failure whose message is stored on the job."""


@dataclass
class TriggerResult:
    correlation_id: UUID
    job_ids: List[UUID] = field(default_factory=list)


def _claim_blob(db: Session, blob_id: UUID, correlation_id: UUID, hash_value: str) -> Optional[ExtractionJob]:
    """Move one blob to processing and insert its queued job.

    Returns None when another trigger already claimed the blob (or it
    does not exist). Nothing is committed here.
    """
    claimed = db.execute(
        update(BlobInventory)
        .where(
            BlobInventory.blob_id == blob_id,
            BlobInventory.status.in_(CLAIMABLE_BLOB_STATUSES),
        )
        .values(status=BlobStatus.PROCESSING.value, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount != 1:
        return None

    retry_count = (
        db.query(func.count(ExtractionJob.job_id))
        .filter(ExtractionJob.blob_id == blob_id, ExtractionJob.status == JobStatus.FAILED.value)
        .scalar()
    )
    job = ExtractionJob(
        blob_id=blob_id,
        extraction_version=EXTRACTION_VERSION,
        model_version=MODEL_VERSION,
        prompt_hash=hash_value,
        status=JobStatus.QUEUED.value,
        retry_count=retry_count or 0,
        correlation_id=correlation_id,
    )
    db.add(job)
    db.flush()
    return job


def trigger_extraction(db: Session, blob_id: Optional[UUID] = None, process_all: bool = False) -> TriggerResult:
    """Queue extraction jobs for one blob or for the pending backlog.

    Each claim and its job insert share the transaction committed at the
    end, so the inventory and the ledger never disagree.

    Raises:
        ExtractionRequestError: Neither blob_id nor process_all given
        BlobNotAvailableError: Single-blob trigger lost the claim
    """
    if blob_id is None and not process_all:
        raise ExtractionRequestError("Either blob_id or process_all is required")

    correlation_id = uuid4()
    hash_value = prompt_hash(resolve_prompt(db, EXTRACTION_PROMPT_NAME))

    if process_all:
        candidates = [
            row.blob_id
            for row in db.query(BlobInventory.blob_id)
            .filter(BlobInventory.status == BlobStatus.PENDING.value)
            .order_by(BlobInventory.extraction_priority.desc(), BlobInventory.discovered_at.asc())
            .limit(PROCESS_ALL_LIMIT)
        ]
    else:
        candidates = [blob_id]

    result = TriggerResult(correlation_id=correlation_id)
    for candidate in candidates:
        job = _claim_blob(db, candidate, correlation_id, hash_value)
        if job is None:
            if not process_all:
                db.rollback()
                raise BlobNotAvailableError("Blob not found or already processed")
            continue
        result.job_ids.append(job.job_id)

    db.commit()

    logger.info(
        f"Created {len(result.job_ids)} extraction job(s)",
        extra={"correlation_id": str(correlation_id)},
    )
    return result


def _move_job(db: Session, job_id: UUID, from_statuses, **values) -> bool:
    """Conditionally update one job; False when it had already left ``from_statuses``."""
    moved = db.execute(
        update(ExtractionJob)
        .where(ExtractionJob.job_id == job_id, ExtractionJob.status.in_([s.value for s in from_statuses]))
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    return moved.rowcount == 1


def _move_blob(db: Session, blob_id: UUID, from_status: BlobStatus, to_status: BlobStatus) -> bool:
    moved = db.execute(
        update(BlobInventory)
        .where(BlobInventory.blob_id == blob_id, BlobInventory.status == from_status.value)
        .values(status=to_status.value, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    return moved.rowcount == 1


def _fail_job(db: Session, job_id: UUID, message: str, processing_time_ms: Optional[int]) -> bool:
    """Fail a queued or running job and its processing blob.

    Returns False, writing nothing, when the job already reached a final
    status (e.g. it was reset while the worker was still busy).
    """
    blob_id = db.query(ExtractionJob.blob_id).filter(ExtractionJob.job_id == job_id).scalar()
    failed = _move_job(
        db,
        job_id,
        (JobStatus.QUEUED, JobStatus.RUNNING),
        status=JobStatus.FAILED.value,
        error_message=message,
        completed_at=utcnow(),
        processing_time_ms=processing_time_ms,
    )
    if not failed:
        db.rollback()
        return False

    _move_blob(db, blob_id, BlobStatus.PROCESSING, BlobStatus.FAILED)
    db.commit()
    return True


def _call_model(db: Session, blob: BlobInventory, data: bytes, llm_factory) -> LLMResponse:
    config = resolve_prompt(db, EXTRACTION_PROMPT_NAME)
    document = build_document_input(data, blob.mime_type, blob.file_name)
    messages, attachments = build_extraction_request(config, document, blob.file_name)

    provider = llm_factory.get(config.model_provider)
    response = provider.complete(
        messages,
        model=config.model_name,
        temperature=config.temperature,
        max_tokens=config.max_tokens,
        attachments=attachments or None,
        json_mode=True,
    )
    if not response.content:
        raise ExtractionFailure("No content returned from model")
    return response


def _discard_output(db: Session, blob_store: BlobStorePort, output_key: str) -> None:
    """Roll back the output rows and remove the JSONL written for them."""
    db.rollback()
    blob_store.delete(EXTRACTED_CHUNKS, output_key)


def _execute(db: Session, job: ExtractionJob, blob_store: BlobStorePort, llm_factory, started: float) -> Dict[str, Any]:
    blob = db.query(BlobInventory).filter(BlobInventory.blob_id == job.blob_id).first()
    if blob is None:
        raise ExtractionFailure("Blob not found in inventory")

    stored = blob_store.get(blob.source_store, blob.blob_key)
    if stored is None:
        raise ExtractionFailure("File not found in blob store")

    response = _call_model(db, blob, stored.data, llm_factory)
    extracted = parse_extraction_response(response.content, blob.file_name)
    records = build_chunk_records(extracted, blob, EXTRACTION_VERSION)

    payload = to_jsonl(records).encode("utf-8")
    output_key = f"{blob.blob_id}/{uuid4()}.jsonl"
    blob_store.put(
        EXTRACTED_CHUNKS,
        output_key,
        payload,
        content_type="application/x-ndjson",
        metadata={
            "document-id": str(blob.blob_id),
            "chunk-count": str(len(records)),
            "extraction-version": EXTRACTION_VERSION,
            "job-id": str(job.job_id),
        },
    )

    output = ExtractionOutput(
        job_id=job.job_id,
        blob_id=blob.blob_id,
        output_store=EXTRACTED_CHUNKS,
        output_blob_key=output_key,
        output_type="chunk_jsonl",
        chunk_count=len(records),
        size_bytes=len(payload),
        content_hash_sha256=hashlib.sha256(payload).hexdigest(),
        schema_version=SCHEMA_VERSION,
    )
    db.add(output)
    db.flush()

    for sequence, record in enumerate(records):
        db.add(
            ChunkIndex(
                output_id=output.output_id,
                chunk_id=record.chunk_id,
                blob_id=blob.blob_id,
                document_id=blob.blob_id,
                chunk_sequence=sequence,
                page_start=record.provenance.page_start,
                page_end=record.provenance.page_end,
                section_path=record.provenance.section_path,
                char_count=len(record.content.chunk_text),
                language=record.content.language,
                confidence=record.quality.confidence,
            )
        )

    processing_time_ms = int((time.perf_counter() - started) * 1000)
    db.flush()
    completed = _move_job(
        db,
        job.job_id,
        (JobStatus.RUNNING,),
        status=JobStatus.COMPLETED.value,
        completed_at=utcnow(),
        processing_time_ms=processing_time_ms,
        chunk_count=len(records),
        input_tokens=response.tokens_in,
        output_tokens=response.tokens_out,
    )
    if not completed:
        _discard_output(db, blob_store, output_key)
        return {
            "status": "skipped",
            "job_id": str(job.job_id),
            "message": "Job left running status during extraction",
        }
    if not _move_blob(db, blob.blob_id, BlobStatus.PROCESSING, BlobStatus.EXTRACTED):
        _discard_output(db, blob_store, output_key)
        raise ExtractionFailure("Blob left processing status during extraction")
    db.commit()

    extraction_chunks_total.inc(len(records))

    return {
        "status": JobStatus.COMPLETED.value,
        "job_id": str(job.job_id),
        "blob_id": str(blob.blob_id),
        "file_name": blob.file_name,
        "chunk_count": len(records),
        "processing_time_ms": processing_time_ms,
        "output_blob_key": output_key,
    }


def run_extraction_job(db: Session, job_id: UUID, blob_store: BlobStorePort, llm_factory) -> Dict[str, Any]:
    """Run one queued extraction job to completion or failure.

    The job is claimed with a conditional UPDATE; a job that is no longer
    queued (already claimed by another worker, or reset) is skipped.
    Once claimed the job always ends completed or failed.

    Args:
        db: Session (committed by this function)
        job_id: Job to run
        blob_store: Source of file bytes and sink for chunk JSONL
        llm_factory: Object with ``get(provider_name) -> LLMProviderPort``

    Returns:
        Worker result dict with a 'status' of completed, failed or skipped
    """
    claimed = db.execute(
        update(ExtractionJob)
        .where(ExtractionJob.job_id == job_id, ExtractionJob.status == JobStatus.QUEUED.value)
        .values(status=JobStatus.RUNNING.value, started_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount != 1:
        db.rollback()
        extraction_jobs_total.labels(status="skipped").inc()
        logger.info("Extraction job not queued, skipping", extra={"job_id": str(job_id)})
        return {"status": "skipped", "job_id": str(job_id), "message": "Job is not queued"}
    db.commit()

    job = db.query(ExtractionJob).filter(ExtractionJob.job_id == job_id).one()
    log_extra = {
        "job_id": str(job_id),
        "correlation_id": str(job.correlation_id) if job.correlation_id else None,
    }
    logger.info("Extraction job started", extra=log_extra)

    started = time.perf_counter()
    try:
        with tracer.start_as_current_span("extraction.run_job") as span:
            span.set_attribute("docspace.job_id", str(job_id))
            span.set_attribute("docspace.correlation_id", log_extra["correlation_id"] or "")
            result = _execute(db, job, blob_store, llm_factory, started)
    except Exception as e:
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.exception(f"Extraction job failed: {e}", extra=log_extra)
        db.rollback()
        if not _fail_job(db, job_id, str(e), elapsed_ms):
            logger.warning("Extraction job already finalized, failure not recorded", extra=log_extra)
        extraction_jobs_total.labels(status="failed").inc()
        extraction_duration_seconds.observe(elapsed_ms / 1000)
        return {"status": JobStatus.FAILED.value, "job_id": str(job_id), "error": str(e)}

    if result["status"] == "skipped":
        extraction_jobs_total.labels(status="skipped").inc()
        logger.warning("Extraction job was finalized elsewhere, output discarded", extra=log_extra)
        return result

    extraction_jobs_total.labels(status="completed").inc()
    extraction_duration_seconds.observe(result["processing_time_ms"] / 1000)
    logger.info(
        f"Extraction job completed: {result['chunk_count']} chunks in {result['processing_time_ms']}ms",
        extra=log_extra,
    )
    return result


def process_next_job(db: Session, blob_store: BlobStorePort, llm_factory) -> Dict[str, Any]:
    """Run the oldest queued job, if any."""
    job = (
        db.query(ExtractionJob)
        .filter(ExtractionJob.status == JobStatus.QUEUED.value)
        .order_by(ExtractionJob.queued_at.asc())
        .first()
    )
    if job is None:
        return {"message": "No jobs to process"}
    return run_extraction_job(db, job.job_id, blob_store, llm_factory)


def reset_stuck_jobs(db: Session, older_than_minutes: int = DEFAULT_STUCK_MINUTES) -> Dict[str, int]:
    """Fail jobs that have been queued or running for too long.

    Their blobs go back to pending so they can be triggered again.
    """
    now = utcnow()
    cutoff = now - timedelta(minutes=older_than_minutes)
    message = f"Reset: job exceeded {older_than_minutes} minutes"

    stuck = (
        db.query(ExtractionJob.job_id, ExtractionJob.blob_id)
        .filter(
            ExtractionJob.status.in_((JobStatus.QUEUED.value, JobStatus.RUNNING.value)),
            func.coalesce(ExtractionJob.started_at, ExtractionJob.queued_at) < cutoff,
        )
        .all()
    )

    jobs_reset = 0
    blob_ids = set()
    for job_id, blob_id in stuck:
        if _move_job(
            db,
            job_id,
            (JobStatus.QUEUED, JobStatus.RUNNING),
            status=JobStatus.FAILED.value,
            error_message=message,
            completed_at=now,
        ):
            jobs_reset += 1
            blob_ids.add(blob_id)

    blobs_reset = 0
    if blob_ids:
        blobs_reset = db.execute(
            update(BlobInventory)
            .where(
                BlobInventory.blob_id.in_(list(blob_ids)),
                BlobInventory.status == BlobStatus.PROCESSING.value,
            )
            .values(status=BlobStatus.PENDING.value, updated_at=now)
            .execution_options(synchronize_session=False)
        ).rowcount

    db.commit()

    if jobs_reset:
        logger.warning(f"Reset {jobs_reset} stuck extraction job(s), {blobs_reset} blob(s) back to pending")
    return {"jobs_reset": jobs_reset, "blobs_reset": blobs_reset}
