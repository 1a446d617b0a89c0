"""Q&A generation over the latest extraction output of a blob.

Each chunk is sent to the generate_chunk_qa prompt on its own. A failing
chunk is recorded on the job and skipped; only an error outside the
per-chunk loop fails the whole job.
"""

import json
import logging
import re
from typing import Any, Dict, List
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..domain.ai.ports import LLMMessage
from ..domain.storage.ports import BlobStorePort
from ..extraction.queries import latest_output, load_chunk_records
from ..models import QAGenerationJob, ChunkQAPair
from ..models.base import utcnow
from ..observability.metrics import qa_pairs_generated_total
from ..prompts.service import PromptConfig, resolve_prompt, render_template

logger = logging.getLogger(__name__)

QA_PROMPT_NAME = "generate_chunk_qa"
MIN_QUESTIONS_PER_CHUNK = 1
MAX_QUESTIONS_PER_CHUNK = 10

_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")


def parse_qa_pairs(text: str) -> List[Dict[str, str]]:
    """Question/answer items from the first ``[...]`` span of a reply.

    Items missing either a question or an answer are dropped. Unparseable
    replies yield an empty list.
    """
    match = _JSON_ARRAY.search(text or "")
    if not match:
        return []
    try:
        items = json.loads(match.group(0))
    except json.JSONDecodeError:
        logger.warning("Q&A response is not valid JSON")
        return []
    if not isinstance(items, list):
        return []

    pairs = []
    for item in items:
        if not isinstance(item, dict):
            continue
        question = str(item.get("question") or "").strip()
        answer = str(item.get("answer") or "").strip()
        if question and answer:
            pairs.append({"question": question, "answer": answer})
    return pairs


def _chunk_prompt(config: PromptConfig, record: Dict[str, Any], questions_per_chunk: int, document_title: str) -> List[LLMMessage]:
    content = record.get("content") or {}
    section_path = (record.get("provenance") or {}).get("sectionPath") or []

    user_prompt = render_template(
        config.user_prompt_template,
        questionsPerChunk=questions_per_chunk,
        documentTitle=document_title,
        sectionPath=" > ".join(section_path) or "N/A",
        chunkText=content.get("chunkText", ""),
    )
    messages = []
    if config.system_prompt:
        messages.append(LLMMessage(role="system", content=config.system_prompt))
    messages.append(LLMMessage(role="user", content=user_prompt))
    return messages


def generate_qa_for_job(db: Session, job_id: UUID, blob_store: BlobStorePort, llm_factory) -> Dict[str, Any]:
    """Generate and store Q&A pairs for every chunk of a pending job.

    Returns:
        Summary dict with status, processed_chunks and total_qa_generated
    """
    claimed = db.execute(
        update(QAGenerationJob)
        .where(QAGenerationJob.job_id == job_id, QAGenerationJob.status == "pending")
        .values(status="processing", started_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount != 1:
        db.rollback()
        logger.info("Q&A job not pending, skipping", extra={"job_id": str(job_id)})
        return {"status": "skipped", "job_id": str(job_id)}
    db.commit()

    job = db.query(QAGenerationJob).filter(QAGenerationJob.job_id == job_id).one()
    log_extra = {"job_id": str(job_id), "tenant_id": str(job.tenant_id) if job.tenant_id else None}

    try:
        found = latest_output(db, job.blob_id)
        if found is None:
            raise LookupError("No extraction output found for this blob")
        records = load_chunk_records(blob_store, found[0])
        if records is None:
            raise LookupError("Extraction content not found in blob store")

        config = resolve_prompt(db, QA_PROMPT_NAME)
        provider = llm_factory.get(config.model_provider)
        document_title = ((records[0].get("content") or {}).get("title") if records else None) or "Unknown Document"

        errors: List[str] = []
        processed = 0
        generated = 0
        for index, record in enumerate(records, start=1):
            try:
                response = provider.complete(
                    _chunk_prompt(config, record, job.questions_per_chunk, document_title),
                    model=config.model_name,
                    temperature=config.temperature,
                    max_tokens=config.max_tokens,
                )
                chunk_text = (record.get("content") or {}).get("chunkText", "")
                for pair in parse_qa_pairs(response.content or ""):
                    db.add(
                        ChunkQAPair(
                            job_id=job.job_id,
                            blob_id=job.blob_id,
                            tenant_id=job.tenant_id,
                            chunk_index=index,
                            chunk_text=chunk_text,
                            question=pair["question"],
                            answer=pair["answer"],
                            status="pending",
                            generated_by=config.model_name,
                        )
                    )
                    generated += 1
                processed += 1
            except Exception as e:
                logger.exception(f"Q&A generation failed for chunk {index}", extra=log_extra)
                errors.append(f"Chunk {index}: {e}")

            job.processed_chunks = processed
            job.total_qa_generated = generated
            job.error_message = "\n".join(errors) or None
            db.commit()

        job.status = "completed"
        job.completed_at = utcnow()
        db.commit()
    except Exception as e:
        logger.exception("Q&A generation job failed", extra=log_extra)
        db.rollback()
        job = db.query(QAGenerationJob).filter(QAGenerationJob.job_id == job_id).one()
        job.status = "failed"
        job.error_message = str(e)
        job.completed_at = utcnow()
        db.commit()
        return {"status": "failed", "job_id": str(job_id), "error": str(e)}

    qa_pairs_generated_total.inc(generated)
    logger.info(f"Generated {generated} Q&A pairs from {processed} chunks", extra=log_extra)
    return {
        "status": "completed",
        "job_id": str(job_id),
        "processed_chunks": processed,
        "total_qa_generated": generated,
    }
