"""Unit tests for Q&A pair parsing and generation jobs

Tests cover:
- Lenient parsing of model replies
- Per-chunk generation with prompt rendering
- Chunk failures recorded without failing the job
- Jobs without extraction output, and jobs already claimed
"""

import json

import pytest

from docspace.models import ChunkQAPair, QAGenerationJob
from docspace.qa.service import generate_qa_for_job, parse_qa_pairs


def qa_reply(*pairs):
    return json.dumps([{"question": q, "answer": a} for q, a in pairs])


@pytest.fixture
def qa_job(db_session, tenant, user, extracted_blob):
    job = QAGenerationJob(
        blob_id=extracted_blob.blob_id,
        tenant_id=tenant.tenant_id,
        questions_per_chunk=2,
        total_chunks=2,
        created_by=user.user_id,
    )
    db_session.add(job)
    db_session.commit()
    db_session.refresh(job)
    return job


class TestParseQAPairs:
    def test_plain_array(self):
        assert parse_qa_pairs(qa_reply(("What?", "This."))) == [{"question": "What?", "answer": "This."}]

    def test_array_inside_prose(self):
        text = "Sure!\n```json\n" + qa_reply(("Q1", "A1"), ("Q2", "A2")) + "\n```"
        assert [p["question"] for p in parse_qa_pairs(text)] == ["Q1", "Q2"]

    def test_incomplete_items_dropped(self):
        text = json.dumps([{"question": "Q"}, {"answer": "A"}, "junk", {"question": " Q3 ", "answer": " A3 "}])
        assert parse_qa_pairs(text) == [{"question": "Q3", "answer": "A3"}]

    @pytest.mark.parametrize("text", ["", "no json here", "[not valid json]", None])
    def test_unparseable(self, text):
        assert parse_qa_pairs(text) == []


class TestGenerateQAForJob:
    def test_generates_pairs_per_chunk(self, db_session, blob_store, llm, llm_factory, qa_job):
        llm.queue(
            qa_reply(("How much did revenue grow?", "12 percent"), ("When?", "Third quarter")),
            qa_reply(("What happened to costs?", "They stayed flat")),
        )

        result = generate_qa_for_job(db_session, qa_job.job_id, blob_store, llm_factory)

        assert result == {
            "status": "completed",
            "job_id": str(qa_job.job_id),
            "processed_chunks": 2,
            "total_qa_generated": 3,
        }
        pairs = db_session.query(ChunkQAPair).order_by(ChunkQAPair.chunk_index).all()
        assert [p.chunk_index for p in pairs] == [1, 1, 2]
        assert all(p.status == "pending" for p in pairs)
        assert pairs[2].chunk_text == "Operating costs remained flat year over year."
        assert llm_factory.requested[-1] == "gemini"

    def test_prompt_is_rendered(self, db_session, blob_store, llm, llm_factory, qa_job):
        llm.queue("[]", "[]")

        generate_qa_for_job(db_session, qa_job.job_id, blob_store, llm_factory)

        prompt = llm.calls[0]["messages"][-1].content
        assert "Generate exactly 2 question-answer pairs" in prompt
        assert "Document Title: Quarterly Report" in prompt
        assert "Section: Summary" in prompt
        assert "Revenue grew by 12 percent" in prompt
        assert llm.calls[0]["messages"][0].role == "system"

    def test_failing_chunk_is_recorded_and_skipped(self, db_session, blob_store, llm, llm_factory, qa_job):
        llm.queue(RuntimeError("model overloaded"), qa_reply(("Q", "A")))

        result = generate_qa_for_job(db_session, qa_job.job_id, blob_store, llm_factory)

        assert result["status"] == "completed"
        assert result["processed_chunks"] == 1
        db_session.refresh(qa_job)
        assert qa_job.status == "completed"
        assert qa_job.total_qa_generated == 1
        assert qa_job.error_message == "Chunk 1: model overloaded"

    def test_missing_extraction_output_fails_job(self, db_session, blob_store, llm_factory, uploaded_blob, tenant):
        job = QAGenerationJob(blob_id=uploaded_blob.blob_id, tenant_id=tenant.tenant_id)
        db_session.add(job)
        db_session.commit()

        result = generate_qa_for_job(db_session, job.job_id, blob_store, llm_factory)

        assert result["status"] == "failed"
        db_session.refresh(job)
        assert job.status == "failed"
        assert job.error_message == "No extraction output found for this blob"

    def test_missing_jsonl_object_fails_job(self, db_session, blob_store, llm_factory, qa_job):
        for key in blob_store.keys("extracted-chunks"):
            blob_store.delete("extracted-chunks", key)

        result = generate_qa_for_job(db_session, qa_job.job_id, blob_store, llm_factory)

        assert result["status"] == "failed"
        assert "not found in blob store" in result["error"]

    def test_job_not_pending_is_skipped(self, db_session, blob_store, llm, llm_factory, qa_job):
        qa_job.status = "completed"
        db_session.commit()

        result = generate_qa_for_job(db_session, qa_job.job_id, blob_store, llm_factory)

        assert result["status"] == "skipped"
        assert llm.calls == []
