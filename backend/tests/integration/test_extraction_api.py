"""Integration tests for the extraction pipeline API

Tests cover:
- Trigger for one blob and for the pending backlog, with dispatch
- Synchronous worker endpoint
- Stuck job reset
- Inventory, job ledger, lineage and stats views
- Extracted content by blob or file id
- Admin-only access
"""

import json
from datetime import timedelta
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from docspace.models import ExtractionJob
from docspace.models.base import utcnow

from conftest import SAMPLE_EXTRACTION

pytestmark = pytest.mark.integration


class TestTrigger:
    def test_single_blob_is_dispatched(self, client: TestClient, admin_headers, uploaded_blob, dispatcher):
        response = client.post("/api/v1/extraction/trigger", headers=admin_headers, json={"blob_id": str(uploaded_blob.blob_id)})

        assert response.status_code == 200
        data = response.json()
        assert data["jobs_created"] == 1
        assert data["message"] == "Created 1 extraction job(s)"
        assert [(str(j), str(c)) for j, c in dispatcher.extraction] == [(data["job_ids"][0], data["correlation_id"])]

    def test_claimed_blob_is_not_found(self, client: TestClient, admin_headers, uploaded_blob):
        payload = {"blob_id": str(uploaded_blob.blob_id)}
        client.post("/api/v1/extraction/trigger", headers=admin_headers, json=payload)

        response = client.post("/api/v1/extraction/trigger", headers=admin_headers, json=payload)

        assert response.status_code == 404

    def test_requires_target(self, client: TestClient, admin_headers):
        assert client.post("/api/v1/extraction/trigger", headers=admin_headers, json={}).status_code == 400

    def test_process_all(self, client: TestClient, admin_headers, uploaded_blob, dispatcher):
        data = client.post("/api/v1/extraction/trigger", headers=admin_headers, json={"process_all": True}).json()

        assert data["jobs_created"] == 1
        assert len(dispatcher.extraction) == 1

    def test_members_are_forbidden(self, client: TestClient, user_headers, uploaded_blob):
        response = client.post("/api/v1/extraction/trigger", headers=user_headers, json={"process_all": True})

        assert response.status_code == 403


class TestWorkerEndpoint:
    def test_runs_job(self, client: TestClient, admin_headers, uploaded_blob, llm):
        job_id = client.post(
            "/api/v1/extraction/trigger", headers=admin_headers, json={"blob_id": str(uploaded_blob.blob_id)},
        ).json()["job_ids"][0]
        llm.queue(json.dumps(SAMPLE_EXTRACTION))

        response = client.post("/api/v1/extraction/worker", headers=admin_headers, json={"job_id": job_id})

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        assert response.json()["chunk_count"] == 2

    def test_process_next_without_jobs(self, client: TestClient, admin_headers):
        response = client.post("/api/v1/extraction/worker", headers=admin_headers, json={"process_next": True})

        assert response.json() == {"message": "No jobs to process"}

    def test_requires_job_or_next(self, client: TestClient, admin_headers):
        assert client.post("/api/v1/extraction/worker", headers=admin_headers, json={}).status_code == 400


class TestResetStuck:
    def test_resets_old_jobs(self, client: TestClient, db_session: Session, admin_headers, uploaded_blob):
        client.post("/api/v1/extraction/trigger", headers=admin_headers, json={"blob_id": str(uploaded_blob.blob_id)})
        job = db_session.query(ExtractionJob).one()
        job.queued_at = utcnow() - timedelta(minutes=90)
        db_session.commit()

        response = client.post("/api/v1/extraction/reset-stuck", headers=admin_headers, json={"older_than_minutes": 60})

        assert response.json() == {"message": "Reset 1 stuck job(s)", "jobs_reset": 1, "blobs_reset": 1}

    def test_default_window(self, client: TestClient, admin_headers):
        response = client.post("/api/v1/extraction/reset-stuck", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["jobs_reset"] == 0


class TestLedgerViews:
    def test_inventory_filters(self, client: TestClient, admin_headers, extracted_blob, tenant):
        extracted = client.get("/api/v1/extraction/inventory?status=extracted", headers=admin_headers).json()
        pending = client.get("/api/v1/extraction/inventory?status=pending", headers=admin_headers).json()
        other = client.get(f"/api/v1/extraction/inventory?tenant_id={uuid4()}", headers=admin_headers).json()

        assert extracted["total"] == 1
        assert extracted["blobs"][0]["blob_id"] == str(extracted_blob.blob_id)
        assert pending["total"] == 0
        assert other["total"] == 0

    def test_invalid_status_filter(self, client: TestClient, admin_headers):
        assert client.get("/api/v1/extraction/inventory?status=bogus", headers=admin_headers).status_code == 400
        assert client.get("/api/v1/extraction/jobs?status=bogus", headers=admin_headers).status_code == 400

    def test_blob_lineage(self, client: TestClient, admin_headers, extracted_blob):
        data = client.get(f"/api/v1/extraction/inventory/{extracted_blob.blob_id}", headers=admin_headers).json()

        assert data["blob"]["status"] == "extracted"
        assert len(data["lineage"]) == 1
        assert data["lineage"][0]["job"]["status"] == "completed"
        assert data["lineage"][0]["outputs"][0]["chunk_count"] == 2

    def test_jobs_and_job_detail(self, client: TestClient, admin_headers, extracted_blob):
        jobs = client.get("/api/v1/extraction/jobs", headers=admin_headers).json()["jobs"]
        assert jobs[0]["file_name"] == "report.txt"

        detail = client.get(f"/api/v1/extraction/jobs/{jobs[0]['job_id']}", headers=admin_headers).json()

        assert detail["blob"]["file_name"] == "report.txt"
        assert detail["outputs"][0]["output_store"] == "extracted-chunks"

    def test_unknown_job(self, client: TestClient, admin_headers):
        assert client.get(f"/api/v1/extraction/jobs/{uuid4()}", headers=admin_headers).status_code == 404

    def test_stats(self, client: TestClient, admin_headers, extracted_blob):
        stats = client.get("/api/v1/extraction/jobs/stats", headers=admin_headers).json()

        assert stats["summary"]["completed"] == 1
        assert stats["daily"][0]["total_chunks"] == 2


class TestContent:
    def test_by_file_id(self, client: TestClient, admin_headers, extracted_blob, uploaded_file):
        response = client.get(f"/api/v1/extraction/content?file_id={uploaded_file.file_id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["content"]["title"] == "Quarterly Report"

    def test_requires_an_id(self, client: TestClient, admin_headers):
        assert client.get("/api/v1/extraction/content", headers=admin_headers).status_code == 400

    def test_not_extracted_yet(self, client: TestClient, admin_headers, uploaded_blob):
        response = client.get(f"/api/v1/extraction/content?blob_id={uploaded_blob.blob_id}", headers=admin_headers)

        assert response.status_code == 404
