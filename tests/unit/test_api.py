# tests/unit/test_api.py
"""
Tests for the FastAPI surface.

All components are in-memory and the reasoning services are fakes; the
client is used as a context manager so background jobs keep running.
"""

import time

import pytest
from fastapi.testclient import TestClient

from lorekeep.api.app import create_app
from lorekeep.api.dependencies import build_services
from lorekeep.core.config import LorekeepConfig
from lorekeep.core.exceptions import StaleFingerprintStoreUnavailable
from lorekeep.ingest.hashing import fingerprint
from lorekeep.ingest.state import FingerprintRecord, InMemoryFingerprintStore
from lorekeep.jobs.models import JobState, ProcessingJob
from lorekeep.jobs.store import InMemoryJobStore
from lorekeep.knowledge.audit import MergeAuditLog
from lorekeep.knowledge.models import KnowledgeCategory, KnowledgeItem
from lorekeep.knowledge.store import InMemoryKnowledgeStore


class UnreadableStore(InMemoryFingerprintStore):
    def records_for(self, project_id):
        raise StaleFingerprintStoreUnavailable("locked")


@pytest.fixture
def make_client(story_responses, fake_gateway_cls, fake_merge_cls):
    def build(fingerprint_store=None, knowledge_store=None):
        services = build_services(
            LorekeepConfig(),
            job_store=InMemoryJobStore(),
            fingerprint_store=fingerprint_store if fingerprint_store is not None else InMemoryFingerprintStore(),
            knowledge_store=knowledge_store or InMemoryKnowledgeStore(),
            gateway=fake_gateway_cls(story_responses),
            merge_service=fake_merge_cls(),
            audit_log=MergeAuditLog(),
        )
        return TestClient(create_app(services=services, run_supervisor=False))

    return build


@pytest.fixture
def client(make_client):
    with make_client() as c:
        yield c


def _wait_for_terminal(client: TestClient, job_id: str, timeout: float = 5.0) -> dict:
    deadline = time.monotonic() + timeout
    while True:
        job = client.get(f"/jobs/{job_id}").json()
        if job["state"] in ("done", "failed") or time.monotonic() > deadline:
            return job
        time.sleep(0.02)


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestHash:
    def test_single(self, client):
        response = client.post("/hash", json={"content": "  hello "})

        assert response.json() == {"hash": fingerprint("hello")}

    def test_many(self, client):
        response = client.post("/hash", json={"contents": ["a", "b"]})

        assert response.json() == {"hashes": [fingerprint("a"), fingerprint("b")]}

    def test_empty_body_is_400(self, client):
        response = client.post("/hash", json={})

        assert response.status_code == 400
        assert "error" in response.json()


class TestChanges:
    def test_diff_then_apply(self, client):
        original, enhanced = "He walked slow.", "He walked slowly, without hurry."

        diff = client.post("/changes/diff", json={"original": original, "enhanced": enhanced}).json()
        assert diff["by_type"] == {"replacement": 1}

        records = diff["records"]
        records[0]["user_decision"] = "rejected"
        applied = client.post("/changes/apply", json={"enhanced": enhanced, "records": records})

        assert applied.status_code == 200
        assert applied.json() == {"text": original, "reverted": ["change-1"]}

    def test_apply_to_other_text_is_400(self, client):
        enhanced = "He walked slowly, without hurry."
        records = client.post(
            "/changes/diff", json={"original": "He walked slow.", "enhanced": enhanced}
        ).json()["records"]
        records[0]["user_decision"] = "rejected"

        response = client.post("/changes/apply", json={"enhanced": "Something else.", "records": records})

        assert response.status_code == 400


class TestEnhancements:
    def test_lifecycle(self, client):
        begun = client.post(
            "/enhancements",
            json={"project_id": "p1", "document_id": "ch1", "original_text": "The very old man."},
        )
        assert begun.status_code == 201
        enhancement_id = begun.json()["id"]
        assert begun.json()["status"] == "in_progress"

        early = client.post(
            f"/enhancements/{enhancement_id}/changes/change-1", json={"decision": "rejected"}
        )
        assert early.status_code == 409

        completed = client.post(
            f"/enhancements/{enhancement_id}/complete", json={"enhanced_text": "The old man."}
        ).json()
        assert completed["status"] == "completed"
        assert [c["change_type"] for c in completed["changes"]] == ["deletion"]

        decided = client.post(
            f"/enhancements/{enhancement_id}/changes/change-1", json={"decision": "rejected"}
        )
        assert decided.json()["user_decision"] == "rejected"

        final = client.post(f"/enhancements/{enhancement_id}/finalize").json()
        assert final == {"enhancement_id": enhancement_id, "text": "The very old man."}

    def test_unknown_change_is_404(self, client):
        enhancement_id = client.post(
            "/enhancements", json={"project_id": "p1", "document_id": "ch1", "original_text": "a"}
        ).json()["id"]
        client.post(f"/enhancements/{enhancement_id}/complete", json={"enhanced_text": "b"})

        response = client.post(
            f"/enhancements/{enhancement_id}/changes/change-9", json={"decision": "rejected"}
        )

        assert response.status_code == 404

    def test_unknown_enhancement_is_404(self, client):
        assert client.get("/enhancements/missing").status_code == 404


class TestKnowledge:
    def test_user_edit_verifies_item(self, make_client):
        item = KnowledgeItem(
            project_id="p1",
            category=KnowledgeCategory.CHARACTER,
            name="Mara",
            description="A smuggler",
            confidence_score=0.4,
        )
        with make_client(knowledge_store=InMemoryKnowledgeStore([item])) as client:
            response = client.patch(f"/knowledge/{item.id}", json={"description": "A ship captain"})
            listed = client.get("/projects/p1/knowledge").json()

        body = response.json()
        assert response.status_code == 200
        assert body["description"] == "A ship captain"
        assert body["confidence_score"] == 1.0
        assert body["is_verified"] is True
        assert listed[0]["description"] == "A ship captain"

    def test_rejected_edit_leaves_item_unchanged(self, make_client):
        item = KnowledgeItem(
            project_id="p1",
            category=KnowledgeCategory.CHARACTER,
            name="Mara",
            description="A smuggler",
            confidence_score=0.4,
        )
        with make_client(knowledge_store=InMemoryKnowledgeStore([item])) as client:
            response = client.patch(f"/knowledge/{item.id}", json={"name": "Tampered", "category": "bogus"})
            listed = client.get("/projects/p1/knowledge").json()

        assert response.status_code == 400
        assert listed[0]["name"] == "Mara"
        assert listed[0]["category"] == "character"
        assert listed[0]["confidence_score"] == 0.4
        assert listed[0]["extraction_method"] == "llm_direct"
        assert listed[0]["is_verified"] is False

    def test_unknown_item_is_404(self, client):
        assert client.patch("/knowledge/missing", json={"name": "x"}).status_code == 404


class TestJobs:
    def test_unknown_job_is_404(self, client):
        assert client.get("/jobs/missing").status_code == 404

    def test_register_start_and_finish(self, client):
        registered = client.post(
            "/projects/p1/documents",
            json={
                "documents": [
                    {"id": "ch1.md", "text": "Mara counted the crates.\n\nTomas watched."},
                    {"id": "ch2.md", "text": "The heist went wrong before midnight."},
                ]
            },
        )
        assert registered.json() == {"project_id": "p1", "registered": 2}

        staleness = client.get("/projects/p1/staleness").json()
        assert staleness["count"] == 2

        started = client.post("/projects/p1/jobs", json={"job_type": "full_project"})
        assert started.status_code == 202
        job = _wait_for_terminal(client, started.json()["job_id"])

        assert job["state"] == "done"
        assert job["progress_percentage"] == 100
        assert client.get("/projects/p1/knowledge").json()
        assert client.get("/projects/p1/staleness").json()["count"] == 0
        assert len(client.get("/projects/p1/jobs").json()) == 1

        status = client.get("/projects/p1/status").json()
        assert status["isProcessing"] is False
        assert status["hasUnanalyzedContent"] is False
        assert status["lastProcessedAt"] is not None

    def test_second_job_conflicts(self, client):
        active = ProcessingJob(project_id="p1", state=JobState.ANALYZING)
        client.app.state.services.job_store.save(active)

        response = client.post("/projects/p1/jobs", json={})

        assert response.status_code == 409
        assert response.json()["detail"]["activeJobId"] == active.id

    def test_sweep(self, client):
        from datetime import timedelta

        from lorekeep.jobs.models import utcnow

        stamp = utcnow() - timedelta(hours=3)
        stuck = ProcessingJob(project_id="p1", state=JobState.THINKING, created_at=stamp, updated_at=stamp)
        client.app.state.services.job_store.save(stuck)

        response = client.post("/supervisor/sweep")

        assert response.json() == {"failed_jobs": [stuck.id], "failed_enhancements": []}
        assert client.get(f"/jobs/{stuck.id}").json()["state"] == "failed"

    def test_naive_last_modified_compares_with_stored_fingerprint(self, make_client):
        store = InMemoryFingerprintStore(
            [FingerprintRecord(document_id="ch1", project_id="p1", hash=fingerprint("words"))]
        )
        with make_client(fingerprint_store=store) as client:
            client.post(
                "/projects/p1/documents",
                json={"documents": [{"id": "ch1", "text": "words", "last_modified": "2024-01-01T00:00:00"}]},
            )
            response = client.get("/projects/p1/staleness")

        assert response.status_code == 200
        assert response.json()["count"] == 0

    def test_status_with_unreadable_fingerprints(self, make_client):
        with make_client(fingerprint_store=UnreadableStore()) as client:
            client.post("/projects/p1/documents", json={"documents": [{"id": "ch1", "text": "words"}]})
            status = client.get("/projects/p1/status").json()

        assert status["hasUnanalyzedContent"] is None
        assert status["unanalyzedChapterCount"] is None


class TestMergeAudit:
    def test_empty_log(self, client):
        assert client.get("/merge-audit").json() == []
