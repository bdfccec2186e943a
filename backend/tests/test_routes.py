"""
Tests for the HTTP API.
"""

import pytest
from fastapi.testclient import TestClient

from casefile.enrichment.orchestrator import EnrichmentClients, EnrichmentOrchestrator
from casefile.extraction.jobs import ExtractionJobManager, get_job_manager
from casefile.models.outcomes import GeocodeResult
from casefile.routes.enrichment import get_breach_client, get_orchestrator
from casefile.server import app


class FakeProvider:
    def __init__(self):
        self.texts = []

    async def extract(self, text):
        self.texts.append(text)
        return {
            "identity": {"full_name": "Jane Roe"},
            "contact": {"phone_numbers": [{"number": "+1 555 0100"}]},
        }


class FakeGeocoder:
    configured = True

    async def geocode_address(self, address):
        return GeocodeResult(found=True, coordinates=[-89.65, 39.78], formatted_address="1 Elm St", confidence=1.0)


class FakeBreachClient:
    def __init__(self):
        self.batches = []

    async def check_multiple(self, emails):
        from casefile.models.outcomes import BreachCheckResult

        self.batches.append(emails)
        return {email: BreachCheckResult(found=False, count=0, breaches=[]) for email in emails}


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def documents_dir(casefile_home):
    docs = casefile_home / "documents"
    docs.mkdir(parents=True, exist_ok=True)
    return docs


class TestHealth:
    def test_health(self, client, documents_dir, monkeypatch):
        monkeypatch.setenv("MAPBOX_TOKEN", "pk.test")
        (documents_dir / "report.txt").write_text("Jane", encoding="utf-8")

        resp = client.get("/api/health")

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["documents_count"] == 1
        assert body["subjects_count"] == 0
        assert body["providers"] == {"breaches": False, "geocoding": True, "github": False}


class TestDocuments:
    def test_list_marks_accepted_types(self, client, documents_dir):
        (documents_dir / "report.pdf").write_bytes(b"%PDF")
        (documents_dir / "photo.png").write_bytes(b"\x89PNG")
        (documents_dir / ".hidden").write_text("x", encoding="utf-8")

        body = client.get("/api/documents").json()

        assert body["total"] == 2
        accepted = {d["filename"]: d["accepted"] for d in body["documents"]}
        assert accepted == {"photo.png": False, "report.pdf": True}


class TestSubjects:
    def test_new_subject_has_empty_profile(self, client):
        body = client.get("/api/subjects/s1/profile").json()

        assert body["subject_id"] == "s1"
        assert body["profile"]["identity"]["full_name"] == ""
        assert body["completeness"]["score"] == 0

    def test_put_then_flush_persists(self, client):
        resp = client.put("/api/subjects/s1/profile", json={"identity": {"full_name": "Jane Roe"}})
        assert resp.status_code == 200
        assert resp.json()["profile"]["identity"]["full_name"] == "Jane Roe"

        flushed = client.post("/api/subjects/s1/profile/flush").json()

        assert flushed["save_status"] == "saved"
        assert flushed["completeness"]["score"] == 6
        assert client.get("/api/subjects").json()["subjects"] == ["s1"]

    def test_invalid_profile_rejected(self, client):
        resp = client.put("/api/subjects/s1/profile", json={"identity": {"aliases": "not-a-list"}})

        assert resp.status_code == 422

    def test_bad_subject_id(self, client):
        assert client.get("/api/subjects/..bad/profile").status_code == 400

    def test_close_session_saves(self, client):
        client.put("/api/subjects/s1/profile", json={"identity": {"full_name": "Jane Roe"}})

        assert client.delete("/api/subjects/s1/session").json() == {"ok": True}
        assert client.get("/api/subjects/s1/profile").json()["profile"]["identity"]["full_name"] == "Jane Roe"


class TestExtraction:
    def test_missing_document(self, client):
        resp = client.post("/api/subjects/s1/extraction", json={"filename": "nope.txt"})

        assert resp.status_code == 404

    def test_path_outside_documents_rejected(self, client, documents_dir):
        resp = client.post("/api/subjects/s1/extraction", json={"filename": "../.env"})

        assert resp.status_code == 404

    def test_submit_review_apply(self, client, documents_dir):
        provider = FakeProvider()
        manager = ExtractionJobManager(provider=provider)
        app.dependency_overrides[get_job_manager] = lambda: manager
        (documents_dir / "report.txt").write_text("Jane Roe, +1 555 0100", encoding="utf-8")

        started = client.post("/api/subjects/s1/extraction", json={"filename": "report.txt"})
        assert started.status_code == 200
        assert started.json()["state"] == "extracting"

        review = client.get("/api/subjects/s1/extraction", params={"wait": True}).json()
        assert review["state"] == "review"
        assert review["result"]["summary"]["counts"] == ["Identity", "1 phone, 0 emails"]

        applied = client.post("/api/subjects/s1/extraction/apply")
        assert applied.status_code == 200
        body = applied.json()
        assert body["profile"]["identity"]["full_name"] == "Jane Roe"
        assert body["profile"]["contact"]["phone_numbers"][0]["_aiExtracted"] is True
        assert "contact.phone_numbers" in body["tagged_paths"]
        assert client.get("/api/subjects/s1/extraction").json()["state"] == "idle"
        assert provider.texts == ["Jane Roe, +1 555 0100"]

    def test_apply_without_review(self, client):
        app.dependency_overrides[get_job_manager] = lambda: ExtractionJobManager(provider=FakeProvider())

        resp = client.post("/api/subjects/s1/extraction/apply")

        assert resp.status_code == 409

    def test_unsupported_type_reported(self, client, documents_dir):
        app.dependency_overrides[get_job_manager] = lambda: ExtractionJobManager(provider=FakeProvider())
        (documents_dir / "photo.png").write_bytes(b"\x89PNG")

        body = client.post("/api/subjects/s1/extraction", json={"filename": "photo.png"}).json()

        assert body["state"] == "error"
        assert body["error_code"] == "unsupported_file_type"


class TestEnrichment:
    def test_run_enrichment(self, client):
        app.dependency_overrides[get_orchestrator] = lambda: EnrichmentOrchestrator(
            EnrichmentClients(geocoder=FakeGeocoder())
        )
        client.put(
            "/api/subjects/s1/profile",
            json={"locations": {"addresses": [{"street": "1 Elm St", "city": "Springfield"}]}},
        )

        body = client.post("/api/subjects/s1/enrichment").json()

        assert body["enrichment"]["geocoded"] == 1
        assert body["enrichment"]["summary"] == "1 address geocoded"
        assert body["profile"]["locations"]["addresses"][0]["coordinates"] == [-89.65, 39.78]

    def test_breach_batch(self, client):
        fake = FakeBreachClient()
        app.dependency_overrides[get_breach_client] = lambda: fake

        body = client.post("/api/breaches/check", json={"emails": ["a@co.com", " ", "b@co.com"]}).json()

        assert fake.batches == [["a@co.com", "b@co.com"]]
        assert body["total"] == 2
        assert body["results"]["a@co.com"]["found"] is False

    def test_breach_batch_requires_emails(self, client):
        resp = client.post("/api/breaches/check", json={"emails": []})

        assert resp.status_code == 400
