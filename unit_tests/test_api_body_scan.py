# unit_tests/test_api_body_scan.py
"""
Unit Tests for Body Scan API
============================
Run with: python -m pytest unit_tests/test_api_body_scan.py -v
"""

import pytest
from fastapi.testclient import TestClient

from agents.body_analysis_agent import BodyAnalysisOrchestrator
from agents.errors import FRIENDLY_FAILURE_MESSAGE
from api.app import app, get_orchestrator
from conftest import FailingVisionProvider, FakeVisionProvider


@pytest.fixture
def client_for():
    def build(provider):
        orchestrator = BodyAnalysisOrchestrator(provider)
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        return TestClient(app)

    yield build
    app.dependency_overrides.clear()


def upload(photo, count=1):
    return [("files", (f"photo{i}.jpg", photo, "image/jpeg")) for i in range(count)]


def test_health():
    response = TestClient(app).get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["maxPhotos"] >= 1


def test_analyze(client_for, provider_text, photo):
    provider = FakeVisionProvider(provider_text)
    response = client_for(provider).post("/api/v1/body/analyze", files=upload(photo, 2))

    assert response.status_code == 200
    body = response.json()
    assert body["photoCount"] == 2
    assert body["extractionStrategy"] == "whole_text"
    assert body["scanResult"]["bodyFatPercentage"] == 15.5
    assert body["scanResult"]["bodySignature"]["bodyTypeClassification"] == "Balanced Build"
    assert provider.calls[0]["images"] == [photo, photo]


def test_analyze_too_many_photos(monkeypatch, client_for, photo):
    reads = []

    async def counting_read(self, size=-1):
        reads.append(self.filename)
        return b""

    monkeypatch.setattr("starlette.datastructures.UploadFile.read", counting_read)
    provider = FailingVisionProvider()
    response = client_for(provider).post("/api/v1/body/analyze", files=upload(photo, 4))

    assert response.status_code == 400
    assert "Maximum 3 photos" in response.json()["detail"]
    # Rejected before any upload is read
    assert reads == []
    assert provider.calls == 0


def test_analyze_empty_file(client_for):
    response = client_for(FailingVisionProvider()).post(
        "/api/v1/body/analyze", files=[("files", ("empty.jpg", b"", "image/jpeg"))]
    )
    assert response.status_code == 400


def test_analyze_provider_failure(client_for, photo):
    response = client_for(FailingVisionProvider()).post("/api/v1/body/analyze", files=upload(photo))
    assert response.status_code == 502
    assert response.json()["detail"] == FRIENDLY_FAILURE_MESSAGE


def test_analyze_unparseable_reply(client_for, photo):
    provider = FakeVisionProvider("Sorry, no can do.")
    response = client_for(provider).post("/api/v1/body/analyze", files=upload(photo))
    assert response.status_code == 502
    assert response.json()["detail"] == FRIENDLY_FAILURE_MESSAGE


def test_compare(client_for, raw_analysis):
    current = dict(raw_analysis, bodyFatPercentage=14.5)
    provider = FakeVisionProvider("Nice work.\n\nLeaner already.\n\nAdd cardio.")
    response = client_for(provider).post("/api/v1/body/compare", json={
        "previousScan": raw_analysis,
        "currentScan": current,
    })

    assert response.status_code == 200
    body = response.json()
    assert body["bodyFatChange"] == -1.0
    assert body["muscleMassChange"] == "moderate"
    assert body["progressSummary"] == "Nice work.\n\nLeaner already."
    assert body["recommendations"] == "Add cardio."


def test_compare_without_insights(client_for, raw_analysis):
    response = client_for(FailingVisionProvider()).post("/api/v1/body/compare", json={
        "previousScan": raw_analysis,
        "currentScan": raw_analysis,
        "includeInsights": False,
    })
    assert response.status_code == 200
    assert response.json()["progressSummary"] == ""


def test_compare_provider_failure(client_for, raw_analysis):
    response = client_for(FailingVisionProvider()).post("/api/v1/body/compare", json={
        "previousScan": raw_analysis,
        "currentScan": raw_analysis,
    })
    assert response.status_code == 502
    assert response.json()["detail"] == "Failed to compare scans"


def test_signature_lookup():
    response = TestClient(app).get("/api/v1/body/signature/V-TaperAesthetic-BF10.0-ABC123-AI1.62")
    assert response.status_code == 200
    body = response.json()
    assert body["bodyTypeClassification"] == "V-Taper Aesthetic"
    assert body["interpretation"]["adonisRating"] == "Excellent (Near Golden Ratio)"


def test_signature_lookup_invalid():
    response = TestClient(app).get("/api/v1/body/signature/not-a-signature")
    assert response.status_code == 400
