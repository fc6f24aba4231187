"""
HTTP layer tests against the FastAPI app with its lifespan running.
"""

import pytest
from fastapi.testclient import TestClient

import api
from config import settings


@pytest.fixture(scope="module")
def client():
    with TestClient(api.app) as test_client:
        yield test_client


def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["name"] == settings.API_TITLE
    assert "/analyze" in response.json()["endpoints"]


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Process-Time" in response.headers


def test_health_without_analyzer(client, monkeypatch):
    monkeypatch.setattr(api, "analyzer", None)

    response = client.get("/health")

    assert response.status_code == 503


def test_profiles(client):
    response = client.get("/profiles")

    assert response.status_code == 200
    names = [p["name"] for p in response.json()["profiles"]]
    assert names == ["clinical", "perfect"]


def test_analyze_brain(client, brain_png):
    response = client.post(
        "/analyze",
        files={"file": ("brain_mri_scan.png", brain_png, "image/png")},
        params={"profile": "clinical"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["filename"] == "brain_mri_scan.png"
    assert data["classification"]["modality"] == "brain-mri"
    assert 80 <= data["classification"]["confidence"] <= 97
    assert data["technical"]["urgency"] == "low"
    assert set(data["features"]) >= {"visual", "structural", "texture"}


def test_analyze_profile_override(client, brain_png):
    response = client.post(
        "/analyze",
        files={"file": ("brain.png", brain_png, "image/png")},
        params={"profile": "perfect"},
    )

    assert response.status_code == 200
    assert response.json()["classification"]["profile"] == "perfect"


def test_analyze_unknown_profile(client, brain_png):
    response = client.post(
        "/analyze",
        files={"file": ("brain.png", brain_png, "image/png")},
        params={"profile": "experimental"},
    )

    assert response.status_code == 400
    assert "Available profiles" in response.json()["detail"]


def test_analyze_rejects_non_image(client):
    response = client.post("/analyze", files={"file": ("notes.txt", b"hello", "text/plain")})

    assert response.status_code == 400


def test_analyze_decode_failure(client):
    response = client.post("/analyze", files={"file": ("broken.png", b"not a png", "image/png")})

    assert response.status_code == 400
    assert response.json()["error"] == "decode_failure"
    assert response.json()["filename"] == "broken.png"


def test_analyze_oversize(client, brain_png, monkeypatch):
    monkeypatch.setattr(settings, "MAX_IMAGE_BYTES", 10)

    response = client.post("/analyze", files={"file": ("brain.png", brain_png, "image/png")})

    assert response.status_code == 413


def test_batch_keeps_per_item_errors(client, brain_png, chest_png):
    files = [
        ("files", ("brain_mri_scan.png", brain_png, "image/png")),
        ("files", ("broken.png", b"garbage", "image/png")),
        ("files", ("image_001.png", chest_png, "image/png")),
    ]

    response = client.post("/analyze/batch", files=files)

    assert response.status_code == 200
    results = response.json()["results"]
    assert len(results) == 3
    assert results[0]["classification"]["modality"] == "brain-mri"
    assert "error" in results[1]
    assert results[2]["classification"]["modality"] == "chest-xray"


def test_batch_size_limit(client, brain_png):
    files = [("files", (f"img{i}.png", brain_png, "image/png")) for i in range(settings.MAX_BATCH_SIZE + 1)]

    response = client.post("/analyze/batch", files=files)

    assert response.status_code == 400
