import numpy as np
import pytest
from fastapi.testclient import TestClient

from fingerauth.config import MatcherConfig
from fingerauth.main import app, get_matcher, get_registry
from fingerauth.matcher import FingerprintMatcher
from fingerauth.registry import EnrollmentRegistry


@pytest.fixture
def registry(tmp_path):
    return EnrollmentRegistry(upload_dir=tmp_path / "uploads")


@pytest.fixture
def client(registry):
    matcher = FingerprintMatcher(MatcherConfig(threshold=70.0, canonical_width=200, canonical_height=200))
    app.dependency_overrides[get_registry] = lambda: registry
    app.dependency_overrides[get_matcher] = lambda: matcher
    yield TestClient(app)
    app.dependency_overrides.clear()


def upload(data, name="finger.png", content_type="image/png"):
    return {"fingerprint": (name, data, content_type)}


def enroll(client, data, name="finger.png"):
    response = client.post("/api/enroll", files=upload(data, name))
    assert response.status_code == 200, response.text
    return response.json()["id"]


def test_root_and_health(client):
    info = client.get("/").json()
    assert info["message"] == "FingerAuth Backend API"
    assert info["threshold"] == 70.0
    assert info["canonical_size"] == [200, 200]
    assert client.get("/health").json() == {"status": "healthy", "enrolled": 0}


def test_enroll_and_list(client, gradient_png):
    body = client.post("/api/enroll", files=upload(gradient_png)).json()
    assert body["success"] is True
    assert body["message"] == "Fingerprint enrolled successfully"

    listing = client.get("/api/enrolled").json()
    assert listing["count"] == 1
    assert listing["fingerprints"][0]["id"] == body["id"]
    assert listing["fingerprints"][0]["filename"] == "finger.png"

    record = client.get(f"/api/enrolled/{body['id']}")
    assert record.status_code == 200
    assert record.json()["id"] == body["id"]


def test_enroll_rejects_undecodable_image(client, registry, not_an_image):
    response = client.post("/api/enroll", files=upload(not_an_image))
    assert response.status_code == 422
    assert response.json()["error"] == "DecodeError"
    assert registry.count == 0


def test_enroll_rejects_bad_uploads(client, gradient_png):
    assert client.post("/api/enroll", files=upload(b"")).status_code == 400
    assert client.post("/api/enroll", files=upload(gradient_png, name="finger.txt")).status_code == 400
    response = client.post("/api/enroll", files=upload(gradient_png, content_type="text/plain"))
    assert response.status_code == 400
    assert response.json()["error"] == "HTTPException"


def test_authenticate_without_enrollment(client, gradient_png):
    body = client.post("/api/authenticate", files=upload(gradient_png)).json()
    assert body["success"] is False
    assert body["authenticated"] is False
    assert body["status"] == "no_references"
    assert body["matched_id"] is None
    assert body["message"] == "No enrolled fingerprints found. Please enroll first."


def test_authenticate_identical_image(client, gradient_png, checker_png):
    enroll(client, checker_png)
    same_id = enroll(client, gradient_png)

    body = client.post("/api/authenticate", files=upload(gradient_png)).json()
    assert body["success"] is True
    assert body["authenticated"] is True
    assert body["matched_id"] == same_id
    assert body["score"] == 100.0
    assert body["status"] == "authenticated"
    assert body["message"] == "Authentication successful! Similarity: 100.00%"


def test_authenticate_below_threshold(client, encode_image):
    enroll(client, encode_image(np.zeros((200, 200), dtype=np.uint8)))
    half = np.zeros((200, 200), dtype=np.uint8)
    half[:, :100] = 255

    body = client.post("/api/authenticate", files=upload(encode_image(half))).json()
    assert body["success"] is False
    assert body["status"] == "rejected"
    assert body["score"] == 50.0
    assert body["message"] == "Authentication failed. Similarity: 50.00% (threshold: 70%)"


def test_authenticate_reports_skipped_reference(client, registry, gradient_png):
    good_id = enroll(client, gradient_png)
    broken = registry.enroll(b"corrupted on disk", "broken.png")

    body = client.post("/api/authenticate", files=upload(gradient_png)).json()
    assert body["matched_id"] == good_id
    assert body["authenticated"] is True
    assert body["skipped"] == [
        {"id": broken.id, "error": "DecodeError", "detail": body["skipped"][0]["detail"]}
    ]


def test_authenticate_undecodable_query(client, gradient_png, not_an_image):
    enroll(client, gradient_png)
    response = client.post("/api/authenticate", files=upload(not_an_image))
    assert response.status_code == 422
    assert response.json()["error"] == "DecodeError"


def test_delete_and_clear(client, gradient_png, checker_png):
    first = enroll(client, gradient_png)
    enroll(client, checker_png)

    assert client.delete(f"/api/enrolled/{first}").json()["deleted_id"] == first
    assert client.delete(f"/api/enrolled/{first}").status_code == 404
    assert client.get(f"/api/enrolled/{first}").status_code == 404

    body = client.delete("/api/clear").json()
    assert body == {"success": True, "message": "All enrolled fingerprints cleared", "cleared": 1}
    assert client.get("/api/enrolled").json()["count"] == 0


def test_missing_upload_is_rejected(client):
    for path in ("/api/enroll", "/api/authenticate"):
        response = client.post(path)
        assert response.status_code == 400
        assert response.json() == {"error": "HTTPException", "detail": "No fingerprint image provided"}


def test_rejected_score_is_not_displayed_as_threshold(client, encode_image):
    # 12001 full-range pixels plus one of 153 -> raw similarity 69.996
    flat = np.zeros(200 * 200, dtype=np.uint8)
    flat[:12001] = 255
    flat[12001] = 153
    enroll(client, encode_image(flat.reshape(200, 200)))

    body = client.post("/api/authenticate", files=upload(encode_image(np.zeros((200, 200), dtype=np.uint8)))).json()
    assert body["authenticated"] is False
    assert body["score"] == 69.99
    assert body["message"] == "Authentication failed. Similarity: 69.99% (threshold: 70%)"
