"""HTTP-level tests for the Thumbnail Studio API."""

import numpy as np
import pytest
from fastapi.testclient import TestClient

from conftest import FakeReplicateClient, make_data_uri
from thumbnail_studio.main import app
from thumbnail_studio.services.data_uri import load_image
from thumbnail_studio.services.errors import PredictionTimeout
from thumbnail_studio.services.generation import GENERATION_MODEL, INPAINTING_VERSION
from thumbnail_studio.services.mask_previews import get_mask_preview_store
from thumbnail_studio.services.replicate_http_client import set_replicate_client


@pytest.fixture
def client():
    return TestClient(app)


def test_health_endpoints(client):
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/api/v1/health").json() == {"status": "ok", "api_version": "v1"}


def test_generate_requires_prompt(client, fake_replicate):
    response = client.post("/api/v1/generate", json={})

    assert response.status_code == 400
    assert response.json() == {"error": "Prompt is required"}
    assert fake_replicate.calls == []


def test_generate_logs_thumbnail(client, fake_replicate):
    response = client.post("/api/v1/generate", json={"prompt": "a cat surfing"})

    assert response.status_code == 200
    body = response.json()
    assert body["imageUrl"] == "https://replicate.delivery/out-1.png"

    call = fake_replicate.calls[0]
    assert call["model"] == GENERATION_MODEL
    assert call["input"]["prompt"] == "YouTube Thumbnail: a cat surfing"
    assert call["input"]["aspect_ratio"] == "16:9"

    record = client.get(f"/api/v1/thumbnails/{body['id']}").json()
    assert record["prompt"] == "a cat surfing"
    assert record["imageUrl"] == body["imageUrl"]
    assert body["id"] in [item["id"] for item in client.get("/api/v1/thumbnails").json()]


def test_unknown_thumbnail(client):
    response = client.get("/api/v1/thumbnails/nope")
    assert response.status_code == 404


def test_edit_requires_all_fields(client, fake_replicate):
    response = client.post("/api/v1/edit", json={"prompt": "a hat", "image": "https://x/y.png"})

    assert response.status_code == 400
    assert response.json()["error"] == "Missing required fields (prompt, image, mask)"
    assert fake_replicate.calls == []


def test_edit_snaps_dimensions_and_returns_url(client, fake_replicate):
    payload = {
        "prompt": "a hat",
        "image": "https://replicate.delivery/source.webp",
        "mask": make_data_uri(1000, 500, color="black"),
        "width": 1000,
        "height": 500,
    }
    response = client.post("/api/v1/edit", json=payload)

    assert response.status_code == 200
    assert response.json() == {"imageUrl": "https://replicate.delivery/out-1.png"}

    call = fake_replicate.calls[0]
    assert call["version"] == INPAINTING_VERSION
    assert call["input"]["prompt"] == "a hat, highly detailed, perfect quality, 4k"
    assert (call["input"]["width"], call["input"]["height"]) == (1024, 512)


def test_edit_rejects_mismatched_mask(client, fake_replicate):
    payload = {"prompt": "a hat", "image": make_data_uri(200, 200), "mask": make_data_uri(100, 100)}
    response = client.post("/api/v1/edit", json=payload)

    assert response.status_code == 422
    assert response.json()["error"] == "Image and mask dimensions differ"
    assert fake_replicate.calls == []


def test_edit_passes_remote_error_through(client, failing_replicate):
    payload = {"prompt": "a hat", "image": make_data_uri(64, 64), "mask": make_data_uri(64, 64)}
    response = client.post("/api/v1/edit", json=payload)

    assert response.status_code == 500
    assert response.json()["error"] == "Replicate error: NSFW content detected"


def test_edit_timeout_has_fixed_message(client):
    set_replicate_client(FakeReplicateClient(error=PredictionTimeout()))
    try:
        payload = {"prompt": "a hat", "image": make_data_uri(64, 64), "mask": make_data_uri(64, 64)}
        response = client.post("/api/v1/edit", json=payload)
    finally:
        set_replicate_client(None)

    assert response.status_code == 500
    assert response.json() == {"error": "Timeout waiting for image generation"}


def test_snap_size(client):
    assert client.post("/api/v1/sizes/snap", json={"width": 100, "height": 100}).json() == {"width": 128, "height": 128}

    response = client.post("/api/v1/sizes/snap", json={"width": 0, "height": 100})
    assert response.status_code == 422
    assert "error" in response.json()


def test_build_mask(client):
    payload = {
        "selection": {"x": 0, "y": 0, "width": 50, "height": 50},
        "displaySize": {"width": 100, "height": 100},
        "trueSize": {"width": 200, "height": 200},
    }
    response = client.post("/api/v1/masks", json=payload)

    assert response.status_code == 200
    body = response.json()
    assert body["rectangle"] == {"x": 0, "y": 0, "width": 100, "height": 100, "space": "true"}
    assert body["coverage"] == pytest.approx(0.25)

    mask = np.array(load_image(body["mask"]))
    assert mask.shape == (200, 200)
    assert np.count_nonzero(mask) == 100 * 100


def test_build_mask_on_unrendered_canvas(client):
    payload = {
        "selection": {"x": 0, "y": 0, "width": 50, "height": 50},
        "displaySize": {"width": 0, "height": 0},
        "trueSize": {"width": 200, "height": 200},
    }
    response = client.post("/api/v1/masks", json=payload)

    assert response.status_code == 422
    assert response.json()["error"] == "Canvas has not been rendered yet"


def test_malformed_body_is_a_bad_request(client):
    response = client.post("/api/v1/masks", json={"selection": {"x": 0}})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request payload"


def test_save_mask_preview(client):
    mask_data = make_data_uri(32, 32, color="white")
    response = client.post("/api/v1/saveMask", json={"maskData": mask_data, "timestamp": 1700000000000})

    assert response.status_code == 200
    assert response.json() == {"success": True, "path": "/previews/mask_preview_1700000000000.png"}
    assert (get_mask_preview_store().base_dir / "mask_preview_1700000000000.png").exists()
    assert client.get("/previews/mask_preview_1700000000000.png").status_code == 200


def test_save_mask_requires_data(client):
    response = client.post("/api/v1/saveMask", json={"timestamp": 1})
    assert response.status_code == 400
    assert response.json() == {"error": "Missing mask data"}


def test_edit_session_round_trip(client, fake_replicate):
    created = client.post(
        "/api/v1/sessions",
        json={
            "imageUrl": "https://replicate.delivery/source.webp",
            "trueSize": {"width": 200, "height": 200},
            "displaySize": {"width": 100, "height": 100},
        },
    )
    assert created.status_code == 201
    session_id = created.json()["id"]
    assert created.json()["status"] == "idle"

    selected = client.post(
        f"/api/v1/sessions/{session_id}/selection",
        json={"start": {"x": 60, "y": 60}, "end": {"x": 10, "y": 10}},
    ).json()
    assert selected["selection"] == {"x": 10, "y": 10, "width": 50, "height": 50, "space": "display"}
    assert selected["maskRegion"] == {"x": 20, "y": 20, "width": 100, "height": 100, "space": "true"}
    assert selected["selectionReady"] is True

    edited = client.post(f"/api/v1/sessions/{session_id}/edit", json={"prompt": "add a hat"})
    assert edited.status_code == 200
    body = edited.json()
    assert body["status"] == "succeeded"
    assert body["imageUrl"] == "https://replicate.delivery/out-1.png"
    assert body["history"] == ["https://replicate.delivery/out-1.png"]
    assert body["selection"] is None

    call = fake_replicate.calls[0]
    assert (call["input"]["width"], call["input"]["height"]) == (192, 192)
    assert body["trueSize"] == {"width": 192, "height": 192}


def test_session_edit_on_unrendered_canvas(client, fake_replicate):
    session_id = client.post(
        "/api/v1/sessions",
        json={"imageUrl": "https://replicate.delivery/source.webp", "trueSize": {"width": 200, "height": 200}},
    ).json()["id"]
    client.post(
        f"/api/v1/sessions/{session_id}/selection",
        json={"start": {"x": 0, "y": 0}, "end": {"x": 10, "y": 10}},
    )

    response = client.post(f"/api/v1/sessions/{session_id}/edit", json={"prompt": "add a hat"})
    assert response.status_code == 422
    assert fake_replicate.calls == []

    resized = client.put(f"/api/v1/sessions/{session_id}/display", json={"width": 100, "height": 100}).json()
    assert resized["displaySize"] == {"width": 100, "height": 100}
    assert resized["selection"] is None


def test_unknown_session(client):
    assert client.get("/api/v1/sessions/missing").status_code == 404


@pytest.mark.parametrize(
    "body",
    [
        '{"selection": {"x": Infinity, "y": 0, "width": 10, "height": 10},'
        ' "displaySize": {"width": 100, "height": 100}, "trueSize": {"width": 200, "height": 200}}',
        '{"selection": {"x": 0, "y": 0, "width": 10, "height": 10},'
        ' "displaySize": {"width": 100, "height": 100}, "trueSize": {"width": Infinity, "height": 200}}',
        '{"selection": {"x": 0, "y": NaN, "width": 10, "height": 10},'
        ' "displaySize": {"width": 100, "height": 100}, "trueSize": {"width": 200, "height": 200}}',
    ],
)
def test_build_mask_rejects_non_finite_numbers(client, body):
    response = client.post("/api/v1/masks", content=body, headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request payload"


def test_edit_needs_width_and_height_together(client, fake_replicate):
    payload = {
        "prompt": "a hat",
        "image": "https://replicate.delivery/source.webp",
        "mask": make_data_uri(1000, 500, color="black"),
        "width": 1000,
    }
    response = client.post("/api/v1/edit", json=payload)

    assert response.status_code == 400
    assert response.json()["error"] == "Both width and height are required when either is given"
    assert fake_replicate.calls == []


def test_generate_rejects_blank_prompt(client, fake_replicate):
    response = client.post("/api/v1/generate", json={"prompt": "   "})

    assert response.status_code == 400
    assert response.json() == {"error": "Prompt is required"}
    assert fake_replicate.calls == []


def test_delete_session(client):
    session_id = client.post(
        "/api/v1/sessions",
        json={"imageUrl": "https://replicate.delivery/source.webp", "trueSize": {"width": 200, "height": 200}},
    ).json()["id"]

    assert client.delete(f"/api/v1/sessions/{session_id}").status_code == 204
    assert client.get(f"/api/v1/sessions/{session_id}").status_code == 404
    assert client.delete(f"/api/v1/sessions/{session_id}").status_code == 404
