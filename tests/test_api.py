"""
Tests for the template builder API.

The recognition provider is an httpx.MockTransport behind a dependency
override, so no network is used.
"""

import asyncio

import httpx
import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from conftest import png_bytes
from ocr_template_builder.config.settings import MB
from ocr_template_builder.recognition import ProgressTracker, RecognitionClient
from web.backend.api.templates import get_recognition_client, upload_document
from web.backend.config import get_profile
from web.backend.main import app
from web.backend.services.session_store import session_store


class FakeProvider:
    """Recognition endpoint stand-in that records calls"""

    def __init__(self, payload):
        self.payload = payload
        self.status = 200
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        return httpx.Response(self.status, json=self.payload)


async def _no_wait(_seconds):
    await asyncio.sleep(0)


# --- Fixtures ---

@pytest.fixture
def provider(form_payload):
    return FakeProvider(form_payload)


@pytest.fixture
def client(profile, provider):
    recognition = RecognitionClient(profile, transport=httpx.MockTransport(provider),
                                    progress=ProgressTracker(sleep=_no_wait))
    app.dependency_overrides[get_profile] = lambda: profile
    app.dependency_overrides[get_recognition_client] = lambda: recognition
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def session_id(client):
    response = client.post("/api/sessions/")
    assert response.status_code == 200
    return response.json()["session"]["id"]


@pytest.fixture
def reviewed(client, session_id):
    """Session with a recognized two-field form"""
    upload = client.post(f"/api/sessions/{session_id}/upload",
                         files={"file": ("form.png", png_bytes(), "image/png")})
    assert upload.status_code == 200
    recognized = client.post(f"/api/sessions/{session_id}/recognize")
    assert recognized.status_code == 200
    return session_id


def _url(session_id, path=""):
    return f"/api/sessions/{session_id}{path}"


class TestSessions:
    """Session lifecycle"""

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"

    def test_create_and_get(self, client, session_id):
        state = client.get(_url(session_id)).json()["session"]
        assert state["mode"] == "upload"
        assert state["view"]["zoom_level"] == 1.0
        assert state["view"]["show_confidence_scores"] is True

    def test_unknown_viewport(self, client):
        assert client.post("/api/sessions/?viewport=tiny").status_code == 400

    def test_unknown_session(self, client):
        assert client.get(_url("sess_missing")).status_code == 404

    def test_close(self, client, session_id):
        assert client.delete(_url(session_id)).status_code == 200
        assert client.get(_url(session_id)).status_code == 404


class TestUploadAndRecognize:
    """Upload checks and the recognition round trip"""

    def test_oversized_file_never_reaches_provider(self, client, session_id, provider):
        response = client.post(_url(session_id, "/upload"),
                               files={"file": ("scan.pdf", b"0" * (6 * MB), "application/pdf")})
        assert response.status_code == 400
        assert response.json()["detail"] == "File too large. Maximum size: 5.0MB"

        response = client.post(_url(session_id, "/recognize"))
        assert response.status_code == 409
        assert provider.calls == 0

    def test_unsupported_type_keeps_selection(self, client, session_id):
        client.post(_url(session_id, "/upload"), files={"file": ("form.png", png_bytes(), "image/png")})
        response = client.post(_url(session_id, "/upload"), files={"file": ("form.gif", b"GIF89a", "image/gif")})
        assert response.status_code == 400
        assert response.json()["detail"].startswith("Unsupported file type")
        assert client.get(_url(session_id)).json()["session"]["filename"] == "form.png"

    def test_recognize_enters_review(self, client, reviewed, provider):
        state = client.get(_url(reviewed)).json()["session"]
        assert provider.calls == 1
        assert state["mode"] == "review"
        assert state["field_count"] == 2
        assert state["total_pages"] == 1
        assert state["image_ready"] is True
        assert client.get(_url(reviewed, "/progress")).json() == {"progress": 0, "mode": "review"}

    def test_provider_failure_returns_to_upload(self, client, session_id, provider):
        provider.status = 500
        client.post(_url(session_id, "/upload"), files={"file": ("form.png", png_bytes(), "image/png")})
        response = client.post(_url(session_id, "/recognize"))
        assert response.status_code == 502
        assert response.json()["success"] is False
        state = client.get(_url(session_id)).json()["session"]
        assert state["mode"] == "upload"
        assert "500" in state["error"]
        assert state["progress"] == 0

    def test_empty_result_is_an_error(self, client, session_id, provider):
        provider.payload = {"success": True, "data": {"elements": []}}
        client.post(_url(session_id, "/upload"), files={"file": ("form.png", png_bytes(), "image/png")})
        response = client.post(_url(session_id, "/recognize"))
        assert response.status_code == 502
        assert response.json()["error"] == "No text detected in the document"


class TestReview:
    """Mode, view controls, pages and pointer input"""

    def test_mode_change_needs_recognition(self, client, session_id):
        response = client.post(_url(session_id, "/mode"), json={"mode": "fields"})
        assert response.status_code == 409

    def test_mode_change(self, client, reviewed):
        response = client.post(_url(reviewed, "/mode"), json={"mode": "fields"})
        assert response.json()["session"]["mode"] == "fields"

    def test_view_update(self, client, reviewed):
        response = client.post(_url(reviewed, "/view"),
                               json={"zoom_level": 9, "pan_dx": 15, "show_bounding_boxes": False})
        view = response.json()["session"]["view"]
        assert view["zoom_level"] == 3.0
        assert view["pan_offset"] == {"x": 15.0, "y": 0.0}
        assert view["show_bounding_boxes"] is False

    def test_page_navigation_clamped(self, client, reviewed):
        response = client.post(_url(reviewed, "/pages"), json={"action": "next"})
        assert response.json()["session"]["view"]["current_page_index"] == 0
        assert client.post(_url(reviewed, "/pages"), json={"action": "sideways"}).status_code == 400

    def test_overlay_png(self, client, reviewed):
        response = client.get(_url(reviewed, "/overlay.png"))
        assert response.headers["content-type"] == "image/png"
        assert response.content.startswith(b"\x89PNG")

    def test_capture_then_manual_field(self, client, reviewed):
        down = client.post(_url(reviewed, "/pointer"), json={"phase": "down", "x": 400, "y": 300, "capture": True})
        assert down.json()["success"] is True
        up = client.post(_url(reviewed, "/pointer"), json={"phase": "up", "x": 500, "y": 350})
        assert up.json()["captured"]["width"] == 100

        response = client.post(_url(reviewed, "/fields/manual"), json={"text": "Signature"})
        fields = response.json()["fields"]
        assert len(fields) == 3
        assert fields[-1]["label"] == "Signature"
        assert fields[-1]["custom_attributes"]["manual"] is True

    def test_manual_field_without_capture(self, client, reviewed):
        assert client.post(_url(reviewed, "/fields/manual"), json={}).status_code == 409


class TestFieldEditing:
    """Field list operations over the API"""

    def test_edit_before_recognition(self, client, session_id):
        response = client.put(_url(session_id, "/fields/field_1"), json={"label": "x"})
        assert response.status_code == 409

    def test_edit_field(self, client, reviewed):
        response = client.put(_url(reviewed, "/fields/field_2"), json={"type": "phone", "required": False})
        field = response.json()["fields"][1]
        assert field["type"] == "phone"
        assert [r["type"] for r in field["validation_rules"]] == ["custom", "pattern"]

    def test_edit_unknown_field(self, client, reviewed):
        assert client.put(_url(reviewed, "/fields/field_99"), json={"label": "x"}).status_code == 404

    def test_move_and_delete(self, client, reviewed):
        moved = client.post(_url(reviewed, "/fields/move"), json={"from_index": 1, "to_index": 0}).json()
        assert [f["id"] for f in moved["fields"]] == ["field_2", "field_1"]
        assert [f["order"] for f in moved["fields"]] == [0, 1]

        remaining = client.delete(_url(reviewed, "/fields/field_2")).json()
        assert remaining["total"] == 1
        assert remaining["fields"][0]["order"] == 0

    def test_retag_element(self, client, reviewed):
        response = client.put(_url(reviewed, "/elements/el_1_2/kind"), json={"kind": "checkbox"})
        types = [f["type"] for f in response.json()["fields"]]
        assert types == ["email", "checkbox", "date"]

    def test_retag_unknown_element(self, client, reviewed):
        assert client.put(_url(reviewed, "/elements/nope/kind"), json={"kind": "label"}).status_code == 404

    def test_current_page_filter(self, client, reviewed):
        response = client.get(_url(reviewed, "/fields"), params={"current_page_only": True})
        assert response.json()["total"] == 2

    def test_assemble(self, client, reviewed):
        draft = client.post(_url(reviewed, "/assemble"), json={}).json()["draft"]
        assert draft["name"] == "form"
        assert [s["field_ids"] for s in draft["sections"]] == [["field_1", "field_2"]]
        assert draft["sections"][0]["name"] == "Section 1"


class RecordingUpload:
    """UploadFile stand-in that records how much was read"""

    def __init__(self, filename, content, size=None):
        self.filename = filename
        self.content = content
        self.size = size
        self.reads = []

    async def read(self, size=-1):
        self.reads.append(size)
        return self.content if size < 0 else self.content[:size]


class TestUploadBuffering:
    """Oversized uploads are rejected without reading them whole"""

    @pytest.fixture
    def session(self, profile):
        session = session_store.create(profile)
        yield session
        session_store.close(session.id)

    async def test_declared_size_rejected_before_reading(self, session):
        upload = RecordingUpload("scan.pdf", b"", size=6 * MB)
        with pytest.raises(HTTPException) as exc:
            await upload_document(session.id, file=upload)
        assert exc.value.status_code == 400
        assert upload.reads == []

    async def test_read_stops_past_the_limit(self, session, profile):
        upload = RecordingUpload("scan.pdf", b"0" * (6 * MB))
        with pytest.raises(HTTPException) as exc:
            await upload_document(session.id, file=upload)
        assert exc.value.detail == "File too large. Maximum size: 5.0MB"
        assert upload.reads == [profile.max_file_size_bytes + 1]
