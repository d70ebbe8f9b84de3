"""
Tests for the FastAPI endpoints.

The Gemini client and the process-local session are swapped out through
dependency overrides.
"""

import json

import httpx
import pytest
from fastapi.testclient import TestClient
from google.genai import errors

from people_analysis_api.main import app, get_extractor_factory, get_session
from people_analysis_api.session import CREDENTIAL_MESSAGE, GENERIC_MESSAGE, AnalysisSession
from people_analysis_api.tests.conftest import make_person


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def use_extractor(fake_client_factory):
    """Point the stateless endpoints at a fake Gemini answer."""

    def install(text=None, error=None):
        factory = fake_client_factory(text=text, error=error)
        app.dependency_overrides[get_extractor_factory] = lambda: factory
        return fake_client_factory.client

    return install


@pytest.fixture
def session_with(fake_client_factory):
    """Install a fresh session answering with the given text or error."""

    def install(text=None, error=None, api_key="key"):
        session = AnalysisSession(api_key=api_key, extractor_factory=fake_client_factory(text=text, error=error))
        app.dependency_overrides[get_session] = lambda: session
        return session

    return install


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestAnalyze:
    """Tests for the stateless /analyze endpoints."""

    def test_analyze_base64(self, client, use_extractor, payload_text, png_base64):
        use_extractor(text=payload_text)

        response = client.post(
            "/analyze",
            json={"image_base64": png_base64, "mime_type": "image/png"},
            headers={"X-Goog-Api-Key": "key"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        assert body["people"][1]["celebrityName"] == "Famous Actor"
        assert body["people"][0]["box2d"] == {"ymin": 100, "xmin": 100, "ymax": 300, "xmax": 300}
        assert body["boxes"][0]["css"]["top"] == "10.0%"
        assert body["cards"][1]["display_name"] == "Famous Actor"

    def test_analyze_upload(self, client, use_extractor, payload_text, png_bytes):
        use_extractor(text=payload_text)

        response = client.post(
            "/analyze/upload",
            files={"file": ("photo.png", png_bytes, "image/png")},
            headers={"X-Goog-Api-Key": "key"},
        )

        assert response.status_code == 200
        assert response.json()["count"] == 2

    def test_analyze_uses_model_override(self, client, use_extractor, png_base64):
        fake = use_extractor(text='{"people": []}')

        response = client.post(
            "/analyze",
            json={"image_base64": png_base64, "mime_type": "image/png", "model": "gemini-2.5-pro"},
            headers={"X-Goog-Api-Key": "key"},
        )

        assert response.json()["model"] == "gemini-2.5-pro"
        assert fake.models.calls[0]["model"] == "gemini-2.5-pro"

    def test_auth_error_is_401(self, client, use_extractor, png_base64):
        use_extractor(error=errors.ClientError(403, {"error": {"code": 403, "message": "no", "status": "PERMISSION_DENIED"}}))

        response = client.post(
            "/analyze",
            json={"image_base64": png_base64, "mime_type": "image/png"},
            headers={"X-Goog-Api-Key": "key"},
        )

        assert response.status_code == 401
        assert response.json()["kind"] == "AuthenticationRejected"

    def test_malformed_is_502(self, client, use_extractor, png_base64):
        use_extractor(text="")

        response = client.post(
            "/analyze",
            json={"image_base64": png_base64, "mime_type": "image/png"},
            headers={"X-Goog-Api-Key": "key"},
        )

        assert response.status_code == 502
        assert response.json()["kind"] == "MalformedResponse"

    def test_invalid_image_is_400(self, client, use_extractor):
        use_extractor(text='{"people": []}')

        response = client.post(
            "/analyze",
            json={"image_base64": "%%%", "mime_type": "image/png"},
            headers={"X-Goog-Api-Key": "key"},
        )

        assert response.status_code == 400
        assert response.json()["kind"] == "InvalidImage"


class TestSessionEndpoints:
    """Tests for the /session endpoints."""

    def test_full_flow(self, client, session_with, png_base64):
        text = json.dumps({"people": [make_person(1), make_person(2)]})
        session_with(text=text)

        response = client.post("/session/image", json={"image_base64": png_base64, "mime_type": "image/png"})
        assert response.status_code == 200
        assert response.json()["state"] == "succeeded"

        response = client.post("/session/highlight", json={"person_id": 2})
        body = response.json()
        assert body["highlighted_id"] == 2
        assert [b["highlighted"] for b in body["boxes"]] == [False, True]
        assert [c["highlighted"] for c in body["cards"]] == [False, True]

        response = client.get("/session/annotated")
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"

        response = client.post("/session/reset")
        body = response.json()
        assert body["state"] == "idle"
        assert body["people"] == []
        assert body["highlighted_id"] is None
        assert not body["has_image"]

    def test_missing_key_stays_idle(self, client, session_with, png_base64):
        session_with(text='{"people": []}', api_key=None)

        response = client.post("/session/image", json={"image_base64": png_base64, "mime_type": "image/png"})

        body = response.json()
        assert body["state"] == "idle"
        assert body["error_kind"] == "MissingCredential"
        assert body["error_message"] == CREDENTIAL_MESSAGE
        assert body["needs_credentials"]

    def test_credentials_then_submit(self, client, session_with, png_base64):
        session_with(text='{"people": []}', api_key=None)

        response = client.post("/session/credentials", json={"api_key": "new-key"})
        assert not response.json()["needs_credentials"]

        response = client.post("/session/image", json={"image_base64": png_base64, "mime_type": "image/png"})
        assert response.json()["state"] == "succeeded"
        assert response.json()["count"] == 0

    def test_highlight_unknown_person(self, client, session_with, png_base64):
        session_with(text=json.dumps({"people": [make_person(1)]}))
        client.post("/session/image", json={"image_base64": png_base64, "mime_type": "image/png"})

        response = client.post("/session/highlight", json={"person_id": 9})

        assert response.status_code == 404
        assert response.json()["kind"] == "UnknownPerson"

    def test_annotated_without_result(self, client, session_with):
        session_with(text='{"people": []}')

        response = client.get("/session/annotated")

        assert response.status_code == 409

    @pytest.mark.parametrize("error", [ConnectionResetError("peer reset"), httpx.DecodingError("bad gzip")])
    def test_network_error_returns_failed_snapshot(self, client, session_with, png_base64, error):
        session_with(error=error)

        response = client.post("/session/image", json={"image_base64": png_base64, "mime_type": "image/png"})

        assert response.status_code == 200
        body = response.json()
        assert body["state"] == "failed"
        assert body["error_kind"] == "TransportFailure"
        assert body["error_message"] == GENERIC_MESSAGE

    def test_rejected_image_keeps_model(self, client, session_with):
        session = session_with(text='{"people": []}')
        model_before = session.model

        response = client.post(
            "/session/image",
            json={"image_base64": "%%%", "mime_type": "image/png", "model": "gemini-other"},
        )

        assert response.status_code == 400
        assert session.model == model_before

    def test_error_bodies_documented(self, client):
        schema = client.get("/openapi.json").json()

        responses = schema["paths"]["/analyze"]["post"]["responses"]
        assert responses["401"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")
        assert "404" in schema["paths"]["/session/highlight"]["post"]["responses"]
