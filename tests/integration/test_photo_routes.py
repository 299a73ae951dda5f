"""Integration tests for profile photo API routes."""

import json
from typing import Any

import pytest
from fastapi.testclient import TestClient

from src.core.config import get_settings

CREDENTIAL_HEADERS = {
    "x-wa-access-token": "EAAG-test-token",
    "x-wa-phone-number-id": "106540352242922",
}
SESSION_ID = "upload:MTphdHRhY2htZW50OjVmYzE2Y2M0P2ZpbGVfbGVuZ3RoPTQmZmlsZV90eXBlPWltYWdlL3BuZw==?sig=ARZ_x-9Kq3Lw"
HANDLE = "4::aW1hZ2UvcG5n:ARb-handle"
PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-png-body"


class TestMultipartUpload:
    """Tests for POST /api/photo with a multipart file."""

    def test_upload_success(self, client: TestClient, graph_api: Any) -> None:
        """Test that the three upload calls run in order and report the handle."""
        graph_api.script_successful_upload(HANDLE)

        response = client.post(
            "/api/photo",
            headers=CREDENTIAL_HEADERS,
            files={"file": ("logo.png", PNG_BYTES, "image/png")},
        )

        assert response.status_code == 200
        assert response.json() == {
            "status": 200,
            "upload_id": SESSION_ID,
            "handle": HANDLE,
            "apply": {"success": True},
        }
        assert graph_api.operations == ["create_upload_session", "upload_bytes", "apply_handle"]

        create = graph_api.calls("create_upload_session")[0]
        assert create.url.path == "/v23.0/987654321/uploads"
        assert create.url.params["file_length"] == str(len(PNG_BYTES))
        assert create.url.params["file_type"] == "image/png"

        upload = graph_api.calls("upload_bytes")[0]
        assert str(upload.url) == f"https://graph.facebook.com/v23.0/{SESSION_ID}"
        assert upload.content == PNG_BYTES

        apply = graph_api.calls("apply_handle")[0]
        assert json.loads(apply.content) == {"messaging_product": "whatsapp", "profile_picture_handle": HANDLE}

    def test_rejects_unsupported_type(self, client: TestClient, graph_api: Any) -> None:
        """Test that a GIF is refused before any remote call."""
        response = client.post(
            "/api/photo",
            headers=CREDENTIAL_HEADERS,
            files={"file": ("logo.gif", b"GIF89a", "image/gif")},
        )

        assert response.status_code == 415
        assert response.json()["error"] == "unsupported_media_type"
        assert graph_api.requests == []

    def test_rejects_multipart_without_file(self, client: TestClient, graph_api: Any) -> None:
        response = client.post("/api/photo", headers=CREDENTIAL_HEADERS, files={"other": ("a.png", PNG_BYTES, "image/png")})

        assert response.status_code == 400
        assert graph_api.requests == []

    def test_rejects_oversized_photo(
        self, client: TestClient, graph_api: Any, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(get_settings(), "max_photo_bytes", 8)

        response = client.post(
            "/api/photo",
            headers=CREDENTIAL_HEADERS,
            files={"file": ("logo.png", PNG_BYTES, "image/png")},
        )

        assert response.status_code == 413
        assert response.json()["error"] == "photo_too_large"
        assert graph_api.requests == []


class TestImageUrlUpload:
    """Tests for POST /api/photo with a JSON image_url."""

    def test_upload_from_url(self, client: TestClient, graph_api: Any) -> None:
        """Test that the image is downloaded and then uploaded."""
        graph_api.respond("fetch_source", content=PNG_BYTES, headers={"content-type": "image/png"})
        graph_api.script_successful_upload(HANDLE)

        response = client.post(
            "/api/photo",
            headers=CREDENTIAL_HEADERS,
            json={"image_url": "https://cdn.example.com/logo.png"},
        )

        assert response.status_code == 200
        assert response.json()["handle"] == HANDLE
        assert graph_api.operations == ["fetch_source", "create_upload_session", "upload_bytes", "apply_handle"]
        assert "authorization" not in graph_api.calls("fetch_source")[0].headers

    def test_rejects_plain_http_url(self, client: TestClient, graph_api: Any) -> None:
        response = client.post(
            "/api/photo",
            headers=CREDENTIAL_HEADERS,
            json={"image_url": "http://cdn.example.com/logo.png"},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "image_url must be https"
        assert graph_api.requests == []

    def test_rejects_served_gif(self, client: TestClient, graph_api: Any) -> None:
        graph_api.respond("fetch_source", content=b"GIF89a", headers={"content-type": "image/gif"})

        response = client.post(
            "/api/photo",
            headers=CREDENTIAL_HEADERS,
            json={"image_url": "https://cdn.example.com/logo.gif"},
        )

        assert response.status_code == 415
        assert graph_api.operations == ["fetch_source"]

    def test_source_download_failure(self, client: TestClient, graph_api: Any) -> None:
        graph_api.respond("fetch_source", status_code=404, content=b"", headers={"content-type": "text/plain"})

        response = client.post(
            "/api/photo",
            headers=CREDENTIAL_HEADERS,
            json={"image_url": "https://cdn.example.com/missing.png"},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Failed to fetch image_url: 404"

    def test_missing_photo(self, client: TestClient, graph_api: Any) -> None:
        """Test that a request with neither file nor image_url is rejected."""
        response = client.post("/api/photo", headers=CREDENTIAL_HEADERS, json={})

        assert response.status_code == 400
        assert response.json()["message"] == "Send multipart 'file' OR JSON {image_url}"
        assert graph_api.requests == []


class TestUploadFailures:
    """Tests for phase-tagged upload failures."""

    def test_disabled_without_app_id(
        self, client: TestClient, graph_api: Any, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that uploads are refused when no app ID is configured."""
        monkeypatch.setattr(get_settings(), "app_id", "")

        response = client.post(
            "/api/photo",
            headers=CREDENTIAL_HEADERS,
            files={"file": ("logo.png", PNG_BYTES, "image/png")},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "APP_ID not configured"
        assert graph_api.requests == []

    def test_session_create_failure(self, client: TestClient, graph_api: Any) -> None:
        """Test that a rejected session stops the pipeline with the remote status."""
        body = {"error": {"message": "Invalid application ID", "code": 100}}
        graph_api.respond("create_upload_session", status_code=400, json_body=body)

        response = client.post(
            "/api/photo",
            headers=CREDENTIAL_HEADERS,
            files={"file": ("logo.png", PNG_BYTES, "image/png")},
        )

        assert response.status_code == 400
        data = response.json()
        assert data["step"] == "create_upload"
        assert data["phase"] == "idle"
        assert data["error"] == body
        assert data["message"] == "Invalid application ID"
        assert graph_api.operations == ["create_upload_session"]

    def test_missing_handle_is_502(self, client: TestClient, graph_api: Any) -> None:
        """Test that a 200 byte upload without a handle is a protocol failure."""
        graph_api.respond("create_upload_session", json_body={"id": SESSION_ID})
        graph_api.respond("upload_bytes", json_body={})

        response = client.post(
            "/api/photo",
            headers=CREDENTIAL_HEADERS,
            files={"file": ("logo.png", PNG_BYTES, "image/png")},
        )

        assert response.status_code == 502
        data = response.json()
        assert data["step"] == "upload_bytes"
        assert data["phase"] == "bytes_uploaded"
        assert data["upload_id"] == SESSION_ID
        assert data["message"] == "No handle (h) in response"
        assert graph_api.operations == ["create_upload_session", "upload_bytes"]

    def test_apply_failure(self, client: TestClient, graph_api: Any) -> None:
        graph_api.respond("create_upload_session", json_body={"id": SESSION_ID})
        graph_api.respond("upload_bytes", json_body={"h": HANDLE})
        graph_api.respond("apply_handle", status_code=500, json_body={})

        response = client.post(
            "/api/photo",
            headers=CREDENTIAL_HEADERS,
            files={"file": ("logo.png", PNG_BYTES, "image/png")},
        )

        assert response.status_code == 500
        data = response.json()
        assert data["step"] == "apply_handle"
        assert data["handle"] == HANDLE
        assert data["message"] == "Photo update failed at apply_handle"
        assert len(graph_api.calls("apply_handle")) == 1
