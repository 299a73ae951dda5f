"""Integration tests for business profile API routes."""

import json
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from src.core.config import get_settings

CREDENTIAL_HEADERS = {
    "x-wa-access-token": "EAAG-test-token",
    "x-wa-phone-number-id": "106540352242922",
}


class TestCredentialHeaders:
    """Tests for the x-wa-* header requirement."""

    @pytest.mark.parametrize(
        "headers",
        [
            {},
            {"x-wa-access-token": "EAAG-test-token"},
            {"x-wa-phone-number-id": "106540352242922"},
        ],
    )
    def test_missing_credentials_returns_400(
        self, client: TestClient, graph_api: Any, headers: dict[str, str]
    ) -> None:
        """Test that requests without both headers never reach the Graph API."""
        response = client.get("/api/profile", headers=headers)

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "missing_credentials"
        assert data["message"] == "Missing x-wa-access-token or x-wa-phone-number-id"
        assert graph_api.requests == []

    def test_error_response_carries_cors_headers(self, client: TestClient) -> None:
        """Test that a browser can read locally raised errors."""
        response = client.get("/api/profile", headers={"Origin": "https://editor.example.com"})

        assert response.status_code == 400
        assert response.headers["access-control-allow-origin"] == "*"

    def test_oversized_error_carries_cors_headers(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr(get_settings(), "max_request_body_size", 16)

        response = client.post(
            "/api/profile",
            headers={**CREDENTIAL_HEADERS, "Origin": "https://editor.example.com"},
            json={"about": "a much longer value than sixteen bytes"},
        )

        assert response.status_code == 413
        assert response.headers["access-control-allow-origin"] == "*"


class TestGetProfile:
    """Tests for GET /api/profile."""

    def test_get_profile_success(self, client: TestClient, graph_api: Any) -> None:
        """Test that the first data element is returned alongside the raw body."""
        raw = {
            "data": [
                {
                    "about": "Open 9-5",
                    "websites": ["https://bakery.example"],
                    "messaging_product": "whatsapp",
                }
            ]
        }
        graph_api.respond("get_profile", json_body=raw)

        response = client.get("/api/profile", headers=CREDENTIAL_HEADERS)

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == 200
        assert data["data"]["about"] == "Open 9-5"
        assert data["raw"] == raw
        request = graph_api.calls("get_profile")[0]
        assert request.headers["authorization"] == "Bearer EAAG-test-token"

    def test_get_profile_passes_remote_status_through(self, client: TestClient, graph_api: Any) -> None:
        """Test that a remote rejection keeps its status code and body."""
        body = {"error": {"message": "Invalid OAuth access token", "code": 190}}
        graph_api.respond("get_profile", status_code=401, json_body=body)

        response = client.get("/api/profile", headers=CREDENTIAL_HEADERS)

        assert response.status_code == 401
        data = response.json()
        assert data["status"] == 401
        assert data["raw"] == body
        assert data["message"] == "Invalid OAuth access token"

    def test_get_profile_transport_failure(self, client: TestClient, graph_api: Any) -> None:
        """Test that an unreachable Graph API surfaces as 502."""
        graph_api.fail("get_profile", httpx.ConnectTimeout("timed out"))

        response = client.get("/api/profile", headers=CREDENTIAL_HEADERS)

        assert response.status_code == 502


class TestUpdateProfile:
    """Tests for POST /api/profile."""

    def test_update_sends_only_non_empty_fields(self, client: TestClient, graph_api: Any) -> None:
        """Test that blank fields are dropped and messaging_product is added."""
        graph_api.respond("apply_fields", json_body={"success": True})

        response = client.post(
            "/api/profile",
            headers=CREDENTIAL_HEADERS,
            json={
                "about": "Open late",
                "description": "",
                "email": None,
                "websites": ["https://a.com", "https://b.com", "https://c.com"],
            },
        )

        assert response.status_code == 200
        assert response.json() == {"status": 200, "data": {"success": True}}
        calls = graph_api.calls("apply_fields")
        assert len(calls) == 1
        assert json.loads(calls[0].content) == {
            "messaging_product": "whatsapp",
            "about": "Open late",
            "websites": ["https://a.com", "https://b.com"],
        }

    def test_update_with_nothing_to_send(self, client: TestClient, graph_api: Any) -> None:
        """Test that an all-blank body is rejected without a remote call."""
        response = client.post(
            "/api/profile",
            headers=CREDENTIAL_HEADERS,
            json={"about": "", "email": "   ", "websites": []},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "No non-empty fields to update."
        assert graph_api.requests == []

    def test_update_with_non_json_body(self, client: TestClient, graph_api: Any) -> None:
        """Test that an unparseable body is treated as empty."""
        response = client.post(
            "/api/profile",
            headers={**CREDENTIAL_HEADERS, "content-type": "application/json"},
            content=b"not json",
        )

        assert response.status_code == 400
        assert graph_api.requests == []

    def test_update_passes_remote_failure_through(self, client: TestClient, graph_api: Any) -> None:
        """Test that a rejected write keeps the remote status and body."""
        body = {"error": {"message": "(#100) Param email must be a valid email", "code": 100}}
        graph_api.respond("apply_fields", status_code=400, json_body=body)

        response = client.post("/api/profile", headers=CREDENTIAL_HEADERS, json={"email": "nope"})

        assert response.status_code == 400
        data = response.json()
        assert data["status"] == 400
        assert data["data"] == body
        assert data["message"] == "(#100) Param email must be a valid email"
        assert len(graph_api.calls("apply_fields")) == 1

    def test_oversized_body_rejected(
        self, client: TestClient, graph_api: Any, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that bodies above the size limit are refused before parsing."""
        monkeypatch.setattr(get_settings(), "max_request_body_size", 16)

        response = client.post(
            "/api/profile",
            headers=CREDENTIAL_HEADERS,
            json={"about": "a much longer value than sixteen bytes"},
        )

        assert response.status_code == 413
        assert response.json()["error"] == "request_too_large"
        assert graph_api.requests == []


class TestPreviewChanges:
    """Tests for POST /api/profile/changes."""

    def test_preview_returns_changes_and_diffs(self, client: TestClient, graph_api: Any) -> None:
        """Test that the preview computes the diff without calling the Graph API."""
        response = client.post(
            "/api/profile/changes",
            json={
                "baseline": {"about": "old", "websites": ["https://a.com"]},
                "proposed": {"about": "new", "email": "", "websites": ["https://a.com", "https://b.com"]},
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["changes"] == {"about": "new", "websites": ["https://a.com", "https://b.com"]}
        assert data["diffs"] == [
            {"field": "about", "old": "old", "new": "new"},
            {"field": "websites", "old": "https://a.com", "new": "https://a.com, https://b.com"},
        ]
        assert graph_api.requests == []

    def test_preview_requires_proposed(self, client: TestClient) -> None:
        response = client.post("/api/profile/changes", json={"baseline": {}})

        assert response.status_code == 422
