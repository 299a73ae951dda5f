"""Pytest configuration and fixtures."""

import json
import os
from collections.abc import AsyncGenerator, Generator
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("APP_ID", "987654321")

GRAPH_HOST = "graph.facebook.com"

# Session IDs embed ':' plus a '?sig=' query and must reach the API unaltered
SESSION_ID = "upload:MTphdHRhY2htZW50OjVmYzE2Y2M0P2ZpbGVfbGVuZ3RoPTQmZmlsZV90eXBlPWltYWdlL3BuZw==?sig=ARZ_x-9Kq3Lw"

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-png-body"

CREDENTIAL_HEADERS = {
    "x-wa-access-token": "EAAG-test-token",
    "x-wa-phone-number-id": "106540352242922",
}


class FakeGraphAPI:
    """Graph API test double that records every request.

    Responses are scripted per operation; unscripted operations answer
    200 with an empty JSON object.
    """

    def __init__(self) -> None:
        self.requests: list[tuple[str, httpx.Request]] = []
        self._scripts: dict[str, dict[str, Any]] = {}
        self._errors: dict[str, Exception] = {}

    def respond(
        self,
        operation: str,
        status_code: int = 200,
        json_body: Any = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._scripts[operation] = {
            "status_code": status_code,
            "json_body": json_body,
            "content": content,
            "headers": headers,
        }

    def fail(self, operation: str, error: Exception) -> None:
        self._errors[operation] = error

    @staticmethod
    def operation_for(request: httpx.Request) -> str:
        if request.url.host != GRAPH_HOST:
            return "fetch_source"
        path = request.url.path
        if path.endswith("/whatsapp_business_profile"):
            if request.method == "GET":
                return "get_profile"
            body = json.loads(request.content or b"{}")
            if set(body) == {"messaging_product", "profile_picture_handle"}:
                return "apply_handle"
            return "apply_fields"
        if path.endswith("/uploads"):
            return "create_upload_session"
        return "upload_bytes"

    def handler(self, request: httpx.Request) -> httpx.Response:
        operation = self.operation_for(request)
        self.requests.append((operation, request))

        if operation in self._errors:
            raise self._errors[operation]

        script = self._scripts.get(operation)
        if script is None:
            return httpx.Response(200, json={})
        if script["content"] is not None:
            return httpx.Response(script["status_code"], content=script["content"], headers=script["headers"])
        return httpx.Response(script["status_code"], json=script["json_body"], headers=script["headers"])

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def operations(self) -> list[str]:
        return [operation for operation, _ in self.requests]

    def calls(self, operation: str) -> list[httpx.Request]:
        return [request for op, request in self.requests if op == operation]

    def script_successful_upload(self, handle: str = "4::aW1hZ2UvcG5n:ARb-handle") -> None:
        self.respond("create_upload_session", json_body={"id": SESSION_ID})
        self.respond("upload_bytes", json_body={"h": handle})
        self.respond("apply_handle", json_body={"success": True})


@pytest.fixture
def test_settings() -> Any:
    """Provide isolated settings that ignore any local .env file."""
    from src.core.config import Settings

    return Settings(_env_file=None, app_id="987654321")


@pytest.fixture
def graph_api() -> FakeGraphAPI:
    return FakeGraphAPI()


@pytest.fixture
def graph_http_client(graph_api: FakeGraphAPI) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=graph_api.transport)


@pytest.fixture
def gateway(graph_http_client: httpx.AsyncClient, test_settings: Any) -> Any:
    from src.core.graph import GraphProfileGateway

    return GraphProfileGateway(graph_http_client, test_settings)


@pytest.fixture
def client(graph_api: FakeGraphAPI) -> Generator[TestClient, None, None]:
    """Provide a test client whose outbound calls hit the fake Graph API.

    Args:
        graph_api: Recording Graph API double.

    Yields:
        TestClient: FastAPI test client.
    """
    from src.api.deps import get_http_client
    from src.main import app

    async def fake_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
        async with httpx.AsyncClient(transport=graph_api.transport) as http_client:
            yield http_client

    app.dependency_overrides[get_http_client] = fake_http_client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
