"""Graph API client for WhatsApp business profiles and resumable uploads."""

import logging
import time
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import httpx

from src.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Latency thresholds for logging (milliseconds)
SLOW_CALL_THRESHOLD_MS = 2000
VERY_SLOW_CALL_THRESHOLD_MS = 5000

# Fields requested when reading a profile
PROFILE_READ_FIELDS = (
    "about",
    "address",
    "description",
    "email",
    "websites",
    "vertical",
    "profile_picture_url",
)


@dataclass(frozen=True)
class GraphCredentials:
    """Per-request access token. Never persisted or logged."""

    access_token: str = field(repr=False)

    @property
    def authorization(self) -> str:
        return f"Bearer {self.access_token}"


@dataclass
class RemoteAck:
    """Status and parsed JSON body of a Graph API response."""

    status_code: int
    body: dict[str, Any]

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class GraphAPIError(Exception):
    """Graph API returned a non-2xx response."""

    def __init__(self, operation: str, status_code: int, body: dict[str, Any]) -> None:
        self.operation = operation
        self.status_code = status_code
        self.body = body
        super().__init__(f"{operation} failed with status {status_code}")


class GraphTransportError(GraphAPIError):
    """The call never produced a response (connection error, timeout)."""

    def __init__(self, operation: str, reason: str) -> None:
        super().__init__(operation, 502, {"error": {"message": reason}})


def encode_path_id(value: str) -> str:
    """Percent-encode an identifier as a single path segment."""
    return quote(value, safe="")


def safe_json(response: httpx.Response) -> dict[str, Any]:
    """Parse a response body, treating anything but a JSON object as ``{}``."""
    try:
        parsed = response.json()
    except ValueError:
        return {}
    return parsed if isinstance(parsed, dict) else {}


class GraphProfileGateway:
    """Stateless wrapper over the Graph API calls used by this service.

    Entity and app IDs are percent-encoded into the URL path. Upload session
    IDs are forwarded exactly as issued: they embed ``:`` and a ``?sig=``
    query that the upload endpoint expects verbatim.
    """

    def __init__(self, http_client: httpx.AsyncClient, settings: Settings | None = None) -> None:
        self._client = http_client
        self._settings = settings or get_settings()

    @property
    def root(self) -> str:
        return self._settings.graph_api_root

    def profile_url(self, entity_id: str) -> str:
        return f"{self.root}/{encode_path_id(entity_id)}/whatsapp_business_profile"

    def upload_session_url(self, session_id: str) -> str:
        return f"{self.root}/{session_id}"

    async def get_profile(self, entity_id: str, credentials: GraphCredentials) -> RemoteAck:
        """Read the business profile fields for a phone number ID."""
        return await self._send(
            "get_profile",
            "GET",
            self.profile_url(entity_id),
            credentials,
            params={"fields": ",".join(PROFILE_READ_FIELDS)},
        )

    async def apply_fields(
        self,
        entity_id: str,
        credentials: GraphCredentials,
        envelope: dict[str, Any],
    ) -> RemoteAck:
        """Write profile fields. ``envelope`` already carries messaging_product."""
        return await self._send(
            "apply_fields",
            "POST",
            self.profile_url(entity_id),
            credentials,
            json=envelope,
        )

    async def create_upload_session(
        self,
        app_id: str,
        credentials: GraphCredentials,
        byte_length: int,
        mime_type: str,
    ) -> RemoteAck:
        """Open a resumable upload session. The session ID is ``body["id"]``."""
        return await self._send(
            "create_upload_session",
            "POST",
            f"{self.root}/{encode_path_id(app_id)}/uploads",
            credentials,
            params={"file_length": str(byte_length), "file_type": mime_type},
        )

    async def upload_bytes(
        self,
        session_id: str,
        credentials: GraphCredentials,
        content: bytes,
    ) -> RemoteAck:
        """Send the whole payload to an upload session at offset 0."""
        return await self._send(
            "upload_bytes",
            "POST",
            self.upload_session_url(session_id),
            credentials,
            headers={
                "file_offset": "0",
                "Content-Type": "application/octet-stream",
            },
            content=content,
        )

    async def apply_handle(
        self,
        entity_id: str,
        credentials: GraphCredentials,
        handle: str,
    ) -> RemoteAck:
        """Set the profile picture from an uploaded media handle."""
        envelope = {
            "messaging_product": self._settings.messaging_product,
            "profile_picture_handle": handle,
        }
        return await self._send(
            "apply_handle",
            "POST",
            self.profile_url(entity_id),
            credentials,
            json=envelope,
        )

    async def _send(
        self,
        operation: str,
        method: str,
        url: str,
        credentials: GraphCredentials,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> RemoteAck:
        request_headers = {"Authorization": credentials.authorization}
        if headers:
            request_headers.update(headers)

        start_time = time.perf_counter()
        try:
            response = await self._client.request(method, url, headers=request_headers, **kwargs)
        except httpx.HTTPError as e:
            latency_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "Graph %s failed after %.2fms: %s",
                operation,
                latency_ms,
                type(e).__name__,
            )
            raise GraphTransportError(operation, f"{type(e).__name__}: {e}") from e

        latency_ms = (time.perf_counter() - start_time) * 1000
        ack = RemoteAck(status_code=response.status_code, body=safe_json(response))
        self._log_call(operation, ack.status_code, latency_ms)

        if not ack.ok:
            raise GraphAPIError(operation, ack.status_code, ack.body)
        return ack

    @staticmethod
    def _log_call(operation: str, status_code: int, latency_ms: float) -> None:
        log_msg = f"Graph {operation} - {status_code} - {latency_ms:.2f}ms"
        if status_code >= 500 or latency_ms > VERY_SLOW_CALL_THRESHOLD_MS:
            logger.error(log_msg)
        elif status_code >= 400 or latency_ms > SLOW_CALL_THRESHOLD_MS:
            logger.warning(log_msg)
        else:
            logger.info(log_msg)


def create_http_client(settings: Settings | None = None) -> httpx.AsyncClient:
    """Build the outbound HTTP client used for one request."""
    settings = settings or get_settings()
    return httpx.AsyncClient(timeout=settings.graph_timeout_seconds)
