"""Profile photo replacement through the Graph API resumable upload flow.

The flow is three strictly sequential calls:

1. create an upload session for the app (returns a session id),
2. POST the bytes to that session at offset 0 (returns a media handle),
3. apply the handle to the business profile.

A failure at any step is terminal. Sessions are single-use, so nothing is
retried and an abandoned session is left to expire on the remote side.
"""

import logging
from collections.abc import Callable
from typing import Any
from urllib.parse import urlsplit

import httpx

from src.core.config import Settings, get_settings
from src.core.exceptions import (
    ApplyError,
    ByteUploadError,
    InvalidPhotoError,
    InvalidSourceUrlError,
    MissingHandleError,
    MissingSessionIdError,
    PhotoTooLargeError,
    PhotoUploadDisabledError,
    SessionCreateError,
    SourceFetchError,
    UnsupportedMediaTypeError,
)
from src.core.graph import GraphAPIError, GraphCredentials, GraphProfileGateway, RemoteAck
from src.schemas.photo import (
    ALLOWED_MIME_TYPES,
    MediaPayload,
    PhotoUploadResult,
    UploadPhase,
    UploadSession,
)

logger = logging.getLogger(__name__)

HandleStrategy = Callable[[dict[str, Any]], Any]

# Redirect hops followed when downloading an image_url
MAX_SOURCE_REDIRECTS = 5


def _first_data_item(body: dict[str, Any]) -> dict[str, Any]:
    data = body.get("data")
    if isinstance(data, list) and data and isinstance(data[0], dict):
        return data[0]
    return {}


def _data_object(body: dict[str, Any]) -> dict[str, Any]:
    data = body.get("data")
    return data if isinstance(data, dict) else {}


# Tried in order against the byte upload response; first non-empty string wins
HANDLE_STRATEGIES: tuple[tuple[str, HandleStrategy], ...] = (
    ("h", lambda body: body.get("h")),
    ("handle", lambda body: body.get("handle")),
    ("data[0].h", lambda body: _first_data_item(body).get("h")),
    ("data[0].handle", lambda body: _first_data_item(body).get("handle")),
    ("data.h", lambda body: _data_object(body).get("h")),
    ("data.handle", lambda body: _data_object(body).get("handle")),
    ("profile_picture_handle", lambda body: body.get("profile_picture_handle")),
)


def extract_handle(body: dict[str, Any]) -> str | None:
    """Find the media handle in a byte upload response, or None."""
    for name, strategy in HANDLE_STRATEGIES:
        value = strategy(body)
        if isinstance(value, str) and value:
            logger.debug("Media handle found under %s", name)
            return value
    return None


def normalize_mime_type(content_type: str | None) -> str:
    """Lower-case a content type and drop parameters such as charset."""
    return (content_type or "").split(";", 1)[0].strip().lower()


def require_https(url: str, insecure_message: str = "image_url must be https") -> None:
    """Reject malformed URLs and any scheme other than https.

    Raises:
        InvalidSourceUrlError: If the URL is not an absolute https URL.
    """
    try:
        parts = urlsplit(url)
    except ValueError as e:
        raise InvalidSourceUrlError("Invalid image_url") from e
    if not parts.scheme or not parts.netloc:
        raise InvalidSourceUrlError("Invalid image_url")
    if parts.scheme.lower() != "https":
        raise InvalidSourceUrlError(insecure_message)


class PhotoUploadService:
    """Acquires a photo and drives it through the upload state machine."""

    def __init__(
        self,
        gateway: GraphProfileGateway,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize photo upload service.

        Args:
            gateway: Graph API gateway for the three upload calls.
            http_client: Client used to download ``image_url`` sources.
            settings: Application settings, defaults to the cached ones.
        """
        self.gateway = gateway
        self.http_client = http_client
        self.settings = settings or get_settings()

    # === Source acquisition ===

    def validate_media(self, content: bytes, mime_type: str | None) -> MediaPayload:
        """Check type and size of raw photo bytes.

        Raises:
            UnsupportedMediaTypeError: If the type is not JPG or PNG.
            InvalidPhotoError: If the payload is empty.
            PhotoTooLargeError: If the payload exceeds max_photo_bytes.
        """
        normalized = normalize_mime_type(mime_type)
        if normalized not in ALLOWED_MIME_TYPES:
            raise UnsupportedMediaTypeError(mime_type)
        if not content:
            raise InvalidPhotoError("Photo is empty")
        if len(content) > self.settings.max_photo_bytes:
            raise PhotoTooLargeError(len(content), self.settings.max_photo_bytes)
        return MediaPayload(content=content, mime_type=normalized)

    async def fetch_source(self, image_url: str) -> MediaPayload:
        """Download a photo from an https URL.

        Redirects are followed one hop at a time and every hop must stay on
        https. The body is streamed and abandoned once it exceeds
        max_photo_bytes.

        Raises:
            InvalidSourceUrlError: If the URL or any redirect target is
                malformed or not https.
            SourceFetchError: If the download fails or redirects too often.
            UnsupportedMediaTypeError: If the served type is not JPG or PNG.
            PhotoTooLargeError: If the body exceeds max_photo_bytes.
        """
        url = image_url.strip()
        require_https(url)
        if self.http_client is None:
            raise SourceFetchError("No HTTP client available to fetch image_url")

        try:
            for _ in range(MAX_SOURCE_REDIRECTS + 1):
                async with self.http_client.stream("GET", url, follow_redirects=False) as response:
                    if response.is_redirect:
                        url = str(response.url.join(response.headers["location"]))
                        require_https(url, "image_url redirected to a non-https URL")
                        continue
                    return await self._read_source(response)
        except httpx.HTTPError as e:
            logger.warning("Fetching image_url failed: %s", type(e).__name__)
            raise SourceFetchError(f"Failed to fetch image_url: {type(e).__name__}") from e

        raise SourceFetchError("Failed to fetch image_url: too many redirects")

    async def _read_source(self, response: httpx.Response) -> MediaPayload:
        if not response.is_success:
            raise SourceFetchError(
                f"Failed to fetch image_url: {response.status_code}",
                source_status=response.status_code,
            )

        content_type = response.headers.get("content-type")
        if normalize_mime_type(content_type) not in ALLOWED_MIME_TYPES:
            raise UnsupportedMediaTypeError(content_type, "Please use JPG or PNG")

        max_bytes = self.settings.max_photo_bytes
        declared = response.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > max_bytes:
            raise PhotoTooLargeError(int(declared), max_bytes)

        content = bytearray()
        async for chunk in response.aiter_bytes():
            content.extend(chunk)
            if len(content) > max_bytes:
                raise PhotoTooLargeError(len(content), max_bytes)
        return self.validate_media(bytes(content), content_type)

    # === Upload state machine ===

    async def upload(
        self,
        entity_id: str,
        credentials: GraphCredentials,
        media: MediaPayload,
        app_id: str | None = None,
    ) -> PhotoUploadResult:
        """Run create session -> upload bytes -> apply handle.

        Args:
            entity_id: Phone number ID whose profile photo is replaced.
            credentials: Access token for this request.
            media: Validated photo bytes.
            app_id: App that owns the upload session, defaults to settings.

        Returns:
            PhotoUploadResult: Session ID, handle and the apply response.

        Raises:
            PhotoUploadDisabledError: If no app ID is configured.
            SessionCreateError, MissingSessionIdError: Phase 1 failures.
            ByteUploadError, MissingHandleError: Phase 2 failures.
            ApplyError: Phase 3 failure.
        """
        app_id = (app_id if app_id is not None else self.settings.app_id).strip()
        if not app_id:
            raise PhotoUploadDisabledError()

        session = UploadSession(byte_length=media.byte_length, mime_type=media.mime_type)
        logger.info("Starting photo upload: %d bytes, %s", session.byte_length, session.mime_type)

        await self._create_session(app_id, credentials, session)
        await self._upload_bytes(credentials, session, media.content)
        apply_ack = await self._apply_handle(entity_id, credentials, session)

        return PhotoUploadResult(
            status=apply_ack.status_code,
            upload_id=session.id,
            handle=session.handle,
            apply=apply_ack.body,
        )

    async def _create_session(
        self,
        app_id: str,
        credentials: GraphCredentials,
        session: UploadSession,
    ) -> None:
        try:
            ack = await self.gateway.create_upload_session(
                app_id, credentials, session.byte_length, session.mime_type
            )
        except GraphAPIError as e:
            raise SessionCreateError(e.status_code, e.body, phase=session.fail().value) from e

        session_id = ack.body.get("id")
        if not isinstance(session_id, str) or not session_id:
            raise MissingSessionIdError(ack.body, phase=session.fail().value)

        session.id = session_id
        session.advance(UploadPhase.SESSION_CREATED)

    async def _upload_bytes(
        self,
        credentials: GraphCredentials,
        session: UploadSession,
        content: bytes,
    ) -> None:
        try:
            ack = await self.gateway.upload_bytes(session.id, credentials, content)
        except GraphAPIError as e:
            raise ByteUploadError(
                e.status_code,
                e.body,
                phase=session.fail().value,
                context={"upload_id": session.id},
            ) from e

        session.advance(UploadPhase.BYTES_UPLOADED)
        handle = extract_handle(ack.body)
        if handle is None:
            logger.warning("Byte upload succeeded without a media handle")
            raise MissingHandleError(ack.body, phase=session.fail().value, context={"upload_id": session.id})
        session.handle = handle

    async def _apply_handle(
        self,
        entity_id: str,
        credentials: GraphCredentials,
        session: UploadSession,
    ) -> RemoteAck:
        try:
            ack = await self.gateway.apply_handle(entity_id, credentials, session.handle)
        except GraphAPIError as e:
            raise ApplyError(
                e.status_code,
                e.body,
                phase=session.fail().value,
                context={"upload_id": session.id, "handle": session.handle},
            ) from e

        session.advance(UploadPhase.APPLIED)
        logger.info("Profile photo applied")
        return ack
