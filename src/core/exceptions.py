"""Error taxonomy for profile reads, profile writes and photo uploads.

Three families, matching how the HTTP layer reports them:

- ProfileValidationError: the request was rejected before any remote call.
- RemoteServiceError: the Graph API answered with a non-success status. The
  remote status code and body are carried verbatim.
- RemoteProtocolError: the Graph API answered successfully but the response
  lacks a field the flow depends on (upload session id, media handle).

Upload failures are tagged with the upload phase the orchestrator was in and
the step name it was executing.
"""

from typing import Any


class ProfileManagerError(Exception):
    """Base exception for every failure surfaced to a caller."""

    status_code: int = 500
    error_type: str = "profile_manager_error"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details
        super().__init__(message)


# === Validation (rejected before any remote call) ===


class ProfileValidationError(ProfileManagerError):
    """Request rejected locally."""

    status_code = 400
    error_type = "validation_error"


class MissingCredentialsError(ProfileValidationError):
    """Access token or phone number ID header missing."""

    error_type = "missing_credentials"

    def __init__(self, message: str = "Missing x-wa-access-token or x-wa-phone-number-id") -> None:
        super().__init__(message)


class EmptyChangeSetError(ProfileValidationError):
    """Nothing non-empty to send."""

    error_type = "empty_changeset"

    def __init__(self, message: str = "No non-empty fields to update.") -> None:
        super().__init__(message)


class NotLoadedError(ProfileValidationError):
    """Changes were staged before a baseline profile was loaded."""

    error_type = "profile_not_loaded"

    def __init__(self, message: str = "Load profile first") -> None:
        super().__init__(message)


class UnsupportedMediaTypeError(ProfileValidationError):
    status_code = 415
    error_type = "unsupported_media_type"

    def __init__(self, mime_type: str | None, message: str = "Please upload a JPG or PNG image") -> None:
        self.mime_type = mime_type
        super().__init__(message, details=[{"msg": f"received {mime_type or 'no content type'}", "type": "mime_type"}])


class InvalidSourceUrlError(ProfileValidationError):
    error_type = "invalid_source_url"


class InvalidPhotoError(ProfileValidationError):
    error_type = "invalid_photo"


class PhotoTooLargeError(ProfileValidationError):
    status_code = 413
    error_type = "photo_too_large"

    def __init__(self, byte_length: int, max_bytes: int) -> None:
        self.byte_length = byte_length
        self.max_bytes = max_bytes
        super().__init__(f"Photo is {byte_length} bytes, maximum is {max_bytes}")


class PhotoUploadDisabledError(ProfileValidationError):
    error_type = "photo_upload_disabled"

    def __init__(self, message: str = "APP_ID not configured") -> None:
        super().__init__(message)


class SourceFetchError(ProfileValidationError):
    """The image_url could not be downloaded."""

    error_type = "source_fetch_error"

    def __init__(self, message: str, source_status: int | None = None) -> None:
        self.source_status = source_status
        super().__init__(message)


# === Remote failures ===


class RemoteServiceError(ProfileManagerError):
    """Graph API returned a non-success status.

    ``status_code`` is the remote status and ``body`` the remote JSON body
    (``{}`` when it was not JSON).
    """

    error_type = "remote_error"
    step: str = "remote"

    def __init__(
        self,
        status_code: int,
        body: dict[str, Any],
        phase: str | None = None,
        message: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.body = body
        self.phase = phase
        self.context = context or {}
        super().__init__(message or describe_remote_body(body, self.step), status_code=status_code)


class ProfileFetchError(RemoteServiceError):
    step = "get_profile"


class ProfileUpdateError(RemoteServiceError):
    step = "update_profile"


class SessionCreateError(RemoteServiceError):
    step = "create_upload"


class ByteUploadError(RemoteServiceError):
    step = "upload_bytes"


class ApplyError(RemoteServiceError):
    step = "apply_handle"


class RemoteProtocolError(ProfileManagerError):
    """Graph API call succeeded but the response is missing a required field."""

    status_code = 502
    error_type = "protocol_error"
    step: str = "remote"

    def __init__(
        self,
        message: str,
        body: dict[str, Any],
        phase: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.body = body
        self.phase = phase
        self.context = context or {}
        super().__init__(message)


class MissingSessionIdError(RemoteProtocolError):
    step = "create_upload"

    def __init__(self, body: dict[str, Any], phase: str) -> None:
        super().__init__("No id (UPLOAD_ID) in response", body, phase)


class MissingHandleError(RemoteProtocolError):
    step = "upload_bytes"

    def __init__(self, body: dict[str, Any], phase: str, context: dict[str, Any] | None = None) -> None:
        super().__init__("No handle (h) in response", body, phase, context)


# === Helpers ===


def remote_error_message(body: Any) -> str | None:
    """Pull the Graph API's own error message out of a response body."""
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message.strip():
            return message
    if isinstance(error, str) and error.strip():
        return error
    return None


def describe_remote_body(body: Any, step: str) -> str:
    """Remote-provided message when present, else a generic step-labelled one."""
    return remote_error_message(body) or f"Request failed at {step}"


def describe_error(error: ProfileManagerError) -> str:
    """User-facing message for any error.

    Remote failures prefer the message the Graph API sent; photo failures fall
    back to "Photo update failed at <step>".
    """
    if isinstance(error, (RemoteServiceError, RemoteProtocolError)):
        remote = remote_error_message(error.body)
        if remote:
            return remote
        if isinstance(error, RemoteProtocolError):
            return error.message
        if isinstance(error, (SessionCreateError, ByteUploadError, ApplyError)):
            return f"Photo update failed at {error.step}"
        if isinstance(error, ProfileUpdateError):
            return "Update failed"
        return "Failed to load profile"
    return error.message
