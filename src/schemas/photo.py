"""Profile photo upload schemas."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

# Content types accepted for profile photos
ALLOWED_MIME_TYPES: tuple[str, ...] = ("image/jpeg", "image/jpg", "image/png")


class UploadPhase(str, Enum):
    """Resumable upload state machine phases."""

    IDLE = "idle"
    SESSION_CREATED = "session_created"
    BYTES_UPLOADED = "bytes_uploaded"
    APPLIED = "applied"
    FAILED = "failed"


@dataclass
class MediaPayload:
    """Photo bytes and their content type, ready for upload."""

    content: bytes
    mime_type: str

    @property
    def byte_length(self) -> int:
        return len(self.content)


@dataclass
class UploadSession:
    """Progress of one photo upload. Lives for a single orchestration run."""

    byte_length: int
    mime_type: str
    id: str | None = None
    handle: str | None = None
    phase: UploadPhase = UploadPhase.IDLE
    failed_at: UploadPhase | None = None

    def advance(self, phase: UploadPhase) -> None:
        self.phase = phase

    def fail(self) -> UploadPhase:
        """Mark the session failed and return the phase it failed in."""
        self.failed_at = self.phase
        self.phase = UploadPhase.FAILED
        return self.failed_at


class PhotoUrlRequest(BaseModel):
    """JSON body variant of POST /api/photo."""

    image_url: str = Field(description="https URL of a JPG or PNG image")


class PhotoUploadResult(BaseModel):
    """POST /api/photo success response."""

    status: int = Field(description="Status of the final apply call")
    upload_id: str = Field(description="Upload session ID issued by the Graph API")
    handle: str = Field(description="Media handle applied to the profile")
    apply: dict[str, Any] = Field(default_factory=dict, description="Body of the apply call")
