"""Editor capability discovery route."""

from fastapi import APIRouter

from src.api.deps import AppSettings
from src.schemas.common import CapabilitiesResponse
from src.schemas.photo import ALLOWED_MIME_TYPES
from src.schemas.profile import MAX_WEBSITES

router = APIRouter(prefix="/capabilities", tags=["capabilities"])


@router.get(
    "",
    response_model=CapabilitiesResponse,
    summary="Editor capabilities",
    description="Tells the editor whether photo upload is available and which limits apply.",
)
async def get_capabilities(settings: AppSettings) -> CapabilitiesResponse:
    return CapabilitiesResponse(
        photo_enabled=settings.photo_upload_enabled,
        graph_api_version=settings.graph_api_version,
        allowed_mime_types=list(ALLOWED_MIME_TYPES),
        max_websites=MAX_WEBSITES,
        max_photo_bytes=settings.max_photo_bytes,
    )
