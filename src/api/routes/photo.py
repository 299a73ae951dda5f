"""Profile photo API routes."""

import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from src.api.deps import PhotoService, RequestContext, read_json_body
from src.core.exceptions import (
    InvalidPhotoError,
    PhotoUploadDisabledError,
    ProfileValidationError,
    RemoteProtocolError,
    RemoteServiceError,
    describe_error,
)
from src.schemas.photo import MediaPayload, PhotoUploadResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/photo", tags=["photo"])


def upload_failure_content(error: RemoteServiceError | RemoteProtocolError) -> dict[str, Any]:
    """Phase-tagged failure body, keeping the remote body untouched."""
    return {
        "step": error.step,
        "phase": error.phase,
        "status": error.status_code,
        "error": error.body or error.message,
        "message": describe_error(error),
        **error.context,
    }


async def read_media(request: Request, service: PhotoService) -> MediaPayload:
    """Take the photo from a multipart ``file`` field or a JSON ``image_url``."""
    content_type = (request.headers.get("content-type") or "").lower()

    if "multipart/form-data" in content_type:
        form = await request.form()
        upload = form.get("file")
        if not isinstance(upload, UploadFile):
            raise InvalidPhotoError("multipart/form-data must include a 'file' field")
        content = await upload.read()
        return service.validate_media(content, upload.content_type)

    body = await read_json_body(request)
    image_url = body.get("image_url")
    if not isinstance(image_url, str) or not image_url.strip():
        raise ProfileValidationError("Send multipart 'file' OR JSON {image_url}")
    return await service.fetch_source(image_url)


@router.post(
    "",
    response_model=PhotoUploadResult,
    summary="Replace the profile photo",
    description=(
        "Accepts a JPG or PNG as multipart 'file' or a JSON body {image_url} pointing "
        "at an https URL, then runs the three-step Graph API upload."
    ),
    responses={
        400: {"description": "Missing credentials, missing photo, bad URL or APP_ID not configured"},
        413: {"description": "Photo too large"},
        415: {"description": "Not a JPG or PNG"},
        502: {"description": "Graph API response missing the upload id or media handle"},
    },
)
async def upload_photo(
    request: Request,
    context: RequestContext,
    service: PhotoService,
) -> PhotoUploadResult | JSONResponse:
    """Acquire the photo, then create session, upload bytes and apply the handle."""
    if not service.settings.photo_upload_enabled:
        raise PhotoUploadDisabledError()

    media = await read_media(request, service)

    try:
        return await service.upload(context.entity_id, context.credentials, media)
    except (RemoteServiceError, RemoteProtocolError) as e:
        logger.warning("Photo upload failed at %s (phase %s): %s", e.step, e.phase, e.status_code)
        return JSONResponse(status_code=e.status_code, content=upload_failure_content(e))
