"""Business profile API routes."""

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from src.api.deps import ProfileService, RequestContext, read_json_body
from src.core.exceptions import ProfileFetchError, ProfileUpdateError, describe_error
from src.schemas.profile import (
    ChangePreviewRequest,
    ChangeSetResult,
    ProfileReadResponse,
    ProfileWriteResponse,
)
from src.services.change_detection import compute_changes, filter_update_fields
from src.services.profile_update_service import normalize_profile_body

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get(
    "",
    response_model=ProfileReadResponse,
    summary="Read the business profile",
    description="Fetches the WhatsApp business profile for the phone number in x-wa-phone-number-id.",
    responses={
        400: {"description": "Missing credential headers"},
    },
)
async def get_profile(context: RequestContext, service: ProfileService) -> ProfileReadResponse | JSONResponse:
    """Read a profile and normalize the Graph API response shape.

    On a remote failure the remote status code is returned with the same
    ``{status, data, raw}`` shape so the caller can show the remote message.
    """
    try:
        ack, data = await service.load_profile(context.entity_id, context.credentials)
    except ProfileFetchError as e:
        logger.warning("Profile read failed with remote status %s", e.status_code)
        return JSONResponse(
            status_code=e.status_code,
            content={
                "status": e.status_code,
                "data": normalize_profile_body(e.body),
                "raw": e.body,
                "message": describe_error(e),
            },
        )

    return ProfileReadResponse(status=ack.status_code, data=data, raw=ack.body)


@router.post(
    "",
    response_model=ProfileWriteResponse,
    summary="Update the business profile",
    description=(
        "Writes only the non-empty fields of the body. Blank values are dropped, "
        "so this endpoint cannot clear a field."
    ),
    responses={
        400: {"description": "Missing credentials or no non-empty fields"},
    },
)
async def update_profile(
    request: Request,
    context: RequestContext,
    service: ProfileService,
) -> ProfileWriteResponse | JSONResponse:
    """Filter the candidate fields and submit them in one write."""
    body = await read_json_body(request)
    changes = filter_update_fields(body)

    try:
        ack = await service.submit(context.entity_id, context.credentials, changes)
    except ProfileUpdateError as e:
        return JSONResponse(
            status_code=e.status_code,
            content={"status": e.status_code, "data": e.body, "message": describe_error(e)},
        )

    return ProfileWriteResponse(status=ack.status_code, data=ack.body)


@router.post(
    "/changes",
    response_model=ChangeSetResult,
    status_code=status.HTTP_200_OK,
    summary="Preview a changeset",
    description="Computes the minimal update and its diff without calling the Graph API.",
)
async def preview_changes(data: ChangePreviewRequest) -> ChangeSetResult:
    return compute_changes(data.baseline, data.proposed)
