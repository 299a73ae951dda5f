"""FastAPI dependency injection functions."""

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from typing import Annotated, Any

import httpx
from fastapi import Depends, Header, Request

from src.core.config import Settings, get_settings
from src.core.exceptions import MissingCredentialsError
from src.core.graph import GraphCredentials, GraphProfileGateway, create_http_client
from src.services.photo_upload_service import PhotoUploadService
from src.services.profile_update_service import ProfileUpdateService


@dataclass
class ProfileRequestContext:
    """Credentials and target profile supplied with one request."""

    entity_id: str
    credentials: GraphCredentials


async def get_request_context(
    x_wa_access_token: Annotated[str | None, Header(description="Graph API access token")] = None,
    x_wa_phone_number_id: Annotated[str | None, Header(description="WhatsApp phone number ID")] = None,
) -> ProfileRequestContext:
    """Extract per-request credentials from the x-wa-* headers.

    Args:
        x_wa_access_token: Access token forwarded as a Bearer credential.
        x_wa_phone_number_id: Phone number ID that owns the business profile.

    Returns:
        ProfileRequestContext: Entity ID and credentials for this request.

    Raises:
        MissingCredentialsError: If either header is missing or blank.
    """
    token = (x_wa_access_token or "").strip()
    entity_id = (x_wa_phone_number_id or "").strip()
    if not token or not entity_id:
        raise MissingCredentialsError()
    return ProfileRequestContext(entity_id=entity_id, credentials=GraphCredentials(access_token=token))


async def get_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """Provide an outbound HTTP client that lives for one request."""
    async with create_http_client() as client:
        yield client


async def get_graph_gateway(
    client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
) -> GraphProfileGateway:
    return GraphProfileGateway(client, get_settings())


async def get_profile_update_service(
    gateway: Annotated[GraphProfileGateway, Depends(get_graph_gateway)],
) -> ProfileUpdateService:
    return ProfileUpdateService(gateway)


async def get_photo_upload_service(
    gateway: Annotated[GraphProfileGateway, Depends(get_graph_gateway)],
    client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
) -> PhotoUploadService:
    return PhotoUploadService(gateway, http_client=client)


async def read_json_body(request: Request) -> dict[str, Any]:
    """Parse a JSON object body, treating anything else as ``{}``."""
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


# Type aliases for cleaner dependency injection
RequestContext = Annotated[ProfileRequestContext, Depends(get_request_context)]
AppSettings = Annotated[Settings, Depends(get_settings)]
ProfileService = Annotated[ProfileUpdateService, Depends(get_profile_update_service)]
PhotoService = Annotated[PhotoUploadService, Depends(get_photo_upload_service)]
