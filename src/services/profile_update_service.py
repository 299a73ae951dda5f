"""Business profile read and write service."""

import logging
from typing import Any

from src.core.config import Settings, get_settings
from src.core.exceptions import EmptyChangeSetError, ProfileFetchError, ProfileUpdateError
from src.core.graph import GraphAPIError, GraphCredentials, GraphProfileGateway, RemoteAck
from src.schemas.profile import ChangeSet, ChangeSetResult, ProfileFields
from src.services.change_detection import compute_changes

logger = logging.getLogger(__name__)


def normalize_profile_body(raw: dict[str, Any]) -> dict[str, Any]:
    """Unwrap ``{data: [...]}``, ``{data: {...}}`` or a flat profile object.

    Args:
        raw: Graph API response body.

    Returns:
        dict: The profile object, ``{}`` when the data list is empty.
    """
    data: Any = raw
    if isinstance(raw, dict) and "data" in raw:
        data = raw["data"]
    if isinstance(data, list):
        data = data[0] if data else {}
    return data if isinstance(data, dict) else {}


class ProfileUpdateService:
    """Loads profiles and submits changesets through the Graph gateway."""

    def __init__(self, gateway: GraphProfileGateway, settings: Settings | None = None) -> None:
        self.gateway = gateway
        self.settings = settings or get_settings()

    async def load_profile(
        self,
        entity_id: str,
        credentials: GraphCredentials,
    ) -> tuple[RemoteAck, dict[str, Any]]:
        """Fetch a profile and normalize its response shape.

        Returns:
            tuple: The remote response and the normalized profile object.

        Raises:
            ProfileFetchError: If the Graph API rejects the read.
        """
        try:
            ack = await self.gateway.get_profile(entity_id, credentials)
        except GraphAPIError as e:
            raise ProfileFetchError(e.status_code, e.body) from e
        return ack, normalize_profile_body(ack.body)

    def build_envelope(self, changes: ChangeSet) -> dict[str, Any]:
        return {"messaging_product": self.settings.messaging_product, **changes}

    async def submit(
        self,
        entity_id: str,
        credentials: GraphCredentials,
        changes: ChangeSet,
    ) -> RemoteAck:
        """Send a changeset in a single write call.

        Args:
            entity_id: Phone number ID that owns the profile.
            credentials: Access token for this request.
            changes: Fields to write. Must not be empty.

        Returns:
            RemoteAck: The Graph API acknowledgement.

        Raises:
            EmptyChangeSetError: If there is nothing to send. No call is made.
            ProfileUpdateError: If the write is rejected; carries the remote
                status and body unchanged.
        """
        if not changes:
            raise EmptyChangeSetError()

        logger.info("Submitting profile update with fields: %s", ", ".join(sorted(changes)))
        try:
            return await self.gateway.apply_fields(entity_id, credentials, self.build_envelope(changes))
        except GraphAPIError as e:
            logger.warning("Profile update rejected with status %s", e.status_code)
            raise ProfileUpdateError(e.status_code, e.body) from e

    async def update(
        self,
        entity_id: str,
        credentials: GraphCredentials,
        baseline: ProfileFields,
        proposed: ProfileFields,
    ) -> tuple[ChangeSetResult, RemoteAck | None]:
        """Diff against the baseline and submit only when something changed."""
        result = compute_changes(baseline, proposed)
        if result.is_empty:
            logger.info("No profile changes to submit")
            return result, None
        return result, await self.submit(entity_id, credentials, result.changes)
