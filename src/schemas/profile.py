"""Business profile Pydantic schemas for API request/response models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Meta accepts at most two websites per business profile
MAX_WEBSITES = 2

# Shown as the old value when the baseline field was empty
EMPTY_MARKER = "(empty)"

# Editable scalar fields in diff priority order. Websites always come last.
SCALAR_FIELDS: tuple[str, ...] = ("about", "description", "address", "email", "vertical")

EDITABLE_FIELDS: tuple[str, ...] = (*SCALAR_FIELDS, "websites")

ChangeSet = dict[str, Any]


class ProfileFields(BaseModel):
    """Editable view of a WhatsApp business profile.

    Missing and null values are normalized to empty strings and lists.
    """

    model_config = ConfigDict(extra="ignore")

    about: str = Field(default="", description="Profile 'About' text")
    description: str = Field(default="", description="Business description")
    address: str = Field(default="", description="Business address")
    email: str = Field(default="", description="Contact email")
    vertical: str = Field(default="", description="Industry vertical")
    websites: list[str] = Field(
        default_factory=list,
        description=f"Up to {MAX_WEBSITES} website URLs, extra entries are dropped",
    )
    profile_picture_url: str = Field(default="", description="Read-only URL of the current photo")

    @field_validator("about", "description", "address", "email", "vertical", "profile_picture_url", mode="before")
    @classmethod
    def none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("websites", mode="before")
    @classmethod
    def truncate_websites(cls, value: Any) -> Any:
        """Trim entries, drop blank ones, then keep the first MAX_WEBSITES."""
        if value is None:
            return []
        if isinstance(value, (list, tuple)):
            entries = [item.strip() if isinstance(item, str) else item for item in value]
            return [item for item in entries if item != ""][:MAX_WEBSITES]
        return value


class DiffEntry(BaseModel):
    """One changed field, as shown in the confirmation dialog."""

    field: str = Field(description="Field name")
    old: str = Field(description=f"Previous value, or '{EMPTY_MARKER}'")
    new: str = Field(description="Proposed value")


class ChangeSetResult(BaseModel):
    """Minimal update payload plus the human-readable diff."""

    changes: ChangeSet = Field(default_factory=dict, description="Only changed, non-empty fields")
    diffs: list[DiffEntry] = Field(default_factory=list, description="One entry per changed field")

    @property
    def is_empty(self) -> bool:
        return not self.changes


class ChangePreviewRequest(BaseModel):
    """Request body for previewing a changeset without sending it."""

    baseline: ProfileFields = Field(default_factory=ProfileFields, description="Last loaded profile")
    proposed: ProfileFields = Field(description="Edited profile")


class ProfileReadResponse(BaseModel):
    """GET /api/profile response."""

    status: int = Field(description="Remote status code")
    data: dict[str, Any] = Field(default_factory=dict, description="Normalized profile object")
    raw: dict[str, Any] = Field(default_factory=dict, description="Remote body as received")


class ProfileWriteResponse(BaseModel):
    """POST /api/profile response."""

    status: int = Field(description="Remote status code")
    data: dict[str, Any] = Field(default_factory=dict, description="Remote body as received")
