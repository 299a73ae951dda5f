"""Change detection between a loaded profile and the user's edits.

Only non-empty values that differ from the baseline are sent. A field can
never be cleared through this path: an empty or whitespace-only proposal is
indistinguishable from "left untouched" and is dropped.
"""

from typing import Any

from src.schemas.profile import (
    EMPTY_MARKER,
    MAX_WEBSITES,
    SCALAR_FIELDS,
    ChangeSet,
    ChangeSetResult,
    DiffEntry,
    ProfileFields,
)

# Fields accepted from a raw update body, besides websites
WRITABLE_SCALAR_FIELDS: tuple[str, ...] = (*SCALAR_FIELDS, "profile_picture_handle")


def has_value(value: Any) -> bool:
    """True for non-null values that are not blank strings or empty lists."""
    if value is None:
        return False
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    if isinstance(value, str):
        return bool(value.strip())
    return True


def render_websites(websites: list[str]) -> str:
    return ", ".join(websites)


def compute_changes(baseline: ProfileFields, proposed: ProfileFields) -> ChangeSetResult:
    """Build the minimal update payload and its diff.

    Args:
        baseline: Profile as last loaded from the Graph API.
        proposed: Profile as edited by the user.

    Returns:
        ChangeSetResult: Changed fields and one DiffEntry per field, in
        SCALAR_FIELDS order with websites last. Empty when nothing qualifies.
    """
    changes: ChangeSet = {}
    diffs: list[DiffEntry] = []

    for name in SCALAR_FIELDS:
        new_value = getattr(proposed, name).strip()
        old_value = getattr(baseline, name) or ""
        if new_value and new_value != old_value:
            changes[name] = new_value
            diffs.append(DiffEntry(field=name, old=old_value or EMPTY_MARKER, new=new_value))

    # Websites are compared as a whole list, not per entry
    new_websites = list(proposed.websites[:MAX_WEBSITES])
    if new_websites:
        old_rendered = render_websites(baseline.websites)
        new_rendered = render_websites(new_websites)
        if new_rendered != old_rendered:
            changes["websites"] = new_websites
            diffs.append(DiffEntry(field="websites", old=old_rendered or EMPTY_MARKER, new=new_rendered))

    return ChangeSetResult(changes=changes, diffs=diffs)


def filter_update_fields(body: dict[str, Any]) -> ChangeSet:
    """Keep only the non-empty writable fields of a raw update body.

    Applied server-side regardless of what the client computed, so a
    client that sends blanks cannot wipe remote data.
    """
    changes: ChangeSet = {}
    for name in WRITABLE_SCALAR_FIELDS:
        if has_value(body.get(name)):
            changes[name] = body[name]

    websites = body.get("websites")
    if isinstance(websites, list):
        entries = [item.strip() for item in websites if isinstance(item, str) and item.strip()]
        if entries:
            changes["websites"] = entries[:MAX_WEBSITES]

    return changes
