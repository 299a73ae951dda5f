"""Per-user editing state for collaborators that load, diff and confirm.

One EditingSession belongs to one editor (a CLI run, a UI tab). It is passed
explicitly into the core rather than kept in module globals.
"""

from dataclasses import dataclass, field
from typing import Any

from src.core.exceptions import EmptyChangeSetError, NotLoadedError
from src.core.graph import GraphCredentials
from src.schemas.profile import ChangeSet, ChangeSetResult, ProfileFields
from src.services.change_detection import compute_changes


@dataclass
class EditingSession:
    """Baseline profile plus the changeset awaiting confirmation."""

    entity_id: str
    credentials: GraphCredentials
    baseline: ProfileFields | None = None
    pending: ChangeSet | None = field(default=None)

    @property
    def loaded(self) -> bool:
        return self.baseline is not None

    def load(self, profile: dict[str, Any] | ProfileFields) -> ProfileFields:
        """Replace the baseline with a freshly read profile."""
        if not isinstance(profile, ProfileFields):
            profile = ProfileFields.model_validate(profile)
        self.baseline = profile
        self.pending = None
        return profile

    def stage(self, proposed: ProfileFields) -> ChangeSetResult:
        """Diff the proposal against the baseline and hold the changes.

        Raises:
            NotLoadedError: If no profile has been loaded yet.
        """
        if self.baseline is None:
            raise NotLoadedError()
        result = compute_changes(self.baseline, proposed)
        self.pending = result.changes or None
        return result

    def discard(self) -> None:
        self.pending = None

    def take_pending(self) -> ChangeSet:
        """Return the staged changes for submission.

        Raises:
            EmptyChangeSetError: If nothing is staged.
        """
        if not self.pending:
            raise EmptyChangeSetError("No changes to update.")
        return dict(self.pending)

    def commit(self) -> ProfileFields:
        """Fold the submitted changes into the baseline after a successful write."""
        if self.baseline is None:
            raise NotLoadedError()
        if self.pending:
            self.baseline = self.baseline.model_copy(update=self.pending)
        self.pending = None
        return self.baseline
