"""
VersionBrowser: read-side navigation of version histories.

Viewing is a pure read. Switching the viewed entity always resets the view
to that entity's latest version, and editing always starts from the
latest content, never from the version being viewed.
"""

from dataclasses import dataclass

from phaseflow.domain.exceptions import ValidationError
from phaseflow.domain.history import VersionedOutput, VersionHistory
from phaseflow.domain.models import Project


@dataclass(frozen=True)
class EntityRef:
    """Reference to a phase, or to a sprint within a phase."""

    phase_id: str
    sprint_id: str | None = None

    @property
    def label(self) -> str:
        return f"{self.phase_id}/{self.sprint_id}" if self.sprint_id else self.phase_id


def resolve_history(project: Project, ref: EntityRef) -> VersionHistory:
    """
    Find the history an EntityRef points at.

    Raises:
        ValidationError: If the phase or sprint does not exist
    """
    try:
        phase = project.get_phase(ref.phase_id)
        if ref.sprint_id is None:
            return phase.outputs
        return phase.get_sprint(ref.sprint_id).outputs
    except KeyError as e:
        raise ValidationError(str(e.args[0])) from e


class VersionBrowser:
    """Tracks which entity and version a user is looking at."""

    def __init__(self, project: Project) -> None:
        self._project = project
        self._ref: EntityRef | None = None
        self._version: int | None = None

    @property
    def selected(self) -> EntityRef | None:
        return self._ref

    @property
    def viewed_version(self) -> int | None:
        return self._version

    def select(self, ref: EntityRef) -> VersionedOutput | None:
        """Switch to an entity and reset the view to its latest version."""
        history = resolve_history(self._project, ref)
        self._ref = ref
        latest = history.latest
        self._version = latest.version if latest else None
        return latest

    def view(self, version: int) -> VersionedOutput:
        """
        Show a historical version of the selected entity.

        Raises:
            ValidationError: If nothing is selected or the version is unknown
        """
        history = self._history()
        entry = history.get(version)
        self._version = version
        return entry

    def current(self) -> VersionedOutput | None:
        """The version currently on screen."""
        if self._version is None:
            return None
        return self._history().get(self._version)

    def versions(self) -> list[VersionedOutput]:
        return list(self._history())

    def edit_buffer(self) -> str:
        """Starting content for an edit: the latest version, or empty."""
        latest = self._history().latest
        return latest.content if latest else ""

    def _history(self) -> VersionHistory:
        if self._ref is None:
            raise ValidationError("No phase or sprint selected")
        return resolve_history(self._project, self._ref)
