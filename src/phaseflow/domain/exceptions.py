"""
Domain exceptions for the lifecycle engine.

These represent business rule violations and external failures surfaced
by lifecycle operations. Every operation that raises one of these leaves
the project aggregate exactly as it was before the call.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from phaseflow.domain.models import PhaseStatus, SprintStatus


class LifecycleError(Exception):
    """Base class for all lifecycle failures."""


class ValidationError(LifecycleError):
    """
    Raised when an operation is rejected before any external call.

    Examples: generating a locked sprint, completing a phase with no
    output, editing a read-only phase.
    """


class InvalidTransition(ValidationError):
    """Raised when a status change is not in the transition table."""

    def __init__(
        self,
        entity_id: str,
        current: "PhaseStatus | SprintStatus",
        target: "PhaseStatus | SprintStatus",
    ):
        """
        Args:
            entity_id: Phase or sprint identifier
            current: Status the entity is in
            target: Status that was requested
        """
        super().__init__(
            f"'{entity_id}' cannot move from {current.value} to {target.value}"
        )
        self.entity_id = entity_id
        self.current = current
        self.target = target


class GenerationFailure(LifecycleError):
    """
    Raised when the generation service fails or times out.

    The message is passed through from the underlying service where
    one is available.
    """

    def __init__(self, message: str, operation: str = "generate"):
        """
        Args:
            message: Human-readable error message from the service
            operation: Name of the service call that failed
        """
        super().__init__(message)
        self.operation = operation


class MergeIncompleteError(LifecycleError):
    """Raised when a merge is attempted before every sprint is completed."""

    def __init__(self, phase_id: str, pending: list[str]):
        """
        Args:
            phase_id: The phase being merged
            pending: Names of sprints that are not completed
        """
        super().__init__(
            f"Cannot merge '{phase_id}': sprints not completed: {', '.join(pending)}"
        )
        self.phase_id = phase_id
        self.pending = pending


class ContextSeedFailure(LifecycleError):
    """
    Raised when summarization fails during a context-seeding merge.

    Completion is withheld and the project's compacted context is left
    unchanged.
    """

    def __init__(self, phase_id: str, cause: str):
        super().__init__(f"Context seeding failed for '{phase_id}': {cause}")
        self.phase_id = phase_id
        self.cause = cause


class AutomationCancelled(LifecycleError):
    """Raised when a stop arrives while an external call is in flight."""


class ConfigurationError(LifecycleError):
    """Raised when settings or template files are missing or invalid."""


class ConcurrentModificationError(LifecycleError):
    """
    Raised when saving a project that changed in the store since it was loaded.

    The stale copy is not written; reload the project and repeat the
    operation.
    """

    def __init__(self, project_id: str, expected: int, found: int):
        """
        Args:
            project_id: The project being saved
            expected: Revision the caller's copy was loaded at
            found: Revision currently in the store
        """
        super().__init__(
            f"Project '{project_id}' was modified elsewhere "
            f"(loaded revision {expected}, stored revision {found}); reload it"
        )
        self.project_id = project_id
        self.expected = expected
        self.found = found
