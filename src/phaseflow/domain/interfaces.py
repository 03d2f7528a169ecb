"""
Domain interfaces (Ports) for the lifecycle engine.

These abstract base classes define the contracts that adapters must satisfy.
They have no external dependencies and represent the core domain boundaries.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from phaseflow.domain.lifecycle_event import LifecycleEvent, LifecycleEventType
    from phaseflow.domain.models import (
        ChecklistItem,
        Project,
        SprintSeed,
        SprintSpecification,
    )


class GenerationServiceInterface(ABC):
    """
    Port for AI text generation.

    All calls are asynchronous, may fail and may be slow. The lifecycle
    layer bounds every call with a timeout and treats any exception raised
    here as a generation failure; adapters should raise with a message that
    is meaningful to the end user.
    """

    @abstractmethod
    async def generate(
        self, prompt: str, context: str, tuning_settings: Mapping[str, int]
    ) -> str:
        """
        Generate a document.

        Args:
            prompt: Task instructions for this document
            context: Project context assembled from earlier phases
            tuning_settings: Named generation parameters (0-100)

        Returns:
            The generated document content
        """

    @abstractmethod
    async def specify_sprint(
        self, prompt: str, context: str, tuning_settings: Mapping[str, int]
    ) -> "SprintSpecification":
        """
        Generate a sprint document together with its concrete deliverables.

        Used for phases whose sprints track deliverables; takes the same
        arguments as ``generate``.
        """

    @abstractmethod
    async def summarize(self, content: str) -> str:
        """Condense content into the project's compacted context."""

    @abstractmethod
    async def compare(
        self, content_a: str, content_b: str, reason_a: str = "", reason_b: str = ""
    ) -> str:
        """Describe the differences between two document versions."""

    @abstractmethod
    async def expand_sprints(self, seed_content: str) -> list["SprintSeed"]:
        """
        Propose follow-up sprints from already completed sprint outputs.

        Args:
            seed_content: Merged content of the completed seed sprints

        Returns:
            Ordered list of sprints to append
        """

    @abstractmethod
    async def review_checklist(self, content: str) -> list["ChecklistItem"]:
        """Produce the design review checklist for a phase document."""


class ProjectRepositoryInterface(ABC):
    """
    Port for project persistence.

    Projects are loaded and saved as whole aggregates; there are no
    partial or field-level writes. Saves are optimistic: a copy loaded
    before someone else's save is rejected instead of overwriting it.

    An automation run holds a lease on its project for the length of the
    run. While the lease is held, only the holder may save the project.
    """

    @abstractmethod
    def save(self, project: "Project") -> None:
        """
        Store the full project aggregate, replacing any previous copy.

        On success ``project.revision`` is incremented to the stored revision.

        Raises:
            ConcurrentModificationError: If the stored revision differs from
                ``project.revision``
            ValidationError: If another holder owns the project's lease
        """

    @abstractmethod
    def load(self, project_id: str) -> "Project":
        """
        Load a project aggregate.

        Raises:
            KeyError: If the project does not exist
        """

    @abstractmethod
    def delete(self, project_id: str) -> None:
        """Delete a project aggregate as a unit."""

    @abstractmethod
    def list_ids(self) -> list[str]:
        """IDs of all stored projects."""

    @abstractmethod
    def acquire_lease(self, project_id: str) -> None:
        """
        Reserve a project for an automation run.

        Raises:
            ValidationError: If the lease is already held
        """

    @abstractmethod
    def release_lease(self, project_id: str, force: bool = False) -> None:
        """
        Give up a lease held by this repository.

        Args:
            project_id: Leased project
            force: Also remove a lease held by someone else (stale runs)
        """

    @abstractmethod
    def lease_holder(self, project_id: str) -> str | None:
        """Description of the current lease holder, or None when free."""


class LifecycleEventStoreInterface(ABC):
    """Port for the append-only lifecycle trace."""

    @abstractmethod
    def store_event(self, event: "LifecycleEvent") -> str:
        """Store an event, returning its event_id."""

    @abstractmethod
    def get_events(
        self,
        project_id: str,
        event_type: "LifecycleEventType | None" = None,
        entity_id: str | None = None,
    ) -> list["LifecycleEvent"]:
        """Events for a project in creation order, optionally filtered."""
