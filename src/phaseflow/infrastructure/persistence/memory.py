"""
In-memory project repository.

Stores deep copies so callers never
share mutable aggregates with the store.
"""

import copy
from datetime import datetime, timezone

from phaseflow.domain.exceptions import ConcurrentModificationError, ValidationError
from phaseflow.domain.interfaces import ProjectRepositoryInterface
from phaseflow.domain.models import Project


class InMemoryProjectRepository(ProjectRepositoryInterface):
    """
    Dictionary-backed project store for testing.

    Leases only guard against a second automation run; every caller of
    one instance shares the same process, so saves are not checked
    against the lease.
    """

    def __init__(self) -> None:
        self._projects: dict[str, Project] = {}
        self._leases: dict[str, str] = {}

    def save(self, project: Project) -> None:
        stored = self._projects.get(project.id)
        if stored is not None and stored.revision != project.revision:
            raise ConcurrentModificationError(
                project.id, project.revision, stored.revision
            )
        project.revision += 1
        self._projects[project.id] = copy.deepcopy(project)

    def load(self, project_id: str) -> Project:
        if project_id not in self._projects:
            raise KeyError(f"Project not found: {project_id}")
        return copy.deepcopy(self._projects[project_id])

    def delete(self, project_id: str) -> None:
        self._projects.pop(project_id, None)
        self._leases.pop(project_id, None)

    def list_ids(self) -> list[str]:
        return sorted(self._projects)

    def acquire_lease(self, project_id: str) -> None:
        holder = self._leases.get(project_id)
        if holder is not None:
            raise ValidationError(
                f"Project '{project_id}' is already under automation ({holder})"
            )
        self._leases[project_id] = (
            f"in-memory run since {datetime.now(timezone.utc).isoformat()}"
        )

    def release_lease(self, project_id: str, force: bool = False) -> None:
        self._leases.pop(project_id, None)

    def lease_holder(self, project_id: str) -> str | None:
        return self._leases.get(project_id)
