"""
Filesystem project repository.

Stores each project as one JSON document with an index for listing.
Every write goes to a temporary file that is then renamed over the
target, so a crash never leaves a half-written project behind.

Several processes may share one store (a long automation run next to
manual commands). Read-check-write sequences hold an exclusive flock on
the store lock file, the index is re-read before every change, and a
save is rejected when the stored revision moved since the project was
loaded.
"""

import fcntl
import json
import logging
import os
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import jsonschema

from phaseflow.domain.exceptions import ConcurrentModificationError, ValidationError
from phaseflow.domain.interfaces import ProjectRepositoryInterface
from phaseflow.domain.models import Project
from phaseflow.infrastructure.persistence.serialization import (
    project_from_dict,
    project_to_dict,
)
from phaseflow.schemas import validate_project

logger = logging.getLogger(__name__)

LEASE_SUFFIX = ".lock"


class FilesystemProjectRepository(ProjectRepositoryInterface):
    """
    Persistent project store.

    Layout::

        <base_dir>/index.json
        <base_dir>/.store.lock              (flock target for writers)
        <base_dir>/projects/<project_id>.json
        <base_dir>/projects/<project_id>.lock  (automation lease)
    """

    def __init__(self, base_dir: str | Path):
        self._base_dir = Path(base_dir)
        self._projects_dir = self._base_dir / "projects"
        self._index_path = self._base_dir / "index.json"
        self._store_lock_path = self._base_dir / ".store.lock"
        # project_id -> lease_id for leases acquired through this instance
        self._leases: dict[str, str] = {}
        self._projects_dir.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        """Hold the store-wide write lock."""
        with open(self._store_lock_path, "a") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

    def _read_index(self) -> dict[str, Any]:
        if self._index_path.exists():
            with open(self._index_path) as f:
                result: dict[str, Any] = json.load(f)
                return result
        return {"version": "1.0", "projects": {}}

    def _write_atomic(self, path: Path, data: dict[str, Any]) -> None:
        """Write JSON using write-to-temp + rename."""
        temp_path = path.with_suffix(".tmp")
        with open(temp_path, "w") as f:
            json.dump(data, f, indent=2)
        temp_path.replace(path)  # Atomic on POSIX

    def _project_path(self, project_id: str) -> Path:
        if not project_id or "/" in project_id or project_id.startswith("."):
            raise ValidationError(f"Invalid project id: {project_id!r}")
        return self._projects_dir / f"{project_id}.json"

    def _lease_path(self, project_id: str) -> Path:
        return self._project_path(project_id).with_suffix(LEASE_SUFFIX)

    def _stored_revision(self, path: Path) -> int | None:
        if not path.exists():
            return None
        with open(path) as f:
            revision: int = json.load(f).get("revision", 0)
            return revision

    def save(self, project: Project) -> None:
        """
        Store the project aggregate, replacing any previous copy.

        Args:
            project: The project to store

        Raises:
            ConcurrentModificationError: If the stored copy is newer
            ValidationError: If another process holds the project's lease
        """
        path = self._project_path(project.id)
        with self._exclusive():
            self._check_lease(project.id)
            stored = self._stored_revision(path)
            if stored is not None and stored != project.revision:
                raise ConcurrentModificationError(project.id, project.revision, stored)

            project.revision += 1
            try:
                self._write_atomic(path, project_to_dict(project))
            except OSError:
                project.revision -= 1
                raise

            index = self._read_index()
            index["projects"][project.id] = {
                "path": str(path.relative_to(self._base_dir)),
                "name": project.name,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }
            self._write_atomic(self._index_path, index)
        logger.debug("Saved project %s r%d to %s", project.id, project.revision, path)

    def load(self, project_id: str) -> Project:
        """
        Load a project aggregate.

        Raises:
            KeyError: If the project does not exist
            ValidationError: If the stored document is invalid
        """
        path = self._project_path(project_id)
        if not path.exists():
            raise KeyError(f"Project not found: {project_id}")

        with open(path) as f:
            data = json.load(f)
        try:
            validate_project(data)
        except jsonschema.ValidationError as e:
            raise ValidationError(
                f"Stored project '{project_id}' is invalid: {e.message}"
            ) from e
        return project_from_dict(data)

    def delete(self, project_id: str) -> None:
        path = self._project_path(project_id)
        with self._exclusive():
            path.unlink(missing_ok=True)
            self._lease_path(project_id).unlink(missing_ok=True)
            self._leases.pop(project_id, None)
            index = self._read_index()
            if index["projects"].pop(project_id, None) is not None:
                self._write_atomic(self._index_path, index)

    def list_ids(self) -> list[str]:
        return sorted(self._read_index()["projects"])

    # =========================================================================
    # AUTOMATION LEASES
    # =========================================================================

    def _read_lease(self, project_id: str) -> dict[str, Any] | None:
        try:
            with open(self._lease_path(project_id)) as f:
                lease: dict[str, Any] = json.load(f)
                return lease
        except FileNotFoundError:
            return None

    def _check_lease(self, project_id: str) -> None:
        lease = self._read_lease(project_id)
        if lease is not None and lease.get("lease_id") != self._leases.get(project_id):
            raise ValidationError(
                f"Project '{project_id}' is under automation ({_describe(lease)}); "
                "changes were not saved"
            )

    def acquire_lease(self, project_id: str) -> None:
        lease = {
            "lease_id": uuid.uuid4().hex,
            "pid": os.getpid(),
            "acquired_at": datetime.now(timezone.utc).isoformat(),
        }
        with self._exclusive():
            existing = self._read_lease(project_id)
            if existing is not None:
                raise ValidationError(
                    f"Project '{project_id}' is already under automation "
                    f"({_describe(existing)})"
                )
            self._write_atomic(self._lease_path(project_id), lease)
        self._leases[project_id] = lease["lease_id"]
        logger.debug("Acquired automation lease on %s", project_id)

    def release_lease(self, project_id: str, force: bool = False) -> None:
        with self._exclusive():
            owned = self._leases.pop(project_id, None)
            lease = self._read_lease(project_id)
            if lease is None:
                return
            if force or lease.get("lease_id") == owned:
                self._lease_path(project_id).unlink(missing_ok=True)
                logger.debug("Released automation lease on %s", project_id)

    def lease_holder(self, project_id: str) -> str | None:
        with self._exclusive():
            lease = self._read_lease(project_id)
        return None if lease is None else _describe(lease)


def _describe(lease: dict[str, Any]) -> str:
    return f"pid {lease.get('pid')} since {lease.get('acquired_at')}"
