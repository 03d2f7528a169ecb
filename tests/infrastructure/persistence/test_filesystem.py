"""Tests for FilesystemProjectRepository."""

import asyncio
import dataclasses
import json

import pytest

from phaseflow.domain.exceptions import ConcurrentModificationError, ValidationError
from phaseflow.domain.history import VersionReason
from phaseflow.infrastructure.persistence.filesystem import FilesystemProjectRepository


class TestFilesystemProjectRepository:
    def test_round_trip_after_lifecycle_operations(self, tmp_path, driver, lifecycle, project):
        asyncio.run(driver.generate_design_sprints())
        asyncio.run(lifecycle.merge(project, "design"))
        asyncio.run(lifecycle.mark_complete(project, "design"))
        lifecycle.add_attachment(project, "design", "design-1", "sketch.png", "image/png")
        repository = FilesystemProjectRepository(tmp_path)

        repository.save(project)
        loaded = FilesystemProjectRepository(tmp_path).load(project.id)

        assert loaded == project

    def test_layout(self, tmp_path, project):
        repository = FilesystemProjectRepository(tmp_path)

        repository.save(project)

        assert (tmp_path / "projects" / f"{project.id}.json").exists()
        index = json.loads((tmp_path / "index.json").read_text())
        assert index["projects"][project.id]["name"] == "Solar Pump"
        assert not list(tmp_path.rglob("*.tmp"))

    def test_load_missing_raises(self, tmp_path):
        with pytest.raises(KeyError):
            FilesystemProjectRepository(tmp_path).load("missing")

    def test_invalid_document_rejected(self, tmp_path, project):
        repository = FilesystemProjectRepository(tmp_path)
        repository.save(project)
        path = tmp_path / "projects" / f"{project.id}.json"
        data = json.loads(path.read_text())
        data["phases"][0]["status"] = "finished"
        path.write_text(json.dumps(data))

        with pytest.raises(ValidationError, match="invalid"):
            repository.load(project.id)

    def test_non_contiguous_history_rejected(self, tmp_path, lifecycle, project):
        asyncio.run(lifecycle.generate_phase(project, "concept"))
        repository = FilesystemProjectRepository(tmp_path)
        repository.save(project)
        path = tmp_path / "projects" / f"{project.id}.json"
        data = json.loads(path.read_text())
        data["phases"][0]["outputs"][0]["version"] = 2
        path.write_text(json.dumps(data))

        with pytest.raises(ValidationError, match="not contiguous"):
            repository.load(project.id)

    def test_unsafe_id_rejected(self, tmp_path):
        with pytest.raises(ValidationError, match="Invalid project id"):
            FilesystemProjectRepository(tmp_path).load("../escape")

    def test_delete(self, tmp_path, project):
        repository = FilesystemProjectRepository(tmp_path)
        repository.save(project)

        repository.delete(project.id)

        assert repository.list_ids() == []
        assert FilesystemProjectRepository(tmp_path).list_ids() == []


class TestSharedStore:
    """Several repository instances (processes) working on one directory."""

    def test_index_keeps_projects_saved_elsewhere(self, tmp_path, project):
        long_running = FilesystemProjectRepository(tmp_path)
        other = FilesystemProjectRepository(tmp_path)

        other.save(dataclasses.replace(project, id="second-project", revision=0))
        long_running.save(project)

        assert long_running.list_ids() == ["proj-001", "second-project"]
        assert FilesystemProjectRepository(tmp_path).list_ids() == [
            "proj-001",
            "second-project",
        ]

    def test_save_bumps_revision(self, tmp_path, project):
        repository = FilesystemProjectRepository(tmp_path)

        repository.save(project)
        repository.save(project)

        assert project.revision == 2
        assert repository.load(project.id).revision == 2

    def test_stale_copy_rejected(self, tmp_path, project):
        FilesystemProjectRepository(tmp_path).save(project)
        first = FilesystemProjectRepository(tmp_path).load(project.id)
        second = FilesystemProjectRepository(tmp_path).load(project.id)
        first.get_phase("concept").outputs.append("first edit", VersionReason.MANUAL_EDIT)
        second.get_phase("concept").outputs.append("second edit", VersionReason.MANUAL_EDIT)
        FilesystemProjectRepository(tmp_path).save(first)

        with pytest.raises(ConcurrentModificationError, match="reload"):
            FilesystemProjectRepository(tmp_path).save(second)

        stored = FilesystemProjectRepository(tmp_path).load(project.id)
        assert [e.content for e in stored.get_phase("concept").outputs] == ["first edit"]
        assert second.revision == 1

    def test_lease_blocks_other_writers(self, tmp_path, project):
        owner = FilesystemProjectRepository(tmp_path)
        owner.save(project)
        owner.acquire_lease(project.id)
        other = FilesystemProjectRepository(tmp_path)
        copy = other.load(project.id)

        assert other.lease_holder(project.id) is not None
        with pytest.raises(ValidationError, match="under automation"):
            other.save(copy)
        with pytest.raises(ValidationError, match="already under automation"):
            other.acquire_lease(project.id)
        owner.save(project)

        owner.release_lease(project.id)

        assert other.lease_holder(project.id) is None
        assert not (tmp_path / "projects" / f"{project.id}.lock").exists()

    def test_release_leaves_foreign_lease_unless_forced(self, tmp_path, project):
        FilesystemProjectRepository(tmp_path).acquire_lease(project.id)
        other = FilesystemProjectRepository(tmp_path)

        other.release_lease(project.id)
        assert other.lease_holder(project.id) is not None

        other.release_lease(project.id, force=True)
        assert other.lease_holder(project.id) is None
