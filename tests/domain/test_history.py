"""Tests for VersionHistory."""

import pytest

from phaseflow.domain.exceptions import ValidationError
from phaseflow.domain.history import VersionedOutput, VersionHistory, VersionReason


class TestVersionHistory:
    def test_versions_numbered_from_one(self):
        history = VersionHistory()

        first = history.append("a", VersionReason.INITIAL)
        second = history.append("b", VersionReason.REGENERATION)

        assert (first.version, second.version) == (1, 2)
        assert history.latest is second
        assert len(history) == 2

    def test_empty_history(self):
        history = VersionHistory()

        assert history.latest is None
        assert not history
        assert history.next_generation_reason() == VersionReason.INITIAL

    def test_next_generation_reason_after_first(self):
        history = VersionHistory()
        history.append("a", VersionReason.MANUAL_EDIT)

        assert history.next_generation_reason() == VersionReason.REGENERATION

    def test_entries_are_immutable(self):
        entry = VersionHistory().append("a", VersionReason.INITIAL)

        with pytest.raises(AttributeError):
            entry.content = "changed"  # type: ignore[misc]

    def test_get_by_version(self):
        history = VersionHistory()
        history.append("a", VersionReason.INITIAL)
        history.append("b", VersionReason.REGENERATION)

        assert history.get(1).content == "a"
        with pytest.raises(ValidationError, match="does not exist"):
            history.get(0)
        with pytest.raises(ValidationError):
            history.get(3)

    def test_from_entries_accepts_contiguous(self):
        entries = [
            VersionedOutput(1, "a", VersionReason.INITIAL, "2025-01-01T00:00:00Z"),
            VersionedOutput(2, "b", VersionReason.MERGE, "2025-01-02T00:00:00Z"),
        ]

        history = VersionHistory.from_entries(entries)

        assert list(history) == entries

    def test_from_entries_rejects_gap(self):
        entries = [
            VersionedOutput(1, "a", VersionReason.INITIAL, "2025-01-01T00:00:00Z"),
            VersionedOutput(3, "c", VersionReason.MANUAL_EDIT, "2025-01-03T00:00:00Z"),
        ]

        with pytest.raises(ValidationError, match="expected 2, found 3"):
            VersionHistory.from_entries(entries)

    def test_reason_labels(self):
        assert VersionReason.MERGE.value == "Merged documents from sprints"
        assert VersionReason.MANUAL_EDIT.value == "Manual edit"
