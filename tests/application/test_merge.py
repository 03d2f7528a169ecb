"""Tests for the merge engine."""

import pytest

from phaseflow.application.merge import (
    MERGE_SEPARATOR,
    check_mergeable,
    compose,
    compose_phase,
    format_section,
)
from phaseflow.domain.exceptions import MergeIncompleteError, ValidationError
from phaseflow.domain.history import VersionReason
from phaseflow.domain.models import Phase, Sprint, SprintStatus


def _sprint(sprint_id: str, name: str, *contents: str) -> Sprint:
    sprint = Sprint(id=sprint_id, name=name, description="")
    for content in contents:
        sprint.outputs.append(content, VersionReason.INITIAL)
    if contents:
        sprint.status = SprintStatus.COMPLETED
    return sprint


class TestCompose:
    def test_format_section_uses_latest_version(self):
        sprint = _sprint("s1", "Scope", "old", "new")

        assert format_section(sprint) == "## Scope\n\nnew"

    def test_format_section_without_output_rejected(self):
        with pytest.raises(ValidationError, match="no output"):
            format_section(_sprint("s1", "Scope"))

    def test_compose_preserves_list_order(self):
        sprints = [_sprint("s1", "A", "alpha"), _sprint("s2", "B", "beta")]

        assert compose(sprints) == "## A\n\nalpha\n\n---\n\n## B\n\nbeta"

    def test_separator_constant(self):
        assert MERGE_SEPARATOR == "\n\n---\n\n"

    def test_identical_outputs_merge_identically(self):
        """Merge content depends only on latest outputs and order."""
        first = [_sprint("s1", "A", "x", "alpha"), _sprint("s2", "B", "beta")]
        second = [_sprint("s1", "A", "alpha"), _sprint("s2", "B", "y", "z", "beta")]

        assert compose(first) == compose(second)


class TestMergePrecondition:
    def test_phase_without_sprints_rejected(self):
        phase = Phase(id="p", name="P", description="")

        with pytest.raises(ValidationError, match="no sprints"):
            check_mergeable(phase)

    def test_pending_sprints_listed(self):
        phase = Phase(
            id="p",
            name="P",
            description="",
            sprints=[_sprint("s1", "A", "alpha"), _sprint("s2", "B"), _sprint("s3", "C")],
        )

        with pytest.raises(MergeIncompleteError) as exc_info:
            compose_phase(phase)

        assert exc_info.value.pending == ["B", "C"]
        assert exc_info.value.phase_id == "p"

    def test_compose_phase(self):
        phase = Phase(
            id="p",
            name="P",
            description="",
            sprints=[_sprint("s1", "A", "alpha"), _sprint("s2", "B", "beta")],
        )

        assert compose_phase(phase) == compose(phase.sprints)
