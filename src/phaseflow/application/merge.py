"""
Merge Engine: deterministic composition of sprint outputs.

The merged document is a pure function of the sprints' latest versions in
sprint-list order, so identical sprint outputs always produce byte-identical
content regardless of when each sprint was generated.
"""

from collections.abc import Sequence

from phaseflow.domain.exceptions import MergeIncompleteError, ValidationError
from phaseflow.domain.models import Phase, Sprint, SprintStatus

MERGE_SEPARATOR = "\n\n---\n\n"
SECTION_HEADING = "## {name}\n\n"


def format_section(sprint: Sprint) -> str:
    """Render one sprint's latest version as a merge block."""
    latest = sprint.outputs.latest
    if latest is None:
        raise ValidationError(f"Sprint '{sprint.id}' has no output to merge")
    return SECTION_HEADING.format(name=sprint.name) + latest.content


def compose(sprints: Sequence[Sprint]) -> str:
    """Join the sprints' latest outputs, in the given order, with MERGE_SEPARATOR."""
    return MERGE_SEPARATOR.join(format_section(s) for s in sprints)


def check_mergeable(phase: Phase) -> None:
    """
    Validate the merge precondition.

    Raises:
        ValidationError: If the phase has no sprints
        MergeIncompleteError: If any sprint is not completed
    """
    if not phase.sprints:
        raise ValidationError(f"Phase '{phase.id}' has no sprints to merge")
    pending = [s.name for s in phase.sprints if s.status != SprintStatus.COMPLETED]
    if pending:
        raise MergeIncompleteError(phase.id, pending)


def compose_phase(phase: Phase) -> str:
    """Merged content for a phase whose sprints are all completed."""
    check_mergeable(phase)
    return compose(phase.sprints)
