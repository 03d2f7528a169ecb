"""
Phase and sprint state machines.

Transitions are declared as exhaustive tables. Any (current, target) pair
missing from a table is rejected with InvalidTransition, so status can
only move forward along the declared paths.
"""

from types import MappingProxyType

from phaseflow.domain.exceptions import InvalidTransition
from phaseflow.domain.models import Phase, PhaseStatus, Sprint, SprintStatus

# Self-loop on IN_PROGRESS covers regeneration of an already started phase.
# A phase is always started before it can be reviewed or completed.
PHASE_TRANSITIONS: MappingProxyType[PhaseStatus, frozenset[PhaseStatus]] = (
    MappingProxyType(
        {
            PhaseStatus.NOT_STARTED: frozenset({PhaseStatus.IN_PROGRESS}),
            PhaseStatus.IN_PROGRESS: frozenset(
                {PhaseStatus.IN_PROGRESS, PhaseStatus.IN_REVIEW, PhaseStatus.COMPLETED}
            ),
            PhaseStatus.IN_REVIEW: frozenset({PhaseStatus.COMPLETED}),
            PhaseStatus.COMPLETED: frozenset(),
        }
    )
)

SPRINT_TRANSITIONS: MappingProxyType[SprintStatus, frozenset[SprintStatus]] = (
    MappingProxyType(
        {
            SprintStatus.NOT_STARTED: frozenset(
                {SprintStatus.IN_PROGRESS, SprintStatus.COMPLETED}
            ),
            SprintStatus.IN_PROGRESS: frozenset({SprintStatus.COMPLETED}),
            SprintStatus.COMPLETED: frozenset(),
        }
    )
)


def can_transition_phase(current: PhaseStatus, target: PhaseStatus) -> bool:
    return target in PHASE_TRANSITIONS[current]


def can_transition_sprint(current: SprintStatus, target: SprintStatus) -> bool:
    return target in SPRINT_TRANSITIONS[current]


def check_phase_transition(phase: Phase, target: PhaseStatus) -> None:
    """
    Validate a phase status change without applying it.

    Raises:
        InvalidTransition: If the table does not allow the change
    """
    if not can_transition_phase(phase.status, target):
        raise InvalidTransition(phase.id, phase.status, target)


def check_sprint_transition(sprint: Sprint, target: SprintStatus) -> None:
    """
    Validate a sprint status change without applying it.

    Raises:
        InvalidTransition: If the table does not allow the change
    """
    if not can_transition_sprint(sprint.status, target):
        raise InvalidTransition(sprint.id, sprint.status, target)


def phase_path(phase: Phase, target: PhaseStatus) -> tuple[PhaseStatus, ...]:
    """
    Statuses a phase passes through on its way to ``target``.

    A not-started phase (one that only has manual edits) is started first.

    Raises:
        InvalidTransition: If any step is not allowed
    """
    if phase.status == PhaseStatus.NOT_STARTED and target != PhaseStatus.IN_PROGRESS:
        path: tuple[PhaseStatus, ...] = (PhaseStatus.IN_PROGRESS, target)
    else:
        path = (target,)
    current = phase.status
    for step in path:
        if not can_transition_phase(current, step):
            raise InvalidTransition(phase.id, current, step)
        current = step
    return path


def transition_phase(phase: Phase, target: PhaseStatus) -> None:
    check_phase_transition(phase, target)
    phase.status = target


def transition_sprint(sprint: Sprint, target: SprintStatus) -> None:
    check_sprint_transition(sprint, target)
    sprint.status = target
