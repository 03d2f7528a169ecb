"""
Domain models for the lifecycle engine.

Value objects (versions, checklist items, attachments, sprint seeds) are
immutable frozen dataclasses. The aggregate entities (Project, Phase,
Sprint, DesignReview) are mutable: lifecycle operations apply their state
delta to them in one synchronous step after every external call has
returned.
"""

from dataclasses import dataclass, field
from enum import Enum

from phaseflow.domain.history import VersionHistory

# =============================================================================
# STATUS ENUMS
# =============================================================================


class PhaseStatus(str, Enum):
    """Lifecycle status of a phase."""

    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    IN_REVIEW = "in-review"  # Design review gate is open
    COMPLETED = "completed"  # Terminal


class SprintStatus(str, Enum):
    """Lifecycle status of a sprint."""

    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class ReviewStatus(str, Enum):
    """Status of a design review."""

    PENDING = "pending"
    IN_REVIEW = "in-review"
    APPROVED = "approved"


class DevelopmentMode(str, Enum):
    """How verbose generated documents should be."""

    FULL = "full"
    RAPID = "rapid"


class AutomationStatus(str, Enum):
    """Outcome of an automation run."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"  # Stopped by request
    AWAITING_REVIEW = "awaiting-review"  # Blocked on an open design review
    ERROR = "error"
    COMPLETE = "complete"


# =============================================================================
# VALUE OBJECTS
# =============================================================================


@dataclass(frozen=True)
class ChecklistItem:
    """Single design review verification item."""

    id: str
    text: str
    checked: bool = False


@dataclass(frozen=True)
class Attachment:
    """File reference attached to a sprint. Contents are never read."""

    name: str
    mime_type: str


@dataclass(frozen=True)
class SprintSeed:
    """Name and description of a sprint proposed by sprint expansion."""

    name: str
    description: str


@dataclass(frozen=True)
class SprintSpecification:
    """Sprint document returned together with its concrete deliverables."""

    content: str
    deliverables: tuple[str, ...] = ()


# =============================================================================
# AGGREGATE
# =============================================================================


@dataclass
class DesignReview:
    """Checklist-based gate that blocks direct phase completion."""

    required: bool
    checklist: tuple[ChecklistItem, ...] = ()
    status: ReviewStatus = ReviewStatus.PENDING
    review_start_date: str | None = None

    def all_checked(self) -> bool:
        """True when the checklist is non-empty and every item is checked."""
        return bool(self.checklist) and all(item.checked for item in self.checklist)


@dataclass
class Sprint:
    """Independently versioned sub-document within a phase."""

    id: str
    name: str
    description: str
    status: SprintStatus = SprintStatus.NOT_STARTED
    deliverables: tuple[str, ...] = ()
    outputs: VersionHistory = field(default_factory=VersionHistory)
    notes: str = ""
    attachments: tuple[Attachment, ...] = ()


@dataclass
class Phase:
    """Top-level lifecycle stage of a project."""

    id: str
    name: str
    description: str
    status: PhaseStatus = PhaseStatus.NOT_STARTED
    sprints: list[Sprint] = field(default_factory=list)
    outputs: VersionHistory = field(default_factory=VersionHistory)
    tuning_settings: dict[str, int] = field(default_factory=dict)
    is_editable: bool = True
    design_review: DesignReview | None = None
    seeds_context: bool = False
    expansion_after: int | None = None
    sprints_expanded: bool = False
    tracks_deliverables: bool = False  # Expanded sprints return a deliverables list

    @property
    def is_multi_document(self) -> bool:
        return bool(self.sprints)

    @property
    def review_required(self) -> bool:
        return self.design_review is not None and self.design_review.required

    def get_sprint(self, sprint_id: str) -> Sprint:
        """Get a sprint by ID.

        Raises:
            KeyError: If the phase has no such sprint
        """
        for sprint in self.sprints:
            if sprint.id == sprint_id:
                return sprint
        raise KeyError(f"Sprint '{sprint_id}' not found in phase '{self.id}'")

    def sprint_index(self, sprint_id: str) -> int:
        for i, sprint in enumerate(self.sprints):
            if sprint.id == sprint_id:
                return i
        raise KeyError(f"Sprint '{sprint_id}' not found in phase '{self.id}'")

    def specifies_deliverables(self, sprint_id: str) -> bool:
        """True when the sprint lies past the seed batch of a deliverable-tracking phase."""
        if not self.tracks_deliverables:
            return False
        return self.sprint_index(sprint_id) >= (self.expansion_after or 0)


@dataclass
class Project:
    """
    Aggregate root owning an ordered list of phases.

    Phase order is fixed at creation. Phase i is eligible for work only
    once every phase before it is completed.
    """

    id: str
    name: str
    owner: str
    requirements: str
    constraints: str
    disciplines: tuple[str, ...] = ()
    development_mode: DevelopmentMode = DevelopmentMode.FULL
    compacted_context: str | None = None
    phases: list[Phase] = field(default_factory=list)
    created_at: str = ""
    revision: int = 0  # Store revision this copy was loaded at; bumped by save

    def get_phase(self, phase_id: str) -> Phase:
        """Get a phase by ID.

        Raises:
            KeyError: If the project has no such phase
        """
        for phase in self.phases:
            if phase.id == phase_id:
                return phase
        raise KeyError(f"Phase '{phase_id}' not found in project '{self.id}'")

    def phase_index(self, phase_id: str) -> int:
        for i, phase in enumerate(self.phases):
            if phase.id == phase_id:
                return i
        raise KeyError(f"Phase '{phase_id}' not found in project '{self.id}'")

    def is_phase_eligible(self, phase_id: str) -> bool:
        """True when every phase before this one is completed."""
        index = self.phase_index(phase_id)
        return all(p.status == PhaseStatus.COMPLETED for p in self.phases[:index])

    def first_incomplete_phase(self) -> Phase | None:
        for phase in self.phases:
            if phase.status != PhaseStatus.COMPLETED:
                return phase
        return None

    @property
    def is_complete(self) -> bool:
        return all(p.status == PhaseStatus.COMPLETED for p in self.phases)
