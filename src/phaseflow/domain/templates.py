"""
Lifecycle templates.

A LifecycleTemplate is the phase/sprint skeleton a project is created
from. Templates are immutable; ``create_project`` instantiates a fresh
aggregate with every status ``not-started`` and every history empty.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from types import MappingProxyType

from phaseflow.domain.models import (
    DesignReview,
    DevelopmentMode,
    Phase,
    Project,
    Sprint,
)


@dataclass(frozen=True)
class SprintTemplate:
    """Skeleton of one sprint."""

    name: str
    description: str


@dataclass(frozen=True)
class PhaseTemplate:
    """Skeleton of one phase.

    ``tuning`` enumerates the only keys the phase accepts, with their
    defaults. ``expansion_after`` is the size of the sprint batch after
    which the sprint list may be expanded once. With ``tracks_deliverables``
    each expanded sprint is generated together with its deliverables list.
    """

    name: str
    description: str
    sprints: tuple[SprintTemplate, ...] = ()
    tuning: tuple[tuple[str, int], ...] = ()
    review_required: bool = False
    seeds_context: bool = False
    expansion_after: int | None = None
    is_editable: bool = True
    tracks_deliverables: bool = False

    @property
    def tuning_keys(self) -> frozenset[str]:
        return frozenset(key for key, _ in self.tuning)

    @property
    def phase_id(self) -> str:
        return slugify(self.name)


@dataclass(frozen=True)
class LifecycleTemplate:
    """Ordered list of phase skeletons."""

    name: str
    phases: tuple[PhaseTemplate, ...]

    def get(self, phase_name: str) -> PhaseTemplate | None:
        for phase in self.phases:
            if phase.name == phase_name:
                return phase
        return None


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


# =============================================================================
# DEFAULT LIFECYCLE
# =============================================================================

DEFAULT_LIFECYCLE = LifecycleTemplate(
    name="engineering",
    phases=(
        PhaseTemplate(
            name="Feasibility Study",
            description=(
                "Determine if the project is technically, economically, and "
                "strategically viable before committing significant resources."
            ),
            tuning=(
                ("marketAnalysis", 80),
                ("technicalFeasibility", 90),
                ("economicViability", 70),
                ("pestAnalysis", 60),
            ),
        ),
        PhaseTemplate(
            name="Requirements",
            description="Define clear functional and performance objectives",
            sprints=(
                SprintTemplate(
                    "Project Scope",
                    "A high-level document outlining the project's purpose, "
                    "objectives, and deliverables.",
                ),
                SprintTemplate(
                    "Statement of Work (SOW)",
                    "A formal document detailing the work activities, "
                    "deliverables, and timeline.",
                ),
                SprintTemplate(
                    "Technical Requirements Specification",
                    "A detailed specification of the technical requirements, "
                    "including performance, reliability, and safety.",
                ),
            ),
            tuning=(
                ("clarity", 70),
                ("technicality", 60),
                ("foresight", 50),
                ("riskAversion", 60),
                ("userCentricity", 75),
                ("conciseness", 40),
            ),
            seeds_context=True,
        ),
        PhaseTemplate(
            name="Preliminary Design",
            description="Create and compare initial concepts via trade studies",
            sprints=(
                SprintTemplate(
                    "Conceptual Design Options",
                    "Generate several distinct high-level design concepts to "
                    "address the project requirements.",
                ),
                SprintTemplate(
                    "Trade Study Analysis",
                    "Conduct a formal trade study to compare the generated "
                    "concepts against weighted criteria and select the optimal "
                    "path forward.",
                ),
                SprintTemplate(
                    "Design Review Checklist",
                    "A formal checklist to verify all preliminary design "
                    "requirements and success criteria have been met before "
                    "proceeding.",
                ),
            ),
            tuning=(
                ("creativity", 80),
                ("costOptimization", 50),
                ("performanceBias", 70),
                ("modularity", 60),
            ),
            review_required=True,
            expansion_after=2,
        ),
        PhaseTemplate(
            name="Critical Design",
            description=(
                "Develop a detailed, comprehensive design specification and "
                "implementation sprints"
            ),
            sprints=(
                SprintTemplate(
                    "Preliminary Specification",
                    "A preliminary technical specification from which the "
                    "development sprints of the phase are planned.",
                ),
            ),
            tuning=(
                ("technicalDepth", 90),
                ("failureAnalysis", 70),
                ("manufacturability", 60),
                ("standardsAdherence", 85),
            ),
            review_required=True,
            expansion_after=1,
            tracks_deliverables=True,
        ),
        PhaseTemplate(
            name="Testing",
            description="Develop formal Verification and Validation plans",
            sprints=(
                SprintTemplate(
                    "Verification Plan",
                    "Define tests to confirm the system is built correctly to "
                    'specifications ("Are we building the product right?").',
                ),
                SprintTemplate(
                    "Validation Plan",
                    "Define tests to confirm the system meets user needs and "
                    'requirements ("Are we building the right product?").',
                ),
            ),
            tuning=(
                ("coverage", 90),
                ("edgeCaseFocus", 75),
                ("automationPriority", 80),
                ("destructiveTesting", 40),
            ),
        ),
        PhaseTemplate(
            name="Launch",
            description="Formulate a detailed launch and deployment strategy",
            tuning=(
                ("phasedRollout", 70),
                ("rollbackPlan", 90),
                ("marketingCoordination", 50),
                ("userTraining", 60),
            ),
        ),
        PhaseTemplate(
            name="Operation",
            description="Create an operations and maintenance manual",
            tuning=(
                ("monitoring", 90),
                ("preventativeMaintenance", 80),
                ("supportProtocol", 70),
                ("incidentResponse", 85),
            ),
        ),
        PhaseTemplate(
            name="Improvement",
            description="Identify and prioritize future improvements",
            tuning=(
                ("userFeedback", 80),
                ("performanceAnalysis", 90),
                ("featureRoadmap", 70),
                ("competitiveLandscape", 60),
            ),
        ),
    ),
)

TEMPLATES: MappingProxyType[str, LifecycleTemplate] = MappingProxyType(
    {DEFAULT_LIFECYCLE.name: DEFAULT_LIFECYCLE}
)


def instantiate_phase(template: PhaseTemplate) -> Phase:
    """Build a fresh, not-started phase from its skeleton."""
    phase_id = template.phase_id
    return Phase(
        id=phase_id,
        name=template.name,
        description=template.description,
        sprints=[
            Sprint(id=f"{phase_id}-{i + 1}", name=s.name, description=s.description)
            for i, s in enumerate(template.sprints)
        ],
        tuning_settings=dict(template.tuning),
        is_editable=template.is_editable,
        design_review=DesignReview(required=template.review_required),
        seeds_context=template.seeds_context,
        expansion_after=template.expansion_after,
        tracks_deliverables=template.tracks_deliverables,
    )


def create_project(
    project_id: str,
    name: str,
    owner: str,
    requirements: str,
    constraints: str,
    disciplines: tuple[str, ...] = (),
    development_mode: DevelopmentMode = DevelopmentMode.FULL,
    template: LifecycleTemplate = DEFAULT_LIFECYCLE,
) -> Project:
    """
    Create a project together with its full phase/sprint skeleton.

    Args:
        project_id: Unique project identifier
        name: Human-readable project name
        owner: Owning user
        requirements: Free-text baseline requirements
        constraints: Free-text constraints
        disciplines: Engineering disciplines the project spans
        development_mode: Document verbosity
        template: Lifecycle skeleton to instantiate

    Returns:
        A project whose phases are all not-started with empty histories
    """
    return Project(
        id=project_id,
        name=name,
        owner=owner,
        requirements=requirements,
        constraints=constraints,
        disciplines=tuple(disciplines),
        development_mode=development_mode,
        phases=[instantiate_phase(p) for p in template.phases],
        created_at=datetime.now(timezone.utc).isoformat(),
    )
