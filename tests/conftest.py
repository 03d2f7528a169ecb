"""Shared pytest fixtures for phaseflow tests."""

import pytest

from phaseflow.application.lifecycle import LifecycleService
from phaseflow.domain.models import PhaseStatus, Project
from phaseflow.domain.templates import (
    LifecycleTemplate,
    PhaseTemplate,
    SprintTemplate,
    create_project,
)
from phaseflow.infrastructure.llm.mock import MockGenerationService
from phaseflow.infrastructure.persistence.events import InMemoryLifecycleEventStore

# concept (single document) -> requirements (2 sprints, seeds context)
# -> design (2 sprints, review gate, expands after 2)
SMALL_LIFECYCLE = LifecycleTemplate(
    name="small",
    phases=(
        PhaseTemplate(
            name="Concept",
            description="Outline the product concept",
            tuning=(("clarity", 70), ("conciseness", 40)),
        ),
        PhaseTemplate(
            name="Requirements",
            description="Define functional and performance objectives",
            sprints=(
                SprintTemplate("Scope", "Purpose, objectives and deliverables"),
                SprintTemplate("Specification", "Numbered technical requirements"),
            ),
            tuning=(("clarity", 70),),
            seeds_context=True,
        ),
        PhaseTemplate(
            name="Design",
            description="Compare concepts and pick one",
            sprints=(
                SprintTemplate("Options", "Candidate design concepts"),
                SprintTemplate("Trade Study", "Weighted comparison of the options"),
            ),
            tuning=(("creativity", 80),),
            review_required=True,
            expansion_after=2,
        ),
    ),
)


class LifecycleDriver:
    """Advances the small project through whole phases for test setup."""

    def __init__(self, lifecycle: LifecycleService, project: Project):
        self.lifecycle = lifecycle
        self.project = project

    async def complete_concept(self) -> None:
        await self.lifecycle.generate_phase(self.project, "concept")
        await self.lifecycle.mark_complete(self.project, "concept")

    async def generate_requirements_sprints(self) -> None:
        await self.complete_concept()
        await self.lifecycle.generate_sprint(self.project, "requirements", "requirements-1")
        await self.lifecycle.generate_sprint(self.project, "requirements", "requirements-2")

    async def complete_requirements(self) -> None:
        await self.generate_requirements_sprints()
        await self.lifecycle.merge_and_complete(self.project, "requirements")
        assert self.project.get_phase("requirements").status == PhaseStatus.COMPLETED

    async def generate_design_sprints(self) -> None:
        await self.complete_requirements()
        await self.lifecycle.generate_sprint(self.project, "design", "design-1")
        await self.lifecycle.generate_sprint(self.project, "design", "design-2")


@pytest.fixture
def project() -> Project:
    """Create a fresh three-phase project."""
    return create_project(
        project_id="proj-001",
        name="Solar Pump",
        owner="tester",
        requirements="Pump 10 l/min of water using a 100 W panel",
        constraints="Under 2 kg, under $150 BOM",
        disciplines=("mechanical", "electrical"),
        template=SMALL_LIFECYCLE,
    )


@pytest.fixture
def mock_service() -> MockGenerationService:
    """Create a mock service answering 'Document N' to every generate call."""
    return MockGenerationService()


@pytest.fixture
def event_store() -> InMemoryLifecycleEventStore:
    return InMemoryLifecycleEventStore()


@pytest.fixture
def lifecycle(
    mock_service: MockGenerationService, event_store: InMemoryLifecycleEventStore
) -> LifecycleService:
    """Create a lifecycle service over the mock service."""
    return LifecycleService(mock_service, call_timeout=5.0, event_store=event_store)


@pytest.fixture
def driver(lifecycle: LifecycleService, project: Project) -> LifecycleDriver:
    return LifecycleDriver(lifecycle, project)
