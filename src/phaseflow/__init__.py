"""
PhaseFlow: Phase/Sprint Lifecycle Engine for AI-Generated Engineering Documents.

Drives an engineering project through an ordered set of lifecycle phases,
each producing versioned documents from a generation service, with
deterministic sprint merges, design review gates and unattended automation.

Example:
    import asyncio

    from phaseflow import LifecycleService, create_project
    from phaseflow.infrastructure import MockGenerationService

    project = create_project("p1", "Solar Pump", "ana", "Pump 10 l/min", "Under 2 kg")
    service = LifecycleService(MockGenerationService())
    asyncio.run(service.generate_phase(project, "feasibility-study"))
"""

# Application layer (orchestration)
from phaseflow.application.history import EntityRef, VersionBrowser
from phaseflow.application.lifecycle import LifecycleService
from phaseflow.application.orchestrator import AutomationOrchestrator, AutomationResult

# Domain exceptions
from phaseflow.domain.exceptions import (
    AutomationCancelled,
    ContextSeedFailure,
    GenerationFailure,
    InvalidTransition,
    LifecycleError,
    MergeIncompleteError,
    ValidationError,
)
from phaseflow.domain.history import VersionedOutput, VersionHistory, VersionReason

# Domain interfaces (for type hints and custom implementations)
from phaseflow.domain.interfaces import (
    GenerationServiceInterface,
    LifecycleEventStoreInterface,
    ProjectRepositoryInterface,
)
from phaseflow.domain.models import (
    AutomationStatus,
    DevelopmentMode,
    Phase,
    PhaseStatus,
    Project,
    Sprint,
    SprintStatus,
)
from phaseflow.domain.templates import DEFAULT_LIFECYCLE, LifecycleTemplate, create_project

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Application
    "AutomationOrchestrator",
    "AutomationResult",
    "EntityRef",
    "LifecycleService",
    "VersionBrowser",
    # Domain models
    "AutomationStatus",
    "DevelopmentMode",
    "Phase",
    "PhaseStatus",
    "Project",
    "Sprint",
    "SprintStatus",
    "VersionHistory",
    "VersionReason",
    "VersionedOutput",
    # Templates
    "DEFAULT_LIFECYCLE",
    "LifecycleTemplate",
    "create_project",
    # Interfaces
    "GenerationServiceInterface",
    "LifecycleEventStoreInterface",
    "ProjectRepositoryInterface",
    # Exceptions
    "AutomationCancelled",
    "ContextSeedFailure",
    "GenerationFailure",
    "InvalidTransition",
    "LifecycleError",
    "MergeIncompleteError",
    "ValidationError",
]
