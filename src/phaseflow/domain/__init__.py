"""
Domain layer for the lifecycle engine.

Contains pure business logic with no external dependencies:
- models: Project aggregate, statuses and value objects
- history: Append-only version history
- state_machine: Phase and sprint transition tables
- templates: Lifecycle skeletons and project creation
- interfaces: Ports for generation, persistence and tracing
- exceptions: Lifecycle error taxonomy
"""

from phaseflow.domain.cancellation import CancellationToken
from phaseflow.domain.exceptions import (
    AutomationCancelled,
    ConfigurationError,
    ContextSeedFailure,
    GenerationFailure,
    InvalidTransition,
    LifecycleError,
    MergeIncompleteError,
    ValidationError,
)
from phaseflow.domain.history import VersionedOutput, VersionHistory, VersionReason
from phaseflow.domain.interfaces import (
    GenerationServiceInterface,
    LifecycleEventStoreInterface,
    ProjectRepositoryInterface,
)
from phaseflow.domain.models import (
    Attachment,
    AutomationStatus,
    ChecklistItem,
    DesignReview,
    DevelopmentMode,
    Phase,
    PhaseStatus,
    Project,
    ReviewStatus,
    Sprint,
    SprintSeed,
    SprintStatus,
)
from phaseflow.domain.templates import (
    DEFAULT_LIFECYCLE,
    LifecycleTemplate,
    PhaseTemplate,
    SprintTemplate,
    create_project,
)

__all__ = [
    # Models
    "Attachment",
    "AutomationStatus",
    "ChecklistItem",
    "DesignReview",
    "DevelopmentMode",
    "Phase",
    "PhaseStatus",
    "Project",
    "ReviewStatus",
    "Sprint",
    "SprintSeed",
    "SprintStatus",
    # History
    "VersionHistory",
    "VersionReason",
    "VersionedOutput",
    # Templates
    "DEFAULT_LIFECYCLE",
    "LifecycleTemplate",
    "PhaseTemplate",
    "SprintTemplate",
    "create_project",
    # Interfaces
    "GenerationServiceInterface",
    "LifecycleEventStoreInterface",
    "ProjectRepositoryInterface",
    # Cancellation
    "CancellationToken",
    # Exceptions
    "AutomationCancelled",
    "ConfigurationError",
    "ContextSeedFailure",
    "GenerationFailure",
    "InvalidTransition",
    "LifecycleError",
    "MergeIncompleteError",
    "ValidationError",
]
