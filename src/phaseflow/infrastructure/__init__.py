"""
Infrastructure layer for the lifecycle engine.

Contains adapters for external concerns (generation services, persistence,
registry).
"""

from phaseflow.infrastructure.llm import (
    MockGenerationService,
    OpenAIGenerationConfig,
    OpenAIGenerationService,
)
from phaseflow.infrastructure.persistence import (
    FilesystemLifecycleEventStore,
    FilesystemProjectRepository,
    InMemoryLifecycleEventStore,
    InMemoryProjectRepository,
)
from phaseflow.infrastructure.registry import GenerationServiceRegistry

__all__ = [
    # Persistence
    "InMemoryProjectRepository",
    "FilesystemProjectRepository",
    "InMemoryLifecycleEventStore",
    "FilesystemLifecycleEventStore",
    # Generation
    "OpenAIGenerationConfig",
    "OpenAIGenerationService",
    "MockGenerationService",
    # Registry
    "GenerationServiceRegistry",
]
