"""
Persistence adapters for projects and the lifecycle trace.
"""

from phaseflow.infrastructure.persistence.events import (
    FilesystemLifecycleEventStore,
    InMemoryLifecycleEventStore,
)
from phaseflow.infrastructure.persistence.filesystem import FilesystemProjectRepository
from phaseflow.infrastructure.persistence.memory import InMemoryProjectRepository
from phaseflow.infrastructure.persistence.serialization import (
    project_from_dict,
    project_to_dict,
)

__all__ = [
    "FilesystemLifecycleEventStore",
    "FilesystemProjectRepository",
    "InMemoryLifecycleEventStore",
    "InMemoryProjectRepository",
    "project_from_dict",
    "project_to_dict",
]
