"""Lifecycle trace models."""

from dataclasses import dataclass
from enum import Enum


class LifecycleEventType(str, Enum):
    """Types of lifecycle events."""

    VERSION_APPENDED = "VERSION_APPENDED"
    STATUS_CHANGED = "STATUS_CHANGED"
    CONTEXT_SEEDED = "CONTEXT_SEEDED"
    SPRINTS_EXPANDED = "SPRINTS_EXPANDED"
    REVIEW_STARTED = "REVIEW_STARTED"
    REVIEW_APPROVED = "REVIEW_APPROVED"
    OPERATION_FAILED = "OPERATION_FAILED"
    AUTOMATION_STARTED = "AUTOMATION_STARTED"
    AUTOMATION_STOPPED = "AUTOMATION_STOPPED"


@dataclass(frozen=True)
class LifecycleEvent:
    """Single applied change (or failure) in a project's lifecycle.

    ``entity_id`` names the phase or sprint concerned; it is the project
    id for automation events.
    """

    event_id: str
    event_type: LifecycleEventType
    project_id: str
    entity_id: str
    version: int | None = None
    from_status: str | None = None
    to_status: str | None = None
    summary: str = ""
    created_at: str = ""  # ISO 8601
