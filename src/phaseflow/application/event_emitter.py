"""Lifecycle event emission service."""

import uuid
from datetime import datetime, timezone

from phaseflow.domain.history import VersionedOutput
from phaseflow.domain.interfaces import LifecycleEventStoreInterface
from phaseflow.domain.lifecycle_event import LifecycleEvent, LifecycleEventType


class LifecycleEventEmitter:
    """Emits lifecycle events to a store.

    Provides convenience methods for the events raised by lifecycle
    operations, handling ID generation and timestamps.
    """

    def __init__(self, event_store: LifecycleEventStoreInterface) -> None:
        self._store = event_store

    def _emit(self, event: LifecycleEvent) -> str:
        return self._store.store_event(event)

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def _event(
        self,
        event_type: LifecycleEventType,
        project_id: str,
        entity_id: str,
        **fields: object,
    ) -> None:
        self._emit(
            LifecycleEvent(
                event_id=str(uuid.uuid4()),
                event_type=event_type,
                project_id=project_id,
                entity_id=entity_id,
                created_at=self._now(),
                **fields,  # type: ignore[arg-type]
            )
        )

    def version_appended(
        self, project_id: str, entity_id: str, entry: VersionedOutput
    ) -> None:
        """Emit VERSION_APPENDED after a version is applied."""
        self._event(
            LifecycleEventType.VERSION_APPENDED,
            project_id,
            entity_id,
            version=entry.version,
            summary=entry.reason.value,
        )

    def status_changed(
        self, project_id: str, entity_id: str, from_status: str, to_status: str
    ) -> None:
        """Emit STATUS_CHANGED when a phase or sprint moves state."""
        if from_status == to_status:
            return
        self._event(
            LifecycleEventType.STATUS_CHANGED,
            project_id,
            entity_id,
            from_status=from_status,
            to_status=to_status,
        )

    def context_seeded(self, project_id: str, phase_id: str, length: int) -> None:
        self._event(
            LifecycleEventType.CONTEXT_SEEDED,
            project_id,
            phase_id,
            summary=f"compacted context: {length} chars",
        )

    def sprints_expanded(self, project_id: str, phase_id: str, names: list[str]) -> None:
        self._event(
            LifecycleEventType.SPRINTS_EXPANDED,
            project_id,
            phase_id,
            summary=", ".join(names)[:500],
        )

    def review_started(self, project_id: str, phase_id: str, items: int) -> None:
        self._event(
            LifecycleEventType.REVIEW_STARTED,
            project_id,
            phase_id,
            summary=f"{items} checklist items",
        )

    def review_approved(self, project_id: str, phase_id: str) -> None:
        self._event(LifecycleEventType.REVIEW_APPROVED, project_id, phase_id)

    def operation_failed(
        self, project_id: str, entity_id: str, operation: str, message: str
    ) -> None:
        """Emit OPERATION_FAILED when an operation is rejected or fails."""
        self._event(
            LifecycleEventType.OPERATION_FAILED,
            project_id,
            entity_id,
            summary=f"{operation}: {message}"[:500],
        )

    def automation_started(self, project_id: str) -> None:
        self._event(LifecycleEventType.AUTOMATION_STARTED, project_id, project_id)

    def automation_stopped(self, project_id: str, status: str, summary: str = "") -> None:
        self._event(
            LifecycleEventType.AUTOMATION_STOPPED,
            project_id,
            project_id,
            to_status=status,
            summary=summary[:500],
        )
