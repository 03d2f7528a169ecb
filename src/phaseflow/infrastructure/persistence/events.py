"""Lifecycle event store implementations."""

import json
from pathlib import Path
from typing import Any

from phaseflow.domain.interfaces import LifecycleEventStoreInterface
from phaseflow.domain.lifecycle_event import LifecycleEvent, LifecycleEventType


class InMemoryLifecycleEventStore(LifecycleEventStoreInterface):
    """In-memory implementation for testing."""

    def __init__(self) -> None:
        self._events: list[LifecycleEvent] = []

    def store_event(self, event: LifecycleEvent) -> str:
        self._events.append(event)
        return event.event_id

    def get_events(
        self,
        project_id: str,
        event_type: LifecycleEventType | None = None,
        entity_id: str | None = None,
    ) -> list[LifecycleEvent]:
        return [
            e
            for e in self._events
            if e.project_id == project_id
            and (event_type is None or e.event_type == event_type)
            and (entity_id is None or e.entity_id == entity_id)
        ]


class FilesystemLifecycleEventStore(LifecycleEventStoreInterface):
    """Filesystem implementation storing events as JSONL, one file per project."""

    def __init__(self, base_path: Path) -> None:
        self.base_path = Path(base_path)
        self.events_dir = self.base_path / "events"
        self.events_dir.mkdir(parents=True, exist_ok=True)

    def _get_project_file(self, project_id: str) -> Path:
        return self.events_dir / f"{project_id}.jsonl"

    def store_event(self, event: LifecycleEvent) -> str:
        path = self._get_project_file(event.project_id)
        with open(path, "a") as f:
            f.write(json.dumps(self._event_to_dict(event)) + "\n")
        return event.event_id

    def get_events(
        self,
        project_id: str,
        event_type: LifecycleEventType | None = None,
        entity_id: str | None = None,
    ) -> list[LifecycleEvent]:
        path = self._get_project_file(project_id)
        if not path.exists():
            return []
        events: list[LifecycleEvent] = []
        with open(path) as f:
            for line in f:
                if not line.strip():
                    continue
                event = self._dict_to_event(json.loads(line))
                if event_type and event.event_type != event_type:
                    continue
                if entity_id and event.entity_id != entity_id:
                    continue
                events.append(event)
        return events

    def _event_to_dict(self, event: LifecycleEvent) -> dict[str, Any]:
        return {
            "event_id": event.event_id,
            "event_type": event.event_type.value,
            "project_id": event.project_id,
            "entity_id": event.entity_id,
            "version": event.version,
            "from_status": event.from_status,
            "to_status": event.to_status,
            "summary": event.summary,
            "created_at": event.created_at,
        }

    def _dict_to_event(self, data: dict[str, Any]) -> LifecycleEvent:
        return LifecycleEvent(
            event_id=data["event_id"],
            event_type=LifecycleEventType(data["event_type"]),
            project_id=data["project_id"],
            entity_id=data["entity_id"],
            version=data.get("version"),
            from_status=data.get("from_status"),
            to_status=data.get("to_status"),
            summary=data.get("summary", ""),
            created_at=data.get("created_at", ""),
        )
