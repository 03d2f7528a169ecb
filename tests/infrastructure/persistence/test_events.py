"""Tests for the lifecycle event stores."""

import pytest

from phaseflow.domain.lifecycle_event import LifecycleEvent, LifecycleEventType
from phaseflow.infrastructure.persistence.events import (
    FilesystemLifecycleEventStore,
    InMemoryLifecycleEventStore,
)


def _event(event_id: str, event_type: LifecycleEventType, entity_id: str) -> LifecycleEvent:
    return LifecycleEvent(
        event_id=event_id,
        event_type=event_type,
        project_id="proj-001",
        entity_id=entity_id,
        version=1 if event_type == LifecycleEventType.VERSION_APPENDED else None,
        summary="Initial generation",
        created_at="2025-01-01T00:00:00Z",
    )


@pytest.fixture(params=["memory", "filesystem"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryLifecycleEventStore()
    return FilesystemLifecycleEventStore(tmp_path)


class TestLifecycleEventStores:
    def test_events_returned_in_order(self, store):
        store.store_event(_event("e1", LifecycleEventType.VERSION_APPENDED, "concept"))
        store.store_event(_event("e2", LifecycleEventType.STATUS_CHANGED, "concept"))

        events = store.get_events("proj-001")

        assert [e.event_id for e in events] == ["e1", "e2"]
        assert events[0].version == 1

    def test_filters(self, store):
        store.store_event(_event("e1", LifecycleEventType.VERSION_APPENDED, "concept"))
        store.store_event(_event("e2", LifecycleEventType.VERSION_APPENDED, "design"))
        store.store_event(_event("e3", LifecycleEventType.STATUS_CHANGED, "design"))

        by_entity = store.get_events("proj-001", entity_id="design")
        by_type = store.get_events(
            "proj-001", event_type=LifecycleEventType.VERSION_APPENDED
        )

        assert [e.event_id for e in by_entity] == ["e2", "e3"]
        assert [e.event_id for e in by_type] == ["e1", "e2"]

    def test_unknown_project_has_no_events(self, store):
        assert store.get_events("other") == []


def test_filesystem_store_persists(tmp_path):
    FilesystemLifecycleEventStore(tmp_path).store_event(
        _event("e1", LifecycleEventType.REVIEW_APPROVED, "design")
    )

    events = FilesystemLifecycleEventStore(tmp_path).get_events("proj-001")

    assert events[0].event_type == LifecycleEventType.REVIEW_APPROVED
    assert (tmp_path / "events" / "proj-001.jsonl").exists()
