"""Tests for EventBus and EventStore."""

from __future__ import annotations

from prior_art_novelty.domain.enums import AssessmentStatus, Determination
from prior_art_novelty.domain.events import (
    AssessmentTerminated,
    DomainEvent,
    SearchRunCompleted,
    SourceFailed,
)
from prior_art_novelty.infrastructure.event_bus import EventBus, EventStore
from prior_art_novelty.infrastructure.serialization import event_to_dict


class TestEventBus:

    def test_typed_and_global_handlers(self) -> None:
        bus = EventBus()
        seen: list[str] = []
        bus.subscribe(SourceFailed, lambda e: seen.append("typed"))
        bus.subscribe_all(lambda e: seen.append("global"))

        bus.publish(SourceFailed(run_id="r1"))
        bus.publish(SearchRunCompleted(run_id="r1"))

        assert seen == ["global", "typed", "global"]

    def test_failing_handler_does_not_stop_others(self) -> None:
        bus = EventBus()
        seen: list[DomainEvent] = []

        def broken(event: DomainEvent) -> None:
            raise RuntimeError("report renderer crashed")

        bus.subscribe(AssessmentTerminated, broken)
        bus.subscribe(AssessmentTerminated, seen.append)
        bus.publish(AssessmentTerminated(source_id="a1", assessment_id="a1"))

        assert len(seen) == 1

    def test_subscribing_during_dispatch(self) -> None:
        bus = EventBus()
        late: list[DomainEvent] = []
        bus.subscribe_all(lambda e: bus.subscribe(SourceFailed, late.append))

        bus.publish(SourceFailed())
        assert late == []
        bus.publish(SourceFailed())
        assert len(late) == 1


class TestEventStore:

    def test_records_everything_published(self) -> None:
        bus = EventBus()
        store = EventStore()
        bus.subscribe_all(store.append)
        bus.publish(SourceFailed(source_id="r1", run_id="r1"))
        bus.publish(AssessmentTerminated(source_id="a1", assessment_id="a1"))
        assert len(store) == 2

    def test_query_by_type_and_source(self) -> None:
        store = EventStore()
        store.append(SourceFailed(source_id="r1", run_id="r1"))
        store.append(SearchRunCompleted(source_id="r1", run_id="r1"))
        store.append(SourceFailed(source_id="r2", run_id="r2"))

        assert [e.run_id for e in store.query(SourceFailed)] == ["r1", "r2"]
        assert len(store.query(source_id="r1")) == 2
        (event,) = store.query(SourceFailed, source_id="r2")
        assert event.run_id == "r2"

    def test_event_to_dict(self) -> None:
        event = AssessmentTerminated(
            source_id="a1",
            assessment_id="a1",
            status=AssessmentStatus.NOT_NOVEL,
            determination=Determination.NOT_NOVEL,
        )
        data = event_to_dict(event)
        assert data["event"] == "AssessmentTerminated"
        assert data["status"] == "NOT_NOVEL"
        assert data["determination"] == "NOT_NOVEL"
