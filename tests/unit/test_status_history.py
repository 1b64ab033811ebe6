from datetime import datetime, timezone

from field_dispatch.models.enums import JobStatus
from field_dispatch.schemas.status_history import (
    AssignmentEvent,
    RevisionRequestedEvent,
    StatusHistory,
    TransitionEvent,
)

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_append_returns_new_log_and_keeps_original():
    empty = StatusHistory()
    first = empty.append(TransitionEvent(status=JobStatus.DISPATCHED, timestamp=T0))
    assert len(empty) == 0
    assert len(first) == 1
    assert first.current_status is JobStatus.DISPATCHED


def test_dump_and_load_preserve_event_kinds():
    history = (
        StatusHistory()
        .append(TransitionEvent(status=JobStatus.IN_PROGRESS, timestamp=T0, geofence_verified=False, distance_meters=3218.7))
        .append(RevisionRequestedEvent(status=JobStatus.IN_PROGRESS, timestamp=T0, reason="Need more", required_photos=["kitchen"]))
        .append(
            AssignmentEvent(
                status=JobStatus.DISPATCHED,
                timestamp=T0,
                action="UNASSIGNED",
                previous_appraiser_id="appr-1",
                reason="No show",
            )
        )
    )
    raw = history.dump()
    assert [e["kind"] for e in raw] == ["transition", "revision_requested", "assignment"]
    assert raw[0]["status"] == "IN_PROGRESS"

    loaded = StatusHistory.load(raw)
    events = list(loaded)
    assert isinstance(events[1], RevisionRequestedEvent)
    assert events[1].required_photos == ["kitchen"]
    assert isinstance(events[2], AssignmentEvent)
    assert loaded.current_status is JobStatus.DISPATCHED


def test_was_ever_assigned():
    history = StatusHistory().append(TransitionEvent(status=JobStatus.DISPATCHED, timestamp=T0))
    assert not history.was_ever_assigned()
    assert history.append(TransitionEvent(status=JobStatus.ACCEPTED, timestamp=T0)).was_ever_assigned()


def test_load_empty():
    history = StatusHistory.load(None)
    assert len(history) == 0
    assert history.last is None
    assert history.current_status is None
