"""Append-only audit trail of job status changes.

The log is persisted as a JSON list on the job row. Entries are a tagged
union keyed by ``kind``; the log object itself only supports appending, and
every append yields a new log so a caller can never rewrite past entries.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from field_dispatch.models.enums import JobStatus


class _EventBase(BaseModel):
    status: JobStatus
    timestamp: datetime
    actor_id: str | None = None
    reason: str | None = None
    bulk_operation: bool = False


class TransitionEvent(_EventBase):
    kind: Literal["transition"] = "transition"
    notes: str | None = None
    geofence_verified: bool | None = None
    distance_meters: float | None = None
    evidence_count: int | None = None


class AssignmentEvent(_EventBase):
    kind: Literal["assignment"] = "assignment"
    action: Literal["REASSIGNED", "UNASSIGNED"]
    previous_appraiser_id: str | None = None
    new_appraiser_id: str | None = None


class RevisionRequestedEvent(_EventBase):
    kind: Literal["revision_requested"] = "revision_requested"
    required_photos: list[str] = Field(default_factory=list)


StatusEvent = Annotated[
    Union[TransitionEvent, AssignmentEvent, RevisionRequestedEvent],
    Field(discriminator="kind"),
]

_events_adapter = TypeAdapter(list[StatusEvent])


class StatusHistory:
    __slots__ = ("_events",)

    def __init__(self, events: tuple = ()):
        self._events = tuple(events)

    @classmethod
    def load(cls, raw: list | None) -> StatusHistory:
        return cls(tuple(_events_adapter.validate_python(raw or [])))

    def append(self, event: TransitionEvent | AssignmentEvent | RevisionRequestedEvent) -> StatusHistory:
        return StatusHistory(self._events + (event,))

    def dump(self) -> list[dict]:
        return _events_adapter.dump_python(list(self._events), mode="json")

    @property
    def last(self):
        return self._events[-1] if self._events else None

    @property
    def current_status(self) -> JobStatus | None:
        last = self.last
        return last.status if last else None

    def was_ever_assigned(self) -> bool:
        for event in self._events:
            if event.status is JobStatus.ACCEPTED:
                return True
            if isinstance(event, AssignmentEvent) and event.new_appraiser_id:
                return True
        return False

    def __iter__(self) -> Iterator:
        return iter(self._events)

    def __len__(self) -> int:
        return len(self._events)
