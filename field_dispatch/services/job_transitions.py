"""Job transition table.

Pure lookups only: which events are allowed from which status and where they
lead. Guards that need the store (assignee, evidence count, verification)
live in ``JobService``.
"""

from dataclasses import dataclass
from enum import Enum

from field_dispatch.core.errors import invalid_transition
from field_dispatch.models.enums import TERMINAL_STATUSES, JobStatus


class JobEvent(str, Enum):
    dispatch = "dispatch"
    accept = "accept"
    start = "start"
    submit = "submit"
    start_review = "start_review"
    approve = "approve"
    reject = "reject"
    request_revision = "request_revision"
    assign = "assign"
    unassign = "unassign"
    cancel = "cancel"
    client_cancel = "client_cancel"


@dataclass(frozen=True)
class Transition:
    sources: frozenset[JobStatus]
    target: JobStatus
    message: str


_REVIEWABLE = frozenset({JobStatus.SUBMITTED, JobStatus.UNDER_REVIEW})
_NON_TERMINAL = frozenset(s for s in JobStatus if s not in TERMINAL_STATUSES)

TRANSITIONS: dict[JobEvent, Transition] = {
    JobEvent.dispatch: Transition(
        frozenset({JobStatus.PENDING_DISPATCH}),
        JobStatus.DISPATCHED,
        "Only jobs pending dispatch can be dispatched",
    ),
    JobEvent.accept: Transition(
        frozenset({JobStatus.DISPATCHED}),
        JobStatus.ACCEPTED,
        "Job is not available for acceptance",
    ),
    JobEvent.start: Transition(
        frozenset({JobStatus.ACCEPTED}),
        JobStatus.IN_PROGRESS,
        "Job must be accepted before starting",
    ),
    JobEvent.submit: Transition(
        frozenset({JobStatus.IN_PROGRESS}),
        JobStatus.SUBMITTED,
        "Job must be in progress to submit",
    ),
    JobEvent.start_review: Transition(
        _REVIEWABLE,
        JobStatus.UNDER_REVIEW,
        "Job must be in SUBMITTED or UNDER_REVIEW status to start review",
    ),
    JobEvent.approve: Transition(
        _REVIEWABLE,
        JobStatus.COMPLETED,
        "Job must be in SUBMITTED or UNDER_REVIEW status to approve",
    ),
    JobEvent.reject: Transition(
        _REVIEWABLE,
        JobStatus.FAILED,
        "Job must be in SUBMITTED or UNDER_REVIEW status to reject",
    ),
    JobEvent.request_revision: Transition(
        _REVIEWABLE,
        JobStatus.IN_PROGRESS,
        "Job must be in SUBMITTED or UNDER_REVIEW status to request a revision",
    ),
    JobEvent.assign: Transition(
        _NON_TERMINAL,
        JobStatus.ACCEPTED,
        "Cannot reassign completed, cancelled, or failed jobs",
    ),
    JobEvent.unassign: Transition(
        _NON_TERMINAL,
        JobStatus.DISPATCHED,
        "Cannot reassign completed, cancelled, or failed jobs",
    ),
    JobEvent.cancel: Transition(
        _NON_TERMINAL,
        JobStatus.CANCELLED,
        "Cannot cancel completed, cancelled, or failed jobs",
    ),
    JobEvent.client_cancel: Transition(
        frozenset({JobStatus.DISPATCHED}),
        JobStatus.CANCELLED,
        "Only orders awaiting appraiser assignment can be cancelled",
    ),
}


def is_allowed(current: JobStatus | str, event: JobEvent) -> bool:
    return JobStatus(current) in TRANSITIONS[event].sources


def plan_transition(current: JobStatus | str, event: JobEvent) -> JobStatus:
    """Return the target status for ``event`` or raise ``invalid_transition``."""
    status = JobStatus(current)
    transition = TRANSITIONS[event]
    if status not in transition.sources:
        raise invalid_transition(status.value, transition.target.value, transition.message)
    return transition.target
