import pytest
from fastapi import HTTPException

from field_dispatch.models.enums import TERMINAL_STATUSES, JobStatus
from field_dispatch.services.job_transitions import TRANSITIONS, JobEvent, is_allowed, plan_transition

HAPPY_PATH = [
    (JobStatus.PENDING_DISPATCH, JobEvent.dispatch, JobStatus.DISPATCHED),
    (JobStatus.DISPATCHED, JobEvent.accept, JobStatus.ACCEPTED),
    (JobStatus.ACCEPTED, JobEvent.start, JobStatus.IN_PROGRESS),
    (JobStatus.IN_PROGRESS, JobEvent.submit, JobStatus.SUBMITTED),
    (JobStatus.SUBMITTED, JobEvent.start_review, JobStatus.UNDER_REVIEW),
    (JobStatus.UNDER_REVIEW, JobEvent.approve, JobStatus.COMPLETED),
]


@pytest.mark.parametrize("current,event,target", HAPPY_PATH)
def test_happy_path(current, event, target):
    assert plan_transition(current, event) is target


def test_every_pair_outside_table_is_invalid():
    for status in JobStatus:
        for event, transition in TRANSITIONS.items():
            if status in transition.sources:
                assert plan_transition(status, event) is transition.target
                continue
            with pytest.raises(HTTPException) as exc:
                plan_transition(status, event)
            assert exc.value.status_code == 400
            payload = exc.value.detail
            assert payload["code"] == "invalid_transition"
            assert payload["detail"]["current_status"] == status.value
            assert payload["detail"]["requested_status"] == transition.target.value


@pytest.mark.parametrize("status", sorted(TERMINAL_STATUSES, key=lambda s: s.value))
def test_terminal_states_accept_no_events(status):
    assert not any(is_allowed(status, event) for event in JobEvent)


def test_review_outcomes():
    for source in (JobStatus.SUBMITTED, JobStatus.UNDER_REVIEW):
        assert plan_transition(source, JobEvent.reject) is JobStatus.FAILED
        assert plan_transition(source, JobEvent.request_revision) is JobStatus.IN_PROGRESS


def test_client_cancel_only_before_acceptance():
    assert is_allowed(JobStatus.DISPATCHED, JobEvent.client_cancel)
    assert not is_allowed(JobStatus.ACCEPTED, JobEvent.client_cancel)


def test_admin_cancel_and_reassign_from_any_non_terminal():
    for status in JobStatus:
        allowed = status not in TERMINAL_STATUSES
        assert is_allowed(status, JobEvent.cancel) is allowed
        assert is_allowed(status, JobEvent.assign) is allowed
        assert is_allowed(status, JobEvent.unassign) is allowed
