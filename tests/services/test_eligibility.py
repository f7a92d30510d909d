from datetime import timedelta

import pytest
from huskytrack.registration.entities.registration import RegistrationEntity
from huskytrack.registration.errors import (
    AlreadyRegistered,
    EventFull,
    EventNotFound,
    EventNotOpen,
)
from huskytrack.registration.models.event import CapacitySnapshot, WindowState
from huskytrack.registration.models.registration import (
    IneligibleReason,
    RegistrationStatus,
)
from huskytrack.registration.services.eligibility import (
    evaluate_eligibility,
    raise_for_verdict,
)
from huskytrack.registration.util import get_now


@pytest.fixture
def snapshot() -> CapacitySnapshot:
    return CapacitySnapshot(
        event_id="example",
        capacity=2,
        current_count=0,
        window_state=WindowState.open,
        date_ends=get_now() + timedelta(days=1),
    )


def make_registration(status: RegistrationStatus) -> RegistrationEntity:
    reg = RegistrationEntity.create("p1", "example")
    reg.status = status
    return reg


def test_eligible(snapshot: CapacitySnapshot):
    verdict = evaluate_eligibility(snapshot, None)
    assert verdict.eligible
    assert verdict.has_capacity
    assert not verdict.will_be_waitlisted
    assert verdict.available_spots == 2
    raise_for_verdict(verdict)


def test_eligible_waitlisted(snapshot: CapacitySnapshot):
    full = CapacitySnapshot(
        event_id="example",
        capacity=2,
        current_count=2,
        window_state=WindowState.open,
    )
    verdict = evaluate_eligibility(full, None)
    assert verdict.eligible
    assert not verdict.has_capacity
    assert verdict.will_be_waitlisted
    assert verdict.available_spots == 0


def test_full_without_waitlist():
    full = CapacitySnapshot(
        event_id="example",
        capacity=1,
        current_count=1,
        window_state=WindowState.open,
    )
    verdict = evaluate_eligibility(full, None, allow_waitlist=False)
    assert not verdict.eligible
    assert verdict.reason == IneligibleReason.event_full

    with pytest.raises(EventFull):
        raise_for_verdict(verdict)


def test_not_found():
    verdict = evaluate_eligibility(None, None)
    assert verdict.reason == IneligibleReason.event_not_found

    with pytest.raises(EventNotFound):
        raise_for_verdict(verdict)


@pytest.mark.parametrize(
    "state",
    [
        WindowState.draft,
        WindowState.in_progress,
        WindowState.cancelled,
        WindowState.ended,
    ],
)
def test_not_open(state: WindowState):
    snapshot = CapacitySnapshot(
        event_id="example",
        capacity=None,
        current_count=0,
        window_state=state,
    )
    verdict = evaluate_eligibility(snapshot, None)
    assert verdict.reason == IneligibleReason.event_not_open

    with pytest.raises(EventNotOpen):
        raise_for_verdict(verdict)


def test_ended():
    now = get_now()
    snapshot = CapacitySnapshot(
        event_id="example",
        capacity=None,
        current_count=0,
        window_state=WindowState.open,
        date_ends=now - timedelta(hours=1),
    )
    verdict = evaluate_eligibility(snapshot, None, now=now)
    assert verdict.reason == IneligibleReason.event_ended

    with pytest.raises(EventNotOpen):
        raise_for_verdict(verdict)


@pytest.mark.parametrize(
    "status",
    [
        RegistrationStatus.registered,
        RegistrationStatus.waitlisted,
    ],
)
def test_already_registered(snapshot: CapacitySnapshot, status: RegistrationStatus):
    verdict = evaluate_eligibility(snapshot, make_registration(status))
    assert not verdict.eligible
    assert verdict.reason == IneligibleReason.already_registered
    assert verdict.status == status

    with pytest.raises(AlreadyRegistered):
        raise_for_verdict(verdict)


def test_already_registered_checked_first():
    verdict = evaluate_eligibility(
        None, make_registration(RegistrationStatus.registered)
    )
    assert verdict.reason == IneligibleReason.already_registered


def test_cancelled_may_register_again(snapshot: CapacitySnapshot):
    verdict = evaluate_eligibility(
        snapshot, make_registration(RegistrationStatus.cancelled)
    )
    assert verdict.eligible


def test_attended_may_not_register_again(snapshot: CapacitySnapshot):
    verdict = evaluate_eligibility(
        snapshot, make_registration(RegistrationStatus.attended)
    )
    assert verdict.reason == IneligibleReason.already_registered
