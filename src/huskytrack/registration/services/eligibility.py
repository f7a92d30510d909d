"""Eligibility checks."""
from datetime import datetime
from typing import Optional

from huskytrack.registration.entities.registration import RegistrationEntity
from huskytrack.registration.errors import (
    AlreadyRegistered,
    EventFull,
    EventNotFound,
    EventNotOpen,
    RegistrationError,
)
from huskytrack.registration.models.event import CapacitySnapshot, WindowState
from huskytrack.registration.models.registration import (
    EligibilityVerdict,
    IneligibleReason,
    RegistrationStatus,
)
from huskytrack.registration.services.capacity import CapacityOracle
from huskytrack.registration.services.registration import RegistrationService
from sqlalchemy.ext.asyncio import AsyncSession

_reason_errors: dict[IneligibleReason, type[RegistrationError]] = {
    IneligibleReason.event_not_found: EventNotFound,
    IneligibleReason.event_not_open: EventNotOpen,
    IneligibleReason.event_ended: EventNotOpen,
    IneligibleReason.already_registered: AlreadyRegistered,
    IneligibleReason.event_full: EventFull,
}


def evaluate_eligibility(
    snapshot: Optional[CapacitySnapshot],
    existing: Optional[RegistrationEntity],
    *,
    now: Optional[datetime] = None,
    allow_waitlist: bool = True,
) -> EligibilityVerdict:
    """Decide whether a participant may register.

    Args:
        snapshot: The event's capacity, or ``None`` if the event does not exist.
        existing: The participant's registration for the event, if any.
        now: The current time.
        allow_waitlist: Whether a full event accepts waitlist entries.
    """
    if existing is not None and existing.active:
        return EligibilityVerdict(
            eligible=False,
            reason=IneligibleReason.already_registered,
            detail="Already registered for this event",
            status=RegistrationStatus(existing.status),
        )

    if snapshot is None:
        return EligibilityVerdict(
            eligible=False,
            reason=IneligibleReason.event_not_found,
            detail="Event not found",
        )

    if snapshot.window_state != WindowState.open:
        return EligibilityVerdict(
            eligible=False,
            reason=IneligibleReason.event_not_open,
            detail=f"Event is {snapshot.window_state.value}",
        )

    if snapshot.has_ended(now):
        return EligibilityVerdict(
            eligible=False,
            reason=IneligibleReason.event_ended,
            detail="Event has already ended",
        )

    # attended/no-show records only exist once the event is over
    if existing is not None and existing.status != RegistrationStatus.cancelled:
        return EligibilityVerdict(
            eligible=False,
            reason=IneligibleReason.already_registered,
            detail="Already registered for this event",
            status=RegistrationStatus(existing.status),
        )

    has_capacity = snapshot.has_capacity
    if not has_capacity and not allow_waitlist:
        return EligibilityVerdict(
            eligible=False,
            reason=IneligibleReason.event_full,
            detail="Event is full",
            available_spots=snapshot.available_spots,
        )

    return EligibilityVerdict(
        eligible=True,
        has_capacity=has_capacity,
        will_be_waitlisted=not has_capacity,
        available_spots=snapshot.available_spots,
    )


def raise_for_verdict(verdict: EligibilityVerdict):
    """Raise the :class:`RegistrationError` matching an ineligible verdict."""
    if verdict.eligible:
        return

    assert verdict.reason is not None
    raise _reason_errors[verdict.reason](verdict.detail)


class EligibilityChecker:
    """Read-only eligibility checks."""

    def __init__(self, db: AsyncSession, allow_waitlist: bool = True):
        self.capacity = CapacityOracle(db)
        self.registrations = RegistrationService(db)
        self.allow_waitlist = allow_waitlist

    async def check(self, participant_id: str, event_id: str) -> EligibilityVerdict:
        """Check whether ``participant_id`` can register for ``event_id`` now."""
        existing = await self.registrations.get_by_participant(
            participant_id, event_id
        )
        snapshot = await self.capacity.read_snapshot(event_id)
        return evaluate_eligibility(
            snapshot, existing, allow_waitlist=self.allow_waitlist
        )
