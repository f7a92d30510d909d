"""Event registration views."""
from collections.abc import Sequence
from typing import Optional

from blacksheep import HTTPException
from huskytrack.registration.app import app
from huskytrack.registration.docs import docs_helper
from huskytrack.registration.errors import NotOrganizer
from huskytrack.registration.models.registration import (
    EligibilityVerdict,
    Registration,
    RegistrationResult,
    RegistrationStats,
    RegistrationStatus,
)
from huskytrack.registration.services.allocator import RegistrationAllocator
from huskytrack.registration.util import check_not_found
from huskytrack.registration.views.parameters import Page, ParticipantID, PerPage


def parse_status(
    status: Optional[str], default: Optional[RegistrationStatus] = None
) -> Optional[RegistrationStatus]:
    """Parse a ``status`` query parameter, returning ``default`` if unset."""
    if not status:
        return default
    try:
        return RegistrationStatus(status.lower())
    except ValueError:
        raise HTTPException(422, f"Invalid status: {status}")


@app.router.post("/events/{event_id}/registrations")
@docs_helper(
    response_type=RegistrationResult,
    response_summary="The registration and its status",
    tags=["Registration"],
)
async def register(
    event_id: str,
    participant: ParticipantID,
    allocator: RegistrationAllocator,
) -> RegistrationResult:
    """Register for an event, or join its waitlist if it is full."""
    return await allocator.register(participant.value, event_id)


@app.router.get("/events/{event_id}/eligibility")
@docs_helper(
    response_type=EligibilityVerdict,
    response_summary="Whether the participant can register",
    tags=["Registration"],
)
async def check_eligibility(
    event_id: str,
    participant: ParticipantID,
    allocator: RegistrationAllocator,
) -> EligibilityVerdict:
    """Check whether the participant can register for an event."""
    return await allocator.check_eligibility(participant.value, event_id)


@app.router.get("/events/{event_id}/registrations")
@docs_helper(
    response_type=list[Registration],
    response_summary="The event's registrations",
    tags=["Registration"],
)
async def list_event_registrations(
    event_id: str,
    participant: ParticipantID,
    allocator: RegistrationAllocator,
    page: Page,
    per_page: PerPage,
    status: Optional[str] = None,
) -> Sequence[Registration]:
    """List an event's registrations. Organizer only.

    Lists ``registered`` participants unless another ``status`` is given.
    """
    await _require_organizer(allocator, event_id, participant.value)
    return await allocator.list_by_event(
        event_id,
        parse_status(status, RegistrationStatus.registered),
        page=page.value,
        per_page=per_page.value,
    )


@app.router.get("/events/{event_id}/waitlist")
@docs_helper(
    response_type=list[Registration],
    response_summary="The waitlist in queue order",
    tags=["Registration"],
)
async def list_waitlist(
    event_id: str,
    participant: ParticipantID,
    allocator: RegistrationAllocator,
) -> Sequence[Registration]:
    """List an event's waitlist. Organizer only."""
    await _require_organizer(allocator, event_id, participant.value)
    return await allocator.waitlist(event_id)


@app.router.get("/events/{event_id}/stats")
@docs_helper(
    response_type=RegistrationStats,
    response_summary="Registration statistics",
    tags=["Registration"],
)
async def read_stats(
    event_id: str,
    participant: ParticipantID,
    allocator: RegistrationAllocator,
) -> RegistrationStats:
    """Get registration statistics for an event. Organizer only."""
    await _require_organizer(allocator, event_id, participant.value)
    return await allocator.registration_stats(event_id)


async def _require_organizer(
    allocator: RegistrationAllocator, event_id: str, participant_id: str
):
    snapshot = check_not_found(await allocator.get_capacity(event_id))
    if snapshot.organizer_id != participant_id:
        raise NotOrganizer
