"""Registration views."""
from collections.abc import Sequence
from typing import Optional
from uuid import UUID

from attrs import frozen
from huskytrack.registration.app import app
from huskytrack.registration.docs import docs_helper
from huskytrack.registration.errors import NotOwner
from huskytrack.registration.models.registration import (
    CancellationResult,
    Registration,
)
from huskytrack.registration.services.allocator import RegistrationAllocator
from huskytrack.registration.util import check_not_found
from huskytrack.registration.views.event import parse_status
from huskytrack.registration.views.parameters import (
    AttrsBody,
    Page,
    ParticipantID,
    PerPage,
)


@frozen
class AttendanceRequest:
    """Request body to mark attendance."""

    attended: bool = True


@app.router.get("/registrations")
@docs_helper(
    response_type=list[Registration],
    response_summary="The participant's registrations",
    tags=["Registration"],
)
async def list_registrations(
    participant: ParticipantID,
    allocator: RegistrationAllocator,
    page: Page,
    per_page: PerPage,
    status: Optional[str] = None,
) -> Sequence[Registration]:
    """List the acting participant's registrations."""
    return await allocator.list_by_participant(
        participant.value,
        parse_status(status),
        page=page.value,
        per_page=per_page.value,
    )


@app.router.get("/registrations/{id}")
@docs_helper(
    response_type=Registration,
    response_summary="The registration",
    tags=["Registration"],
)
async def read_registration(
    id: UUID,
    participant: ParticipantID,
    allocator: RegistrationAllocator,
) -> Registration:
    """Read a registration. Visible to its owner and the event organizer."""
    reg = check_not_found(await allocator.get_registration(id))
    if reg.participant_id != participant.value:
        snapshot = await allocator.get_capacity(reg.event_id)
        if snapshot is None or snapshot.organizer_id != participant.value:
            raise NotOwner
    return reg


@app.router.put("/registrations/{id}/cancel")
@docs_helper(
    response_type=CancellationResult,
    response_summary="The cancelled and, if any, the promoted registration",
    tags=["Registration"],
)
async def cancel_registration(
    id: UUID,
    participant: ParticipantID,
    allocator: RegistrationAllocator,
) -> CancellationResult:
    """Cancel a registration."""
    return await allocator.cancel(id, participant.value)


@app.router.put("/registrations/{id}/attendance")
@docs_helper(
    response_type=Registration,
    response_summary="The updated registration",
    tags=["Registration"],
)
async def mark_attendance(
    id: UUID,
    body: AttrsBody[AttendanceRequest],
    participant: ParticipantID,
    allocator: RegistrationAllocator,
) -> Registration:
    """Mark whether a participant attended. Organizer only."""
    return await allocator.mark_attendance(id, participant.value, body.value.attended)
