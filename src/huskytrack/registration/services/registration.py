"""Registration service."""
from collections.abc import Sequence
from typing import Optional
from uuid import UUID

from huskytrack.registration.entities.registration import RegistrationEntity
from huskytrack.registration.models.registration import (
    RegistrationStats,
    RegistrationStatus,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession


class RegistrationService:
    """Registration record store."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_registration(self, registration: RegistrationEntity):
        """Add a new registration entity."""
        self.db.add(registration)
        await self.db.flush()

    async def get_registration(
        self, id: UUID, *, lock: bool = False
    ) -> Optional[RegistrationEntity]:
        """Get a :class:`RegistrationEntity` by ID.

        Args:
            id: The registration ID.
            lock: Whether to lock the row.
        """
        return await self.db.get(
            RegistrationEntity, id, with_for_update=lock, populate_existing=lock
        )

    async def get_by_participant(
        self, participant_id: str, event_id: str, *, lock: bool = False
    ) -> Optional[RegistrationEntity]:
        """Get a participant's registration for an event.

        Args:
            participant_id: The participant ID.
            event_id: The event ID.
            lock: Whether to lock the row.
        """
        q = select(RegistrationEntity).where(
            RegistrationEntity.participant_id == participant_id,
            RegistrationEntity.event_id == event_id,
        )

        if lock:
            q = q.with_for_update()

        res = await self.db.execute(q)
        return res.scalars().one_or_none()

    async def list_by_event(
        self,
        event_id: str,
        status: Optional[RegistrationStatus] = None,
        *,
        page: int = 0,
        per_page: Optional[int] = None,
    ) -> Sequence[RegistrationEntity]:
        """List the registrations of an event, oldest first."""
        q = select(RegistrationEntity).where(RegistrationEntity.event_id == event_id)

        if status is not None:
            q = q.where(RegistrationEntity.status == status)

        q = q.order_by(RegistrationEntity.registered_at, RegistrationEntity.id)

        if per_page is not None:
            q = q.offset(page * per_page).limit(per_page)

        res = await self.db.execute(q)
        return res.scalars().all()

    async def list_by_participant(
        self,
        participant_id: str,
        status: Optional[RegistrationStatus] = None,
        *,
        page: int = 0,
        per_page: Optional[int] = None,
    ) -> Sequence[RegistrationEntity]:
        """List a participant's registrations, newest first."""
        q = select(RegistrationEntity).where(
            RegistrationEntity.participant_id == participant_id
        )

        if status is not None:
            q = q.where(RegistrationEntity.status == status)

        q = q.order_by(RegistrationEntity.date_created.desc(), RegistrationEntity.id)

        if per_page is not None:
            q = q.offset(page * per_page).limit(per_page)

        res = await self.db.execute(q)
        return res.scalars().all()

    async def count_by_status(self, event_id: str) -> dict[RegistrationStatus, int]:
        """Count an event's registrations per status."""
        q = (
            select(RegistrationEntity.status, func.count(RegistrationEntity.id))
            .where(RegistrationEntity.event_id == event_id)
            .group_by(RegistrationEntity.status)
        )
        res = await self.db.execute(q)
        counts = {status: 0 for status in RegistrationStatus}
        for status, count in res.all():
            counts[RegistrationStatus(status)] = count
        return counts

    async def count_registered(self, event_id: str) -> int:
        """Count the ``registered`` records of an event."""
        q = select(func.count(RegistrationEntity.id)).where(
            RegistrationEntity.event_id == event_id,
            RegistrationEntity.status == RegistrationStatus.registered,
        )
        res = await self.db.execute(q)
        return res.scalar_one()


def build_stats(
    counts: dict[RegistrationStatus, int],
    capacity: Optional[int],
    current_count: int,
) -> RegistrationStats:
    """Build :class:`RegistrationStats` from per-status counts."""
    if capacity is not None:
        available: Optional[int] = max(0, capacity - current_count)
        is_full = current_count >= capacity
    else:
        available = None
        is_full = False

    return RegistrationStats(
        registered=counts.get(RegistrationStatus.registered, 0),
        waitlisted=counts.get(RegistrationStatus.waitlisted, 0),
        cancelled=counts.get(RegistrationStatus.cancelled, 0),
        attended=counts.get(RegistrationStatus.attended, 0),
        no_show=counts.get(RegistrationStatus.no_show, 0),
        total=sum(counts.values()),
        capacity=capacity,
        available_spots=available,
        is_full=is_full,
    )
