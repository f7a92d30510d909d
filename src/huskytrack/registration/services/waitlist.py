"""Waitlist sequencer."""
from collections.abc import Sequence
from typing import Optional

from huskytrack.registration.entities.registration import RegistrationEntity
from huskytrack.registration.models.registration import RegistrationStatus
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession


class WaitlistSequencer:
    """Maintains dense waitlist positions for an event.

    Must be used inside the transaction holding the event's capacity lock.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def next_position(self, event_id: str) -> int:
        """Get the position for a new waitlist entry."""
        q = select(func.max(RegistrationEntity.waitlist_position)).where(
            RegistrationEntity.event_id == event_id,
            RegistrationEntity.status == RegistrationStatus.waitlisted,
        )
        res = await self.db.execute(q)
        cur = res.scalar_one_or_none()
        return cur + 1 if cur is not None else 1

    async def count(self, event_id: str) -> int:
        """Count the waitlisted registrations of an event."""
        q = select(func.count(RegistrationEntity.id)).where(
            RegistrationEntity.event_id == event_id,
            RegistrationEntity.status == RegistrationStatus.waitlisted,
        )
        res = await self.db.execute(q)
        return res.scalar_one()

    async def list_entries(
        self, event_id: str, *, lock: bool = False
    ) -> Sequence[RegistrationEntity]:
        """List waitlisted registrations in queue order.

        Queue order is ``(waitlist_position, registered_at)`` so ties left by
        a corrupted sequence still resolve first-come, first-served.
        """
        q = (
            select(RegistrationEntity)
            .where(
                RegistrationEntity.event_id == event_id,
                RegistrationEntity.status == RegistrationStatus.waitlisted,
            )
            .order_by(
                RegistrationEntity.waitlist_position,
                RegistrationEntity.registered_at,
                RegistrationEntity.id,
            )
        )

        if lock:
            q = q.with_for_update()

        res = await self.db.execute(q)
        return res.scalars().all()

    async def head(self, event_id: str) -> Optional[RegistrationEntity]:
        """Get the registration at the front of the waitlist."""
        q = (
            select(RegistrationEntity)
            .where(
                RegistrationEntity.event_id == event_id,
                RegistrationEntity.status == RegistrationStatus.waitlisted,
            )
            .order_by(
                RegistrationEntity.waitlist_position,
                RegistrationEntity.registered_at,
                RegistrationEntity.id,
            )
            .limit(1)
            .with_for_update()
        )
        res = await self.db.execute(q)
        return res.scalars().first()

    async def close_gap(self, event_id: str, position: int):
        """Move every entry behind ``position`` up by one."""
        await self.db.execute(
            update(RegistrationEntity)
            .where(
                RegistrationEntity.event_id == event_id,
                RegistrationEntity.status == RegistrationStatus.waitlisted,
                RegistrationEntity.waitlist_position > position,
            )
            .values(waitlist_position=RegistrationEntity.waitlist_position - 1)
            .execution_options(synchronize_session="fetch")
        )

    async def renumber(self, event_id: str) -> int:
        """Rewrite the waitlist positions as ``1..W`` in queue order.

        Returns:
            The number of entries whose position changed.
        """
        entries = await self.list_entries(event_id, lock=True)
        changed = 0
        for position, entity in enumerate(entries, 1):
            if entity.waitlist_position != position:
                entity.waitlist_position = position
                entity.mark_updated()
                changed += 1

        if changed:
            await self.db.flush()
        return changed
