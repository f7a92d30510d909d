"""Capacity oracle."""
from typing import Optional

from huskytrack.registration.entities.event_capacity import EventCapacityEntity
from huskytrack.registration.errors import ConflictError
from huskytrack.registration.models.event import CapacitySnapshot
from loguru import logger
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession


class CapacityOracle:
    """Reads and adjusts the capacity counter of an event.

    Every method must be called inside the transaction that writes the
    matching registration records.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_event(
        self, event_id: str, *, lock: bool = False
    ) -> Optional[EventCapacityEntity]:
        """Get the :class:`EventCapacityEntity` for an event.

        Args:
            event_id: The event ID.
            lock: Whether to lock the row.
        """
        return await self.db.get(
            EventCapacityEntity, event_id, with_for_update=lock, populate_existing=lock
        )

    async def read_snapshot(
        self, event_id: str, *, lock: bool = False
    ) -> Optional[CapacitySnapshot]:
        """Read the capacity of an event.

        Args:
            event_id: The event ID.
            lock: Whether to lock the row for the rest of the transaction.

        Returns:
            The :class:`CapacitySnapshot`, or ``None`` if the event does not exist.
        """
        entity = await self.get_event(event_id, lock=lock)
        return entity.get_snapshot() if entity is not None else None

    async def apply_delta(
        self, event_id: str, delta: int, expected_version: int
    ) -> int:
        """Adjust the registration counter.

        The update only applies if the row is still at ``expected_version``, so a
        concurrent writer that slipped past the row lock is detected.

        Args:
            event_id: The event ID.
            delta: The amount to add to the counter. May be zero to only claim the
                version.
            expected_version: The version the snapshot was read at.

        Returns:
            The new version.

        Raises:
            ConflictError: If the row changed since it was read.
        """
        new_version = expected_version + 1
        res = await self.db.execute(
            update(EventCapacityEntity)
            .where(
                EventCapacityEntity.id == event_id,
                EventCapacityEntity.version == expected_version,
            )
            .values(
                current_count=EventCapacityEntity.current_count + delta,
                version=new_version,
            )
            .execution_options(synchronize_session=False)
        )

        if res.rowcount != 1:
            logger.debug(
                f"Capacity of {event_id} changed since version {expected_version}"
            )
            raise ConflictError(f"Event {event_id} was modified concurrently")

        return new_version

    async def set_count(self, event_id: str, count: int, expected_version: int) -> int:
        """Overwrite the counter. Used by reconciliation only.

        Returns:
            The new version.

        Raises:
            ConflictError: If the row changed since it was read.
        """
        new_version = expected_version + 1
        res = await self.db.execute(
            update(EventCapacityEntity)
            .where(
                EventCapacityEntity.id == event_id,
                EventCapacityEntity.version == expected_version,
            )
            .values(current_count=count, version=new_version)
            .execution_options(synchronize_session=False)
        )

        if res.rowcount != 1:
            raise ConflictError(f"Event {event_id} was modified concurrently")

        return new_version
