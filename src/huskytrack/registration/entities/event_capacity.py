"""Event capacity."""
from datetime import datetime
from typing import Optional

from huskytrack.registration.entities.base import (
    DEFAULT_MAX_ENUM_LENGTH,
    DEFAULT_MAX_STRING_LENGTH,
    Base,
)
from huskytrack.registration.models.event import CapacitySnapshot, WindowState
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column


class EventCapacityEntity(Base):
    """The capacity row of an event.

    Written by the event service; the allocator only moves ``current_count`` and
    ``version``.
    """

    __tablename__ = "event_capacity"

    id: Mapped[str] = mapped_column(String(DEFAULT_MAX_STRING_LENGTH), primary_key=True)
    """The event ID."""

    capacity: Mapped[Optional[int]]
    """The maximum number of registered participants, or ``None`` if unbounded."""

    current_count: Mapped[int] = mapped_column(default=0)
    """The number of registered participants."""

    window_state: Mapped[WindowState] = mapped_column(
        String(DEFAULT_MAX_ENUM_LENGTH), default=WindowState.draft
    )
    """Whether the event accepts registrations."""

    date_ends: Mapped[Optional[datetime]]
    """When the event ends."""

    organizer_id: Mapped[Optional[str]]
    """The organizer's participant ID."""

    version: Mapped[int] = mapped_column(default=1)
    """Incremented by every counter change."""

    def __repr__(self):
        return (
            "<EventCapacity "
            f"id={self.id} "
            f"capacity={self.capacity} "
            f"current_count={self.current_count} "
            f"version={self.version}"
            ">"
        )

    def get_snapshot(self) -> CapacitySnapshot:
        """Get a :class:`CapacitySnapshot` from this entity."""
        return CapacitySnapshot(
            event_id=self.id,
            capacity=self.capacity,
            current_count=self.current_count,
            window_state=WindowState(self.window_state),
            date_ends=self.date_ends,
            organizer_id=self.organizer_id,
            version=self.version,
        )
