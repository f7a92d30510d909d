"""Event capacity models."""
from datetime import datetime
from enum import Enum
from typing import Optional

from attrs import frozen
from huskytrack.registration.util import ensure_aware, get_now


class WindowState(str, Enum):
    """Whether an event accepts registrations.

    Owned by the event service; only ``open`` accepts registrations.
    """

    draft = "draft"
    open = "open"
    in_progress = "in_progress"
    cancelled = "cancelled"
    ended = "ended"


@frozen(kw_only=True)
class CapacitySnapshot:
    """A read-only view of an event's capacity row."""

    event_id: str
    capacity: Optional[int]
    """The capacity, or ``None`` if unbounded."""

    current_count: int
    """The number of ``registered`` participants."""

    window_state: WindowState
    date_ends: Optional[datetime] = None
    organizer_id: Optional[str] = None
    version: int = 1

    @property
    def unbounded(self) -> bool:
        return self.capacity is None

    @property
    def has_capacity(self) -> bool:
        """Whether a seat is available."""
        return self.capacity is None or self.current_count < self.capacity

    @property
    def available_spots(self) -> Optional[int]:
        """Remaining seats, or ``None`` if unbounded."""
        if self.capacity is None:
            return None
        return max(0, self.capacity - self.current_count)

    @property
    def is_full(self) -> bool:
        return not self.has_capacity

    def has_ended(self, now: Optional[datetime] = None) -> bool:
        """Whether the event end time has passed."""
        if self.window_state == WindowState.ended:
            return True
        date_ends = ensure_aware(self.date_ends)
        if date_ends is None:
            return False
        now = now if now is not None else get_now()
        return date_ends < now
