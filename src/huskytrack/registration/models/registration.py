"""Registration models."""
from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from attrs import define, frozen


class RegistrationStatus(str, Enum):
    """The status of a registration."""

    registered = "registered"
    waitlisted = "waitlisted"
    cancelled = "cancelled"
    attended = "attended"
    no_show = "no_show"


ACTIVE_STATUSES = frozenset(
    {
        RegistrationStatus.registered,
        RegistrationStatus.waitlisted,
    }
)
"""Statuses that count as an active registration."""


@define(kw_only=True)
class Registration:
    """Registration model."""

    id: UUID
    participant_id: str
    event_id: str
    status: RegistrationStatus
    version: int
    date_created: datetime
    date_updated: Optional[datetime] = None

    waitlist_position: Optional[int] = None
    registered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    attended_at: Optional[datetime] = None

    @property
    def active(self) -> bool:
        """Whether the registration is active."""
        return self.status in ACTIVE_STATUSES


@frozen
class RegistrationResult:
    """The result of a ``register`` call."""

    registration: Registration

    @property
    def status(self) -> RegistrationStatus:
        return self.registration.status

    @property
    def waitlist_position(self) -> Optional[int]:
        return self.registration.waitlist_position


@frozen
class CancellationResult:
    """The result of a ``cancel`` call.

    Includes the promoted registration, if a seat was handed to the waitlist.
    """

    cancelled: Registration
    promoted: Optional[Registration] = None


class IneligibleReason(str, Enum):
    """Why a participant cannot register."""

    event_not_found = "event_not_found"
    event_not_open = "event_not_open"
    event_ended = "event_ended"
    already_registered = "already_registered"
    event_full = "event_full"


@frozen(kw_only=True)
class EligibilityVerdict:
    """Whether a participant can register right now.

    Advisory only; ``register`` re-checks inside its transaction.
    """

    eligible: bool
    reason: Optional[IneligibleReason] = None
    detail: Optional[str] = None
    has_capacity: bool = False
    will_be_waitlisted: bool = False
    available_spots: Optional[int] = None
    status: Optional[RegistrationStatus] = None
    """The status of the existing active registration, if any."""


@frozen(kw_only=True)
class RegistrationStats:
    """Per-status registration counts for an event."""

    registered: int = 0
    waitlisted: int = 0
    cancelled: int = 0
    attended: int = 0
    no_show: int = 0
    total: int = 0
    capacity: Optional[int] = None
    available_spots: Optional[int] = None
    is_full: bool = False


@frozen(kw_only=True)
class ReconcileResult:
    """The outcome of a reconciliation pass."""

    event_id: str
    previous_count: int
    current_count: int
    renumbered: int

    @property
    def counter_repaired(self) -> bool:
        return self.previous_count != self.current_count
