"""Registration entities."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from huskytrack.registration.entities.base import (
    DEFAULT_MAX_ENUM_LENGTH,
    PKUUID,
    Base,
)
from huskytrack.registration.errors import (
    AlreadyCancelled,
    InvalidStatusForAttendance,
    InvalidStatusForCancellation,
)
from huskytrack.registration.models.registration import (
    ACTIVE_STATUSES,
    Registration,
    RegistrationStatus,
)
from huskytrack.registration.util import get_now
from sqlalchemy import Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column


class RegistrationEntity(Base):
    """Registration entity.

    One row per participant and event. A cancelled row is reused when the
    participant registers again.
    """

    __tablename__ = "registration"

    __table_args__ = (
        UniqueConstraint("participant_id", "event_id"),
        Index("ix_registration_event_id_status", "event_id", "status"),
    )

    id: Mapped[PKUUID]
    """The registration ID."""

    participant_id: Mapped[str]
    """The participant ID."""

    event_id: Mapped[str]
    """The ID of the event this registration belongs to."""

    status: Mapped[RegistrationStatus] = mapped_column(
        String(DEFAULT_MAX_ENUM_LENGTH),
        default=RegistrationStatus.registered,
    )
    """The registration status."""

    waitlist_position: Mapped[Optional[int]]
    """The 1-based waitlist position, only set while waitlisted."""

    version: Mapped[int] = mapped_column(default=1)
    """The version of this record."""

    date_created: Mapped[datetime] = mapped_column(default=lambda: get_now())
    """The date the record was created."""

    date_updated: Mapped[Optional[datetime]]
    """The date the record was updated."""

    registered_at: Mapped[Optional[datetime]]
    """When the participant registered or joined the waitlist."""

    cancelled_at: Mapped[Optional[datetime]]
    """When the registration was cancelled."""

    attended_at: Mapped[Optional[datetime]]
    """When attendance was recorded."""

    _updated: bool = False

    @property
    def active(self) -> bool:
        """Whether the registration is active."""
        if self.status is None:
            return False
        return RegistrationStatus(self.status) in ACTIVE_STATUSES

    def __repr__(self):
        return (
            "<Registration "
            f"id={self.id} "
            f"participant_id={self.participant_id} "
            f"event_id={self.event_id} "
            f"status={RegistrationStatus(self.status).value}"
            + (
                f" waitlist_position={self.waitlist_position}"
                if self.waitlist_position is not None
                else ""
            )
            + ">"
        )

    @classmethod
    def create(cls, participant_id: str, event_id: str) -> RegistrationEntity:
        """Create a new, not yet placed, :class:`RegistrationEntity`.

        Call :meth:`register` or :meth:`waitlist` before flushing.
        """
        now = get_now()
        return cls(
            participant_id=participant_id,
            event_id=event_id,
            version=1,
            date_created=now,
            registered_at=now,
        )

    def get_model(self) -> Registration:
        """Get a :class:`Registration` model from this entity."""
        return Registration(
            id=self.id,
            participant_id=self.participant_id,
            event_id=self.event_id,
            status=RegistrationStatus(self.status),
            version=self.version,
            date_created=self.date_created,
            date_updated=self.date_updated,
            waitlist_position=self.waitlist_position,
            registered_at=self.registered_at,
            cancelled_at=self.cancelled_at,
            attended_at=self.attended_at,
        )

    def mark_updated(self) -> None:
        """Set ``date_updated`` and increment the ``version``.

        Only happens once per commit.
        """
        if not self._updated:
            self._updated = True
            self.version += 1
            self.date_updated = get_now()

    def _reset(self):
        """Clear the fields of a previous, cancelled registration."""
        if self.status is not None and self.status != RegistrationStatus.cancelled:
            raise ValueError("Only a cancelled registration can be reused")
        self.registered_at = get_now()
        self.cancelled_at = None
        self.attended_at = None
        self.mark_updated()

    def register(self):
        """Take a seat."""
        if self.status is not None:
            self._reset()
        self.status = RegistrationStatus.registered
        self.waitlist_position = None

    def waitlist(self, position: int):
        """Join the waitlist at ``position``."""
        if position < 1:
            raise ValueError(f"Invalid waitlist position: {position}")
        if self.status is not None:
            self._reset()
        self.status = RegistrationStatus.waitlisted
        self.waitlist_position = position

    def cancel(self) -> RegistrationStatus:
        """Set the registration to ``cancelled``.

        Returns:
            The status before cancellation.

        Raises:
            AlreadyCancelled: If the registration is already cancelled.
            InvalidStatusForCancellation: If attendance was already recorded.
        """
        prev = RegistrationStatus(self.status)
        if prev == RegistrationStatus.cancelled:
            raise AlreadyCancelled
        elif prev not in ACTIVE_STATUSES:
            raise InvalidStatusForCancellation

        self.status = RegistrationStatus.cancelled
        self.waitlist_position = None
        self.cancelled_at = get_now()
        self.mark_updated()
        return prev

    def promote(self) -> Optional[int]:
        """Move from the waitlist to ``registered``.

        Returns:
            The waitlist position that was vacated.
        """
        if self.status != RegistrationStatus.waitlisted:
            raise ValueError("Registration is not waitlisted")

        position = self.waitlist_position
        self.status = RegistrationStatus.registered
        self.waitlist_position = None
        self.mark_updated()
        return position

    def mark_attendance(self, attended: bool):
        """Record whether the participant attended.

        Raises:
            InvalidStatusForAttendance: If the registration is not ``registered``.
        """
        if self.status != RegistrationStatus.registered:
            raise InvalidStatusForAttendance

        if attended:
            self.status = RegistrationStatus.attended
            self.attended_at = get_now()
        else:
            self.status = RegistrationStatus.no_show
        self.mark_updated()
