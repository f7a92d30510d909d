"""Registration errors."""
from typing import Optional
from uuid import UUID


class RegistrationError(Exception):
    """Base class for errors raised by the allocator."""

    detail = "Registration error"
    """The default message."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail or self.detail)

    @property
    def message(self) -> str:
        return self.args[0]


class EventNotFound(RegistrationError):
    """Raised when the event does not exist."""

    detail = "Event not found"


class EventNotOpen(RegistrationError):
    """Raised when the event does not accept registrations."""

    detail = "Event is not open for registration"


class EventFull(RegistrationError):
    """Raised when the event is full and waitlisting is disabled."""

    detail = "Event is full"


class EventNotEnded(RegistrationError):
    """Raised when attendance is marked before the event ends."""

    detail = "Cannot mark attendance before the event ends"


class AlreadyRegistered(RegistrationError):
    """Raised when the participant already holds an active registration."""

    detail = "Already registered for this event"


class RegistrationNotFound(RegistrationError):
    """Raised when a registration does not exist."""

    detail = "Registration not found"

    def __init__(self, id: Optional[UUID] = None):
        super().__init__(
            f"Registration not found: {id}" if id is not None else None
        )
        self.id = id


class NotOwner(RegistrationError):
    """Raised when a participant acts on another participant's registration."""

    detail = "You do not have permission to modify this registration"


class NotOrganizer(RegistrationError):
    """Raised when an organizer-only operation is called by someone else."""

    detail = "Only event organizers can perform this action"


class AlreadyCancelled(RegistrationError):
    """Raised when cancelling a registration that is already cancelled."""

    detail = "Registration is already cancelled"


class InvalidStatusForAttendance(RegistrationError):
    """Raised when attendance is marked on a registration that is not registered."""

    detail = "Cannot mark attendance for non-registered participants"


class InvalidStatusForCancellation(RegistrationError):
    """Raised when cancelling a registration after attendance was recorded."""

    detail = "Registration can no longer be cancelled"


class ConflictError(RegistrationError):
    """Raised when a concurrent change invalidated the current attempt.

    Retried internally.
    """

    detail = "Concurrent modification"


class TemporaryConflict(RegistrationError):
    """Raised when an operation kept conflicting after every retry.

    Safe to retry.
    """

    detail = "The event is busy, please try again"
