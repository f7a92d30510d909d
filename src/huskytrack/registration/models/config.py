"""Config models."""
from attrs import field, frozen, validators
from huskytrack.registration.notifications.models import NotificationConfig


@frozen
class DatabaseConfig:
    url: str = field(repr=False)
    """The database URL."""


@frozen
class AllocatorConfig:
    max_attempts: int = field(default=5, validator=validators.ge(1))
    """How many times an operation is attempted before reporting a conflict."""

    retry_delay: float = field(default=0.01, validator=validators.ge(0))
    """Base delay in seconds between attempts."""

    allow_waitlist: bool = True
    """Whether full events put new registrations on the waitlist."""


@frozen
class Config:
    """The main config class."""

    database: DatabaseConfig
    allocator: AllocatorConfig = AllocatorConfig()
    notifications: NotificationConfig = NotificationConfig()
