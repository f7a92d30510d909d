"""Common utilities."""
from datetime import datetime, timezone
from typing import Optional, TypeVar

from blacksheep.exceptions import NotFound

T = TypeVar("T")


def get_now(seconds_only: bool = False) -> datetime:
    """Get the current tz-aware UTC datetime.

    Args:
        seconds_only: Don't include microseconds.
    """
    dt = datetime.now(tz=timezone.utc)
    if seconds_only:
        dt = dt.replace(microsecond=0)

    return dt


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """Return ``dt`` as a tz-aware datetime.

    Naive values are assumed to be UTC, which is how databases without a
    timezone-aware column type hand them back.
    """
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def check_not_found(obj: Optional[T]) -> T:
    """Raise :class:`NotFound` if the argument is null.

    Returns:
        The not-None ``obj``.
    """
    if obj is None:
        raise NotFound
    return obj
