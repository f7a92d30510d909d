"""Notification service module."""
import asyncio
import contextlib
from asyncio import CancelledError, Task, get_running_loop
from collections.abc import Awaitable, Callable
from functools import wraps
from inspect import iscoroutinefunction
from typing import Any, Optional, Protocol, TypeVar

from huskytrack.registration.notifications.models import (
    HookConfigEntry,
    Notification,
    NotificationConfig,
    NotificationKind,
)
from huskytrack.registration.serialization import get_converter
from loguru import logger
from typing_extensions import ParamSpec

P = ParamSpec("P")
R = TypeVar("R", covariant=True)


class NotificationEmitter(Protocol):
    """Receives the facts produced by the allocator.

    Called after the transaction commits. Must not block.
    """

    def emit(
        self,
        kind: NotificationKind,
        participant_id: str,
        event_id: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> None:
        ...


def _suppress_exceptions(
    func: Callable[P, Awaitable[None]]
) -> Callable[P, Awaitable[None]]:
    @wraps(func)
    async def wrapped(*args: P.args, **kwargs: P.kwargs):
        try:
            await func(*args, **kwargs)
        except Exception:
            logger.opt(exception=True).error("Notification hook failed")

    return wrapped


class NotificationDispatcher:
    """Sends notifications to the configured hooks in background tasks."""

    _tasks: set[Task]

    def __init__(self, config: NotificationConfig):
        self.config = config
        self._tasks = set()

    def emit(
        self,
        kind: NotificationKind,
        participant_id: str,
        event_id: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> None:
        """Schedule hooks for a notification.

        Warning:
            Must be called from within the event loop.
        """
        notification = Notification(
            kind=kind,
            participant_id=participant_id,
            event_id=event_id,
            payload=payload or {},
        )
        body = get_converter().unstructure(notification)
        entries = list(self.config.get_by_kind(kind))
        if not entries:
            logger.debug(f"No hooks for {kind.value}")
            return

        loop = get_running_loop()
        for entry in entries:
            task = loop.create_task(_suppress_exceptions(invoke_hook)(entry, body))
            task.add_done_callback(self._tasks.discard)
            self._tasks.add(task)

    async def wait(self):
        """Wait for all scheduled hooks to finish."""
        tasks = list(self._tasks)
        if tasks:
            await asyncio.gather(*tasks)

    async def close(self):
        """Cancel all tasks."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()

        for task in tasks:
            with contextlib.suppress(CancelledError):
                await task


async def invoke_hook(entry: HookConfigEntry, body: dict[str, Any]) -> Any:
    """Invoke a hook with the given body.

    Args:
        entry: The :class:`HookConfigEntry` representing the hook to invoke.
        body: The body.

    Returns:
        The returned body.
    """
    hook = entry.get_hook()
    if iscoroutinefunction(hook):
        result = await hook(body)
    else:
        loop = get_running_loop()
        result = await loop.run_in_executor(None, hook, body)
    logger.debug(f"Called {entry.on.value} hook {entry.hook}")
    return result
