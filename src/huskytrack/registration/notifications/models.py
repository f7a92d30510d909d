"""Notification models."""
import pkgutil
from collections.abc import Generator, Mapping, Sequence
from enum import Enum
from typing import Any, Callable, Union

from attrs import Factory, field, frozen
from huskytrack.registration.http_client import get_http_client
from huskytrack.registration.serialization.json import json_dumps
from typing_extensions import assert_never

Hook = Callable[[dict[str, Any]], Any]
"""A notification hook. May be a coroutine function."""


class NotificationKind(str, Enum):
    """Facts emitted by the allocator."""

    registration_confirmed = "registration.confirmed"
    """A participant took a seat."""

    waitlisted = "registration.waitlisted"
    """A participant joined the waitlist."""

    promoted_from_waitlist = "registration.promoted"
    """A waitlisted participant was given a freed seat."""

    registration_cancelled = "registration.cancelled"
    """A participant cancelled their registration."""

    attendance_marked = "registration.attendance"
    """An organizer recorded attendance."""


@frozen(kw_only=True)
class Notification:
    """The body sent to notification hooks."""

    kind: NotificationKind
    participant_id: str
    event_id: str
    payload: dict[str, Any] = Factory(dict)


@frozen
class URLHookConfig:
    """A webhook that is sent the notification as a JSON POST body."""

    url: str = field(repr=False)
    """The URL."""


@frozen
class PythonHookConfig:
    """A Python callable, referenced as ``package.module:function``."""

    python: str
    """The object reference."""


HookConfigObject = Union[URLHookConfig, PythonHookConfig]
"""Hook configuration types."""


async def _http_func(url: str, body: dict[str, Any]) -> Any:
    client = get_http_client()
    response = await client.post(
        url,
        content=json_dumps(body),
        headers={"Content-Type": "application/json"},
    )
    response.raise_for_status()
    if response.status_code == 204:
        return None
    else:
        return response.json()


@frozen
class HookConfigEntry:
    """Hook configuration entry."""

    on: NotificationKind
    """The notification kind that triggers the hook."""

    hook: HookConfigObject
    """The hook configuration."""

    def get_hook(self) -> Hook:
        """Get the configured hook callable."""
        if isinstance(self.hook, URLHookConfig):
            url = self.hook.url

            async def http_hook(body: dict[str, Any]) -> Any:
                return await _http_func(url, body)

            return http_hook
        elif isinstance(self.hook, PythonHookConfig):
            obj = pkgutil.resolve_name(self.hook.python)
            if not callable(obj):
                raise TypeError(f"Hook is not callable: {self.hook.python}")
            return obj
        else:
            assert_never(self.hook)


@frozen
class NotificationConfig:
    """Notification hook configuration."""

    def _build_by_kind(self) -> dict[str, list[HookConfigEntry]]:
        dict_: dict[str, list[HookConfigEntry]] = {}
        for obj in self.hooks:
            list_ = dict_.setdefault(obj.on, [])
            list_.append(obj)
        return dict_

    hooks: Sequence[HookConfigEntry] = field(default=(), converter=lambda v: tuple(v))
    _by_kind: Mapping[str, list[HookConfigEntry]] = field(
        init=False,
        eq=False,
        default=Factory(_build_by_kind, takes_self=True),
    )

    def __iter__(self) -> Generator[HookConfigEntry, None, None]:
        yield from self.hooks

    def get_by_kind(
        self, kind: NotificationKind
    ) -> Generator[HookConfigEntry, None, None]:
        """Yield :class:`HookConfigEntry` objects for the given kind."""
        yield from self._by_kind.get(kind, [])
