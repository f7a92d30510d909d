import httpx
import pytest
from huskytrack.registration.notifications.models import (
    HookConfigEntry,
    NotificationConfig,
    NotificationKind,
    PythonHookConfig,
    URLHookConfig,
)
from huskytrack.registration.notifications.service import (
    NotificationDispatcher,
    invoke_hook,
)

from tests.notifications import hooks


@pytest.fixture(autouse=True)
def clear_received():
    hooks.received.clear()
    yield
    hooks.received.clear()


def make_dispatcher(*refs: str) -> NotificationDispatcher:
    return NotificationDispatcher(
        NotificationConfig(
            [
                HookConfigEntry(
                    on=NotificationKind.registration_confirmed,
                    hook=PythonHookConfig(python=ref),
                )
                for ref in refs
            ]
        )
    )


@pytest.mark.asyncio
async def test_emit():
    dispatcher = make_dispatcher(
        "tests.notifications.hooks:record",
        "tests.notifications.hooks:record_async",
    )

    dispatcher.emit(
        NotificationKind.registration_confirmed, "p1", "example", {"extra": 1}
    )
    await dispatcher.wait()

    expected = {
        "kind": "registration.confirmed",
        "participant_id": "p1",
        "event_id": "example",
        "payload": {"extra": 1},
    }
    assert hooks.received == [expected, expected]


@pytest.mark.asyncio
async def test_emit_no_hooks():
    dispatcher = make_dispatcher("tests.notifications.hooks:record")
    dispatcher.emit(NotificationKind.waitlisted, "p1", "example")
    await dispatcher.wait()
    assert hooks.received == []


@pytest.mark.asyncio
async def test_emit_failing_hook():
    dispatcher = make_dispatcher(
        "tests.notifications.hooks:fail",
        "tests.notifications.hooks:record",
    )

    dispatcher.emit(NotificationKind.registration_confirmed, "p1", "example")
    await dispatcher.wait()

    assert len(hooks.received) == 1


@pytest.mark.asyncio
async def test_close():
    dispatcher = make_dispatcher("tests.notifications.hooks:record_async")
    dispatcher.emit(NotificationKind.registration_confirmed, "p1", "example")
    await dispatcher.close()
    assert hooks.received == []


@pytest.mark.asyncio
async def test_invoke_url_hook(monkeypatch):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"ok": True})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    monkeypatch.setattr(
        "huskytrack.registration.notifications.models.get_http_client",
        lambda: client,
    )

    entry = HookConfigEntry(
        on=NotificationKind.registration_cancelled,
        hook=URLHookConfig(url="http://hooks.test/registration"),
    )
    result = await invoke_hook(entry, {"kind": "registration.cancelled"})
    await client.aclose()

    assert result == {"ok": True}
    assert len(requests) == 1
    assert requests[0].url == "http://hooks.test/registration"
    assert requests[0].headers["content-type"] == "application/json"
    assert requests[0].content == b'{"kind":"registration.cancelled"}'
