import pytest
from huskytrack.registration.config import load_config
from huskytrack.registration.models.config import Config
from huskytrack.registration.notifications.models import (
    HookConfigEntry,
    NotificationConfig,
    NotificationKind,
    PythonHookConfig,
    URLHookConfig,
)
from huskytrack.registration.serialization import get_config_converter
from ruamel.yaml import YAML

from tests.notifications import hooks

config_str = """
hooks:
  - on: registration.confirmed
    hook:
      python: tests.notifications.hooks:record
  - on: registration.promoted
    hook:
      url: http://localhost:8000/test
  - on: registration.promoted
    hook:
      python: tests.notifications.hooks:record_async
"""

yaml = YAML(typ="safe")


@pytest.fixture
def notification_config() -> NotificationConfig:
    doc = yaml.load(config_str)
    return get_config_converter().structure(doc, NotificationConfig)


def test_build_notification_config(notification_config: NotificationConfig):
    expected = NotificationConfig(
        [
            HookConfigEntry(
                on=NotificationKind.registration_confirmed,
                hook=PythonHookConfig(python="tests.notifications.hooks:record"),
            ),
            HookConfigEntry(
                on=NotificationKind.promoted_from_waitlist,
                hook=URLHookConfig(url="http://localhost:8000/test"),
            ),
            HookConfigEntry(
                on=NotificationKind.promoted_from_waitlist,
                hook=PythonHookConfig(
                    python="tests.notifications.hooks:record_async"
                ),
            ),
        ]
    )

    assert list(notification_config) == list(expected.hooks)
    assert notification_config == expected


def test_get_by_kind(notification_config: NotificationConfig):
    promoted = list(
        notification_config.get_by_kind(NotificationKind.promoted_from_waitlist)
    )
    assert [type(e.hook) for e in promoted] == [URLHookConfig, PythonHookConfig]

    assert list(notification_config.get_by_kind(NotificationKind.waitlisted)) == []


def test_get_python_hook():
    entry = HookConfigEntry(
        on=NotificationKind.waitlisted,
        hook=PythonHookConfig(python="tests.notifications.hooks:record"),
    )
    assert entry.get_hook() is hooks.record


@pytest.mark.parametrize(
    "ref, exc",
    [
        ("tests.notifications.hooks", TypeError),
        ("tests.notifications.hooks:not-a-name", ValueError),
        ("tests.notifications.no_such_module:record", ImportError),
        ("tests.notifications.hooks:missing", AttributeError),
        ("tests.notifications.hooks:not_callable", TypeError),
    ],
)
def test_get_python_hook_invalid(ref, exc):
    entry = HookConfigEntry(
        on=NotificationKind.waitlisted,
        hook=PythonHookConfig(python=ref),
    )
    with pytest.raises(exc):
        entry.get_hook()


def test_load_config_defaults():
    doc = yaml.load("database:\n  url: sqlite+aiosqlite://\n")
    config = get_config_converter().structure(doc, Config)
    assert config.database.url == "sqlite+aiosqlite://"
    assert config.allocator.max_attempts == 5
    assert config.allocator.allow_waitlist is True
    assert list(config.notifications) == []


def test_load_config_allocator():
    doc = yaml.load(
        """
database:
  url: sqlite+aiosqlite://
allocator:
  max_attempts: 10
  allow_waitlist: false
"""
    )
    config = get_config_converter().structure(doc, Config)
    assert config.allocator.max_attempts == 10
    assert config.allocator.retry_delay == 0.01
    assert config.allocator.allow_waitlist is False


def test_load_config_file(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text(
        "database:\n  url: sqlite+aiosqlite://\nallocator:\n  max_attempts: 3\n"
    )
    config = load_config(path)
    assert config.allocator.max_attempts == 3


def test_load_config_empty_file(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("")
    with pytest.raises(ValueError):
        load_config(path)
