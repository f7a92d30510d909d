import os
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Optional
from unittest.mock import create_autospec

import pytest
import pytest_asyncio
from huskytrack.registration.database import DBConfig
from huskytrack.registration.entities.event_capacity import EventCapacityEntity
from huskytrack.registration.entities.registration import RegistrationEntity
from huskytrack.registration.models.config import AllocatorConfig
from huskytrack.registration.models.event import WindowState
from huskytrack.registration.models.registration import RegistrationStatus
from huskytrack.registration.notifications.service import NotificationDispatcher
from huskytrack.registration.services.allocator import RegistrationAllocator
from huskytrack.registration.util import get_now
from sqlalchemy import select

MakeEvent = Callable[..., Awaitable[str]]


@pytest_asyncio.fixture
async def db_config(tmp_path):
    url = os.getenv("TEST_DB_URL") or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"

    config = DBConfig.create(url)
    await config.create_tables()
    yield config
    await config.drop_tables()
    await config.close()


@pytest_asyncio.fixture
async def db(db_config: DBConfig):
    session = db_config.session_factory()
    yield session
    await session.close()


@pytest.fixture
def notifier():
    return create_autospec(NotificationDispatcher, instance=True)


@pytest.fixture
def allocator_config() -> AllocatorConfig:
    return AllocatorConfig()


@pytest.fixture
def allocator(
    db_config: DBConfig, notifier, allocator_config: AllocatorConfig
) -> RegistrationAllocator:
    return RegistrationAllocator(db_config.session_factory, notifier, allocator_config)


@pytest.fixture
def make_event(db_config: DBConfig) -> MakeEvent:
    async def make_event(
        id: str = "example",
        capacity: Optional[int] = 2,
        window_state: WindowState = WindowState.open,
        date_ends: Optional[datetime] = None,
        organizer_id: Optional[str] = "organizer",
    ) -> str:
        async with db_config.session_factory() as session:
            session.add(
                EventCapacityEntity(
                    id=id,
                    capacity=capacity,
                    current_count=0,
                    window_state=window_state,
                    date_ends=(
                        date_ends
                        if date_ends is not None
                        else get_now() + timedelta(days=1)
                    ),
                    organizer_id=organizer_id,
                    version=1,
                )
            )
            await session.commit()
        return id

    return make_event


@pytest.fixture
def check_invariants(db_config: DBConfig) -> Callable[[str], Awaitable[None]]:
    """Assert the counter and waitlist of an event are consistent."""

    async def check_invariants(event_id: str):
        async with db_config.session_factory() as session:
            event = await session.get(EventCapacityEntity, event_id)
            q = select(RegistrationEntity).where(
                RegistrationEntity.event_id == event_id
            )
            res = await session.execute(q)
            regs = res.scalars().all()

        registered = [r for r in regs if r.status == RegistrationStatus.registered]
        waitlisted = [r for r in regs if r.status == RegistrationStatus.waitlisted]

        assert event.current_count == len(registered)
        if event.capacity is not None:
            assert len(registered) <= event.capacity

        positions = sorted(r.waitlist_position for r in waitlisted)
        assert positions == list(range(1, len(waitlisted) + 1))

        for r in regs:
            if r.status != RegistrationStatus.waitlisted:
                assert r.waitlist_position is None

    return check_invariants
