from datetime import timedelta

import pytest
from huskytrack.registration.database import DBConfig
from huskytrack.registration.entities.registration import RegistrationEntity
from huskytrack.registration.services.waitlist import WaitlistSequencer
from huskytrack.registration.util import get_now


async def add_waitlisted(db_config: DBConfig, *positions: int):
    now = get_now()
    async with db_config.session_factory() as session:
        for i, position in enumerate(positions):
            reg = RegistrationEntity.create(f"p{i}", "example")
            reg.registered_at = now + timedelta(seconds=i)
            reg.waitlist(position)
            session.add(reg)
        await session.commit()


async def get_positions(db_config: DBConfig) -> dict[str, int]:
    async with db_config.session_factory() as session:
        entries = await WaitlistSequencer(session).list_entries("example")
        return {e.participant_id: e.waitlist_position for e in entries}


@pytest.mark.asyncio
async def test_next_position(db_config: DBConfig, make_event):
    await make_event()

    async with db_config.session_factory() as session:
        assert await WaitlistSequencer(session).next_position("example") == 1

    await add_waitlisted(db_config, 1, 2)

    async with db_config.session_factory() as session:
        waitlist = WaitlistSequencer(session)
        assert await waitlist.next_position("example") == 3
        assert await waitlist.count("example") == 2


@pytest.mark.asyncio
async def test_head(db_config: DBConfig, make_event):
    await make_event()
    await add_waitlisted(db_config, 2, 1)

    async with db_config.session_factory() as session:
        head = await WaitlistSequencer(session).head("example")
        assert head.participant_id == "p1"

        assert await WaitlistSequencer(session).head("other") is None


@pytest.mark.asyncio
async def test_close_gap(db_config: DBConfig, make_event):
    await make_event()
    await add_waitlisted(db_config, 1, 2, 3, 4)

    async with db_config.session_factory() as session:
        reg = (await WaitlistSequencer(session).list_entries("example"))[1]
        reg.cancel()
        await session.flush()
        await WaitlistSequencer(session).close_gap("example", 2)
        await session.commit()

    assert await get_positions(db_config) == {"p0": 1, "p2": 2, "p3": 3}


@pytest.mark.asyncio
async def test_renumber(db_config: DBConfig, make_event):
    await make_event()
    # a duplicate position resolves by join time
    await add_waitlisted(db_config, 3, 3, 7, 1)

    async with db_config.session_factory() as session:
        changed = await WaitlistSequencer(session).renumber("example")
        await session.commit()

    assert changed == 2
    assert await get_positions(db_config) == {"p3": 1, "p0": 2, "p1": 3, "p2": 4}

    async with db_config.session_factory() as session:
        assert await WaitlistSequencer(session).renumber("example") == 0
