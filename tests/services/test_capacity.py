import pytest
from huskytrack.registration.database import DBConfig
from huskytrack.registration.errors import ConflictError
from huskytrack.registration.services.capacity import CapacityOracle
from sqlalchemy.ext.asyncio import AsyncSession


@pytest.mark.asyncio
async def test_read_snapshot(db: AsyncSession, make_event):
    await make_event(capacity=5)
    capacity = CapacityOracle(db)

    snapshot = await capacity.read_snapshot("example")
    assert snapshot is not None
    assert snapshot.capacity == 5
    assert snapshot.current_count == 0
    assert snapshot.version == 1

    assert await capacity.read_snapshot("other") is None


@pytest.mark.asyncio
async def test_apply_delta(db_config: DBConfig, make_event):
    await make_event()

    async with db_config.session_factory() as session:
        capacity = CapacityOracle(session)
        assert await capacity.apply_delta("example", 1, 1) == 2
        await session.commit()

    async with db_config.session_factory() as session:
        snapshot = await CapacityOracle(session).read_snapshot("example")
        assert snapshot.current_count == 1
        assert snapshot.version == 2


@pytest.mark.asyncio
async def test_apply_delta_stale_version(db_config: DBConfig, make_event):
    await make_event()

    async with db_config.session_factory() as session:
        capacity = CapacityOracle(session)
        await capacity.apply_delta("example", 1, 1)
        with pytest.raises(ConflictError):
            await capacity.apply_delta("example", 1, 1)
        await session.rollback()


@pytest.mark.asyncio
async def test_set_count(db_config: DBConfig, make_event):
    await make_event()

    async with db_config.session_factory() as session:
        capacity = CapacityOracle(session)
        assert await capacity.set_count("example", 7, 1) == 2
        with pytest.raises(ConflictError):
            await capacity.set_count("example", 0, 1)
        await session.commit()

    async with db_config.session_factory() as session:
        snapshot = await CapacityOracle(session).read_snapshot("example")
        assert snapshot.current_count == 7
