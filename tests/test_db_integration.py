"""
Pool behaviour against a real PostgreSQL server

Skipped unless DB_HOST is set (same variables the service reads).
"""
import asyncio
import dataclasses
import os

import pytest

from lib.db import Database, PoolConfiguration
from lib.errors import AcquisitionTimeout
from lib.settings import Settings

pytestmark = pytest.mark.skipif(
    not os.getenv("DB_HOST"), reason="DB_HOST not set; no PostgreSQL available"
)


@pytest.fixture
def live_config():
    config = PoolConfiguration.from_settings(Settings())
    return dataclasses.replace(
        config, max_size=2, idle_timeout_ms=200, acquisition_timeout_ms=500
    )


@pytest.mark.asyncio
async def test_select_one(live_config):
    db = await Database.initialize(live_config)
    try:
        result = await db.probe()
    finally:
        await db.disconnect()

    assert result.connected is True


@pytest.mark.asyncio
async def test_acquire_beyond_maximum_times_out(live_config):
    db = await Database.initialize(live_config)
    leases = [await db.acquire() for _ in range(live_config.max_size)]
    try:
        with pytest.raises(AcquisitionTimeout):
            await db.acquire(timeout=0.2)
    finally:
        for lease in leases:
            await db.release(lease)
        await db.disconnect()


@pytest.mark.asyncio
async def test_double_release_keeps_idle_within_bound(live_config):
    db = await Database.initialize(live_config)
    lease = await db.acquire()

    await db.release(lease)
    await db.release(lease)

    assert db.in_use == 0
    assert db.idle_count <= live_config.max_size
    await db.disconnect()


@pytest.mark.asyncio
async def test_idle_connections_are_closed(live_config):
    db = await Database.initialize(live_config)
    lease = await db.acquire()
    await db.release(lease)
    assert db.idle_count == 1

    await asyncio.sleep(live_config.idle_timeout * 3)

    assert db.stats()["size"] == 0
    await db.disconnect()


@pytest.mark.asyncio
async def test_waiters_are_served_in_order(live_config):
    config = dataclasses.replace(live_config, max_size=1)
    db = await Database.initialize(config)
    held = await db.acquire()
    served = []

    async def wait(n):
        lease = await db.acquire(timeout=5)
        served.append(n)
        await db.release(lease)

    tasks = []
    for n in range(3):
        tasks.append(asyncio.create_task(wait(n)))
        await asyncio.sleep(0.01)

    await db.release(held)
    await asyncio.gather(*tasks)

    assert served == [0, 1, 2]
    await db.disconnect()
