"""
Shared fixtures - in-memory stand-ins for asyncpg's pool so no database is needed
"""
import asyncio

import pytest

from lib.db import PoolConfiguration
from lib.settings import Settings


class FakeConnection:
    """Stands in for an asyncpg pool connection"""

    def __init__(self, ident: int, query_error: Exception = None):
        self.ident = ident
        self.query_error = query_error
        self.closed = False

    def is_closed(self) -> bool:
        return self.closed

    async def close(self):
        self.closed = True

    async def fetchval(self, query: str):
        if self.query_error is not None:
            raise self.query_error
        return 1


class FakePool:
    """Bounded pool with asyncpg.Pool's acquire/release/size surface"""

    def __init__(self, max_size: int, connect_error: Exception = None,
                 connect_delay: float = 0, query_error: Exception = None):
        self._slots = asyncio.Semaphore(max_size)
        self.max_size = max_size
        self.connect_error = connect_error
        self.connect_delay = connect_delay
        self.query_error = query_error
        self.idle = []
        self.opened = []
        self.releases = 0
        self.closed = False
        self.terminated = False

    async def acquire(self, *, timeout=None):
        return await asyncio.wait_for(self._acquire(), timeout)

    async def _acquire(self):
        await self._slots.acquire()
        try:
            if self.idle:
                return self.idle.pop()
            if self.connect_delay:
                await asyncio.sleep(self.connect_delay)
            if self.connect_error is not None:
                raise self.connect_error
            conn = FakeConnection(len(self.opened), self.query_error)
            self.opened.append(conn)
            return conn
        except BaseException:
            self._slots.release()
            raise

    async def release(self, connection, *, timeout=None):
        self.releases += 1
        if not connection.is_closed():
            self.idle.append(connection)
        self._slots.release()

    def expire_idle(self):
        """What max_inactive_connection_lifetime does once it fires"""
        for conn in self.idle:
            conn.closed = True
        self.idle.clear()

    async def close(self):
        self.closed = True
        self.expire_idle()

    def terminate(self):
        self.terminated = True
        self.expire_idle()

    def get_size(self) -> int:
        return sum(1 for conn in self.opened if not conn.closed)

    def get_idle_size(self) -> int:
        return len(self.idle)

    def get_max_size(self) -> int:
        return self.max_size


class FakePoolFactory:
    """Replaces asyncpg.create_pool and records the arguments it got"""

    def __init__(self, connect_error: Exception = None, connect_delay: float = 0,
                 query_error: Exception = None):
        self.connect_error = connect_error
        self.connect_delay = connect_delay
        self.query_error = query_error
        self.kwargs = None
        self.pool = None

    async def __call__(self, **kwargs) -> FakePool:
        self.kwargs = kwargs
        self.pool = FakePool(
            kwargs["max_size"],
            connect_error=self.connect_error,
            connect_delay=self.connect_delay,
            query_error=self.query_error,
        )
        return self.pool


@pytest.fixture
def pool_factory():
    return FakePoolFactory()


@pytest.fixture
def failing_pool_factory():
    return FakePoolFactory(connect_error=OSError("Connection refused"))


@pytest.fixture
def slow_pool_factory():
    return FakePoolFactory(connect_delay=1)


@pytest.fixture
def pool_config():
    """Small pool with short timeouts"""
    return PoolConfiguration(
        host="localhost",
        user="hms",
        database="hms",
        password="secret",
        max_size=2,
        idle_timeout_ms=50,
        acquisition_timeout_ms=100,
    )


def make_settings(**overrides) -> Settings:
    values = {
        "db_host": "localhost",
        "db_user": "hms",
        "db_name": "hms",
        "db_password": "secret",
        "node_env": "development",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings_factory():
    return make_settings
