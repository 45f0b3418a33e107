"""
Database module - PostgreSQL connection pooling

Thin wrapper over asyncpg's pool: validated configuration, leases with
idempotent release, and a reachability probe. Bounded FIFO acquisition and
idle eviction (max_inactive_connection_lifetime) are asyncpg's.
"""
import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, NamedTuple, Optional

import asyncpg

from lib.errors import (
    AcquisitionTimeout,
    ConfigurationError,
    PoolClosedError,
    PoolConnectionError,
    PoolError,
)
from lib.logging import get_logger
from lib.prometheus_metrics import (
    db_acquire_duration_seconds,
    db_acquire_timeouts_total,
    db_connection_errors_total,
    db_discarded_connections_total,
)

logger = get_logger("db")

_REQUIRED_FIELDS = ("host", "user", "database")
_POSITIVE_FIELDS = ("port", "max_size", "idle_timeout_ms", "acquisition_timeout_ms")

# Failures that mean the database is unreachable or rejected us
DRIVER_ERRORS = (OSError, asyncpg.PostgresError, asyncpg.InterfaceError)


@dataclass(frozen=True)
class PoolConfiguration:
    """Immutable pool settings, validated on construction"""

    host: Optional[str] = None
    user: Optional[str] = None
    database: Optional[str] = None
    password: Optional[str] = None
    port: int = 5432
    max_size: int = 20
    idle_timeout_ms: int = 30000
    acquisition_timeout_ms: int = 2000

    def __post_init__(self):
        missing = [name for name in _REQUIRED_FIELDS if not getattr(self, name)]
        if missing:
            raise ConfigurationError(
                f"Missing required database settings: {', '.join(missing)}"
            )
        for name in _POSITIVE_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigurationError(
                    f"{name} must be a positive integer, got {value!r}"
                )

    @classmethod
    def from_settings(cls, settings) -> "PoolConfiguration":
        """Build from environment-backed Settings"""
        return cls(
            host=settings.db_host,
            user=settings.db_user,
            database=settings.db_name,
            password=settings.db_password,
            port=settings.db_port,
            max_size=settings.db_pool_max,
            idle_timeout_ms=settings.db_idle_timeout_ms,
            acquisition_timeout_ms=settings.db_connection_timeout_ms,
        )

    @property
    def idle_timeout(self) -> float:
        return self.idle_timeout_ms / 1000

    @property
    def acquisition_timeout(self) -> float:
        return self.acquisition_timeout_ms / 1000

    def pool_kwargs(self) -> Dict[str, Any]:
        """Arguments for asyncpg.create_pool"""
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "database": self.database,
            # connect lazily so an unreachable database never blocks startup
            "min_size": 0,
            "max_size": self.max_size,
            "max_inactive_connection_lifetime": self.idle_timeout,
            "timeout": self.acquisition_timeout,
        }

    def __repr__(self) -> str:
        # keep the password out of logs
        return (
            f"PoolConfiguration(host={self.host!r}, port={self.port}, "
            f"user={self.user!r}, database={self.database!r}, "
            f"max_size={self.max_size})"
        )


PoolFactory = Callable[..., Awaitable[Any]]


class ProbeResult(NamedTuple):
    connected: bool
    reason: Optional[str] = None


class ConnectionLease:
    """Exclusive ownership of one pooled connection until released"""

    def __init__(self, pool: "Database", connection: Any):
        self._pool = pool
        self.connection = connection
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    async def release(self):
        await self._pool.release(self)

    def __repr__(self) -> str:
        state = "released" if self._released else "active"
        return f"<ConnectionLease {state}>"


class Database:
    """Database connection pool manager"""

    def __init__(self, config: PoolConfiguration, create_pool: Optional[PoolFactory] = None):
        if not isinstance(config, PoolConfiguration):
            raise ConfigurationError(
                f"Expected PoolConfiguration, got {type(config).__name__}"
            )
        self.config = config
        self._create_pool = create_pool or asyncpg.create_pool
        self.pool = None
        self._leased = 0

    @classmethod
    async def initialize(
        cls,
        config: PoolConfiguration,
        create_pool: Optional[PoolFactory] = None,
    ) -> "Database":
        """Validate the configuration and create the (lazy) pool"""
        db = cls(config, create_pool=create_pool)
        await db.connect()
        return db

    async def connect(self):
        """Create connection pool"""
        if self.pool is None:
            self.pool = await self._create_pool(**self.config.pool_kwargs())
            logger.info(f"Database pool created: {self.config!r}")

    async def disconnect(self):
        """Close connection pool, terminating it if leases are not returned in time"""
        pool, self.pool = self.pool, None
        if pool is None:
            return
        try:
            await asyncio.wait_for(pool.close(), timeout=self.config.acquisition_timeout)
        except asyncio.TimeoutError:
            logger.warning("Timed out closing database pool, terminating connections")
            pool.terminate()
        self._leased = 0
        logger.info("Database pool closed")

    # ------------------------------------------------------------------
    # Acquire / release
    # ------------------------------------------------------------------

    async def acquire(self, timeout: Optional[float] = None) -> ConnectionLease:
        """
        Lease a connection, waiting at most `timeout` seconds
        (default: configured acquisition timeout).

        Raises AcquisitionTimeout, PoolConnectionError or PoolClosedError.
        """
        pool = self.pool
        if pool is None:
            raise PoolClosedError("Database pool is not connected")
        if timeout is None:
            timeout = self.config.acquisition_timeout

        loop = asyncio.get_running_loop()
        started = loop.time()
        try:
            conn = await pool.acquire(timeout=timeout)
        except asyncio.TimeoutError:
            db_acquire_timeouts_total.inc()
            raise AcquisitionTimeout(timeout) from None
        except DRIVER_ERRORS as e:
            db_connection_errors_total.inc()
            raise PoolConnectionError(str(e) or type(e).__name__) from e

        self._leased += 1
        db_acquire_duration_seconds.observe(loop.time() - started)
        return ConnectionLease(self, conn)

    async def release(self, lease: ConnectionLease):
        """Return a leased connection; releasing twice is a no-op"""
        if lease._pool is not self:
            raise ValueError("Lease does not belong to this pool")
        if lease._released:
            return
        lease._released = True
        self._leased = max(self._leased - 1, 0)

        pool = self.pool
        if pool is None:
            return
        try:
            await pool.release(lease.connection)
        except DRIVER_ERRORS:
            # asyncpg terminates a connection it cannot reset; the slot is freed
            db_discarded_connections_total.inc()
            logger.warning("Discarded connection that failed to reset on release", exc_info=True)

    @asynccontextmanager
    async def lease(self, timeout: Optional[float] = None):
        """Acquire a connection for the duration of the block"""
        lease = await self.acquire(timeout)
        try:
            yield lease.connection
        finally:
            await self.release(lease)

    async def probe(self) -> ProbeResult:
        """acquire + SELECT 1 + release; never raises pool or driver errors"""
        try:
            async with self.lease() as conn:
                await conn.fetchval("SELECT 1")
        except PoolError as e:
            return ProbeResult(False, str(e))
        except (asyncio.TimeoutError,) + DRIVER_ERRORS as e:
            return ProbeResult(False, str(e) or type(e).__name__)
        return ProbeResult(True)

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self.pool is None

    @property
    def idle_count(self) -> int:
        return self.pool.get_idle_size() if self.pool is not None else 0

    @property
    def in_use(self) -> int:
        return self._leased

    def stats(self) -> Dict[str, int]:
        """Return pool statistics for monitoring"""
        if self.pool is None:
            return {"max_size": self.config.max_size, "size": 0, "in_use": 0, "idle": 0}
        return {
            "max_size": self.pool.get_max_size(),
            "size": self.pool.get_size(),
            "in_use": self._leased,
            "idle": self.pool.get_idle_size(),
        }
