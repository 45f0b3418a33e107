"""
Pool error types
"""


class PoolError(Exception):
    """Base class for connection pool failures"""


class ConfigurationError(PoolError):
    """Pool settings are missing or invalid"""


class AcquisitionTimeout(PoolError):
    """No connection became available within the acquisition timeout"""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Timed out acquiring a connection after {timeout * 1000:.0f}ms"
        )


class PoolConnectionError(PoolError):
    """The database refused or could not establish a connection"""


class PoolClosedError(PoolError):
    """Operation attempted on a closed pool"""
