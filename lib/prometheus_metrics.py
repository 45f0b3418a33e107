"""
Prometheus metrics for the HMS backend
Following standard naming conventions: https://prometheus.io/docs/practices/naming/
"""
from prometheus_client import Counter, Histogram, Gauge, Info
import time

# ============================================================================
# HTTP Metrics
# ============================================================================

# Total HTTP requests
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

# HTTP request duration
http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request latency in seconds',
    ['method', 'endpoint'],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Unhandled handler faults
http_unhandled_errors_total = Counter(
    'http_unhandled_errors_total',
    'Total unhandled exceptions raised by route handlers',
    ['exception']
)

# ============================================================================
# Database Pool Metrics
# ============================================================================

# Time spent waiting for a lease
db_acquire_duration_seconds = Histogram(
    'db_pool_acquire_duration_seconds',
    'Time to acquire a pooled connection in seconds',
    buckets=[0.0001, 0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0]
)

db_acquire_timeouts_total = Counter(
    'db_pool_acquire_timeouts_total',
    'Total acquisitions that timed out'
)

db_connection_errors_total = Counter(
    'db_pool_connection_errors_total',
    'Total failures opening a database connection'
)

db_discarded_connections_total = Counter(
    'db_pool_discarded_connections_total',
    'Total connections discarded after a failed reset'
)

# Pool state (set from Database.stats() at scrape time)
database_connections_active = Gauge(
    'database_connections_active',
    'Number of leased database connections'
)

database_connections_idle = Gauge(
    'database_connections_idle',
    'Number of idle database connections'
)

database_connections_total = Gauge(
    'database_connections_total',
    'Total number of open database connections'
)

# ============================================================================
# Application Info & Health
# ============================================================================

# Application info
app_info = Info(
    'app',
    'Application information'
)

# Application uptime
app_uptime_seconds = Gauge(
    'app_uptime_seconds',
    'Application uptime in seconds'
)

# Health check status
health_check_status = Gauge(
    'health_check_status',
    'Health check status (1 = healthy, 0 = unhealthy)',
    ['check_type']  # check_type: database, api
)

# ============================================================================
# Helper Functions
# ============================================================================

def set_app_info(name: str, version: str, environment: str):
    """Publish static application info"""
    app_info.info({
        'version': version,
        'name': name,
        'environment': environment
    })


def update_pool_gauges(stats: dict):
    """Copy a Database.stats() snapshot into the pool gauges"""
    database_connections_active.set(stats.get("in_use", 0))
    database_connections_idle.set(stats.get("idle", 0))
    database_connections_total.set(stats.get("size", 0))


# Initialize app start time for uptime tracking
APP_START_TIME = time.time()

def update_uptime():
    """Update application uptime metric"""
    app_uptime_seconds.set(time.time() - APP_START_TIME)
