"""
Request logging middleware with correlation ID and Prometheus metrics
"""
import time
import json
import uuid
from fastapi import Request, Response, FastAPI
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable
from lib.logging import get_logger
from lib.prometheus_metrics import (
    http_requests_total,
    http_request_duration_seconds,
    update_uptime
)

logger = get_logger("access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Generate or extract request ID
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))

        # Store in request state for downstream use
        request.state.request_id = request_id

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            # the catch-all handler answers 500 outside this middleware
            _record(request, 500, time.perf_counter() - start_time, request_id)
            raise

        response.headers["X-Request-ID"] = request_id
        _record(request, response.status_code, time.perf_counter() - start_time, request_id)
        return response


def _record(request: Request, status_code: int, duration_seconds: float, request_id: str):
    """Update request metrics and emit one JSON access line"""
    endpoint = request.url.path
    method = request.method
    label = _endpoint_label(request)

    # Don't track metrics endpoint itself
    if endpoint != "/metrics":
        http_requests_total.labels(
            method=method,
            endpoint=label,
            status=str(status_code)
        ).inc()

        http_request_duration_seconds.labels(
            method=method,
            endpoint=label
        ).observe(duration_seconds)

    update_uptime()

    log_data = {
        "method": method,
        "path": endpoint,
        "status": status_code,
        "dur_ms": round(duration_seconds * 1000, 2),
        "request_id": request_id
    }
    logger.info(json.dumps(log_data))


def _endpoint_label(request: Request) -> str:
    # unmatched paths share one label so scanners can't blow up cardinality
    route = request.scope.get("route")
    return getattr(route, "path", "unmatched")


def install_logging(app: FastAPI):
    """Install the request logging middleware on the app"""
    app.add_middleware(RequestLoggingMiddleware)
