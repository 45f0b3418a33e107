"""
Error handlers - uniform JSON error shape
"""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.middleware.security import SECURITY_HEADERS
from lib.logging import get_logger
from lib.prometheus_metrics import http_unhandled_errors_total

logger = get_logger("errors")

ROUTE_NOT_FOUND = {"error": "Route not found"}
GENERIC_ERROR = "Something went wrong!"


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown paths and unsupported methods both report 404"""
    if exc.status_code in (404, 405):
        return JSONResponse(status_code=404, content=ROUTE_NOT_FOUND)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for handler faults - log with traceback, hide detail in production"""
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}",
        exc_info=exc,
    )
    http_unhandled_errors_total.labels(exception=type(exc).__name__).inc()

    content = {"error": GENERIC_ERROR}
    if not request.app.state.settings.is_production:
        content["message"] = str(exc)
    # answered outside the middleware stack, so add the headers here
    return JSONResponse(status_code=500, content=content, headers=SECURITY_HEADERS)


def install_error_handlers(app: FastAPI):
    """Register the 404 and catch-all handlers on the app"""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
