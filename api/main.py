"""
HMS API - Main entry point
"""
import asyncio
import sys
from contextlib import asynccontextmanager, suppress
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lib.db import Database, PoolConfiguration, PoolFactory
from lib.errors import ConfigurationError
from lib.logging import get_logger, setup_logging
from lib.prometheus_metrics import set_app_info
from lib.settings import Settings, settings as default_settings
from api.middleware.errors import install_error_handlers
from api.middleware.logging import install_logging
from api.middleware.security import install_security_headers
from api.routes.health import router as health_router

VERSION = "0.1.0"

logger = get_logger("api")


async def _startup_probe(db: Database):
    """Log database reachability once; never fatal"""
    result = await db.probe()
    if result.connected:
        logger.info("Connected to the database successfully.")
    else:
        logger.error(f"Database connection error: {result.reason}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage app lifecycle - create/close the pool"""
    settings: Settings = app.state.settings
    logger.info(f"Starting {settings.app_name} (env={settings.node_env})")

    db = app.state.db
    owns_db = False
    connected_here = False
    if db is None:
        try:
            config = PoolConfiguration.from_settings(settings)
            db = await Database.initialize(config, create_pool=app.state.create_pool)
            owns_db = True
        except ConfigurationError as e:
            # keep serving; /health/db reports the reason
            app.state.db_error = str(e)
            logger.error(f"Database pool disabled: {e}")
    elif db.closed:
        # injected pool: hand it back the way we found it
        await db.connect()
        connected_here = True
    app.state.db = db

    probe_task = None
    if db is not None:
        probe_task = asyncio.create_task(_startup_probe(db))
    app.state.startup_probe = probe_task

    yield

    if probe_task and not probe_task.done():
        probe_task.cancel()
        with suppress(asyncio.CancelledError):
            await probe_task
    if owns_db or connected_here:
        await db.disconnect()
    if owns_db:
        app.state.db = None
    logger.info("Shutdown complete")


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    create_pool: Optional[PoolFactory] = None,
) -> FastAPI:
    """
    Build the application.

    `database` injects an existing pool (the caller keeps ownership);
    otherwise one is created from settings at startup with `create_pool`
    (default asyncpg.create_pool).
    """
    settings = settings or default_settings
    setup_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version=VERSION,
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.db = database
    app.state.db_error = None
    app.state.create_pool = create_pool
    app.state.startup_probe = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    install_logging(app)
    install_security_headers(app)
    install_error_handlers(app)

    app.include_router(health_router)

    set_app_info(settings.app_name, VERSION, settings.node_env)
    return app


app = create_app()


def main(settings: Optional[Settings] = None):
    """Serve the app; exits nonzero if the port cannot be bound"""
    application = create_app(settings) if settings else app
    settings = settings or default_settings
    config = uvicorn.Config(
        application,
        host=settings.api_host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    server = uvicorn.Server(config)
    server.run()
    if not server.started:
        sys.exit(1)


if __name__ == "__main__":
    main()
