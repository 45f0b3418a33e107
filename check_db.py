#!/usr/bin/env python3
"""Probe the configured PostgreSQL database once through the pool"""

import asyncio
import sys

from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

from lib.db import Database, PoolConfiguration  # noqa: E402
from lib.errors import ConfigurationError  # noqa: E402
from lib.settings import Settings  # noqa: E402


async def check_database(settings: Settings, create_pool=None) -> bool:
    """Run one acquire + SELECT 1 + release against the configured database"""
    try:
        config = PoolConfiguration.from_settings(settings)
    except ConfigurationError as e:
        print(f"[ERROR] Invalid database configuration: {e}")
        return False

    print(f"[INFO] Connecting to {config.host}:{config.port}/{config.database} as {config.user}...")

    db = await Database.initialize(config, create_pool=create_pool)
    try:
        result = await db.probe()
    finally:
        await db.disconnect()

    if result.connected:
        print("[OK] Connected to the database successfully.")
        return True
    print(f"[ERROR] Database connection error: {result.reason}")
    return False


if __name__ == "__main__":
    ok = asyncio.run(check_database(Settings()))
    sys.exit(0 if ok else 1)
