"""
Test the command-line database check
"""
import pytest

from check_db import check_database


@pytest.mark.asyncio
async def test_invalid_configuration_reports_failure(settings_factory, capsys):
    ok = await check_database(settings_factory(db_host=None, db_name=None))

    assert ok is False
    out = capsys.readouterr().out
    assert "[ERROR] Invalid database configuration" in out
    assert "host" in out and "database" in out


@pytest.mark.asyncio
async def test_reachable_database_reports_success(settings_factory, pool_factory, capsys):
    ok = await check_database(settings_factory(), create_pool=pool_factory)

    assert ok is True
    assert "[OK] Connected to the database successfully." in capsys.readouterr().out
    assert pool_factory.pool.closed


@pytest.mark.asyncio
async def test_unreachable_database_reports_failure(settings_factory, failing_pool_factory, capsys):
    ok = await check_database(settings_factory(), create_pool=failing_pool_factory)

    assert ok is False
    assert "[ERROR] Database connection error: Connection refused" in capsys.readouterr().out
