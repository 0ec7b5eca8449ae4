"""
Integration tests for the character store connection lifecycle.
"""

import pytest

from mmo_server.src.core.database import DatabaseConnection
from mmo_server.src.migrations import MIGRATIONS


class TestConnect:
    @pytest.mark.asyncio
    async def test_connect_runs_migrations(self, database_url):
        connection = DatabaseConnection()

        assert await connection.connect(database_url)
        assert connection.is_connected()
        assert connection.last_migration_result.success
        assert connection.last_migration_result.data == [m.name for m in MIGRATIONS]

        await connection.disconnect()

    @pytest.mark.asyncio
    async def test_reconnect_applies_nothing_new(self, database_url):
        first = DatabaseConnection()
        await first.connect(database_url)
        await first.disconnect()

        second = DatabaseConnection()
        await second.connect(database_url)

        assert second.last_migration_result.data == []
        await second.disconnect()

    @pytest.mark.asyncio
    async def test_unreachable_store_reports_connectivity_failure(self, tmp_path, caplog):
        connection = DatabaseConnection()
        url = f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'dir' / 'characters.db'}"

        assert await connection.connect(url) is False

        assert not connection.is_connected()
        failures = [r for r in caplog.records if getattr(r, "error_kind", None) == "connectivity"]
        assert failures and failures[0].severity == "severe"
        with pytest.raises(RuntimeError):
            connection.session_factory


class TestDisconnect:
    @pytest.mark.asyncio
    async def test_disconnect_is_idempotent(self, database_url):
        connection = DatabaseConnection()
        await connection.connect(database_url)

        await connection.disconnect()
        await connection.disconnect()

        assert not connection.is_connected()

    @pytest.mark.asyncio
    async def test_disconnect_without_connect(self):
        await DatabaseConnection().disconnect()
