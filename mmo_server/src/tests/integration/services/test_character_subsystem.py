"""
Integration tests for character subsystem startup and shutdown ordering.
"""

import pytest

from mmo_server.src.services.character_subsystem import (
    CharacterSubsystem,
    get_character_subsystem,
    init_character_subsystem,
    reset_character_subsystem,
)


class TestStartup:
    @pytest.mark.asyncio
    async def test_start_wires_components(self, database_url):
        subsystem = CharacterSubsystem()

        assert await subsystem.start(database_url, autosave_interval_seconds=60)

        assert subsystem.is_ready
        assert subsystem.autosave.is_running()
        assert subsystem.autosave.interval_seconds == 60
        await subsystem.shutdown()

    @pytest.mark.asyncio
    async def test_unreachable_store_leaves_subsystem_down(self, tmp_path):
        subsystem = CharacterSubsystem()

        started = await subsystem.start(f"sqlite+aiosqlite:///{tmp_path / 'no' / 'such.db'}")

        assert started is False
        assert not subsystem.is_ready
        assert subsystem.autosave is None
        await subsystem.shutdown()


class TestShutdown:
    @pytest.mark.asyncio
    async def test_shutdown_flushes_residents_then_disconnects(self, database_url):
        subsystem = CharacterSubsystem()
        await subsystem.start(database_url)
        await subsystem.events.on_join("P1", "Aria", 0, 0, 0, None)
        await subsystem.characters.set_health("P1", 12)
        autosave = subsystem.autosave

        saved = await subsystem.shutdown()

        assert saved == 1
        assert not autosave.is_running()
        assert not subsystem.database.is_connected()

        # Reopen the store and check the final flush landed
        reopened = CharacterSubsystem()
        await reopened.start(database_url, start_autosave=False)
        stored = (await reopened.repository.find_by_owner("P1")).data[0]
        assert stored.health == 12
        await reopened.shutdown()

    @pytest.mark.asyncio
    async def test_shutdown_twice(self, database_url):
        subsystem = CharacterSubsystem()
        await subsystem.start(database_url, start_autosave=False)

        assert await subsystem.shutdown() == 0
        assert await subsystem.shutdown() == 0


class TestGlobalSubsystem:
    def test_missing_subsystem_raises(self):
        reset_character_subsystem()

        with pytest.raises(RuntimeError):
            get_character_subsystem()

    def test_init_registers_global(self):
        subsystem = init_character_subsystem()

        assert get_character_subsystem() is subsystem
        reset_character_subsystem()
