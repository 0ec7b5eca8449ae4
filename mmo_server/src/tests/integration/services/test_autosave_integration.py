"""
Integration tests for autosave driving real writes through the session cache.
"""

import asyncio

import pytest

from mmo_server.src.services.autosave_service import AutosaveService

INTERVAL = 0.1


@pytest.mark.slow
class TestAutosaveFlushesStore:
    @pytest.mark.asyncio
    async def test_dirty_character_is_written_after_one_interval(
        self, character_manager, repository
    ):
        await character_manager.load_or_create("P1", "Aria")
        await character_manager.set_health("P1", 55)
        service = AutosaveService(character_manager, interval_seconds=INTERVAL)

        service.start()
        await asyncio.sleep(INTERVAL * 1.5)

        stored = (await repository.find_by_owner("P1")).data[0]
        assert stored.health == 55

        await service.stop()

    @pytest.mark.asyncio
    async def test_no_writes_after_stop(self, character_manager, repository):
        await character_manager.load_or_create("P1", "Aria")
        service = AutosaveService(character_manager, interval_seconds=INTERVAL)
        service.start()
        await asyncio.sleep(INTERVAL * 1.5)
        await service.stop()
        stopped_at = (await repository.find_by_owner("P1")).data[0].last_played

        await character_manager.set_health("P1", 1)
        await asyncio.sleep(INTERVAL * 2.5)

        stored = (await repository.find_by_owner("P1")).data[0]
        assert stored.last_played == stopped_at
        assert stored.health == 100
