"""
Unit tests for the periodic autosave scheduler.

The session cache is replaced by an AsyncMock so tick timing and failure
handling can be observed directly.
"""

import asyncio
import logging

import pytest
from unittest.mock import AsyncMock, MagicMock

from mmo_server.src.services.autosave_service import AutosaveService

INTERVAL = 0.05


@pytest.fixture
def manager() -> MagicMock:
    manager = MagicMock()
    manager.save_all = AsyncMock(return_value=2)
    return manager


class TestAutosaveLifecycle:
    """Tests for start/stop behavior."""

    @pytest.mark.asyncio
    async def test_first_tick_waits_one_interval(self, manager):
        service = AutosaveService(manager, interval_seconds=INTERVAL)

        assert service.start() is True
        await asyncio.sleep(INTERVAL / 2)
        manager.save_all.assert_not_awaited()

        await asyncio.sleep(INTERVAL)
        assert manager.save_all.await_count == 1

        await service.stop()

    @pytest.mark.asyncio
    async def test_ticks_repeat_until_stopped(self, manager):
        service = AutosaveService(manager, interval_seconds=INTERVAL)
        service.start()

        await asyncio.sleep(INTERVAL * 3.5)
        await service.stop()
        ticks = manager.save_all.await_count

        await asyncio.sleep(INTERVAL * 2)

        assert ticks >= 2
        assert manager.save_all.await_count == ticks
        assert not service.is_running()

    @pytest.mark.asyncio
    async def test_second_start_is_rejected(self, manager, caplog):
        service = AutosaveService(manager, interval_seconds=INTERVAL)
        service.start()

        assert service.start(interval_seconds=1) is False
        assert service.interval_seconds == INTERVAL
        assert any("already running" in r.getMessage() for r in caplog.records)

        await service.stop()

    @pytest.mark.asyncio
    async def test_start_rejects_non_positive_interval(self, manager):
        service = AutosaveService(manager, interval_seconds=INTERVAL)

        with pytest.raises(ValueError):
            service.start(interval_seconds=0)
        assert not service.is_running()

    def test_constructor_rejects_negative_interval(self, manager):
        with pytest.raises(ValueError):
            AutosaveService(manager, interval_seconds=-1)

    def test_constructor_rejects_zero_interval(self, manager):
        with pytest.raises(ValueError):
            AutosaveService(manager, interval_seconds=0)

    def test_constructor_falls_back_to_configured_interval(self, manager):
        service = AutosaveService(manager)

        assert service.interval_seconds > 0

    @pytest.mark.asyncio
    async def test_stop_when_not_running(self, manager):
        service = AutosaveService(manager, interval_seconds=INTERVAL)

        await service.stop()
        await service.stop()

        assert not service.is_running()

    @pytest.mark.asyncio
    async def test_restart_after_stop(self, manager):
        service = AutosaveService(manager, interval_seconds=INTERVAL)
        service.start()
        await service.stop()

        assert service.start() is True
        assert service.is_running()
        await service.stop()

    @pytest.mark.asyncio
    async def test_stop_waits_for_inflight_flush(self, manager):
        flushing = asyncio.Event()
        finished = []

        async def _slow_flush():
            flushing.set()
            await asyncio.sleep(INTERVAL)
            finished.append(True)
            return 1

        manager.save_all = AsyncMock(side_effect=_slow_flush)
        service = AutosaveService(manager, interval_seconds=INTERVAL / 5)
        service.start()

        await flushing.wait()
        await service.stop()

        assert finished == [True]


class TestAutosaveFailures:
    """A failing flush never ends the schedule."""

    @pytest.mark.asyncio
    async def test_failed_tick_does_not_stop_schedule(self, manager, caplog):
        caplog.set_level(logging.INFO)
        manager.save_all = AsyncMock(side_effect=[RuntimeError("boom"), 3, 3, 3, 3])
        service = AutosaveService(manager, interval_seconds=INTERVAL)
        service.start()

        await asyncio.sleep(INTERVAL * 2.5)
        await service.stop()

        assert manager.save_all.await_count >= 2
        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert errors[0].severity == "severe"
        assert "boom" in errors[0].error

    @pytest.mark.asyncio
    async def test_run_once_reports_failure_as_zero(self, manager):
        manager.save_all = AsyncMock(side_effect=RuntimeError("boom"))
        service = AutosaveService(manager, interval_seconds=INTERVAL)

        assert await service.run_once() == 0

    @pytest.mark.asyncio
    async def test_run_once_with_nothing_to_save(self, manager, caplog):
        caplog.set_level(logging.INFO)
        manager.save_all = AsyncMock(return_value=0)
        service = AutosaveService(manager, interval_seconds=INTERVAL)

        assert await service.run_once() == 0
        assert any("No characters to auto-save" in r.getMessage() for r in caplog.records)
