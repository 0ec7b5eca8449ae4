"""
Periodic character autosave.

Runs a background task that flushes every resident character through the
session cache at a fixed rate. The first flush happens one interval after
start(), never immediately. A tick that raises is logged and the schedule
carries on at the same cadence.

stop() only prevents future ticks: a flush already in progress is allowed to
finish and stop() waits for it.
"""

import asyncio
import time
import traceback
from typing import Optional

from mmo_server.src.core.config import settings
from mmo_server.src.core.logging_config import get_logger
from mmo_server.src.core.metrics import autosave_duration_seconds, autosave_runs_total
from mmo_server.src.schemas.service_results import ErrorKind, Severity, log_extra

from .character_manager import CharacterManager

logger = get_logger(__name__)


class AutosaveService:
    """Handles automatic character saving at regular intervals."""

    def __init__(self, character_manager: CharacterManager, interval_seconds: Optional[float] = None):
        if interval_seconds is None:
            interval_seconds = settings.autosave_interval_seconds
        if interval_seconds <= 0:
            raise ValueError("Autosave interval must be greater than zero")

        self._manager = character_manager
        self._interval = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

    @property
    def interval_seconds(self) -> float:
        return self._interval

    def start(self, interval_seconds: Optional[float] = None) -> bool:
        """
        Start the autosave task on the running event loop.

        Args:
            interval_seconds: Seconds between flushes; keeps the configured
                interval when omitted

        Returns:
            False if the task was already running (nothing changes)
        """
        if self.is_running():
            logger.warning("Auto-save timer is already running")
            return False

        if interval_seconds is not None:
            if interval_seconds <= 0:
                raise ValueError("Autosave interval must be greater than zero")
            self._interval = interval_seconds

        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(
            self._run(self._stop_event), name="CharacterAutoSave"
        )
        logger.info(
            "Character auto-save started", extra={"interval_seconds": self._interval}
        )
        return True

    async def stop(self) -> None:
        """Stop scheduling flushes. Safe to call when not running."""
        if self._task is None:
            return

        task = self._task
        self._task = None
        self._stop_event.set()
        if not task.done():
            await task
        logger.info("Character auto-save stopped")

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self, stop_event: asyncio.Event) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self._interval

        while True:
            try:
                await asyncio.wait_for(
                    stop_event.wait(), timeout=max(0.0, next_tick - loop.time())
                )
                return
            except asyncio.TimeoutError:
                pass

            await self.run_once()

            # Fixed rate: stay on the original grid even if a flush overran
            next_tick += self._interval
            now = loop.time()
            while next_tick <= now:
                next_tick += self._interval

    async def run_once(self) -> int:
        """
        Run a single autosave flush.

        Returns:
            Number of characters saved (0 if the flush failed)
        """
        start_time = time.time()
        try:
            logger.info("Running auto-save for characters...")
            saved_count = await self._manager.save_all()
        except Exception as e:
            autosave_runs_total.labels(status="error").inc()
            logger.error(
                "Error during auto-save",
                extra=log_extra(
                    ErrorKind.STORE_OPERATION,
                    Severity.SEVERE,
                    error=str(e),
                    traceback=traceback.format_exc(),
                ),
            )
            return 0
        finally:
            autosave_duration_seconds.observe(time.time() - start_time)

        autosave_runs_total.labels(status="success").inc()
        if saved_count == 0:
            logger.info("No characters to auto-save")
        else:
            logger.info("Auto-save completed", extra={"saved": saved_count})
        return saved_count
