"""
Character persistence subsystem lifecycle.

Wires the database connection, repository, session cache, autosave scheduler
and player event listener together, and owns their startup/shutdown order:

    startup:  connect -> migrate -> cache ready -> autosave started
    shutdown: autosave stopped -> final flush -> disconnect
"""

from typing import Optional, Union

from sqlalchemy.engine import URL

from mmo_server.src.core.config import Settings, settings as default_settings
from mmo_server.src.core.database import DatabaseConnection
from mmo_server.src.core.logging_config import get_logger
from mmo_server.src.listeners.player_events import PlayerEventListener

from .autosave_service import AutosaveService
from .character_manager import CharacterManager
from .character_repository import CharacterRepository

logger = get_logger(__name__)


class CharacterSubsystem:
    """Owns every component of the character session cache."""

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or default_settings
        self.database = DatabaseConnection(self._settings)
        self.repository: Optional[CharacterRepository] = None
        self.characters: Optional[CharacterManager] = None
        self.autosave: Optional[AutosaveService] = None
        self.events: Optional[PlayerEventListener] = None

    @property
    def is_ready(self) -> bool:
        return self.characters is not None and self.database.is_connected()

    async def start(
        self,
        url: Optional[Union[str, URL]] = None,
        autosave_interval_seconds: Optional[float] = None,
        start_autosave: bool = True,
    ) -> bool:
        """
        Bring the subsystem up.

        Returns:
            False if the store could not be reached; the subsystem then stays
            non-functional until restarted.
        """
        if not await self.database.connect(url):
            logger.error("Character subsystem not started: database unavailable")
            return False

        self.repository = CharacterRepository(self.database.session_factory)
        self.characters = CharacterManager(
            self.repository, default_class=self._settings.DEFAULT_CHARACTER_CLASS
        )
        self.events = PlayerEventListener(self.characters)
        self.autosave = AutosaveService(
            self.characters,
            autosave_interval_seconds or self._settings.autosave_interval_seconds,
        )
        if start_autosave:
            self.autosave.start()

        logger.info("Character subsystem started")
        return True

    async def shutdown(self) -> int:
        """
        Stop autosave, flush every resident character, then disconnect.

        Returns:
            Number of characters saved by the final flush
        """
        saved = 0
        if self.autosave is not None:
            await self.autosave.stop()
        if self.characters is not None and self.database.is_connected():
            saved = await self.characters.save_all()
            logger.info("Shutdown save completed", extra={"saved": saved})

        await self.database.disconnect()
        self.characters = None
        self.events = None
        self.autosave = None
        self.repository = None
        return saved


# Global subsystem reference
_character_subsystem: Optional[CharacterSubsystem] = None


def init_character_subsystem(settings: Optional[Settings] = None) -> CharacterSubsystem:
    """Create the global character subsystem (not yet started)."""
    global _character_subsystem
    _character_subsystem = CharacterSubsystem(settings)
    return _character_subsystem


def get_character_subsystem() -> CharacterSubsystem:
    if _character_subsystem is None:
        raise RuntimeError("CharacterSubsystem not initialized - call init_character_subsystem() first")
    return _character_subsystem


def reset_character_subsystem() -> None:
    global _character_subsystem
    _character_subsystem = None
