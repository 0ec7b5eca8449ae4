"""
Player lifecycle event handlers.

Translates join / disconnect / death notifications into session cache calls.
Host-specific glue (whatever delivers the engine's callbacks) calls these
plain coroutines; nothing here assumes a particular event system.
"""

import traceback
from typing import Optional

from mmo_server.src.core.logging_config import get_logger
from mmo_server.src.schemas.character import SpawnLocation
from mmo_server.src.schemas.service_results import ErrorKind, Severity, log_extra
from mmo_server.src.services.character_manager import CharacterManager

logger = get_logger(__name__)


class PlayerEventListener:
    """Handles player-related events such as join, disconnect, and death."""

    def __init__(self, character_manager: CharacterManager):
        self._characters = character_manager

    def _log_handler_error(self, event: str, owner_id: str, error: Exception) -> None:
        logger.error(
            f"Error handling player {event}",
            extra=log_extra(
                ErrorKind.STORE_OPERATION,
                Severity.SEVERE,
                owner_id=owner_id,
                error=str(error),
                traceback=traceback.format_exc(),
            ),
        )

    async def on_join(
        self, owner_id: str, name: str, x: float, y: float, z: float, world: Optional[str]
    ) -> None:
        try:
            logger.info("Player joining", extra={"owner_id": owner_id, "player_name": name})

            character = await self._characters.load_or_create(
                owner_id, name, SpawnLocation(x=x, y=y, z=z, world=world)
            )

            logger.info(
                f"Character loaded for player: {name} | Level: {character.level} "
                f"| Class: {character.character_class}",
                extra={"owner_id": owner_id, "character_id": character.id},
            )
        except Exception as e:
            self._log_handler_error("join", owner_id, e)

    async def on_disconnect(self, owner_id: str, name: str) -> None:
        try:
            logger.info("Player disconnecting", extra={"owner_id": owner_id, "player_name": name})

            if not self._characters.is_loaded(owner_id):
                return

            if await self._characters.save(owner_id):
                logger.info("Character saved for disconnecting player", extra={"owner_id": owner_id})
            else:
                logger.warning(
                    "Failed to save character for disconnecting player",
                    extra=log_extra(ErrorKind.STORE_OPERATION, Severity.WARNING, owner_id=owner_id),
                )

            await self._characters.unload(owner_id)
        except Exception as e:
            self._log_handler_error("disconnect", owner_id, e)

    async def on_death(
        self, owner_id: str, name: str, x: float, y: float, z: float, world: Optional[str]
    ) -> None:
        """Record the death location, restore full health (respawn) and save."""
        try:
            logger.info("Player died", extra={"owner_id": owner_id, "player_name": name})

            await self._characters.set_position(owner_id, x, y, z, world)

            character = self._characters.get(owner_id)
            if character is not None:
                await self._characters.set_health(owner_id, character.max_health)

            if await self._characters.save(owner_id):
                logger.info("Character saved after death", extra={"owner_id": owner_id})
            else:
                logger.warning(
                    "Failed to save character after death",
                    extra=log_extra(ErrorKind.STORE_OPERATION, Severity.WARNING, owner_id=owner_id),
                )
        except Exception as e:
            self._log_handler_error("death", owner_id, e)

    async def update_position(
        self, owner_id: str, x: float, y: float, z: float, world: Optional[str]
    ) -> None:
        await self._characters.set_position(owner_id, x, y, z, world)

    async def update_health(self, owner_id: str, health: int) -> None:
        await self._characters.set_health(owner_id, health)
