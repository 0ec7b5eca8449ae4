"""
Character session cache.

Holds the one resident CharacterData per connected player and decides when it
is read from and written to the character store. The manager is the only
sanctioned writer of resident characters.

Locking:
- a per-owner lock serializes every operation for one player, so a save that
  starts after a previous save/load for that player completed sees its effects
- the map lock guards insertion/removal of entries and the snapshot taken by
  save_all, so a bulk save always iterates a complete, consistent owner set

No public method raises. Store failures are logged and surfaced as a
boolean (or optional) result.
"""

import asyncio
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from mmo_server.src.core.concurrency import LockType, OwnerLockManager
from mmo_server.src.core.config import settings
from mmo_server.src.core.logging_config import get_logger
from mmo_server.src.core.metrics import (
    character_saves_total,
    characters_loaded_total,
    characters_resident,
)
from mmo_server.src.schemas.character import CharacterData, SpawnLocation, now_millis
from mmo_server.src.schemas.service_results import ErrorKind, Severity, log_extra

from .character_repository import CharacterRepository

logger = get_logger(__name__)

# Column widths of characters.name and characters.character_class
MAX_NAME_LENGTH = 50
MAX_CLASS_LENGTH = 30


def select_active_character(characters: List[CharacterData]) -> CharacterData:
    """
    Pick the character to resume when an owner has several stored rows.

    Most recently played wins; ties go to the oldest row (lowest id).
    """
    return min(characters, key=lambda c: (-c.last_played, c.id))


class CharacterManager:
    """Manages character loading, creation, saving and unloading for players."""

    def __init__(
        self,
        repository: CharacterRepository,
        lock_manager: Optional[OwnerLockManager] = None,
        clock: Callable[[], int] = now_millis,
        default_class: Optional[str] = None,
    ):
        self._repository = repository
        self._locks = lock_manager or OwnerLockManager()
        self._clock = clock
        self._default_class = (default_class or settings.DEFAULT_CHARACTER_CLASS)[:MAX_CLASS_LENGTH]
        self._loaded: Dict[str, CharacterData] = {}
        self._map_lock = asyncio.Lock()

    @property
    def repository(self) -> CharacterRepository:
        return self._repository

    # =========================================================================
    # Loading
    # =========================================================================

    def _new_character(
        self, owner_id: str, default_name: str, spawn_location: Optional[SpawnLocation]
    ) -> CharacterData:
        now = self._clock()
        character = CharacterData(
            owner_id=owner_id,
            name=(default_name or owner_id)[:MAX_NAME_LENGTH],
            character_class=self._default_class,
            created_at=now,
            last_played=now,
        )
        if spawn_location is not None:
            self._place(character, **spawn_location.model_dump())
        return character

    def _place(
        self, character: CharacterData, x: float, y: float, z: float, world: Optional[str]
    ) -> None:
        """Move a character, keeping its current position if the location is invalid."""
        try:
            character.move_to(SpawnLocation(x=x, y=y, z=z, world=world))
        except ValidationError as e:
            logger.warning(
                "Rejected invalid character position",
                extra=log_extra(
                    ErrorKind.STORE_OPERATION,
                    Severity.WARNING,
                    owner_id=character.owner_id,
                    error=str(e),
                ),
            )

    async def load_or_create(
        self,
        owner_id: str,
        default_name: str,
        spawn_location: Optional[SpawnLocation] = None,
    ) -> CharacterData:
        """
        Load the owner's character from the store, or create one on first join.

        The existing-character path only refreshes the in-memory copy
        (last_played, position); the store sees it on the next save. Any
        previously cached entry for the owner is replaced, not merged.

        Returns:
            The resident character. If the store is unreachable a fresh
            unsaved character is still cached and returned; a spawn location
            the record cannot hold is dropped and the previous position kept.
        """
        async with self._locks.acquire_owner_lock(owner_id, LockType.LOAD, "load_or_create"):
            character = await self._load_or_build(owner_id, default_name, spawn_location)

            async with self._map_lock:
                self._loaded[owner_id] = character
                characters_resident.set(len(self._loaded))

        return character

    async def _load_or_build(
        self, owner_id: str, default_name: str, spawn_location: Optional[SpawnLocation]
    ) -> CharacterData:
        lookup = await self._repository.find_by_owner(owner_id)

        if not lookup.success:
            logger.error(
                "Character lookup failed, continuing with an unsaved character",
                extra=log_extra(
                    lookup.error_code or ErrorKind.STORE_OPERATION,
                    Severity.SEVERE,
                    owner_id=owner_id,
                ),
            )
            return self._new_character(owner_id, default_name, spawn_location)

        if not lookup.data:
            logger.info("Creating new character", extra={"owner_id": owner_id, "character_name": default_name})
            character = self._new_character(owner_id, default_name, spawn_location)
            result = await self._repository.insert(character)
            if result.success:
                logger.info(
                    "New character created and saved",
                    extra={"owner_id": owner_id, "character_id": character.id},
                )
            else:
                logger.warning(
                    "Failed to save new character",
                    extra=log_extra(
                        result.error_code or ErrorKind.STORE_OPERATION,
                        Severity.WARNING,
                        owner_id=owner_id,
                    ),
                )
            characters_loaded_total.labels(source="created").inc()
            return character

        character = select_active_character(lookup.data)
        character.last_played = self._clock()
        if spawn_location is not None:
            self._place(character, **spawn_location.model_dump())

        logger.info(
            "Loaded existing character",
            extra={
                "owner_id": owner_id,
                "character_id": character.id,
                "stored_characters": len(lookup.data),
            },
        )
        characters_loaded_total.labels(source="existing").inc()
        return character

    # =========================================================================
    # Saving
    # =========================================================================

    async def save(self, owner_id: str) -> bool:
        """
        Persist the owner's resident character.

        Updates the existing row, or inserts one if the character was never
        persisted. Returns False (with a warning) when nothing is cached.
        """
        return await self._save(owner_id, report_miss=True)

    async def _save(self, owner_id: str, report_miss: bool) -> bool:
        async with self._locks.acquire_owner_lock(owner_id, LockType.SAVE, "save"):
            character = self._loaded.get(owner_id)
            if character is None:
                if report_miss:
                    character_saves_total.labels(status="cache_miss").inc()
                    logger.warning(
                        "Attempted to save character but no character is loaded",
                        extra=log_extra(ErrorKind.CACHE_MISS, Severity.WARNING, owner_id=owner_id),
                    )
                return False

            character.last_played = self._clock()

            if character.is_persisted:
                result = await self._repository.update_by_id(character)
            else:
                # Entry whose initial insert failed
                result = await self._repository.insert(character)

        character_saves_total.labels(status="success" if result.success else "failure").inc()
        return result.success

    async def save_all(self) -> int:
        """
        Save every resident character.

        Returns:
            The number of characters successfully written
        """
        async with self._map_lock:
            owner_ids = list(self._loaded)

        saved_count = 0
        for owner_id in owner_ids:
            # Owners unloaded since the snapshot are skipped quietly
            if await self._save(owner_id, report_miss=False):
                saved_count += 1

        if saved_count > 0:
            logger.info(
                f"Auto-saved {saved_count} character(s)",
                extra={"saved": saved_count, "resident": len(owner_ids)},
            )

        return saved_count

    # =========================================================================
    # Mutation
    # =========================================================================

    async def set_position(
        self, owner_id: str, x: float, y: float, z: float, world: Optional[str]
    ) -> None:
        """Move the resident character. No-op if the owner has none."""
        async with self._locks.acquire_owner_lock(owner_id, LockType.POSITION, "set_position"):
            character = self._loaded.get(owner_id)
            if character is None:
                return
            self._place(character, x, y, z, world)

    async def set_health(self, owner_id: str, health: int) -> None:
        """Set current health, clamped to [0, max_health]. No-op if not resident."""
        async with self._locks.acquire_owner_lock(owner_id, LockType.HEALTH, "set_health"):
            character = self._loaded.get(owner_id)
            if character is None:
                return
            character.health = max(0, min(int(health), character.max_health))

    # =========================================================================
    # Unloading / accessors
    # =========================================================================

    async def unload(self, owner_id: str) -> None:
        """
        Drop the owner's character from memory.

        Does not save first: callers that want the latest state persisted
        must call save() before unload().
        """
        async with self._locks.acquire_owner_lock(owner_id, LockType.UNLOAD, "unload"):
            async with self._map_lock:
                self._loaded.pop(owner_id, None)
                characters_resident.set(len(self._loaded))
        await self._locks.cleanup_owner_lock(owner_id)
        logger.info("Unloaded character", extra={"owner_id": owner_id})

    def get(self, owner_id: str) -> Optional[CharacterData]:
        return self._loaded.get(owner_id)

    def is_loaded(self, owner_id: str) -> bool:
        return owner_id in self._loaded

    def loaded_owner_ids(self) -> List[str]:
        return list(self._loaded)

    def __len__(self) -> int:
        return len(self._loaded)
