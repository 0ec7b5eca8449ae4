"""
Character repository.

Translates CharacterData records to and from rows of the ``characters`` table.
Every operation is an independent single-statement unit of work with its own
session; nothing here raises to the caller. Failures come back as an
unsuccessful ServiceResult, are logged once, and are never retried.
"""

import traceback
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mmo_server.src.core.logging_config import get_logger
from mmo_server.src.core.metrics import (
    database_operation_duration_seconds,
    database_operations_total,
    record_error,
    track_time,
)
from mmo_server.src.models.character import Character
from mmo_server.src.schemas.character import CharacterData
from mmo_server.src.schemas.service_results import (
    ErrorKind,
    ServiceResult,
    Severity,
    log_extra,
)

logger = get_logger(__name__)

# Set once at creation, never rewritten by UPDATE
_IMMUTABLE_COLUMNS = {"created_at"}


def _classify(error: Exception) -> ErrorKind:
    """Map a database exception onto the store error taxonomy."""
    if isinstance(error, IntegrityError):
        return ErrorKind.CONSTRAINT_VIOLATION
    if isinstance(error, DBAPIError) and error.connection_invalidated:
        return ErrorKind.CONNECTIVITY
    if isinstance(error, OSError):
        return ErrorKind.CONNECTIVITY
    return ErrorKind.STORE_OPERATION


def _to_record(row: Character) -> CharacterData:
    return CharacterData.model_validate(row)


class CharacterRepository:
    """Repository for the ``characters`` table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    def _failure(self, operation: str, error: Exception, **fields) -> ServiceResult:
        error_code = _classify(error)
        record_error("character_repository", error_code.value)
        logger.error(
            f"Error during character {operation}",
            extra=log_extra(
                error_code,
                Severity.SEVERE,
                operation=operation,
                error=str(error),
                traceback=traceback.format_exc(),
                **fields,
            ),
        )
        return ServiceResult.failure(f"Character {operation} failed: {error}", error_code)

    @track_time(database_operation_duration_seconds, {"operation": "insert", "table": "characters"})
    async def insert(self, character: CharacterData) -> ServiceResult[int]:
        """
        Insert a new character row.

        On success the generated id is written back onto ``character`` and
        returned as the result data.
        """
        database_operations_total.labels(operation="insert", table="characters").inc()
        try:
            async with self._session_factory() as session:
                row = Character(**character.to_row())
                session.add(row)
                await session.commit()
                character.id = row.id
        except (SQLAlchemyError, OSError) as e:
            return self._failure(
                "insert", e, owner_id=character.owner_id, character_name=character.name
            )

        logger.info(
            "Character saved",
            extra={"character_id": character.id, "owner_id": character.owner_id, "character_name": character.name},
        )
        return ServiceResult.success_with_data(character.id, "Character inserted")

    @track_time(database_operation_duration_seconds, {"operation": "update", "table": "characters"})
    async def update_by_id(self, character: CharacterData) -> ServiceResult[None]:
        """Full-row update keyed by id. Fails with NOT_FOUND if no row matched."""
        database_operations_total.labels(operation="update", table="characters").inc()
        values = {
            key: value
            for key, value in character.to_row().items()
            if key not in _IMMUTABLE_COLUMNS
        }
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    update(Character).where(Character.id == character.id).values(**values)
                )
                await session.commit()
                affected = result.rowcount
        except (SQLAlchemyError, OSError) as e:
            return self._failure("update", e, character_id=character.id)

        if affected == 0:
            logger.warning(
                "Character update matched no rows",
                extra=log_extra(ErrorKind.NOT_FOUND, Severity.WARNING, character_id=character.id),
            )
            return ServiceResult.failure(
                f"Character {character.id} not found", ErrorKind.NOT_FOUND, Severity.WARNING
            )

        logger.debug("Character updated", extra={"character_id": character.id})
        return ServiceResult.success_no_data("Character updated")

    @track_time(database_operation_duration_seconds, {"operation": "select", "table": "characters"})
    async def find_by_owner(self, owner_id: str) -> ServiceResult[List[CharacterData]]:
        """
        All characters belonging to an owner, in the store's natural order.

        No ORDER BY is applied; callers must not assume recency ordering.
        """
        database_operations_total.labels(operation="select", table="characters").inc()
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Character).where(Character.owner_id == owner_id)
                )
                characters = [_to_record(row) for row in result.scalars().all()]
        except (SQLAlchemyError, OSError, ValidationError) as e:
            return self._failure("lookup", e, owner_id=owner_id)

        return ServiceResult.success_with_data(characters)

    async def find_by_owner_and_name(
        self, owner_id: str, name: str
    ) -> ServiceResult[Optional[CharacterData]]:
        database_operations_total.labels(operation="select", table="characters").inc()
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(Character).where(
                        Character.owner_id == owner_id, Character.name == name
                    )
                )
                row = result.scalars().first()
                character = _to_record(row) if row is not None else None
        except (SQLAlchemyError, OSError, ValidationError) as e:
            return self._failure("lookup", e, owner_id=owner_id, character_name=name)

        return ServiceResult.success_with_data(character)

    async def delete(self, character_id: int) -> ServiceResult[None]:
        """Administrative delete by id. Fails with NOT_FOUND if no row matched."""
        database_operations_total.labels(operation="delete", table="characters").inc()
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    delete(Character).where(Character.id == character_id)
                )
                await session.commit()
                affected = result.rowcount
        except (SQLAlchemyError, OSError) as e:
            return self._failure("delete", e, character_id=character_id)

        if affected == 0:
            logger.warning(
                "Character delete matched no rows",
                extra=log_extra(ErrorKind.NOT_FOUND, Severity.WARNING, character_id=character_id),
            )
            return ServiceResult.failure(
                f"Character {character_id} not found", ErrorKind.NOT_FOUND, Severity.WARNING
            )

        logger.info("Character deleted", extra={"character_id": character_id})
        return ServiceResult.success_no_data("Character deleted")

    async def count_by_owner(self, owner_id: str) -> ServiceResult[int]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(func.count()).select_from(Character).where(Character.owner_id == owner_id)
                )
                count = result.scalar_one()
        except (SQLAlchemyError, OSError) as e:
            return self._failure("count", e, owner_id=owner_id)

        return ServiceResult.success_with_data(count)
