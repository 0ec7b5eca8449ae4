from fastapi import APIRouter, Depends, HTTPException, Response, status

from mmo_server.src.core.logging_config import get_logger
from mmo_server.src.migrations import MigrationRunner
from mmo_server.src.schemas.character import CharacterPublic
from mmo_server.src.schemas.service_results import ErrorKind
from mmo_server.src.services.character_subsystem import (
    CharacterSubsystem,
    get_character_subsystem,
)

router = APIRouter()
logger = get_logger(__name__)


def get_ready_subsystem() -> CharacterSubsystem:
    """
    Dependency returning the started character subsystem.
    """
    try:
        subsystem = get_character_subsystem()
    except RuntimeError:
        subsystem = None

    if subsystem is None or not subsystem.is_ready:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Character subsystem is not running.",
        )
    return subsystem


@router.get(
    "/characters/{owner_id}",
    response_model=CharacterPublic,
    summary="Get a player's resident character",
)
async def get_resident_character(
    owner_id: str, subsystem: CharacterSubsystem = Depends(get_ready_subsystem)
):
    character = subsystem.characters.get(owner_id)
    if character is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No character is loaded for this player.",
        )
    return character


@router.post("/characters/save-all", summary="Flush every resident character")
async def save_all_characters(subsystem: CharacterSubsystem = Depends(get_ready_subsystem)):
    """
    Manual save-all trigger, the same flush the server runs at shutdown.
    """
    saved = await subsystem.characters.save_all()
    logger.info("Manual save-all requested", extra={"saved": saved})
    return {"saved": saved, "resident": len(subsystem.characters)}


@router.delete(
    "/characters/{character_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a stored character",
)
async def delete_character(
    character_id: int, subsystem: CharacterSubsystem = Depends(get_ready_subsystem)
):
    """
    Administrative delete from the store. Characters still resident in the
    session cache cannot be deleted.
    """
    for owner_id in subsystem.characters.loaded_owner_ids():
        resident = subsystem.characters.get(owner_id)
        if resident is not None and resident.id == character_id:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Character is currently loaded; disconnect the player first.",
            )

    result = await subsystem.repository.delete(character_id)
    if not result.success:
        if result.error_code == ErrorKind.NOT_FOUND:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.message)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=result.message)

    logger.info("Character deleted by admin", extra={"character_id": character_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/migrations/rollback", summary="Undo the last schema migration")
async def rollback_last_migration(subsystem: CharacterSubsystem = Depends(get_ready_subsystem)):
    result = await MigrationRunner(subsystem.database.engine).rollback_last()
    if not result.success:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=result.message)
    return {"rolled_back": result.data}
