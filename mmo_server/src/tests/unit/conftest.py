"""
Test fixtures for unit tests.

Fast fixtures that don't require database access.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from mmo_server.src.schemas.character import CharacterData
from mmo_server.src.schemas.service_results import ServiceResult


@pytest.fixture
def sample_character() -> CharacterData:
    """A persisted character as the store would return it."""
    return CharacterData(
        id=7,
        owner_id="0f8fad5b-d9cb-469f-a165-70867728950e",
        name="Aria",
        level=12,
        character_class="Ranger",
        experience=4500,
        health=80,
        max_health=150,
        mana=40,
        max_mana=60,
        pos_x=1.5,
        pos_y=64.0,
        pos_z=-3.25,
        world="overworld",
        created_at=1_600_000_000_000,
        last_played=1_650_000_000_000,
    )


@pytest.fixture
def mock_repository() -> MagicMock:
    """Repository double whose calls all succeed and find nothing."""
    repository = MagicMock()
    repository.find_by_owner = AsyncMock(return_value=ServiceResult.success_with_data([]))

    async def _insert(character):
        character.id = 1
        return ServiceResult.success_with_data(1)

    repository.insert = AsyncMock(side_effect=_insert)
    repository.update_by_id = AsyncMock(return_value=ServiceResult.success_no_data())
    return repository
