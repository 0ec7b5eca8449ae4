import pytest
import pytest_asyncio
from pathlib import Path
from typing import AsyncGenerator

from mmo_server.src.core.database import DatabaseConnection
from mmo_server.src.schemas.character import SpawnLocation
from mmo_server.src.services.character_manager import CharacterManager
from mmo_server.src.services.character_repository import CharacterRepository
from mmo_server.src.tests.utils.time_mock import SteppingClock


def sqlite_url(directory: Path) -> str:
    """File-backed SQLite so concurrent sessions see the same database."""
    return f"sqlite+aiosqlite:///{directory / 'characters.db'}"


@pytest.fixture
def database_url(tmp_path) -> str:
    return sqlite_url(tmp_path)


@pytest_asyncio.fixture
async def database(database_url) -> AsyncGenerator[DatabaseConnection, None]:
    """
    A connected, fully migrated character store for each test.
    """
    connection = DatabaseConnection()
    connected = await connection.connect(database_url)
    assert connected, "test database should always be reachable"
    assert connection.last_migration_result.success

    yield connection

    await connection.disconnect()


@pytest.fixture
def repository(database) -> CharacterRepository:
    return CharacterRepository(database.session_factory)


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def character_manager(repository, clock) -> CharacterManager:
    return CharacterManager(repository, clock=clock)


@pytest.fixture
def overworld_spawn() -> SpawnLocation:
    return SpawnLocation(x=10, y=20, z=30, world="overworld")
