"""
Pydantic models (schemas) for character data.

CharacterData is the mutable in-memory record held by the session cache;
it maps to and from rows of the ``characters`` table.
"""

import time
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_CHARACTER_CLASS = "Adventurer"
DEFAULT_HEALTH = 100
DEFAULT_MANA = 100


def now_millis() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


class SpawnLocation(BaseModel):
    """
    A world position a player joined or died at.
    """

    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    z: float
    world: Optional[str] = None


class CharacterData(BaseModel):
    """
    One player character, as cached in memory and stored in ``characters``.

    ``id`` is 0 until the store assigns a surrogate key on first insert.
    owner_id and name are not length-checked here: an identity the
    ``characters`` columns cannot hold is rejected by the store on save.
    """

    model_config = ConfigDict(from_attributes=True, validate_assignment=True)

    id: int = 0
    owner_id: str
    name: str

    # Progression
    level: Annotated[int, Field(ge=1)] = 1
    character_class: Annotated[str, Field(max_length=30)] = DEFAULT_CHARACTER_CLASS
    experience: Annotated[int, Field(ge=0)] = 0

    # Vitals
    health: int = DEFAULT_HEALTH
    max_health: Annotated[int, Field(ge=1)] = DEFAULT_HEALTH
    mana: int = DEFAULT_MANA
    max_mana: Annotated[int, Field(ge=0)] = DEFAULT_MANA

    # Placement
    pos_x: float = 0.0
    pos_y: float = 0.0
    pos_z: float = 0.0
    world: Annotated[Optional[str], Field(max_length=50)] = None

    # Timestamps (epoch milliseconds)
    created_at: int = Field(default_factory=now_millis)
    last_played: int = Field(default_factory=now_millis)

    @model_validator(mode="after")
    def clamp_vitals(self) -> "CharacterData":
        """Keep health and mana within [0, max]."""
        # object.__setattr__ avoids re-entering assignment validation
        if not 0 <= self.health <= self.max_health:
            object.__setattr__(self, "health", max(0, min(self.health, self.max_health)))
        if not 0 <= self.mana <= self.max_mana:
            object.__setattr__(self, "mana", max(0, min(self.mana, self.max_mana)))
        return self

    @property
    def is_persisted(self) -> bool:
        return self.id > 0

    def move_to(self, location: SpawnLocation) -> None:
        # world is the only field that can fail validation, so it goes first
        self.world = location.world
        self.pos_x = location.x
        self.pos_y = location.y
        self.pos_z = location.z

    def to_row(self) -> dict:
        """Column values for INSERT/UPDATE (everything but the surrogate key)."""
        return self.model_dump(exclude={"id"})


class CharacterPublic(BaseModel):
    """
    Schema for returning character data from the admin API.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: str
    name: str
    level: int
    character_class: str
    experience: int
    health: int
    max_health: int
    mana: int
    max_mana: int
    pos_x: float
    pos_y: float
    pos_z: float
    world: Optional[str]
    created_at: int
    last_played: int
