"""
Unit tests for the CharacterData and SpawnLocation schemas.
"""

import pytest
from pydantic import ValidationError

from mmo_server.src.models.character import Character
from mmo_server.src.schemas.character import CharacterData, CharacterPublic, SpawnLocation


class TestCharacterDefaults:
    """Tests for a freshly created character."""

    def test_new_character_defaults(self):
        character = CharacterData(owner_id="P1", name="Aria")

        assert character.id == 0
        assert character.level == 1
        assert character.character_class == "Adventurer"
        assert character.experience == 0
        assert (character.health, character.max_health) == (100, 100)
        assert (character.mana, character.max_mana) == (100, 100)
        assert (character.pos_x, character.pos_y, character.pos_z) == (0.0, 0.0, 0.0)
        assert character.world is None
        assert character.created_at > 0
        assert character.last_played > 0
        assert not character.is_persisted

    def test_level_must_be_positive(self):
        with pytest.raises(ValidationError):
            CharacterData(owner_id="P1", name="Aria", level=0)

    def test_experience_cannot_be_negative(self):
        with pytest.raises(ValidationError):
            CharacterData(owner_id="P1", name="Aria", experience=-5)

    def test_identity_is_not_length_checked_in_memory(self):
        character = CharacterData(owner_id="o" * 40, name="n" * 60)

        assert len(character.owner_id) == 40
        assert len(character.name) == 60


class TestVitalsClamping:
    """Health and mana never exceed their maximum."""

    def test_construction_clamps_health_and_mana(self):
        character = CharacterData(
            owner_id="P1", name="Aria", health=500, max_health=150, mana=-3, max_mana=60
        )

        assert character.health == 150
        assert character.mana == 0

    def test_assignment_clamps_health(self):
        character = CharacterData(owner_id="P1", name="Aria", max_health=120)

        character.health = 999

        assert character.health == 120


class TestPlacement:
    """Tests for moving characters around."""

    def test_move_to_copies_location(self):
        character = CharacterData(owner_id="P1", name="Aria")

        character.move_to(SpawnLocation(x=5, y=6, z=7, world="nether"))

        assert (character.pos_x, character.pos_y, character.pos_z) == (5.0, 6.0, 7.0)
        assert character.world == "nether"

    def test_move_to_rejects_oversized_world_without_moving(self):
        character = CharacterData(owner_id="P1", name="Aria", pos_x=1, pos_y=2, pos_z=3)

        with pytest.raises(ValidationError):
            character.move_to(SpawnLocation(x=9, y=9, z=9, world="w" * 80))

        assert (character.pos_x, character.pos_y, character.pos_z) == (1.0, 2.0, 3.0)

    def test_spawn_location_is_immutable(self):
        location = SpawnLocation(x=1, y=2, z=3, world="overworld")

        with pytest.raises(ValidationError):
            location.x = 10


class TestRowMapping:
    """Tests for converting between records and ORM rows."""

    def test_to_row_excludes_surrogate_key(self, sample_character):
        row = sample_character.to_row()

        assert "id" not in row
        assert row["owner_id"] == sample_character.owner_id
        assert row["created_at"] == sample_character.created_at

    def test_round_trip_through_orm_row(self, sample_character):
        row = Character(id=sample_character.id, **sample_character.to_row())

        restored = CharacterData.model_validate(row)

        assert restored == sample_character

    def test_public_schema_from_record(self, sample_character):
        public = CharacterPublic.model_validate(sample_character)

        assert public.name == "Aria"
        assert public.max_health == 150
