"""
Versioned schema migrations for the character store.

MIGRATIONS is the fixed application order. Append new units at the end;
never reorder or rename released ones.
"""

from .base import Migration
from .runner import MigrationRunner
from .versions.create_character_table import CreateCharacterTable

MIGRATIONS = [
    CreateCharacterTable(),
]

__all__ = ["MIGRATIONS", "Migration", "MigrationRunner", "CreateCharacterTable"]
