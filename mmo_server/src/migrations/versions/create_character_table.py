"""Create characters table

Creates the ``characters`` table holding one row per (owner, character name)
pair, with a lookup index on the owning player.
"""

from alembic.operations import Operations
import sqlalchemy as sa

from ..base import Migration


class CreateCharacterTable(Migration):
    name = "CreateCharacterTable"

    def upgrade(self, op: Operations) -> None:
        op.create_table(
            "characters",
            sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
            sa.Column("owner_id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=50), nullable=False),
            sa.Column("level", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("character_class", sa.String(length=30), nullable=True),
            sa.Column("experience", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("health", sa.Integer(), nullable=False, server_default="100"),
            sa.Column("max_health", sa.Integer(), nullable=False, server_default="100"),
            sa.Column("mana", sa.Integer(), nullable=False, server_default="100"),
            sa.Column("max_mana", sa.Integer(), nullable=False, server_default="100"),
            sa.Column("pos_x", sa.Float(), nullable=False, server_default="0"),
            sa.Column("pos_y", sa.Float(), nullable=False, server_default="0"),
            sa.Column("pos_z", sa.Float(), nullable=False, server_default="0"),
            sa.Column("world", sa.String(length=50), nullable=True),
            sa.Column("created_at", sa.BigInteger(), nullable=False),
            sa.Column("last_played", sa.BigInteger(), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("owner_id", "name", name="unique_character"),
        )
        op.create_index("idx_owner_id", "characters", ["owner_id"])

    def downgrade(self, op: Operations) -> None:
        op.drop_index("idx_owner_id", table_name="characters")
        op.drop_table("characters")
