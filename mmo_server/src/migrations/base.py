"""
Base class for schema migration units.

A unit is written like an alembic revision script: ``upgrade`` and
``downgrade`` receive an ``alembic.operations.Operations`` bound to the live
connection. Units are identified in the ledger by ``name`` alone, so a name
must never be reused once released.
"""

from alembic.operations import Operations


class Migration:
    """A single, named schema change with an optional reverse action."""

    name: str = ""

    def upgrade(self, op: Operations) -> None:
        raise NotImplementedError

    def downgrade(self, op: Operations) -> None:
        raise NotImplementedError

    def __repr__(self):
        return f"<Migration(name='{self.name}')>"
