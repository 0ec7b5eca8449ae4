"""
SQLAlchemy model for the schema migration ledger.
"""

from sqlalchemy import BigInteger, Column, Integer, String
from .base import Base


class MigrationRecord(Base):
    __tablename__ = "migrations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True)
    executed_at = Column(BigInteger, nullable=False)

    def __repr__(self):
        return f"<MigrationRecord(name='{self.name}', executed_at={self.executed_at})>"
