"""
SQLAlchemy models for player characters.
"""

from sqlalchemy import BigInteger, Column, Float, Index, Integer, String, UniqueConstraint
from .base import Base


class Character(Base):
    __tablename__ = "characters"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(String(36), nullable=False)
    name = Column(String(50), nullable=False)

    # Progression
    level = Column(Integer, default=1, nullable=False)
    character_class = Column(String(30))
    experience = Column(Integer, default=0, nullable=False)

    # Vitals
    health = Column(Integer, default=100, nullable=False)
    max_health = Column(Integer, default=100, nullable=False)
    mana = Column(Integer, default=100, nullable=False)
    max_mana = Column(Integer, default=100, nullable=False)

    # Position
    pos_x = Column(Float, default=0.0, nullable=False)
    pos_y = Column(Float, default=0.0, nullable=False)
    pos_z = Column(Float, default=0.0, nullable=False)
    world = Column(String(50))

    # Timestamps, epoch milliseconds
    created_at = Column(BigInteger, nullable=False)
    last_played = Column(BigInteger, nullable=False)

    __table_args__ = (
        UniqueConstraint("owner_id", "name", name="unique_character"),
        Index("idx_owner_id", "owner_id"),
    )

    def __repr__(self):
        return f"<Character(id={self.id}, owner_id='{self.owner_id}', name='{self.name}')>"
