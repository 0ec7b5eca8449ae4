"""
Declarative base shared by the character store tables.

Schema changes go through mmo_server.src.migrations; metadata here is only
used for ORM mapping and for creating the migrations ledger.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
