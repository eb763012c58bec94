"""
SQLAlchemy models for the arcade database.

Exports all models for easy importing.
"""
from app.infra.db.base import Base

# Import all models so they're registered with Base
from app.infra.db.models.game import Game, GameCategory, GameFileType

__all__ = [
    "Base",
    "Game",
    "GameCategory",
    "GameFileType",
]
