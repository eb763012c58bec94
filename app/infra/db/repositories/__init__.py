"""
Repository layer for database operations.

Provides easy access to all repositories.
"""
from app.infra.db.repositories.base import BaseRepository
from app.infra.db.repositories.game import GameRepository, GameSort

__all__ = [
    "BaseRepository",
    "GameRepository",
    "GameSort",
]
