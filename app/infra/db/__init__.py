"""
Database infrastructure layer.

Provides SQLAlchemy models, session management, and repositories.
"""
from app.infra.db.base import Base
from app.infra.db.session import configure_engine, get_db, get_engine, get_session_factory
from app.infra.db.models import Game, GameCategory, GameFileType
from app.infra.db.repositories import BaseRepository, GameRepository, GameSort

__all__ = [
    # Base
    "Base",
    # Session
    "configure_engine",
    "get_db",
    "get_engine",
    "get_session_factory",
    # Models
    "Game",
    "GameCategory",
    "GameFileType",
    # Repositories
    "BaseRepository",
    "GameRepository",
    "GameSort",
]
