"""
Game SQLAlchemy model.

A Game is one uploaded HTML game: catalog metadata plus the pointers needed
to serve and later delete its stored assets.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import JSON, Boolean, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.infra.db.base import Base


def generate_id() -> str:
    return str(uuid.uuid4())


class GameCategory(str, Enum):
    """Closed set of catalog categories."""

    ACTION = "Action"
    PUZZLE = "Puzzle"
    RPG = "RPG"
    ARCADE = "Arcade"
    ADVENTURE = "Adventure"


class GameFileType(str, Enum):
    """Format of the uploaded payload."""

    HTML = "html"
    ZIP = "zip"


class Game(Base):
    """
    A playable game in the catalog.

    New uploads start hidden (is_visible=False) until an admin approves them.
    The slug doubles as the storage namespace and never changes.
    """

    __tablename__ = "games"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    created_at: Mapped[datetime] = mapped_column(default=datetime.utcnow)
    updated_at: Mapped[Optional[datetime]] = mapped_column(default=None, onupdate=datetime.utcnow)

    # Identity
    slug: Mapped[str] = mapped_column(String(120), nullable=False, unique=True, index=True)

    # Descriptors
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    category: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    genre: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)
    file_type: Mapped[str] = mapped_column(String(10), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)

    # Storage pointers
    storage_backend: Mapped[str] = mapped_column(String(20), nullable=False)
    entry_file: Mapped[str] = mapped_column(String(512), nullable=False)
    play_location: Mapped[str] = mapped_column(String(1024), nullable=False)
    asset_handles: Mapped[list] = mapped_column(JSON, default=list)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    thumbnail_handle: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)

    # Ownership
    uploaded_by: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    # Moderation
    is_visible: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False)

    # Counters
    play_count: Mapped[int] = mapped_column(Integer, default=0)
    rating: Mapped[float] = mapped_column(Float, default=0.0)

    @property
    def play_url(self) -> str:
        return f"/games/{self.id}/play"

    def __repr__(self) -> str:
        return f"<Game(id={self.id}, slug={self.slug})>"
