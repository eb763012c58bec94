"""
API Schemas for Games.

Field names are exposed in camelCase (playUrl, isVisible, ...) because that
is what the web client consumes.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.infra.db.models.game import Game, GameCategory, GameFileType


class CamelModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


# ============================================================================
# Response Models
# ============================================================================

class GameSummary(CamelModel):
    """Summary view of a game (for lists)."""
    id: str
    title: str
    description: str = ""
    slug: str
    category: GameCategory
    genre: Optional[str] = None
    file_type: GameFileType = Field(..., alias="fileType")
    file_size: int = Field(..., alias="fileSize")
    thumbnail_url: Optional[str] = Field(None, alias="thumbnailUrl")
    is_visible: bool = Field(..., alias="isVisible")
    is_featured: bool = Field(..., alias="isFeatured")
    play_count: int = Field(0, alias="playCount")
    rating: float = 0.0
    uploaded_by: str = Field(..., alias="uploadedBy")
    play_url: str = Field(..., alias="playUrl")
    created_at: datetime = Field(..., alias="createdAt")


class GameDetail(GameSummary):
    """Detailed view of a game."""
    entry_file: str = Field(..., alias="entryFile")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")


class Pagination(CamelModel):
    total: int
    page: int
    limit: int
    total_pages: int = Field(..., alias="totalPages")


class GameList(BaseModel):
    """Paginated list of games."""
    games: list[GameSummary]
    pagination: Pagination


class UploadResponse(BaseModel):
    message: str = "Game uploaded successfully"
    game: GameSummary


class UpdateResponse(BaseModel):
    message: str = "Game updated successfully"
    game: GameDetail


class VisibilityResponse(CamelModel):
    id: str
    is_visible: bool = Field(..., alias="isVisible")


class FeaturedResponse(CamelModel):
    id: str
    is_featured: bool = Field(..., alias="isFeatured")


class CategoryCount(BaseModel):
    category: GameCategory
    count: int


class GameStats(CamelModel):
    total: int
    visible: int
    featured: int
    total_size: int = Field(..., alias="totalSize")
    total_plays: int = Field(..., alias="totalPlays")


class MessageResponse(BaseModel):
    message: str


def to_summary(game: Game) -> GameSummary:
    return GameSummary.model_validate(game)


def to_detail(game: Game) -> GameDetail:
    return GameDetail.model_validate(game)
