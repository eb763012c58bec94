"""
API Schemas package.
"""
from .games import (
    CategoryCount,
    FeaturedResponse,
    GameDetail,
    GameList,
    GameStats,
    GameSummary,
    MessageResponse,
    Pagination,
    UpdateResponse,
    UploadResponse,
    VisibilityResponse,
    to_detail,
    to_summary,
)

__all__ = [
    "CategoryCount",
    "FeaturedResponse",
    "GameDetail",
    "GameList",
    "GameStats",
    "GameSummary",
    "MessageResponse",
    "Pagination",
    "UpdateResponse",
    "UploadResponse",
    "VisibilityResponse",
    "to_detail",
    "to_summary",
]
