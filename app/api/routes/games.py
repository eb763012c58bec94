"""
Games API Routes.

Upload, browse, play and moderate games.

Static paths (/upload, /featured, /admin/...) are declared before the
/{game_id} routes, and the relative-asset catch-all comes last.
"""
import logging
from math import ceil
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import FileResponse, RedirectResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_app_settings, get_http_client, get_slug_claims, get_storage
from app.auth import Principal, get_current_user, require_admin
from app.config import Settings
from app.infra.db.models.game import GameCategory
from app.infra.db.repositories.game import GameRepository, GameSort
from app.infra.db.session import get_db
from app.services.catalog import GameCatalog
from app.services.errors import FileTooLarge
from app.services.ingestion import (
    GameMetadata,
    IngestionPipeline,
    SlugClaims,
    UploadedFile,
    receive_upload,
    remove_path,
)
from app.services.playback import PlaybackService
from app.storage.base import StorageBackend
from ..schemas.games import (
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

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/games", tags=["games"])


# ============================================================================
# Helper Functions
# ============================================================================

def _has_file(upload: Optional[UploadFile]) -> bool:
    # Browsers send an empty part with no filename for an untouched file input.
    return upload is not None and bool(upload.filename)


async def _receive_thumbnail(
    thumbnail: Optional[UploadFile], settings: Settings
) -> Optional[UploadedFile]:
    """Spool an optional thumbnail. An oversized one is dropped, not fatal."""
    if not _has_file(thumbnail):
        return None
    try:
        return await receive_upload(thumbnail, settings.scratch_dir, settings.max_upload_bytes)
    except FileTooLarge:
        logger.warning("Dropping oversized thumbnail %s", thumbnail.filename)
        return None


def _game_list(games, total: int, page: int, limit: int) -> GameList:
    return GameList(
        games=[to_summary(g) for g in games],
        pagination=Pagination(
            total=total,
            page=page,
            limit=limit,
            total_pages=ceil(total / limit) if total else 0,
        ),
    )


# ============================================================================
# Endpoints
# ============================================================================

@router.post("/upload", response_model=UploadResponse, status_code=201)
async def upload_game(
    title: str = Form(..., min_length=1, max_length=100),
    category: GameCategory = Form(...),
    description: str = Form("", max_length=500),
    genre: Optional[str] = Form(None, max_length=50),
    game_file: Optional[UploadFile] = File(None, alias="gameFile"),
    thumbnail: Optional[UploadFile] = File(None),
    user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
    claims: SlugClaims = Depends(get_slug_claims),
) -> UploadResponse:
    """
    Upload a game as a single .html file or a .zip archive.

    New games are hidden until an admin makes them visible.
    """
    upload = None
    if _has_file(game_file):
        upload = await receive_upload(game_file, settings.scratch_dir, settings.max_upload_bytes)

    try:
        thumb = await _receive_thumbnail(thumbnail, settings)
    except Exception:
        await remove_path(upload.path if upload else None)
        raise

    pipeline = IngestionPipeline(GameRepository(db), storage, settings, claims)
    game = await pipeline.ingest(
        upload,
        GameMetadata(title=title, category=category, description=description, genre=genre),
        uploader_id=user.id,
        thumbnail=thumb,
    )
    return UploadResponse(game=to_summary(game))


@router.get("", response_model=GameList)
async def list_games(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    category: Optional[GameCategory] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    genre: Optional[str] = Query(None, max_length=50),
    sort_by: GameSort = Query(GameSort.NEWEST, alias="sortBy"),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
) -> GameList:
    """List visible games with filters, sorting and pagination."""
    catalog = GameCatalog(db, storage)
    games, total = await catalog.list_games(
        page=page,
        limit=limit,
        category=category.value if category else None,
        search=search,
        genre=genre,
        sort_by=sort_by,
    )
    return _game_list(games, total, page, limit)


@router.get("/admin/all", response_model=GameList)
async def list_all_games(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    category: Optional[GameCategory] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    genre: Optional[str] = Query(None, max_length=50),
    sort_by: GameSort = Query(GameSort.NEWEST, alias="sortBy"),
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
) -> GameList:
    """List every game, hidden ones included."""
    catalog = GameCatalog(db, storage)
    games, total = await catalog.list_games(
        page=page,
        limit=limit,
        category=category.value if category else None,
        search=search,
        genre=genre,
        sort_by=sort_by,
        visible_only=False,
    )
    return _game_list(games, total, page, limit)


@router.get("/admin/stats", response_model=GameStats)
async def game_stats(
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
) -> GameStats:
    """Totals for the admin dashboard."""
    return GameStats(**await GameCatalog(db, storage).stats())


@router.get("/categories/count", response_model=list[CategoryCount])
async def category_counts(
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
) -> list[CategoryCount]:
    """Number of visible games in each category."""
    counts = await GameCatalog(db, storage).category_counts()
    return [CategoryCount(category=category, count=count) for category, count in counts]


@router.get("/featured", response_model=list[GameSummary])
async def featured_games(
    limit: int = Query(8, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
) -> list[GameSummary]:
    games = await GameCatalog(db, storage).list_featured(limit)
    return [to_summary(g) for g in games]


@router.get("/{game_id}", response_model=GameDetail)
async def get_game(
    game_id: str,
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
) -> GameDetail:
    return to_detail(await GameCatalog(db, storage).get(game_id))


@router.get("/{game_id}/play")
async def play_game(
    game_id: str,
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> Response:
    """
    Count a play and serve the game's entry page as HTML.

    Remote content is proxied; if the proxy fetch fails the client is
    redirected to the stored URL instead.
    """
    service = PlaybackService(GameCatalog(db, storage), client)
    target = await service.resolve_play_location(game_id)
    if not target.is_remote:
        return FileResponse(target.location, media_type="text/html")

    body = await service.fetch_remote(target.location)
    if body is None:
        return RedirectResponse(target.location)
    return Response(content=body, media_type="text/html; charset=utf-8")


@router.patch("/{game_id}", response_model=UpdateResponse)
async def update_game(
    game_id: str,
    title: Optional[str] = Form(None, min_length=1, max_length=100),
    description: Optional[str] = Form(None, max_length=500),
    category: Optional[GameCategory] = Form(None),
    genre: Optional[str] = Form(None, max_length=50),
    thumbnail: Optional[UploadFile] = File(None),
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    settings: Settings = Depends(get_app_settings),
) -> UpdateResponse:
    """Edit a game's catalog fields and optionally replace its thumbnail."""
    thumb = None
    if _has_file(thumbnail):
        thumb = await receive_upload(thumbnail, settings.scratch_dir, settings.max_upload_bytes)

    changes = {
        "title": title,
        "description": description.strip() if description is not None else None,
        "category": category,
        "genre": genre,
    }
    game = await GameCatalog(db, storage).update(game_id, changes, thumbnail=thumb)
    return UpdateResponse(game=to_detail(game))


@router.patch("/{game_id}/visibility", response_model=VisibilityResponse)
async def toggle_visibility(
    game_id: str,
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
) -> VisibilityResponse:
    game = await GameCatalog(db, storage).toggle_visibility(game_id)
    return VisibilityResponse(id=game.id, is_visible=game.is_visible)


@router.patch("/{game_id}/featured", response_model=FeaturedResponse)
async def toggle_featured(
    game_id: str,
    _: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
) -> FeaturedResponse:
    game = await GameCatalog(db, storage).toggle_featured(game_id)
    return FeaturedResponse(id=game.id, is_featured=game.is_featured)


@router.delete("/{game_id}", response_model=MessageResponse)
async def delete_game(
    game_id: str,
    user: Principal = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
) -> MessageResponse:
    """Delete a game and its stored files. Owners and admins only."""
    await GameCatalog(db, storage).delete(game_id, user)
    return MessageResponse(message="Game deleted successfully")


@router.get("/{game_id}/{asset_path:path}")
async def game_asset(
    game_id: str,
    asset_path: str,
    db: AsyncSession = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> Response:
    """Serve files the entry page references with relative URLs."""
    service = PlaybackService(GameCatalog(db, storage), client)
    target = await service.resolve_asset(game_id, asset_path)
    if target.is_remote:
        return RedirectResponse(target.location)
    return FileResponse(target.location)
