"""
Game catalog service.

Read and moderation operations over stored games. Deletion removes the
catalog record first and then cleans up storage on a best-effort basis, so a
failing remote delete never blocks the user-visible operation.
"""
import logging
from typing import Any, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.tokens import Principal
from app.infra.db.models.game import Game, GameCategory
from app.infra.db.repositories.game import GameRepository, GameSort
from app.services.errors import GameNotFound, InvalidTitle, PermissionDenied, ProcessingFailed
from app.services.ingestion import IMAGE_EXTENSIONS, UploadedFile, remove_path
from app.services.slug import slugify
from app.storage.base import StorageBackend

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "description", "category", "genre")


class GameCatalog:
    """Catalog queries, moderation toggles, edits and deletion."""

    def __init__(self, session: AsyncSession, storage: StorageBackend):
        self.repository = GameRepository(session)
        self.storage = storage

    async def get(self, game_id: str) -> Game:
        game = await self.repository.get_by_id(game_id)
        if game is None:
            raise GameNotFound()
        return game

    async def list_games(
        self,
        *,
        page: int = 1,
        limit: int = 20,
        category: Optional[str] = None,
        search: Optional[str] = None,
        genre: Optional[str] = None,
        sort_by: GameSort = GameSort.NEWEST,
        visible_only: bool = True,
    ) -> tuple[Sequence[Game], int]:
        """One page of games and the total number of matches."""
        offset = (page - 1) * limit
        return await self.repository.search(
            limit=limit,
            offset=offset,
            visible_only=visible_only,
            category=category,
            search=search.strip() if search else None,
            genre=genre.strip() if genre else None,
            sort_by=sort_by,
        )

    async def list_featured(self, limit: int = 8) -> Sequence[Game]:
        return await self.repository.get_featured(limit)

    async def toggle_visibility(self, game_id: str) -> Game:
        game = await self.get(game_id)
        updated = await self.repository.update(game_id, is_visible=not game.is_visible)
        logger.info("Game %s visibility -> %s", game_id, updated.is_visible)
        return updated

    async def toggle_featured(self, game_id: str) -> Game:
        game = await self.get(game_id)
        updated = await self.repository.update(game_id, is_featured=not game.is_featured)
        logger.info("Game %s featured -> %s", game_id, updated.is_featured)
        return updated

    async def update(
        self,
        game_id: str,
        changes: dict[str, Any],
        thumbnail: Optional[UploadedFile] = None,
    ) -> Game:
        """
        Edit catalog fields and optionally replace the thumbnail.

        The new thumbnail is stored before the record points at it; the old
        one is deleted only after the record update is committed. A title
        must keep at least one letter or digit; a blank genre clears it.
        """
        try:
            game = await self.get(game_id)
            values = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS and v is not None}
            if "category" in values:
                values["category"] = GameCategory(values["category"]).value
            if "title" in values:
                values["title"] = values["title"].strip()
                if not slugify(values["title"]):
                    raise InvalidTitle()
            if "genre" in values:
                values["genre"] = values["genre"].strip() or None

            old_handle = game.thumbnail_handle
            new_handle = None
            if thumbnail is not None:
                if thumbnail.extension not in IMAGE_EXTENSIONS:
                    raise ProcessingFailed("Thumbnail must be an image")
                try:
                    stored = await self.storage.store_thumbnail(thumbnail.path, game.slug)
                except Exception as e:
                    logger.warning("Thumbnail replacement for %s failed: %s", game.slug, e)
                    raise ProcessingFailed("Failed to store thumbnail") from e
                values["thumbnail_url"] = stored.location
                values["thumbnail_handle"] = new_handle = stored.handle
        finally:
            await remove_path(thumbnail.path if thumbnail else None)

        if not values:
            return game

        try:
            updated = await self.repository.update(game_id, **values)
        except Exception:
            if new_handle:
                await self.storage.delete_by_handles([new_handle])
            raise

        if thumbnail is not None and old_handle and old_handle != new_handle:
            await self.storage.delete_by_handles([old_handle])
        return updated

    async def delete(self, game_id: str, principal: Principal) -> None:
        """Delete a game and all of its stored assets."""
        game = await self.get(game_id)
        if game.uploaded_by != principal.id and not principal.is_admin:
            raise PermissionDenied()

        if game.storage_backend != self.storage.name:
            logger.warning(
                "Game %s was stored with %s but %s is active; assets may be left behind",
                game_id, game.storage_backend, self.storage.name,
            )

        handles = list(game.asset_handles or [])
        if game.thumbnail_handle:
            handles.append(game.thumbnail_handle)
        slug = game.slug

        await self.repository.delete(game_id)
        logger.info("Deleted game %s (%s); cleaning up %d assets", game_id, slug, len(handles))

        await self.storage.delete_by_handles(handles)
        await self.storage.delete_namespace(slug)

    async def increment_play_count(self, game_id: str) -> int:
        count = await self.repository.increment(game_id, "play_count")
        if count is None:
            raise GameNotFound()
        return count

    async def category_counts(self) -> list[tuple[str, int]]:
        """Visible games per category, including empty categories."""
        counts = await self.repository.count_by_category(visible_only=True)
        return [(c.value, counts.get(c.value, 0)) for c in GameCategory]

    async def stats(self) -> dict[str, int]:
        return await self.repository.aggregate_stats()
