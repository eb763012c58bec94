"""
Game repository for catalog queries on games.
"""
from enum import Enum
from typing import Optional, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.infra.db.models.game import Game
from app.infra.db.repositories.base import BaseRepository


class GameSort(str, Enum):
    """Sort orders accepted by the listing endpoints."""

    NEWEST = "newest"
    OLDEST = "oldest"
    MOST_PLAYED = "mostPlayed"
    TOP_RATED = "topRated"


_ORDERING = {
    GameSort.NEWEST: (Game.created_at.desc(),),
    GameSort.OLDEST: (Game.created_at.asc(),),
    GameSort.MOST_PLAYED: (Game.play_count.desc(), Game.created_at.desc()),
    GameSort.TOP_RATED: (Game.rating.desc(), Game.created_at.desc()),
}


def _escape_like(text: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class GameRepository(BaseRepository[Game]):
    """Repository for Game CRUD operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Game, session)

    async def slug_exists(self, slug: str) -> bool:
        stmt = select(Game.id).where(Game.slug == slug)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    def _filtered(
        self,
        stmt,
        visible_only: bool,
        category: Optional[str],
        search: Optional[str],
        genre: Optional[str],
    ):
        if visible_only:
            stmt = stmt.where(Game.is_visible == True)  # noqa: E712
        if category:
            stmt = stmt.where(Game.category == category)
        if genre:
            stmt = stmt.where(Game.genre.ilike(_escape_like(genre), escape="\\"))
        if search:
            pattern = f"%{_escape_like(search)}%"
            stmt = stmt.where(
                or_(
                    Game.title.ilike(pattern, escape="\\"),
                    Game.description.ilike(pattern, escape="\\"),
                )
            )
        return stmt

    async def search(
        self,
        *,
        limit: int = 20,
        offset: int = 0,
        visible_only: bool = True,
        category: Optional[str] = None,
        search: Optional[str] = None,
        genre: Optional[str] = None,
        sort_by: GameSort = GameSort.NEWEST,
    ) -> tuple[Sequence[Game], int]:
        """Filtered, sorted page of games plus the total matching count."""
        stmt = self._filtered(select(Game), visible_only, category, search, genre)
        stmt = stmt.order_by(*_ORDERING[sort_by]).offset(offset).limit(limit)
        result = await self.session.execute(stmt)
        items = result.scalars().all()

        count_stmt = self._filtered(
            select(func.count()).select_from(Game), visible_only, category, search, genre
        )
        total = (await self.session.execute(count_stmt)).scalar_one()
        return items, total

    async def get_featured(self, limit: int = 8) -> Sequence[Game]:
        """Visible featured games, newest first."""
        stmt = (
            select(Game)
            .where(Game.is_visible == True)  # noqa: E712
            .where(Game.is_featured == True)  # noqa: E712
            .order_by(Game.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def count_by_category(self, visible_only: bool = True) -> dict[str, int]:
        stmt = select(Game.category, func.count()).group_by(Game.category)
        if visible_only:
            stmt = stmt.where(Game.is_visible == True)  # noqa: E712
        result = await self.session.execute(stmt)
        return {category: count for category, count in result.all()}

    async def aggregate_stats(self) -> dict[str, int]:
        """Totals across every game, visible or not."""
        stmt = select(
            func.count(Game.id),
            func.count(Game.id).filter(Game.is_visible == True),  # noqa: E712
            func.count(Game.id).filter(Game.is_featured == True),  # noqa: E712
            func.coalesce(func.sum(Game.file_size), 0),
            func.coalesce(func.sum(Game.play_count), 0),
        )
        total, visible, featured, total_size, total_plays = (await self.session.execute(stmt)).one()
        return {
            "total": total,
            "visible": visible,
            "featured": featured,
            "total_size": int(total_size),
            "total_plays": int(total_plays),
        }
