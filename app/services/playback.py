"""
Playback resolution.

Local games are streamed from disk by the API. Remote raw-file hosts often
serve HTML as application/octet-stream, which makes browsers download it
instead of rendering it in an iframe, so remote entry files are fetched and
re-emitted with an explicit HTML content type.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx

from app.infra.db.models.game import Game
from app.services.catalog import GameCatalog
from app.services.errors import GameNotFound

logger = logging.getLogger(__name__)


@dataclass
class PlayTarget:
    """Where a game's content lives and how to serve it."""
    game: Game
    location: str
    is_remote: bool


class PlaybackService:
    """Resolves play and asset requests to stored content."""

    def __init__(self, catalog: GameCatalog, client: httpx.AsyncClient):
        self.catalog = catalog
        self.client = client

    @staticmethod
    def _is_remote(game: Game) -> bool:
        return game.storage_backend != "local"

    async def resolve_play_location(self, game_id: str) -> PlayTarget:
        """
        Resolve the entry file of a game and count one play.

        The counter is bumped once per successful resolution, whether or not
        the client manages to render the page afterwards.
        """
        game = await self.catalog.get(game_id)
        is_remote = self._is_remote(game)
        if not is_remote and not Path(game.play_location).is_file():
            logger.error("Entry file for game %s missing at %s", game_id, game.play_location)
            raise GameNotFound("Game files not found")

        await self.catalog.increment_play_count(game_id)
        return PlayTarget(game=game, location=game.play_location, is_remote=is_remote)

    async def resolve_asset(self, game_id: str, asset_path: str) -> PlayTarget:
        """Resolve a file referenced relative to a game's entry page."""
        game = await self.catalog.get(game_id)
        location = self.catalog.storage.locate(game.slug, game.play_location, asset_path)
        if location is None:
            raise GameNotFound("Asset not found")

        is_remote = self._is_remote(game)
        if not is_remote and not Path(location).is_file():
            raise GameNotFound("Asset not found")
        return PlayTarget(game=game, location=location, is_remote=is_remote)

    async def fetch_remote(self, url: str) -> Optional[bytes]:
        """Body of a remote entry file, or None when it cannot be fetched."""
        try:
            response = await self.client.get(url, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Fetching remote game content %s failed: %s", url, e)
            return None
        return response.content
