"""
Tests for play and asset resolution.
"""
import httpx
import pytest
from unittest.mock import AsyncMock

from app.infra.db.repositories.game import GameRepository
from app.services.catalog import GameCatalog
from app.services.errors import GameNotFound
from app.services.playback import PlaybackService

REMOTE_ENTRY = "https://res.cloudinary.com/demo/raw/upload/v1/html-arcade/games/remote/index.html"


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def game_values(settings):
    return dict(
        slug="local-game",
        title="Local Game",
        category="Action",
        file_type="html",
        file_size=10,
        storage_backend="local",
        entry_file="index.html",
        play_location=str(settings.uploads_dir / "local-game" / "index.html"),
        asset_handles=[],
        uploaded_by="user-1",
        is_visible=True,
    )


class TestLocalPlayback:
    """Games stored on the local disk."""

    @pytest.mark.asyncio
    async def test_resolves_and_counts(self, session, storage, game_values, settings):
        entry = settings.uploads_dir / "local-game" / "index.html"
        entry.parent.mkdir(parents=True)
        entry.write_text("<html/>")
        game = await GameRepository(session).create(**game_values)
        service = PlaybackService(GameCatalog(session, storage), client=AsyncMock())

        target = await service.resolve_play_location(game.id)
        await service.resolve_play_location(game.id)

        assert target.is_remote is False
        assert target.location == str(entry)
        assert await service.catalog.increment_play_count(game.id) == 3

    @pytest.mark.asyncio
    async def test_missing_entry_file_is_not_counted(self, session, storage, game_values):
        game = await GameRepository(session).create(**game_values)
        catalog = GameCatalog(session, storage)
        service = PlaybackService(catalog, client=AsyncMock())

        with pytest.raises(GameNotFound, match="Game files not found"):
            await service.resolve_play_location(game.id)

        assert await catalog.increment_play_count(game.id) == 1

    @pytest.mark.asyncio
    async def test_asset_outside_namespace(self, session, storage, game_values):
        game = await GameRepository(session).create(**game_values)
        service = PlaybackService(GameCatalog(session, storage), client=AsyncMock())

        with pytest.raises(GameNotFound, match="Asset not found"):
            await service.resolve_asset(game.id, "../other-game/index.html")


class TestRemotePlayback:
    """Games stored with a remote backend are proxied."""

    @pytest.mark.asyncio
    async def test_remote_game_is_counted_without_disk_check(self, session, storage, game_values):
        game_values.update(storage_backend="cloudinary", play_location=REMOTE_ENTRY, slug="remote")
        game = await GameRepository(session).create(**game_values)
        service = PlaybackService(GameCatalog(session, storage), client=AsyncMock())

        target = await service.resolve_play_location(game.id)

        assert target.is_remote is True
        assert target.location == REMOTE_ENTRY

    @pytest.mark.asyncio
    async def test_fetch_remote_returns_body(self):
        def handler(request):
            return httpx.Response(
                200, content=b"<html>remote</html>",
                headers={"content-type": "application/octet-stream"},
            )

        service = PlaybackService(catalog=None, client=_client(handler))

        assert await service.fetch_remote(REMOTE_ENTRY) == b"<html>remote</html>"

    @pytest.mark.asyncio
    async def test_fetch_remote_failure_returns_none(self):
        def handler(request):
            return httpx.Response(503)

        service = PlaybackService(catalog=None, client=_client(handler))

        assert await service.fetch_remote(REMOTE_ENTRY) is None

    @pytest.mark.asyncio
    async def test_fetch_remote_network_error_returns_none(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        service = PlaybackService(catalog=None, client=_client(handler))

        assert await service.fetch_remote(REMOTE_ENTRY) is None
