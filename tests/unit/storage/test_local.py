import pytest

from app.storage.local import THUMBNAIL_URL_PREFIX, LocalStorageBackend


@pytest.fixture
def source_tree(tmp_path):
    root = tmp_path / "src"
    (root / "game" / "js").mkdir(parents=True)
    (root / "game" / "index.html").write_text("<html/>")
    (root / "game" / "js" / "app.js").write_text("run()")
    return root


class TestLocalStorageBackend:

    def test_name_and_remote_flag(self, storage):
        assert storage.name == "local"
        assert storage.is_remote is False

    @pytest.mark.asyncio
    async def test_store_single_file(self, storage, tmp_path):
        source = tmp_path / "upload.html"
        source.write_text("<p>hi</p>")

        stored = await storage.store_single_file(source, "hello", "index.html")

        assert stored.handle is None
        assert stored.location == str(storage.uploads_dir / "hello" / "index.html")
        assert (storage.uploads_dir / "hello" / "index.html").read_text() == "<p>hi</p>"

    @pytest.mark.asyncio
    async def test_store_tree_keeps_relative_paths(self, storage, source_tree):
        tree = await storage.store_tree(source_tree, "tree", "game/index.html")

        assert tree.handles == []
        assert tree.entry_location == str(storage.uploads_dir / "tree" / "game" / "index.html")
        assert (storage.uploads_dir / "tree" / "game" / "js" / "app.js").read_text() == "run()"

    @pytest.mark.asyncio
    async def test_thumbnails_get_unique_names(self, storage, tmp_path):
        source = tmp_path / "Cover.PNG"
        source.write_bytes(b"png")

        first = await storage.store_thumbnail(source, "game")
        second = await storage.store_thumbnail(source, "game")

        assert first.location != second.location
        assert first.location.startswith(f"{THUMBNAIL_URL_PREFIX}/game-")
        assert first.location.endswith(".png")
        assert len(list(storage.thumbnails_dir.iterdir())) == 2

    @pytest.mark.asyncio
    async def test_delete_by_handles(self, storage, tmp_path):
        source = tmp_path / "cover.png"
        source.write_bytes(b"png")
        stored = await storage.store_thumbnail(source, "game")

        await storage.delete_by_handles([stored.handle, str(storage.thumbnails_dir / "missing.png")])

        assert list(storage.thumbnails_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_delete_by_handles_refuses_foreign_paths(self, storage, tmp_path):
        outsider = tmp_path / "precious.txt"
        outsider.write_text("keep me")

        await storage.delete_by_handles([str(outsider)])

        assert outsider.exists()

    @pytest.mark.asyncio
    async def test_delete_namespace(self, storage, source_tree):
        await storage.store_tree(source_tree, "doomed", "game/index.html")

        await storage.delete_namespace("doomed")
        await storage.delete_namespace("doomed")

        assert not (storage.uploads_dir / "doomed").exists()

    @pytest.mark.asyncio
    async def test_locate_relative_to_entry(self, storage, source_tree):
        tree = await storage.store_tree(source_tree, "tree", "game/index.html")

        located = storage.locate("tree", tree.entry_location, "js/app.js")

        assert located == str((storage.uploads_dir / "tree" / "game" / "js" / "app.js").resolve())

    @pytest.mark.parametrize("path", ["../../etc/passwd", "../../other/index.html"])
    def test_locate_rejects_escape(self, tmp_path, path):
        storage = LocalStorageBackend(tmp_path / "uploads", tmp_path / "thumbs")
        entry = str(tmp_path / "uploads" / "tree" / "game" / "index.html")

        assert storage.locate("tree", entry, path) is None
