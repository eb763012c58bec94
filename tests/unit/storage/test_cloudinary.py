"""
Tests for the Cloudinary backend against a fake API served by httpx.MockTransport.
"""
import re

import httpx
import pytest

from app.storage.cloudinary import (
    CloudinaryError,
    CloudinaryStorageBackend,
    make_handle,
    parse_handle,
    sign_params,
)

PUBLIC_ID_FIELD = re.compile(r'name="public_id"\r\n\r\n(.*?)\r\n')


class FakeCloudinary:
    """Minimal stand-in for the upload and admin APIs."""

    def __init__(self, fail_on=None, delete_status=200):
        self.fail_on = fail_on
        self.delete_status = delete_status
        self.uploads = []
        self.deletes = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            body = request.content.decode("latin-1")
            public_id = PUBLIC_ID_FIELD.search(body).group(1)
            resource_type = request.url.path.split("/")[-2]
            self.uploads.append((resource_type, public_id, body))
            if self.fail_on and public_id.endswith(self.fail_on):
                return httpx.Response(500, text="upstream broke")
            return httpx.Response(200, json={
                "public_id": public_id,
                "secure_url": f"https://res.cloudinary.com/demo/{resource_type}/upload/v1/{public_id}",
            })
        self.deletes.append(request)
        return httpx.Response(self.delete_status, json={"deleted": {}})


def _backend(fake):
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake))
    return CloudinaryStorageBackend(
        cloud_name="demo", api_key="key", api_secret="secret",
        root_prefix="html-arcade", client=client,
    )


@pytest.fixture
def game_dir(tmp_path):
    root = tmp_path / "extracted"
    (root / "build").mkdir(parents=True)
    (root / "build" / "index.html").write_text("<html/>")
    (root / "build" / "a.js").write_text("a")
    (root / "build" / "b.js").write_text("b")
    return root


def test_sign_params_matches_documented_example():
    params = {
        "eager": "w_400,h_300,c_pad|w_260,h_200,c_crop",
        "public_id": "sample_image",
        "timestamp": "1315060510",
        "folder": "",
    }
    assert sign_params(params, "abcd") == "bfd09f95f331f558cbd1320e67aa8d488770583e"


def test_handles():
    handle = make_handle("image", "html-arcade/thumbnails/x")
    assert handle == "image:html-arcade/thumbnails/x"
    assert parse_handle(handle) == ("image", "html-arcade/thumbnails/x")
    assert parse_handle("legacy/public/id") == ("raw", "legacy/public/id")


def test_requires_credentials():
    with pytest.raises(ValueError):
        CloudinaryStorageBackend(cloud_name="demo", api_key="", api_secret="secret")


@pytest.mark.asyncio
async def test_store_single_file(tmp_path):
    fake = FakeCloudinary()
    backend = _backend(fake)
    source = tmp_path / "upload.html"
    source.write_text("<html/>")

    stored = await backend.store_single_file(source, "snake", "index.html")

    assert backend.is_remote is True
    assert stored.handle == "raw:html-arcade/games/snake/index.html"
    assert stored.location.endswith("/raw/upload/v1/html-arcade/games/snake/index.html")
    resource_type, _, body = fake.uploads[0]
    assert resource_type == "raw"
    assert 'name="api_key"' in body
    assert 'name="signature"' in body
    await backend.aclose()


@pytest.mark.asyncio
async def test_store_tree_uploads_every_file(game_dir):
    fake = FakeCloudinary()
    backend = _backend(fake)

    tree = await backend.store_tree(game_dir, "nested", "build/index.html")

    assert tree.handles == [
        "raw:html-arcade/games/nested/build/a.js",
        "raw:html-arcade/games/nested/build/b.js",
        "raw:html-arcade/games/nested/build/index.html",
    ]
    assert tree.entry_location.endswith("html-arcade/games/nested/build/index.html")


@pytest.mark.asyncio
async def test_store_tree_failure_removes_uploaded_files(game_dir):
    fake = FakeCloudinary(fail_on="b.js")
    backend = _backend(fake)

    with pytest.raises(CloudinaryError):
        await backend.store_tree(game_dir, "nested", "build/index.html")

    assert len(fake.deletes) == 1
    deleted = fake.deletes[0].url.params.get_list("public_ids[]")
    assert deleted == ["html-arcade/games/nested/build/a.js"]


@pytest.mark.asyncio
async def test_store_thumbnail_uses_image_resources(tmp_path):
    fake = FakeCloudinary()
    backend = _backend(fake)
    source = tmp_path / "cover.png"
    source.write_bytes(b"png")

    stored = await backend.store_thumbnail(source, "snake")

    assert stored.handle.startswith("image:html-arcade/thumbnails/snake-")
    assert fake.uploads[0][0] == "image"


@pytest.mark.asyncio
async def test_delete_by_handles_groups_by_type_and_batches():
    fake = FakeCloudinary()
    backend = _backend(fake)
    raw = [make_handle("raw", f"html-arcade/games/big/f{i}.js") for i in range(150)]

    await backend.delete_by_handles(raw + ["image:html-arcade/thumbnails/big-1"])

    paths = [r.url.path for r in fake.deletes]
    assert paths == [
        "/v1_1/demo/resources/raw/upload",
        "/v1_1/demo/resources/raw/upload",
        "/v1_1/demo/resources/image/upload",
    ]
    assert len(fake.deletes[0].url.params.get_list("public_ids[]")) == 100
    assert len(fake.deletes[1].url.params.get_list("public_ids[]")) == 50
    assert fake.deletes[0].headers["authorization"].startswith("Basic ")


@pytest.mark.asyncio
async def test_delete_failures_are_swallowed():
    backend = _backend(FakeCloudinary(delete_status=500))

    await backend.delete_by_handles(["raw:html-arcade/games/x/index.html"])
    await backend.delete_namespace("x")


@pytest.mark.asyncio
async def test_delete_by_handles_with_nothing_to_do():
    fake = FakeCloudinary()
    await _backend(fake).delete_by_handles([])
    assert fake.deletes == []


@pytest.mark.asyncio
async def test_delete_namespace_removes_prefix_then_folder():
    fake = FakeCloudinary()
    backend = _backend(fake)

    await backend.delete_namespace("snake")

    first, second = fake.deletes
    assert first.url.path == "/v1_1/demo/resources/raw/upload"
    assert first.url.params["prefix"] == "html-arcade/games/snake/"
    assert second.url.path == "/v1_1/demo/folders/html-arcade/games/snake"


def test_locate():
    backend = _backend(FakeCloudinary())
    entry = "https://res.cloudinary.com/demo/raw/upload/v1/html-arcade/games/snake/build/index.html"

    assert backend.locate("snake", entry, "js/app.js") == (
        "https://res.cloudinary.com/demo/raw/upload/v1/html-arcade/games/snake/build/js/app.js"
    )
    assert backend.locate("snake", entry, "../../other/index.html") is None
