"""
Shared fixtures.

Environment variables are set before any ``app`` import so that code falling
back to get_settings() (the CLI, auth defaults) never touches real data.
"""
import io
import os
import tempfile
import zipfile
from pathlib import Path

_TEST_ROOT = Path(tempfile.mkdtemp(prefix="arcade-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{(_TEST_ROOT / 'global.db').as_posix()}"
os.environ["DATA_DIR"] = str(_TEST_ROOT / "data")
os.environ["UPLOADS_DIR"] = str(_TEST_ROOT / "data" / "uploads")
os.environ["THUMBNAILS_DIR"] = str(_TEST_ROOT / "data" / "thumbnails")
os.environ["SCRATCH_DIR"] = str(_TEST_ROOT / "data" / "scratch")
os.environ["LOGS_DIR"] = str(_TEST_ROOT / "logs")
os.environ["STORAGE_BACKEND"] = "local"
os.environ["SECRET_KEY"] = "test-secret"

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.auth.tokens import create_token
from app.config import Settings
from app.infra.db.base import Base
from app.infra.db.models import game  # noqa: F401
from app.main import create_app
from app.services.ingestion import UploadedFile
from app.storage.local import LocalStorageBackend

SECRET = "test-secret"


def _build_zip(files: dict[str, str]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buf.getvalue()


def _auth_headers(principal_id: str = "user-1", role: str = "user") -> dict[str, str]:
    return {"Authorization": f"Bearer {create_token(principal_id, role, SECRET, 60)}"}


@pytest.fixture
def build_zip():
    return _build_zip


@pytest.fixture
def auth_headers():
    return _auth_headers


@pytest.fixture
def settings(tmp_path) -> Settings:
    settings = Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{(tmp_path / 'test.db').as_posix()}",
        data_dir=tmp_path,
        uploads_dir=tmp_path / "uploads",
        thumbnails_dir=tmp_path / "thumbnails",
        scratch_dir=tmp_path / "scratch",
        logs_dir=tmp_path / "logs",
        secret_key=SECRET,
        max_upload_bytes=1024 * 1024,
        max_extracted_bytes=4 * 1024 * 1024,
    )
    settings.ensure_dirs()
    return settings


@pytest.fixture
def storage(settings) -> LocalStorageBackend:
    return LocalStorageBackend(settings.uploads_dir, settings.thumbnails_dir)


@pytest_asyncio.fixture
async def session(settings):
    engine = create_async_engine(settings.database_url, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def make_upload(settings):
    """Write bytes into the scratch area the way receive_upload would."""
    counter = {"n": 0}

    def _make(name: str, content: bytes | str) -> UploadedFile:
        if isinstance(content, str):
            content = content.encode("utf-8")
        counter["n"] += 1
        path = settings.scratch_dir / f"upload-{counter['n']}{Path(name).suffix.lower()}"
        path.write_bytes(content)
        return UploadedFile(path=path, original_name=name, size=len(content))

    return _make


@pytest.fixture
def client(settings):
    """TestClient over an app bound to the per-test database and storage roots."""
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client
