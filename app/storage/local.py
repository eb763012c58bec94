"""
Local filesystem storage backend.

Games live in ``<uploads_dir>/<slug>/`` and are streamed by the application
process. Thumbnails live in ``<thumbnails_dir>`` and are served by the static
mount under ``/media/thumbnails``.
"""
import asyncio
import logging
import shutil
from pathlib import Path
from typing import Optional
from uuid import uuid4

import aiofiles
import aiofiles.os

from app.storage.base import StorageBackend, StoredFile, StoredTree

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
THUMBNAIL_URL_PREFIX = "/media/thumbnails"


async def copy_file(source: Path, dest: Path) -> None:
    """Stream a file to dest, creating parent directories."""
    await aiofiles.os.makedirs(dest.parent, exist_ok=True)
    async with aiofiles.open(source, "rb") as src, aiofiles.open(dest, "wb") as dst:
        while True:
            chunk = await src.read(CHUNK_SIZE)
            if not chunk:
                break
            await dst.write(chunk)


class LocalStorageBackend(StorageBackend):
    """Stores game trees and thumbnails on the local disk."""

    is_remote = False

    def __init__(self, uploads_dir: Path, thumbnails_dir: Path):
        self.uploads_dir = Path(uploads_dir)
        self.thumbnails_dir = Path(thumbnails_dir)

    @property
    def name(self) -> str:
        return "local"

    def namespace_dir(self, namespace: str) -> Path:
        return self.uploads_dir / namespace

    async def store_single_file(
        self, source_path: Path, namespace: str, logical_name: str
    ) -> StoredFile:
        dest = self.namespace_dir(namespace) / logical_name
        await copy_file(Path(source_path), dest)
        logger.info("Stored %s as %s", source_path, dest)
        return StoredFile(location=str(dest))

    async def store_tree(
        self, source_dir: Path, namespace: str, entry_relative_path: str
    ) -> StoredTree:
        source_dir = Path(source_dir)
        dest_root = self.namespace_dir(namespace)
        files = await asyncio.to_thread(
            lambda: sorted(p for p in source_dir.rglob("*") if p.is_file())
        )
        for path in files:
            await copy_file(path, dest_root / path.relative_to(source_dir))

        logger.info("Stored %d files under %s", len(files), dest_root)
        entry = dest_root / entry_relative_path
        # Local files need no handles: the namespace directory is removed as a whole.
        return StoredTree(entry_location=str(entry), handles=[])

    async def store_thumbnail(self, source_path: Path, namespace: str) -> StoredFile:
        source_path = Path(source_path)
        filename = f"{namespace}-{uuid4().hex[:8]}{source_path.suffix.lower()}"
        dest = self.thumbnails_dir / filename
        await copy_file(source_path, dest)
        return StoredFile(location=f"{THUMBNAIL_URL_PREFIX}/{filename}", handle=str(dest))

    def _owned(self, path: Path) -> bool:
        resolved = path.resolve()
        return any(
            resolved.is_relative_to(root.resolve())
            for root in (self.uploads_dir, self.thumbnails_dir)
        )

    async def delete_by_handles(self, handles: list[str]) -> None:
        for handle in handles:
            path = Path(handle)
            if not self._owned(path):
                logger.warning("Refusing to delete %s: outside storage roots", handle)
                continue
            try:
                await aiofiles.os.remove(path)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.warning("Failed to delete local asset %s: %s", handle, e)

    async def delete_namespace(self, namespace: str) -> None:
        target = self.namespace_dir(namespace)
        try:
            await asyncio.to_thread(shutil.rmtree, target)
            logger.info("Deleted namespace directory %s", target)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to delete namespace directory %s: %s", target, e)

    def locate(self, namespace: str, entry_location: str, relative_path: str) -> Optional[str]:
        root = self.namespace_dir(namespace).resolve()
        target = (Path(entry_location).parent / relative_path).resolve()
        if not target.is_relative_to(root):
            return None
        return str(target)
