"""
Game ingestion pipeline.

Takes an uploaded .html file or .zip archive, validates it, finds the entry
point, hands the payload to the storage backend and writes the catalog
record. Every storage write made by one call is registered on a
RollbackList and undone in reverse order if a later step fails.

Compensation is best effort: a process crash between the storage write and
the catalog insert leaves assets behind. Rollback steps log the namespace and
handles involved so such leaks can be reconciled by hand.
"""
import asyncio
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Optional
from uuid import uuid4

import aiofiles
from fastapi import UploadFile
from sqlalchemy.exc import IntegrityError

from app.config import Settings
from app.infra.db.models.game import Game, GameCategory, GameFileType
from app.infra.db.repositories.game import GameRepository
from app.services.archive import ENTRY_NAME, extract_archive, find_entry_file
from app.services.errors import (
    DuplicateTitle,
    FileTooLarge,
    IngestionError,
    InvalidTitle,
    MissingEntryFile,
    NoFileProvided,
    ProcessingFailed,
    UnsupportedFileType,
)
from app.services.slug import slugify
from app.storage.base import StorageBackend, StoredFile

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".html": GameFileType.HTML, ".zip": GameFileType.ZIP}
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}
CHUNK_SIZE = 1024 * 1024

class SlugClaims:
    """
    Slugs with an upload in progress.

    One instance is shared by every pipeline of an application so two
    concurrent uploads of the same title cannot both pass the uniqueness
    check before either record is written.
    """

    def __init__(self):
        self._slugs: set[str] = set()

    def claim(self, slug: str) -> bool:
        """Reserve slug; False when another upload already holds it."""
        if slug in self._slugs:
            return False
        self._slugs.add(slug)
        return True

    def release(self, slug: str) -> None:
        self._slugs.discard(slug)

    def __contains__(self, slug: str) -> bool:
        return slug in self._slugs

    def __len__(self) -> int:
        return len(self._slugs)


@dataclass
class UploadedFile:
    """An upload spooled to the scratch area."""
    path: Path
    original_name: str
    size: int

    @property
    def extension(self) -> str:
        return Path(self.original_name).suffix.lower()


@dataclass
class GameMetadata:
    """User supplied catalog fields for a new game."""
    title: str
    category: GameCategory
    description: str = ""
    genre: Optional[str] = None


class RollbackList:
    """
    Undo actions accumulated while a pipeline run writes to storage.

    ``run()`` executes them last-in first-out. A failing step is logged and
    the remaining steps still run.
    """

    def __init__(self) -> None:
        self._steps: list[tuple[str, Callable[[], Awaitable[None]]]] = []

    def add(self, description: str, action: Callable[[], Awaitable[None]]) -> None:
        self._steps.append((description, action))

    def clear(self) -> None:
        self._steps.clear()

    def __len__(self) -> int:
        return len(self._steps)

    async def run(self) -> None:
        while self._steps:
            description, action = self._steps.pop()
            logger.info("Rollback: %s", description)
            try:
                await action()
            except Exception as e:
                logger.warning("Rollback step failed (%s): %s", description, e)


async def remove_path(path: Optional[Path]) -> None:
    """Remove a scratch file or directory if it exists."""
    if path is None:
        return

    def _remove() -> None:
        if path.is_dir():
            shutil.rmtree(path, ignore_errors=True)
        else:
            path.unlink(missing_ok=True)

    try:
        await asyncio.to_thread(_remove)
    except OSError as e:
        logger.warning("Failed to remove scratch path %s: %s", path, e)


async def receive_upload(upload: UploadFile, scratch_dir: Path, max_bytes: int) -> UploadedFile:
    """
    Stream a multipart upload into scratch_dir.

    Stops as soon as more than max_bytes have been read and raises
    FileTooLarge, leaving nothing behind.
    """
    original_name = upload.filename or "upload"
    scratch_dir.mkdir(parents=True, exist_ok=True)
    dest = scratch_dir / f"upload-{uuid4().hex}{Path(original_name).suffix.lower()}"

    size = 0
    try:
        async with aiofiles.open(dest, "wb") as out:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_bytes:
                    raise FileTooLarge(f"File size exceeds {max_bytes // (1024 * 1024)}MB limit")
                await out.write(chunk)
    except BaseException:
        await remove_path(dest)
        raise

    return UploadedFile(path=dest, original_name=original_name, size=size)


class IngestionPipeline:
    """Turns an upload into a stored game and its catalog record."""

    def __init__(
        self,
        repository: GameRepository,
        storage: StorageBackend,
        settings: Settings,
        claims: Optional[SlugClaims] = None,
    ):
        self.repository = repository
        self.storage = storage
        self.settings = settings
        self.claims = claims if claims is not None else SlugClaims()

    def _validate(self, upload: UploadedFile) -> GameFileType:
        if upload.size > self.settings.max_upload_bytes:
            raise FileTooLarge(
                f"File size exceeds {self.settings.max_upload_bytes // (1024 * 1024)}MB limit"
            )
        file_type = ALLOWED_EXTENSIONS.get(upload.extension)
        if file_type is None:
            raise UnsupportedFileType()
        return file_type

    async def ingest(
        self,
        upload: Optional[UploadedFile],
        metadata: GameMetadata,
        uploader_id: str,
        thumbnail: Optional[UploadedFile] = None,
    ) -> Game:
        """
        Run the whole pipeline. Either a committed Game is returned, or an
        IngestionError is raised and everything this call wrote is removed.
        """
        if upload is None:
            await remove_path(thumbnail.path if thumbnail else None)
            raise NoFileProvided()

        rollback = RollbackList()
        scratch: Optional[Path] = None
        slug: Optional[str] = None
        try:
            file_type = self._validate(upload)

            candidate = slugify(metadata.title)
            if not candidate:
                raise InvalidTitle()
            if not self.claims.claim(candidate):
                raise DuplicateTitle()
            slug = candidate
            if await self.repository.slug_exists(slug):
                raise DuplicateTitle()

            # Registered before writing so partial writes are cleaned too.
            namespace = slug
            rollback.add(
                f"delete namespace {namespace}",
                lambda: self.storage.delete_namespace(namespace),
            )

            if file_type == GameFileType.ZIP:
                scratch = self.settings.scratch_dir / f"extract-{uuid4().hex}"
                await asyncio.to_thread(
                    extract_archive, upload.path, scratch, self.settings.max_extracted_bytes
                )
                entry_file = await asyncio.to_thread(find_entry_file, scratch)
                if entry_file is None:
                    raise MissingEntryFile()
                tree = await self.storage.store_tree(scratch, namespace, entry_file)
                play_location, handles = tree.entry_location, tree.handles
            else:
                entry_file = ENTRY_NAME
                stored = await self.storage.store_single_file(upload.path, namespace, ENTRY_NAME)
                play_location = stored.location
                handles = [stored.handle] if stored.handle else []

            if handles:
                rollback.add(
                    f"delete {len(handles)} assets of {namespace}: {handles}",
                    lambda: self.storage.delete_by_handles(handles),
                )

            stored_thumbnail = await self._store_thumbnail(thumbnail, namespace, rollback)

            game = await self._create_record(
                slug=slug,
                metadata=metadata,
                uploader_id=uploader_id,
                file_type=file_type,
                file_size=upload.size,
                entry_file=entry_file,
                play_location=play_location,
                handles=handles,
                thumbnail=stored_thumbnail,
                rollback=rollback,
            )
        except IngestionError as e:
            logger.info("Upload of %r rejected: %s", metadata.title, e.message)
            await rollback.run()
            raise
        except Exception as e:
            logger.exception("Upload of %r failed during processing", metadata.title)
            await rollback.run()
            raise ProcessingFailed() from e
        finally:
            if slug:
                self.claims.release(slug)
            await remove_path(upload.path)
            await remove_path(thumbnail.path if thumbnail else None)
            await remove_path(scratch)

        logger.info("Game %s (%s) ingested as %s", game.id, game.slug, game.file_type)
        return game

    async def _store_thumbnail(
        self,
        thumbnail: Optional[UploadedFile],
        namespace: str,
        rollback: RollbackList,
    ) -> Optional[StoredFile]:
        """Store the cover image. A failure here only drops the thumbnail."""
        if thumbnail is None:
            return None
        if thumbnail.extension not in IMAGE_EXTENSIONS:
            logger.warning("Ignoring thumbnail %s: not an image", thumbnail.original_name)
            return None
        try:
            stored = await self.storage.store_thumbnail(thumbnail.path, namespace)
        except Exception as e:
            logger.warning("Thumbnail upload for %s failed, continuing without one: %s", namespace, e)
            return None
        if stored.handle:
            rollback.add(
                f"delete thumbnail {stored.handle}",
                lambda: self.storage.delete_by_handles([stored.handle]),
            )
        return stored

    async def _create_record(
        self,
        *,
        slug: str,
        metadata: GameMetadata,
        uploader_id: str,
        file_type: GameFileType,
        file_size: int,
        entry_file: str,
        play_location: str,
        handles: list[str],
        thumbnail: Optional[StoredFile],
        rollback: RollbackList,
    ) -> Game:
        try:
            return await self.repository.create(
                slug=slug,
                title=metadata.title.strip(),
                description=(metadata.description or "").strip(),
                category=GameCategory(metadata.category).value,
                genre=metadata.genre.strip() if metadata.genre else None,
                file_type=file_type.value,
                file_size=file_size,
                storage_backend=self.storage.name,
                entry_file=entry_file,
                play_location=play_location,
                asset_handles=handles,
                thumbnail_url=thumbnail.location if thumbnail else None,
                thumbnail_handle=thumbnail.handle if thumbnail else None,
                uploaded_by=uploader_id,
                is_visible=False,
                is_featured=False,
                play_count=0,
            )
        except IntegrityError:
            await self.repository.session.rollback()
            # Another process committed this slug first and owns the namespace
            # now; undoing our writes would delete its files.
            logger.warning(
                "Slug %s taken concurrently; leaving namespace untouched (handles=%s)",
                slug, handles,
            )
            rollback.clear()
            if thumbnail and thumbnail.handle:
                rollback.add(
                    f"delete thumbnail {thumbnail.handle}",
                    lambda: self.storage.delete_by_handles([thumbnail.handle]),
                )
            raise DuplicateTitle()
