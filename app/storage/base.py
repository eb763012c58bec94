"""
Base storage backend interface for game assets (local disk, remote store).
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass
class StoredFile:
    """Result of persisting a single file."""
    location: str                  # path or URL the file is served from
    handle: Optional[str] = None   # backend id needed to delete it later


@dataclass
class StoredTree:
    """Result of persisting a directory tree."""
    entry_location: str
    handles: list[str] = field(default_factory=list)


class StorageBackend(ABC):
    """
    Abstract base class for game asset storage.

    A namespace is the game's slug. The ingestion pipeline and the catalog
    only talk to this interface, so backends are swapped by configuration.
    """

    #: True when locations are URLs served by a third party.
    is_remote: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier recorded on each game (``local``, ``cloudinary``)."""
        pass

    async def aclose(self) -> None:
        """Release network clients. No-op for backends that hold none."""
        return None

    @abstractmethod
    async def store_single_file(
        self, source_path: Path, namespace: str, logical_name: str
    ) -> StoredFile:
        """Persist one file as ``<namespace>/<logical_name>``."""
        pass

    @abstractmethod
    async def store_tree(
        self, source_dir: Path, namespace: str, entry_relative_path: str
    ) -> StoredTree:
        """
        Persist every file under source_dir keeping relative paths.

        Returns the location of entry_relative_path plus the handles needed
        to delete the whole set.
        """
        pass

    @abstractmethod
    async def store_thumbnail(self, source_path: Path, namespace: str) -> StoredFile:
        """Persist a cover image for a namespace."""
        pass

    @abstractmethod
    async def delete_by_handles(self, handles: list[str]) -> None:
        """Best-effort delete. Failures are logged, never raised."""
        pass

    @abstractmethod
    async def delete_namespace(self, namespace: str) -> None:
        """Best-effort removal of everything stored under a namespace."""
        pass

    @abstractmethod
    def locate(self, namespace: str, entry_location: str, relative_path: str) -> Optional[str]:
        """
        Location of an asset addressed relative to the entry file.

        Returns None when the path escapes the namespace.
        """
        pass
