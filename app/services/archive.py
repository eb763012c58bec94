"""
Archive inspection: safe ZIP extraction and entry-point discovery.
"""
import logging
import zipfile
from pathlib import Path
from typing import Optional

from app.services.errors import InvalidArchive

logger = logging.getLogger(__name__)

ENTRY_NAME = "index.html"

# Folders written by archivers that never hold a playable entry.
IGNORED_DIRS = {"__MACOSX"}


def _sorted_entries(directory: Path) -> list[Path]:
    # Directory listing order is platform dependent; sort for a stable tie-break.
    return sorted(directory.iterdir(), key=lambda p: p.name)


def find_entry_file(root_dir: Path) -> Optional[str]:
    """
    Locate the file to serve inside an extracted archive.

    Precedence, first match wins:
    1. index.html at the root
    2. index.html inside an immediate subdirectory
    3. any .html file at the root

    Returns the path relative to root_dir using "/" separators, or None.
    """
    root_dir = Path(root_dir)
    if (root_dir / ENTRY_NAME).is_file():
        return ENTRY_NAME

    entries = _sorted_entries(root_dir)

    for entry in entries:
        if entry.is_dir() and entry.name not in IGNORED_DIRS:
            if (entry / ENTRY_NAME).is_file():
                return f"{entry.name}/{ENTRY_NAME}"

    for entry in entries:
        if entry.is_file() and entry.name.lower().endswith(".html"):
            return entry.name

    return None


def extract_archive(archive_path: Path, dest_dir: Path, max_bytes: int) -> int:
    """
    Extract a ZIP archive into dest_dir.

    Rejects archives whose members would land outside dest_dir and archives
    whose declared uncompressed size exceeds max_bytes. Returns the number of
    extracted bytes.
    """
    dest_dir = Path(dest_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)
    root = dest_dir.resolve()

    try:
        with zipfile.ZipFile(archive_path) as zf:
            members = zf.infolist()
            total = sum(m.file_size for m in members)
            if total > max_bytes:
                raise InvalidArchive(
                    f"Archive expands to {total} bytes, limit is {max_bytes}"
                )
            for member in members:
                target = (root / member.filename).resolve()
                if not target.is_relative_to(root):
                    raise InvalidArchive(f"Unsafe path in archive: {member.filename}")
            zf.extractall(root)
    except zipfile.BadZipFile as e:
        raise InvalidArchive(f"Corrupt archive: {e}") from e

    logger.debug("Extracted %d members (%d bytes) to %s", len(members), total, dest_dir)
    return total
