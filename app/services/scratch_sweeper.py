"""
Periodic removal of orphaned scratch files.

Uploads and archive extractions are spooled under ``scratch_dir`` and removed
when the request finishes. A dropped connection or a crashed worker can leave
them behind; the sweeper deletes anything older than the configured age.
"""
import asyncio
import logging
import shutil
import time
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class ScratchSweeper:
    """Deletes stale entries in a scratch directory."""

    def __init__(self, scratch_dir: Path, max_age_seconds: int, interval_seconds: int):
        self.scratch_dir = Path(scratch_dir)
        self.max_age_seconds = max_age_seconds
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    def sweep(self, now: Optional[float] = None) -> list[Path]:
        """Remove entries older than max_age_seconds. Returns what was removed."""
        if not self.scratch_dir.exists():
            return []
        cutoff = (now if now is not None else time.time()) - self.max_age_seconds
        removed = []
        for entry in self.scratch_dir.iterdir():
            try:
                if entry.stat().st_mtime >= cutoff:
                    continue
                if entry.is_dir():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()
                removed.append(entry)
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning("Could not remove stale scratch entry %s: %s", entry, e)
        if removed:
            logger.info("Removed %d stale scratch entries from %s", len(removed), self.scratch_dir)
        return removed

    async def _loop(self) -> None:
        while True:
            try:
                await asyncio.to_thread(self.sweep)
            except Exception as e:
                logger.error("Scratch sweep failed: %s", e)
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
