"""
Cloudinary storage backend.

Talks to the Cloudinary REST API with httpx:
- signed uploads: POST /v1_1/{cloud}/{resource_type}/upload
- admin deletes:  DELETE /v1_1/{cloud}/resources/{resource_type}/upload
                  DELETE /v1_1/{cloud}/folders/{path}

Game files are uploaded as ``raw`` resources under
``<root_prefix>/games/<slug>/<relative path>``; thumbnails as ``image``
resources under ``<root_prefix>/thumbnails``. Handles have the form
``<resource_type>:<public_id>``.
"""
import asyncio
import hashlib
import logging
import time
from collections import defaultdict
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urljoin
from uuid import uuid4

import aiofiles
import httpx

from app.storage.base import StorageBackend, StoredFile, StoredTree

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.cloudinary.com/v1_1"
DELETE_BATCH_SIZE = 100


class CloudinaryError(Exception):
    """Raised when the Cloudinary API rejects a request."""
    pass


def sign_params(params: dict[str, Any], api_secret: str) -> str:
    """Cloudinary request signature: sha1 of sorted key=value pairs plus secret."""
    to_sign = "&".join(
        f"{key}={params[key]}" for key in sorted(params) if params[key] not in (None, "")
    )
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


def make_handle(resource_type: str, public_id: str) -> str:
    return f"{resource_type}:{public_id}"


def parse_handle(handle: str) -> tuple[str, str]:
    resource_type, _, public_id = handle.partition(":")
    if not public_id:
        return "raw", resource_type
    return resource_type, public_id


class CloudinaryStorageBackend(StorageBackend):
    """Stores game assets in a Cloudinary account."""

    is_remote = True

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        root_prefix: str = "html-arcade",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 60.0,
    ):
        if not (cloud_name and api_key and api_secret):
            raise ValueError("Cloudinary storage requires cloud name, API key and API secret")
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.root_prefix = root_prefix.strip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    @property
    def name(self) -> str:
        return "cloudinary"

    async def aclose(self) -> None:
        await self._client.aclose()

    def games_folder(self, namespace: str) -> str:
        return f"{self.root_prefix}/games/{namespace}"

    def thumbnails_folder(self) -> str:
        return f"{self.root_prefix}/thumbnails"

    # ------------------------------------------------------------------
    # HTTP helpers
    # ------------------------------------------------------------------

    def _url(self, path: str) -> str:
        return f"{API_BASE_URL}/{self.cloud_name}/{path}"

    async def _upload(self, source_path: Path, public_id: str, resource_type: str) -> dict:
        params = {
            "public_id": public_id,
            "overwrite": "true",
            "timestamp": str(int(time.time())),
        }
        data = {**params, "api_key": self.api_key, "signature": sign_params(params, self.api_secret)}

        async with aiofiles.open(source_path, "rb") as f:
            content = await f.read()

        response = await self._client.post(
            self._url(f"{resource_type}/upload"),
            data=data,
            files={"file": (Path(source_path).name, content)},
        )
        if response.status_code >= 400:
            raise CloudinaryError(
                f"Upload of {public_id} failed with {response.status_code}: {response.text[:200]}"
            )
        return response.json()

    async def _admin_delete(self, path: str, params: Any) -> None:
        response = await self._client.request(
            "DELETE",
            self._url(path),
            params=params,
            auth=(self.api_key, self.api_secret),
        )
        if response.status_code == 404:
            return
        response.raise_for_status()

    # ------------------------------------------------------------------
    # StorageBackend
    # ------------------------------------------------------------------

    async def store_single_file(
        self, source_path: Path, namespace: str, logical_name: str
    ) -> StoredFile:
        public_id = f"{self.games_folder(namespace)}/{logical_name}"
        result = await self._upload(source_path, public_id, "raw")
        logger.info("Uploaded %s to Cloudinary as %s", source_path, result["public_id"])
        return StoredFile(
            location=result["secure_url"],
            handle=make_handle("raw", result["public_id"]),
        )

    async def store_tree(
        self, source_dir: Path, namespace: str, entry_relative_path: str
    ) -> StoredTree:
        source_dir = Path(source_dir)
        folder = self.games_folder(namespace)
        entry_key = entry_relative_path.replace("\\", "/")
        files = await asyncio.to_thread(
            lambda: sorted(p for p in source_dir.rglob("*") if p.is_file())
        )

        handles: list[str] = []
        entry_location = ""
        try:
            for path in files:
                relative = path.relative_to(source_dir).as_posix()
                result = await self._upload(path, f"{folder}/{relative}", "raw")
                handles.append(make_handle("raw", result["public_id"]))
                if relative == entry_key:
                    entry_location = result["secure_url"]
        except Exception:
            # Only the caller's rollback knows about the tree once we return.
            await self.delete_by_handles(handles)
            raise

        if not entry_location:
            await self.delete_by_handles(handles)
            raise CloudinaryError(f"Entry file {entry_relative_path} was not uploaded")

        logger.info("Uploaded %d files to Cloudinary folder %s", len(files), folder)
        return StoredTree(entry_location=entry_location, handles=handles)

    async def store_thumbnail(self, source_path: Path, namespace: str) -> StoredFile:
        public_id = f"{self.thumbnails_folder()}/{namespace}-{uuid4().hex[:8]}"
        result = await self._upload(source_path, public_id, "image")
        return StoredFile(
            location=result["secure_url"],
            handle=make_handle("image", result["public_id"]),
        )

    async def delete_by_handles(self, handles: list[str]) -> None:
        if not handles:
            return
        by_type: dict[str, list[str]] = defaultdict(list)
        for handle in handles:
            resource_type, public_id = parse_handle(handle)
            by_type[resource_type].append(public_id)

        for resource_type, public_ids in by_type.items():
            for i in range(0, len(public_ids), DELETE_BATCH_SIZE):
                batch = public_ids[i:i + DELETE_BATCH_SIZE]
                try:
                    await self._admin_delete(
                        f"resources/{resource_type}/upload",
                        [("public_ids[]", public_id) for public_id in batch],
                    )
                except httpx.HTTPError as e:
                    logger.warning(
                        "Failed to delete Cloudinary %s resources %s: %s", resource_type, batch, e
                    )

    async def delete_namespace(self, namespace: str) -> None:
        folder = self.games_folder(namespace)
        try:
            await self._admin_delete("resources/raw/upload", {"prefix": f"{folder}/"})
            await self._admin_delete(f"folders/{folder}", None)
        except httpx.HTTPError as e:
            logger.warning("Failed to delete Cloudinary folder %s: %s", folder, e)

    def locate(self, namespace: str, entry_location: str, relative_path: str) -> Optional[str]:
        target = urljoin(entry_location, relative_path)
        if f"/{self.games_folder(namespace)}/" not in target:
            return None
        return target
