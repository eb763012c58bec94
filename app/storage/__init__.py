"""
Game asset storage backends.

The backend is chosen by ``settings.storage_backend``.
"""
from app.config import Settings
from app.storage.base import StorageBackend, StoredFile, StoredTree
from app.storage.cloudinary import CloudinaryStorageBackend
from app.storage.local import LocalStorageBackend


def get_storage_backend(settings: Settings) -> StorageBackend:
    """Build the storage backend selected by configuration."""
    if settings.storage_backend == "cloudinary":
        return CloudinaryStorageBackend(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            root_prefix=settings.cloudinary_root_prefix,
        )
    return LocalStorageBackend(settings.uploads_dir, settings.thumbnails_dir)


__all__ = [
    "StorageBackend",
    "StoredFile",
    "StoredTree",
    "LocalStorageBackend",
    "CloudinaryStorageBackend",
    "get_storage_backend",
]
