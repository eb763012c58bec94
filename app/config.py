"""
Application configuration using pydantic-settings.
"""
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "HTML Arcade"
    app_version: str = "1.0.0"
    debug: bool = False

    # Database
    database_url: str = "sqlite+aiosqlite:///./data/arcade.db"

    # Paths
    data_dir: Path = Path("./data")
    uploads_dir: Path = Path("./data/uploads/games")
    thumbnails_dir: Path = Path("./data/uploads/thumbnails")
    scratch_dir: Path = Path("./data/scratch")
    logs_dir: Path = Path("./logs")

    # Storage
    storage_backend: Literal["local", "cloudinary"] = "local"
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_api_key: Optional[str] = None
    cloudinary_api_secret: Optional[str] = None
    cloudinary_root_prefix: str = "html-arcade"
    remote_fetch_timeout: float = 30.0

    # Upload limits
    max_upload_bytes: int = 50 * 1024 * 1024  # 50MB
    max_extracted_bytes: int = 200 * 1024 * 1024

    # Scratch cleanup
    scratch_max_age_seconds: int = 3600
    scratch_sweep_interval_seconds: int = 900

    # Auth
    secret_key: str = "dev-secret-key-change"
    token_ttl_minutes: int = 60 * 24 * 7

    # CORS
    cors_origins: list[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    def ensure_dirs(self) -> None:
        """Create required directories if they don't exist."""
        for dir_path in [
            self.data_dir,
            self.uploads_dir,
            self.thumbnails_dir,
            self.scratch_dir,
            self.logs_dir,
        ]:
            dir_path.mkdir(parents=True, exist_ok=True)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()
    settings.ensure_dirs()
    return settings
