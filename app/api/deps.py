"""
Shared FastAPI dependencies.

Settings, the storage backend, the outbound HTTP client and the in-flight
slug claims are created once in the application factory and hung on
``app.state``.
"""
import httpx
from fastapi import Request

from app.config import Settings
from app.services.ingestion import SlugClaims
from app.storage.base import StorageBackend


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> StorageBackend:
    return request.app.state.storage


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_slug_claims(request: Request) -> SlugClaims:
    return request.app.state.slug_claims
