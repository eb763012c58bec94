"""
API Router - Combines all route modules.
"""
from fastapi import APIRouter

from .routes import games, health

api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(games.router)
