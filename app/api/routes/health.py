"""
Health Check Endpoint
"""
from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(request: Request) -> dict:
    """Health check endpoint for monitoring."""
    settings = request.app.state.settings
    return {
        "status": "ok",
        "version": settings.app_version,
        "storage": request.app.state.storage.name,
    }
