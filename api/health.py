"""Health check endpoint."""

from fastapi import APIRouter

from config.settings import get_settings

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health():
    """Liveness probe plus the generator mode the worker is running with."""
    settings = get_settings()
    return {
        "status": "healthy",
        "mockAi": settings.use_mock_ai,
        "model": settings.generation_model or settings.default_model,
    }
