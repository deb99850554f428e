"""Health check endpoint."""

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health(request: Request):
    """Liveness probe; also reports whether outbound sends are mocked."""
    settings = request.app.state.settings
    return {
        "status": "ok",
        "mock_mode": settings.messenger_mock_mode,
        "pending_tasks": request.app.state.scheduler.pending_count,
    }
