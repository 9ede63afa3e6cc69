"""API v1 router aggregation."""
from fastapi import APIRouter

from cortex_review import __version__
from cortex_review.api.v1.endpoints import sessions

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])


@api_router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}
