"""Health check endpoint."""

from fastapi import APIRouter, Request

from procoin.database import health_check as db_health_check

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(request: Request) -> dict:
    """Report database connectivity and loaded email providers."""
    db_healthy = await db_health_check()
    registry = getattr(request.app.state, "template_registry", None)
    return {
        "status": "healthy" if db_healthy else "degraded",
        "database": "healthy" if db_healthy else "unhealthy",
        "email_providers": registry.providers() if registry is not None else [],
    }
