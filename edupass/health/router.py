"""Health check endpoints."""

from fastapi import APIRouter, Request, Response, status

from edupass.config import get_settings


router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness() -> dict[str, str]:
    """Liveness probe: the process is up."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness(request: Request, response: Response) -> dict[str, str | bool]:
    """Readiness probe: Cassandra is connected (Redis is optional).

    Answers 503 while the content services are unavailable.
    """
    state = request.app.state
    database = getattr(state, "cassandra_session", None) is not None
    cache = getattr(state, "redis", None) is not None
    if not database:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {
        "status": "ready" if database else "unavailable",
        "database": database,
        "cache": cache,
        "environment": get_settings().environment,
    }


@router.get("")
async def health() -> dict[str, str]:
    """General health check endpoint."""
    settings = get_settings()
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
    }
