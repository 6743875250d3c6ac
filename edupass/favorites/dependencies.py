"""FastAPI dependencies for favorites."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import FavoriteService


async def get_favorite_service(request: Request) -> FavoriteService:
    """Get favorite service from app state."""
    service = getattr(request.app.state, "favorite_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Favorites service not available",
        )
    return service


FavoriteServiceDep = Annotated[FavoriteService, Depends(get_favorite_service)]
