"""FastAPI dependencies for gated content."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import PaidContentService


async def get_paid_content_service(request: Request) -> PaidContentService:
    """Get paid content service from app state."""
    service = getattr(request.app.state, "paid_content_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Content service not available",
        )
    return service


PaidContentServiceDep = Annotated[PaidContentService, Depends(get_paid_content_service)]
