"""FastAPI dependencies for code batches and redemptions."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .redemption import RedemptionService
from .service import CodeBatchService


async def get_code_batch_service(request: Request) -> CodeBatchService:
    """Get code batch service from app state."""
    service = getattr(request.app.state, "code_batch_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Code service not available",
        )
    return service


async def get_redemption_service(request: Request) -> RedemptionService:
    """Get redemption service from app state."""
    service = getattr(request.app.state, "redemption_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Redemption service not available",
        )
    return service


CodeBatchServiceDep = Annotated[CodeBatchService, Depends(get_code_batch_service)]
RedemptionServiceDep = Annotated[RedemptionService, Depends(get_redemption_service)]
