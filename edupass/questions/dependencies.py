"""FastAPI dependencies for question services."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import FreeQuestionService, QuestionGroupService


async def get_question_group_service(request: Request) -> QuestionGroupService:
    service = getattr(request.app.state, "question_group_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Question service not available",
        )
    return service


async def get_free_question_service(request: Request) -> FreeQuestionService:
    service = getattr(request.app.state, "free_question_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Free question service not available",
        )
    return service


QuestionGroupServiceDep = Annotated[QuestionGroupService, Depends(get_question_group_service)]
FreeQuestionServiceDep = Annotated[FreeQuestionService, Depends(get_free_question_service)]
