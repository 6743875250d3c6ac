"""Question groups and the free-question tier."""

from .models import FreeQuestionGroup, Question, QuestionGroup
from .service import FreeQuestionService, QuestionGroupService


__all__ = [
    "FreeQuestionGroup",
    "FreeQuestionService",
    "Question",
    "QuestionGroup",
    "QuestionGroupService",
]
