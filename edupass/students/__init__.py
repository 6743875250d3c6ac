"""Student profiles and accounts."""

from .models import Student
from .service import StudentService


__all__ = ["Student", "StudentService"]
