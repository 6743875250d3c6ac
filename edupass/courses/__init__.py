"""Courses, videos and course files."""

from .models import Course, CourseFile, Video
from .service import CourseFileService, CourseService, VideoService


__all__ = [
    "Course",
    "CourseFile",
    "CourseFileService",
    "CourseService",
    "Video",
    "VideoService",
]
