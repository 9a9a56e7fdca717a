"""Course player session."""

from .session import CoursePlayer, LessonEntry


__all__ = ["CoursePlayer", "LessonEntry"]
