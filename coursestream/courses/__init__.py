"""Course structure, navigation, and access policy."""

from .models import Course, Lesson, Module, VideoProvider, VideoReference
from .navigation import (
    first_lesson,
    has_next_lesson,
    next_lesson,
    ordered_lessons,
    previous_lesson,
)


__all__ = [
    "Course",
    "Lesson",
    "Module",
    "VideoProvider",
    "VideoReference",
    "first_lesson",
    "has_next_lesson",
    "next_lesson",
    "ordered_lessons",
    "previous_lesson",
]
