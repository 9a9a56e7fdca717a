"""Lesson ordering and next/previous navigation.

Lessons are totally ordered by module ``order_index``, then lesson
``order_index``, then their position in the loaded sequence (ties never
reorder lessons relative to how they were stored).
"""

from uuid import UUID

from .models import Course, Lesson, Module


def ordered_modules(course: Course) -> list[Module]:
    """Modules sorted by ``order_index``; stable for equal keys."""
    return sorted(course.modules, key=lambda m: m.order_index)


def ordered_lessons(course: Course) -> list[Lesson]:
    """Every lesson of the course in playback order."""
    return [
        lesson
        for module in ordered_modules(course)
        for lesson in sorted(module.lessons, key=lambda lesson: lesson.order_index)
    ]


def _index_of(lessons: list[Lesson], lesson_id: UUID | None) -> int | None:
    for index, lesson in enumerate(lessons):
        if lesson.id == lesson_id:
            return index
    return None


def first_lesson(course: Course) -> Lesson | None:
    """Landing lesson when the viewer opens a course without choosing one."""
    lessons = ordered_lessons(course)
    return lessons[0] if lessons else None


def next_lesson(course: Course, current_id: UUID | None) -> Lesson | None:
    """Lesson immediately after ``current_id``, or None on the last lesson.

    An unknown ``current_id`` has no successor.
    """
    lessons = ordered_lessons(course)
    index = _index_of(lessons, current_id)
    if index is None or index + 1 >= len(lessons):
        return None
    return lessons[index + 1]


def previous_lesson(course: Course, current_id: UUID | None) -> Lesson | None:
    """Lesson immediately before ``current_id``, or None on the first lesson."""
    lessons = ordered_lessons(course)
    index = _index_of(lessons, current_id)
    if not index:
        return None
    return lessons[index - 1]


def has_next_lesson(course: Course, current_id: UUID | None) -> bool:
    return next_lesson(course, current_id) is not None
