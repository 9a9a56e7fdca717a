"""Course-level progress derived from completed lessons.

Views are computed on demand and never stored, so they always reflect the
current set of completed lessons.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from uuid import UUID

from coursestream.courses.models import Course, Module
from coursestream.courses.navigation import ordered_modules


def _rounded_percent(done: int, total: int) -> int:
    """``round(100 * done / total)`` with halves rounded up; 0 when empty.

    Only a finished set reports 100: an unfinished one is capped at 99.
    """
    if total <= 0:
        return 0
    result = (200 * done + total) // (2 * total)
    if done < total:
        return min(result, 99)
    return result


def percentage(course: Course, completed_ids: Iterable[UUID]) -> int:
    """Share of the course's lessons that are completed, 0-100."""
    lesson_ids = course.lesson_ids
    done = len(lesson_ids.intersection(completed_ids))
    return _rounded_percent(done, len(lesson_ids))


@dataclass(frozen=True)
class ModuleProgress:
    module_id: UUID
    title: str
    completed: int
    total: int
    percentage: int


@dataclass(frozen=True)
class CourseProgressView:
    """Completion summary of a course for one viewer."""

    course_id: UUID
    completed: int
    total: int
    percentage: int
    modules: tuple[ModuleProgress, ...] = ()

    @property
    def is_complete(self) -> bool:
        return self.total > 0 and self.completed == self.total


def _module_progress(module: Module, completed: frozenset[UUID]) -> ModuleProgress:
    total = len(module.lessons)
    done = sum(1 for lesson in module.lessons if lesson.id in completed)
    return ModuleProgress(
        module_id=module.id,
        title=module.title,
        completed=done,
        total=total,
        percentage=_rounded_percent(done, total),
    )


def aggregate(course: Course, completed_ids: Iterable[UUID]) -> CourseProgressView:
    """Build the course progress view with a per-module breakdown.

    Completed ids that don't belong to the course are ignored.
    """
    completed = frozenset(completed_ids) & course.lesson_ids
    return CourseProgressView(
        course_id=course.id,
        completed=len(completed),
        total=len(course.lesson_ids),
        percentage=_rounded_percent(len(completed), len(course.lesson_ids)),
        modules=tuple(_module_progress(m, completed) for m in ordered_modules(course)),
    )
