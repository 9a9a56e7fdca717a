"""Course catalog service.

Loads the module/lesson tree of a course from the record store. Authoring
happens elsewhere; this service is read-only.
"""

from uuid import UUID

from coursestream.core.logging import get_logger
from coursestream.store import RecordStore
from coursestream.store.tables import COURSE_LESSONS, COURSE_MODULES, COURSES

from .models import Course, Lesson, Module


logger = get_logger(__name__)


class CourseError(Exception):
    """Base course error."""

    def __init__(self, message: str, code: str = "course_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CourseNotFoundError(CourseError):
    """Course not found."""

    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class LessonNotFoundError(CourseError):
    """Lesson not found in the course."""

    def __init__(self, message: str = "Lesson not found"):
        super().__init__(message, "lesson_not_found")


class CourseCatalog:
    """Read-only access to course structures."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def get_course(self, course_id: UUID) -> Course:
        """Load a course with all its modules and lessons.

        Raises:
            CourseNotFoundError: No course row with this id.
        """
        rows = await self.store.select(COURSES.name, {"id": course_id})
        if not rows:
            raise CourseNotFoundError()
        course_row = rows[0]

        module_rows = await self.store.select(
            COURSE_MODULES.name, {"course_id": course_id}
        )
        modules = []
        for module_row in module_rows:
            lesson_rows = await self.store.select(
                COURSE_LESSONS.name, {"module_id": module_row["id"]}
            )
            lessons = tuple(Lesson.from_row(row) for row in lesson_rows)
            modules.append(Module.from_row(module_row, lessons))

        course = Course(
            id=course_row["id"],
            title=course_row.get("title") or "",
            modules=tuple(modules),
            description=course_row.get("description"),
            category=course_row.get("category"),
        )
        logger.debug(
            "course_loaded",
            course_id=str(course_id),
            modules=len(course.modules),
            lessons=course.total_lessons,
        )
        return course

    async def get_lesson(self, course_id: UUID, lesson_id: UUID) -> tuple[Course, Lesson]:
        """Load a course and one of its lessons.

        Raises:
            CourseNotFoundError: Unknown course.
            LessonNotFoundError: The lesson is not part of the course.
        """
        course = await self.get_course(course_id)
        lesson = course.find_lesson(lesson_id)
        if lesson is None:
            raise LessonNotFoundError()
        return course, lesson

    async def save_course(self, course: Course) -> None:
        """Upsert a full course tree (seeding and tests)."""
        await self.store.update(
            COURSES.name,
            {"id": course.id},
            {
                "title": course.title,
                "description": course.description,
                "category": course.category,
            },
        )
        for module in course.modules:
            await self.store.update(
                COURSE_MODULES.name,
                {"course_id": course.id, "id": module.id},
                {"title": module.title, "order_index": module.order_index},
            )
            for lesson in module.lessons:
                row = lesson.to_dict()
                key = {"module_id": row.pop("module_id"), "id": row.pop("id")}
                await self.store.update(COURSE_LESSONS.name, key, row)
