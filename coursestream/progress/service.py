"""Progress service for the HTTP API.

Clients debounce their own position updates, so each request here is a single
write. Access is checked on every call against the current enrollment.
"""

from datetime import UTC, datetime
from uuid import UUID

from coursestream.core.logging import get_logger
from coursestream.courses.access import can_access
from coursestream.courses.catalog import CourseCatalog
from coursestream.courses.models import Course, Lesson
from coursestream.enrollments.models import OfferingKind
from coursestream.enrollments.service import EnrollmentService
from coursestream.video.exceptions import LessonLockedError

from .aggregator import CourseProgressView, aggregate
from .exceptions import PersistenceTransientFailure
from .models import PlaybackState
from .repository import ProgressRepository


logger = get_logger(__name__)


class ProgressService:
    """Position and completion writes on behalf of a viewer."""

    def __init__(
        self,
        catalog: CourseCatalog,
        enrollments: EnrollmentService,
        repository: ProgressRepository,
        completion_write_retries: int = 1,
    ):
        self.catalog = catalog
        self.enrollments = enrollments
        self.repository = repository
        self.completion_write_retries = max(0, completion_write_retries)

    async def _authorize(
        self, user_id: UUID, course_id: UUID, lesson_id: UUID
    ) -> tuple[Course, Lesson]:
        course, lesson = await self.catalog.get_lesson(course_id, lesson_id)
        enrolled = await self.enrollments.is_enrolled(
            user_id, OfferingKind.COURSE, course_id
        )
        if not can_access(lesson, enrolled):
            logger.info(
                "lesson_access_denied",
                user_id=str(user_id),
                course_id=str(course_id),
                lesson_id=str(lesson_id),
            )
            raise LessonLockedError()
        return course, lesson

    async def record_position(
        self,
        user_id: UUID,
        course_id: UUID,
        lesson_id: UUID,
        position_seconds: float,
    ) -> datetime:
        """Persist a playback position.

        Raises:
            CourseNotFoundError / LessonNotFoundError: Unknown course or lesson
            LessonLockedError: Viewer may not play the lesson
            PersistenceTransientFailure: The store rejected the write
        """
        await self._authorize(user_id, course_id, lesson_id)
        return await self.repository.save_position(user_id, lesson_id, position_seconds)

    async def complete_lesson(
        self,
        user_id: UUID,
        course_id: UUID,
        lesson_id: UUID,
        position_seconds: float | None = None,
    ) -> CourseProgressView:
        """Mark a lesson completed and return the updated course progress.

        Completing an already completed lesson changes nothing. The write is
        retried ``completion_write_retries`` times before giving up.

        Raises:
            CourseNotFoundError / LessonNotFoundError: Unknown course or lesson
            LessonLockedError: Viewer may not play the lesson
            PersistenceTransientFailure: Every completion attempt failed
        """
        course, _ = await self._authorize(user_id, course_id, lesson_id)
        completed = await self.repository.completed_lesson_ids(user_id)
        if lesson_id not in completed:
            await self._save_completion(user_id, lesson_id, position_seconds)
            completed.add(lesson_id)
        return aggregate(course, completed)

    async def _save_completion(
        self,
        user_id: UUID,
        lesson_id: UUID,
        position_seconds: float | None,
    ) -> None:
        completed_at = datetime.now(UTC)
        attempts = 1 + self.completion_write_retries
        for attempt in range(1, attempts + 1):
            try:
                await self.repository.save_completion(
                    user_id, lesson_id, completed_at, position_seconds
                )
            except PersistenceTransientFailure as e:
                logger.warning(
                    "progress_completion_persist_failed",
                    lesson_id=str(lesson_id),
                    attempt=attempt,
                    attempts=attempts,
                    kind=e.kind,
                )
                if attempt == attempts:
                    raise
            else:
                return

    async def course_progress(self, user_id: UUID, course_id: UUID) -> CourseProgressView:
        course = await self.catalog.get_course(course_id)
        completed = await self.repository.completed_lesson_ids(user_id)
        return aggregate(course, completed)

    async def lesson_state(self, user_id: UUID, lesson_id: UUID) -> PlaybackState:
        states = await self.repository.load_states(user_id)
        return states.get(lesson_id) or PlaybackState(lesson_id=lesson_id)
