"""Course player session.

Ties one viewer's view of one course together: the sidebar listing with
per-lesson access, the selected lesson and its playback adapter, the progress
tracker and the course progress view. Everything the player needs is passed
in explicitly; nothing is read from globals.

Leaving a lesson detaches its adapter so no further ticks arrive, but writes
already dispatched by the tracker are left to finish.
"""

import asyncio
import math
from dataclasses import dataclass
from uuid import UUID

from coursestream.auth.session import SessionProvider, Subscription, Viewer
from coursestream.config.settings import Settings
from coursestream.core.context import PlaybackContext
from coursestream.core.logging import get_logger
from coursestream.courses.access import LessonAvailability, evaluate_lesson
from coursestream.courses.catalog import LessonNotFoundError
from coursestream.courses.models import Course, Lesson
from coursestream.courses.navigation import (
    first_lesson,
    next_lesson,
    ordered_modules,
    previous_lesson,
)
from coursestream.enrollments.models import OfferingKind
from coursestream.enrollments.service import EnrollmentService
from coursestream.progress.aggregator import CourseProgressView, aggregate
from coursestream.progress.repository import ProgressRepository
from coursestream.progress.tracker import ProgressTracker
from coursestream.video.adapters import (
    DirectMediaPlayback,
    MediaElement,
    PlaybackAdapter,
    Unsubscribe,
    build_adapter,
)
from coursestream.video.exceptions import LessonLockedError, UnresolvableSourceError


logger = get_logger(__name__)


def _clamp_position(position: float, lesson: Lesson) -> float | None:
    """Clamp a seek target to ``[0, running time]``; None if unusable."""
    if math.isnan(position):
        return None
    target = max(0.0, position)
    if lesson.duration_minutes:
        target = min(target, lesson.duration_minutes * 60.0)
    return target if math.isfinite(target) else None


@dataclass(frozen=True)
class LessonEntry:
    """One sidebar row."""

    lesson: Lesson
    module_id: UUID
    availability: LessonAvailability
    completed: bool
    is_current: bool

    @property
    def is_free(self) -> bool:
        return self.lesson.is_free

    @property
    def locked(self) -> bool:
        return not self.availability.can_access


class CoursePlayer:
    """Playback session of one viewer in one course.

    Build with ``CoursePlayer.open``; call ``close`` when the viewer leaves.
    """

    def __init__(
        self,
        *,
        course: Course,
        session: SessionProvider,
        enrollments: EnrollmentService,
        tracker: ProgressTracker,
        is_enrolled: bool,
        repository: ProgressRepository | None = None,
        settings: Settings | None = None,
        current_lesson_id: UUID | None = None,
    ):
        self.course = course
        self.session = session
        self.enrollments = enrollments
        self.repository = repository
        self.settings = settings
        self.tracker = tracker
        self.is_enrolled = is_enrolled
        self.viewer: Viewer | None = session.get_current_user()
        self.adapter: PlaybackAdapter | None = None
        self._unsubscribers: list[Unsubscribe] = []
        self._retired_trackers: list[ProgressTracker] = []
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

        lesson = course.find_lesson(current_lesson_id) if current_lesson_id else None
        if lesson is None:
            lesson = first_lesson(course)
        self.current_lesson: Lesson | None = lesson

        self._subscription: Subscription = session.subscribe(self._on_auth_change)

    @classmethod
    async def open(
        cls,
        *,
        course: Course,
        session: SessionProvider,
        enrollments: EnrollmentService,
        repository: ProgressRepository | None = None,
        settings: Settings | None = None,
        lesson_id: UUID | None = None,
    ) -> "CoursePlayer":
        """Load the viewer's enrollment and progress, then build the player."""
        viewer = session.get_current_user()
        viewer_id = viewer.id if viewer else None
        is_enrolled = await enrollments.is_enrolled(viewer_id, OfferingKind.COURSE, course.id)
        tracker = await cls._load_tracker(viewer_id, repository, settings)
        player = cls(
            course=course,
            session=session,
            enrollments=enrollments,
            tracker=tracker,
            is_enrolled=is_enrolled,
            repository=repository,
            settings=settings,
            current_lesson_id=lesson_id,
        )
        logger.info(
            "course_player_opened",
            course_id=str(course.id),
            viewer_id=str(viewer_id) if viewer_id else None,
            is_enrolled=is_enrolled,
            lessons=course.total_lessons,
        )
        return player

    @staticmethod
    async def _load_tracker(
        viewer_id: UUID | None,
        repository: ProgressRepository | None,
        settings: Settings | None,
    ) -> ProgressTracker:
        states = {}
        if viewer_id is not None and repository is not None:
            states = await repository.load_states(viewer_id)
        if settings is not None:
            return ProgressTracker.from_settings(settings, viewer_id, repository, states)
        return ProgressTracker(viewer_id, repository, states=states)

    # ------------------------------------------------------------------
    # Listing and navigation
    # ------------------------------------------------------------------

    def availability(self, lesson: Lesson) -> LessonAvailability:
        return evaluate_lesson(lesson, self.is_enrolled)

    def lessons(self) -> list[LessonEntry]:
        """Sidebar entries in playback order, re-evaluated on every call."""
        completed = self.tracker.completed_ids
        current_id = self.current_lesson.id if self.current_lesson else None
        return [
            LessonEntry(
                lesson=lesson,
                module_id=module.id,
                availability=self.availability(lesson),
                completed=lesson.id in completed,
                is_current=lesson.id == current_id,
            )
            for module in ordered_modules(self.course)
            for lesson in sorted(module.lessons, key=lambda lesson: lesson.order_index)
        ]

    def select_lesson(self, lesson_id: UUID) -> bool:
        """Switch to another lesson. Returns False (and does nothing) if locked.

        Raises:
            LessonNotFoundError: The lesson is not part of this course
        """
        lesson = self.course.find_lesson(lesson_id)
        if lesson is None:
            raise LessonNotFoundError()
        if not self.availability(lesson).can_access:
            logger.debug("locked_lesson_selection_ignored", lesson_id=str(lesson_id))
            return False
        if self.current_lesson is not None and self.current_lesson.id == lesson.id:
            return True
        self._detach_adapter()
        self.current_lesson = lesson
        return True

    def next_lesson(self) -> Lesson | None:
        current_id = self.current_lesson.id if self.current_lesson else None
        return next_lesson(self.course, current_id)

    def previous_lesson(self) -> Lesson | None:
        current_id = self.current_lesson.id if self.current_lesson else None
        return previous_lesson(self.course, current_id)

    @property
    def has_next_lesson(self) -> bool:
        return self.next_lesson() is not None

    def go_next(self) -> bool:
        """Select the following lesson; False on the last or a locked lesson."""
        lesson = self.next_lesson()
        return lesson is not None and self.select_lesson(lesson.id)

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    def _require_current(self) -> Lesson:
        if self.current_lesson is None:
            raise LessonNotFoundError("Course has no lessons")
        return self.current_lesson

    def start(self, element: MediaElement | None = None) -> PlaybackAdapter | None:
        """Start the current lesson.

        Access is checked before any adapter is built. Text lessons return
        None and are completed with ``mark_complete``.

        Raises:
            LessonLockedError: Viewer is not enrolled and the lesson isn't free
            UnresolvableSourceError: The lesson's video cannot be played
        """
        self._ensure_open()
        lesson = self._require_current()
        viewer_id = self.viewer.id if self.viewer else None
        with PlaybackContext(user_id=viewer_id, course_id=self.course.id, lesson_id=lesson.id):
            if not self.availability(lesson).can_access:
                logger.info("lesson_start_rejected", reason="locked")
                raise LessonLockedError()

            self._detach_adapter()
            adapter, report = build_adapter(
                lesson,
                initial_position=self.tracker.state(lesson.id).position_seconds,
                element=element,
            )
            if not report.playable:
                raise UnresolvableSourceError(report.reason or "Video source could not be resolved")

            if adapter is not None:
                self._wire(adapter, lesson.id)
                adapter.start()
            self.adapter = adapter
            self.tracker.play(lesson.id)
            logger.info(
                "lesson_playback_started",
                provider=adapter.source.provider.value if adapter else None,
            )
        return adapter

    def _wire(self, adapter: PlaybackAdapter, lesson_id: UUID) -> None:
        tracker = self.tracker

        def on_progress(position: float) -> None:
            tracker.tick(lesson_id, position)

        def on_complete() -> None:
            self._complete(tracker, lesson_id)

        self._unsubscribers = [
            adapter.on_progress(on_progress),
            adapter.on_complete(on_complete),
        ]

    def _complete(self, tracker: ProgressTracker, lesson_id: UUID) -> bool:
        changed = tracker.mark_complete(lesson_id)
        if changed:
            view = self.progress
            logger.info(
                "course_progress_changed",
                course_id=str(self.course.id),
                lesson_id=str(lesson_id),
                percentage=view.percentage,
                completed=view.completed,
                total=view.total,
            )
        return changed

    def mark_complete(self, lesson_id: UUID | None = None) -> bool:
        """Manually complete a lesson (the current one by default).

        Returns False if it was already completed.

        Raises:
            LessonLockedError: Viewer may not access the lesson
        """
        self._ensure_open()
        if lesson_id is None:
            lesson = self._require_current()
        else:
            lesson = self.course.find_lesson(lesson_id)
            if lesson is None:
                raise LessonNotFoundError()
        if not self.availability(lesson).can_access:
            raise LessonLockedError()
        return self._complete(self.tracker, lesson.id)

    def seek(self, position: float) -> None:
        """Seek the current adapter and record the jump.

        Out-of-range positions are clamped to the media (or the lesson's
        listed running time when the media length is unknown).
        """
        self._ensure_open()
        lesson = self._require_current()
        if isinstance(self.adapter, DirectMediaPlayback):
            self.adapter.seek(position)
            target = self.adapter.position
        else:
            if self.adapter is not None:
                self.adapter.seek(position)
            target = _clamp_position(position, lesson)
        if target is None:
            return
        self.tracker.seek_to(lesson.id, target)

    @property
    def progress(self) -> CourseProgressView:
        return aggregate(self.course, self.tracker.completed_ids)

    @property
    def persistence_degraded(self) -> bool:
        return self.tracker.persistence_degraded

    # ------------------------------------------------------------------
    # Viewer changes
    # ------------------------------------------------------------------

    async def refresh_enrollment(self) -> bool:
        """Reload the enrollment flag; access is re-evaluated from it."""
        viewer_id = self.viewer.id if self.viewer else None
        self.is_enrolled = await self.enrollments.is_enrolled(
            viewer_id, OfferingKind.COURSE, self.course.id
        )
        return self.is_enrolled

    def _on_auth_change(self, viewer: Viewer | None) -> None:
        if self._closed:
            return
        previous = self.viewer
        self.viewer = viewer
        if previous is not None and viewer is not None and previous.id == viewer.id:
            return
        logger.info(
            "course_player_viewer_changed",
            course_id=str(self.course.id),
            viewer_id=str(viewer.id) if viewer else None,
        )
        # Stop the old viewer's playback right away; enrollment and progress
        # for the new viewer are loaded in the background.
        self._detach_adapter()
        self.is_enrolled = False
        task = asyncio.create_task(self._reload_viewer(viewer))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _reload_viewer(self, viewer: Viewer | None) -> None:
        viewer_id = viewer.id if viewer else None
        tracker = await self._load_tracker(viewer_id, self.repository, self.settings)
        is_enrolled = await self.enrollments.is_enrolled(
            viewer_id, OfferingKind.COURSE, self.course.id
        )
        if self._closed or self.viewer != viewer:
            tracker.close()
            return
        self.tracker.close()
        self._retired_trackers.append(self.tracker)
        self.tracker = tracker
        self.is_enrolled = is_enrolled

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def _detach_adapter(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        if self.adapter is not None:
            self.adapter.detach()
            self.adapter = None

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("Course player is closed")

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Leave the course: detach playback, stop the tracker, unsubscribe."""
        if self._closed:
            return
        self._closed = True
        self._detach_adapter()
        self.tracker.close()
        self._subscription.unsubscribe()
        logger.info("course_player_closed", course_id=str(self.course.id))

    async def drain(self) -> None:
        """Wait for background reloads and every dispatched progress write."""
        while self._tasks:
            await asyncio.gather(*self._tasks)
        for tracker in (*self._retired_trackers, self.tracker):
            await tracker.drain()
