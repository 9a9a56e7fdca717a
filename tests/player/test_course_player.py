"""Tests for the course player session."""

from uuid import uuid4

import pytest

from coursestream.auth.session import InMemorySessionProvider, Viewer
from coursestream.courses.catalog import LessonNotFoundError
from coursestream.courses.models import VideoReference
from coursestream.courses.navigation import ordered_lessons
from coursestream.enrollments.models import OfferingKind, PaymentStatus
from coursestream.enrollments.service import EnrollmentService
from coursestream.player import CoursePlayer
from coursestream.progress.repository import ProgressRepository
from coursestream.video import DirectMediaPlayback, LessonLockedError, UnresolvableSourceError
from coursestream.video.adapters import EmbeddedPlayback


async def _paid(store, user_id, course_id) -> None:
    enrollments = EnrollmentService(store)
    await enrollments.enroll(user_id, OfferingKind.COURSE, course_id)
    await enrollments.set_payment_status(
        user_id, OfferingKind.COURSE, course_id, PaymentStatus.PAID
    )


async def _open(store, course, viewer=None, **kwargs):
    session = InMemorySessionProvider(viewer)
    player = await CoursePlayer.open(
        course=course,
        session=session,
        enrollments=EnrollmentService(store),
        repository=ProgressRepository(store),
        **kwargs,
    )
    return player, session


class TestAccess:
    """Tests for access gating in the player."""

    @pytest.mark.asyncio
    async def test_locked_lesson_start_builds_no_adapter(
        self, store, build_course
    ) -> None:
        """Not enrolled and not free: start is rejected before any adapter exists."""
        course = build_course((2,))
        player, _ = await _open(store, course, Viewer(id=uuid4()))

        with pytest.raises(LessonLockedError):
            player.start()

        assert player.adapter is None
        assert all(entry.locked for entry in player.lessons())

    @pytest.mark.asyncio
    async def test_free_preview_plays_for_anonymous_viewer(
        self, store, build_course
    ) -> None:
        course = build_course((2,), free_lessons=(0,))
        player, _ = await _open(store, course)

        adapter = player.start()

        assert isinstance(adapter, DirectMediaPlayback)
        assert adapter.playing
        assert [entry.locked for entry in player.lessons()] == [False, True]

    @pytest.mark.asyncio
    async def test_selecting_locked_lesson_is_a_no_op(self, store, build_course) -> None:
        course = build_course((2,), free_lessons=(0,))
        player, _ = await _open(store, course)
        first, second = ordered_lessons(course)

        assert not player.select_lesson(second.id)
        assert player.current_lesson == first
        assert not player.go_next()

    @pytest.mark.asyncio
    async def test_unknown_lesson_selection(self, store, build_course) -> None:
        player, _ = await _open(store, build_course())
        with pytest.raises(LessonNotFoundError):
            player.select_lesson(uuid4())

    @pytest.mark.asyncio
    async def test_unresolvable_video_cannot_start(self, store, build_course) -> None:
        course = build_course((1,), free_lessons=(0,), videos={0: VideoReference("vimeo", "x")})
        player, _ = await _open(store, course)

        with pytest.raises(UnresolvableSourceError):
            player.start()

        assert player.adapter is None
        entry = player.lessons()[0]
        assert entry.availability.can_access
        assert not entry.availability.playable


class TestPlayback:
    """Tests for playback, completion and progress."""

    @pytest.mark.asyncio
    async def test_watching_to_the_end_completes_lesson(
        self, store, build_course
    ) -> None:
        """600 s lesson ticking to 595 s completes it; 1 of 4 lessons is 25%."""
        user_id = uuid4()
        course = build_course((2, 2))
        await _paid(store, user_id, course.id)
        player, _ = await _open(store, course, Viewer(id=user_id))
        lesson = ordered_lessons(course)[0]

        adapter = player.start()
        adapter.handle_loaded_metadata(600.0)
        adapter.handle_time_update(300.0)
        adapter.handle_time_update(595.0)
        await player.drain()

        assert player.tracker.state(lesson.id).is_completed
        assert player.progress.percentage == 25
        completed = await ProgressRepository(store).completed_lesson_ids(user_id)
        assert completed == {lesson.id}

    @pytest.mark.asyncio
    async def test_resume_from_saved_position(self, store, build_course) -> None:
        user_id = uuid4()
        course = build_course((1,))
        lesson = ordered_lessons(course)[0]
        await _paid(store, user_id, course.id)
        await ProgressRepository(store).save_position(user_id, lesson.id, 120.0)
        player, _ = await _open(store, course, Viewer(id=user_id))

        adapter = player.start()
        adapter.handle_loaded_metadata(600.0)

        assert adapter.position == 120.0

    @pytest.mark.asyncio
    async def test_embedded_lesson_needs_manual_completion(
        self, store, build_course
    ) -> None:
        course = build_course(
            (1, 1), free_lessons=(0,), videos={0: VideoReference("youtube", "dQw4w9WgXcQ")}
        )
        player, _ = await _open(store, course, Viewer(id=uuid4()))

        adapter = player.start()
        assert isinstance(adapter, EmbeddedPlayback)
        assert player.progress.completed == 0

        assert player.mark_complete()
        assert not player.mark_complete()
        assert player.progress.percentage == 50
        await player.drain()

    @pytest.mark.asyncio
    async def test_text_lesson_starts_without_adapter(self, store, build_course) -> None:
        course = build_course((1,), free_lessons=(0,), videos={0: None})
        player, _ = await _open(store, course)

        assert player.start() is None
        assert player.mark_complete()

    @pytest.mark.asyncio
    async def test_switching_lessons_detaches_adapter(self, store, build_course) -> None:
        user_id = uuid4()
        course = build_course((2,))
        await _paid(store, user_id, course.id)
        player, _ = await _open(store, course, Viewer(id=user_id))
        first, second = ordered_lessons(course)

        adapter = player.start()
        assert player.has_next_lesson
        assert player.go_next()
        adapter.handle_time_update(50.0)

        assert adapter.detached
        assert player.adapter is None
        assert player.current_lesson == second
        assert not player.has_next_lesson
        assert player.previous_lesson() == first
        assert player.tracker.state(first.id).position_seconds == 0.0

    @pytest.mark.asyncio
    async def test_seek_is_clamped_and_recorded(self, store, build_course) -> None:
        course = build_course((1,), free_lessons=(0,))
        player, _ = await _open(store, course)
        lesson = ordered_lessons(course)[0]

        adapter = player.start()
        adapter.handle_loaded_metadata(100.0)
        player.seek(250.0)

        assert player.tracker.state(lesson.id).position_seconds == 100.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "video",
        [VideoReference("youtube", "dQw4w9WgXcQ"), None],
        ids=["embedded", "text"],
    )
    async def test_seek_without_media_length_is_clamped(
        self, store, build_course, video
    ) -> None:
        """Lessons without a media element clamp to [0, listed running time]."""
        course = build_course((1,), free_lessons=(0,), videos={0: video})
        player, _ = await _open(store, course)
        lesson = ordered_lessons(course)[0]
        player.start()

        player.seek(-5)
        assert player.tracker.state(lesson.id).position_seconds == 0.0

        player.seek(10_000)
        assert player.tracker.state(lesson.id).position_seconds == 600.0

        player.seek(float("nan"))
        assert player.tracker.state(lesson.id).position_seconds == 600.0

    @pytest.mark.asyncio
    async def test_seek_after_close_is_rejected(self, store, build_course) -> None:
        course = build_course((1,), free_lessons=(0,))
        player, _ = await _open(store, course)
        player.start()
        player.close()

        with pytest.raises(RuntimeError):
            player.seek(10.0)


class TestLifecycle:
    """Tests for viewer changes and teardown."""

    @pytest.mark.asyncio
    async def test_close_unsubscribes_and_detaches(self, store, build_course) -> None:
        course = build_course((1,), free_lessons=(0,))
        player, session = await _open(store, course)
        adapter = player.start()
        assert session.subscriber_count == 1

        player.close()

        assert session.subscriber_count == 0
        assert adapter.detached
        assert player.tracker.closed
        with pytest.raises(RuntimeError):
            player.start()

    @pytest.mark.asyncio
    async def test_sign_in_reloads_enrollment(self, store, build_course) -> None:
        user_id = uuid4()
        course = build_course((2,), free_lessons=(0,))
        await _paid(store, user_id, course.id)
        player, session = await _open(store, course)
        assert not player.is_enrolled

        session.set_user(Viewer(id=user_id))
        await player.drain()

        assert player.is_enrolled
        assert player.tracker.user_id == user_id
        assert not any(entry.locked for entry in player.lessons())

    @pytest.mark.asyncio
    async def test_sign_out_stops_playback(self, store, build_course) -> None:
        user_id = uuid4()
        course = build_course((2,))
        await _paid(store, user_id, course.id)
        player, session = await _open(store, course, Viewer(id=user_id))
        adapter = player.start()

        session.set_user(None)

        assert adapter.detached
        assert not player.is_enrolled
        await player.drain()
        assert player.tracker.user_id is None
        with pytest.raises(LessonLockedError):
            player.start()
