"""Tests for the lesson access policy."""

import random
from uuid import uuid4

import pytest

from coursestream.courses.access import can_access, evaluate_lesson
from coursestream.courses.models import Lesson, VideoReference


def _lesson(is_free: bool = False, video: VideoReference | None = None) -> Lesson:
    return Lesson(
        id=uuid4(),
        module_id=uuid4(),
        title="Dosage",
        order_index=0,
        is_free=is_free,
        video=video,
    )


class TestCanAccess:
    """Tests for can_access."""

    @pytest.mark.parametrize(
        ("is_free", "is_enrolled", "expected"),
        [
            (False, False, False),
            (True, False, True),
            (False, True, True),
            (True, True, True),
        ],
    )
    def test_truth_table(self, is_free: bool, is_enrolled: bool, expected: bool) -> None:
        assert can_access(_lesson(is_free=is_free), is_enrolled) is expected

    def test_matches_rule_for_random_lessons(self) -> None:
        """Access is granted exactly when enrolled or the lesson is free."""
        rng = random.Random(1234)
        for _ in range(200):
            is_free = rng.random() < 0.5
            is_enrolled = rng.random() < 0.5
            assert can_access(_lesson(is_free=is_free), is_enrolled) == (
                is_enrolled or is_free
            )


class TestEvaluateLesson:
    """Tests for combined access and playability."""

    def test_locked_lesson_reports_enrollment_required(self) -> None:
        lesson = _lesson(video=VideoReference("youtube", "dQw4w9WgXcQ"))

        availability = evaluate_lesson(lesson, is_enrolled=False)

        assert not availability.can_access
        assert availability.playable
        assert not availability.can_play
        assert availability.reason == "enrollment_required"

    def test_unresolvable_video_is_never_playable(self) -> None:
        """Enrollment does not make a broken video playable."""
        lesson = _lesson(video=VideoReference("youtube", "not a video"))

        availability = evaluate_lesson(lesson, is_enrolled=True)

        assert availability.can_access
        assert not availability.playable
        assert not availability.can_play
        assert availability.reason is not None

    def test_free_lesson_plays_without_enrollment(self) -> None:
        lesson = _lesson(
            is_free=True, video=VideoReference("upload", "https://cdn.example.com/a.mp4")
        )

        availability = evaluate_lesson(lesson, is_enrolled=False)

        assert availability.can_play
        assert availability.reason is None
