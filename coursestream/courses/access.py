"""Lesson access policy.

A lesson can be opened when the viewer holds a paid enrollment in the course
or the lesson is a free preview. Playability is a separate question: a lesson
whose video cannot be resolved stays listed but is never playable, whatever
the viewer's rights. Nothing here is cached; callers re-evaluate on every
listing so enrollment changes show up immediately.
"""

from dataclasses import dataclass

from coursestream.video.adapters import check_playable

from .models import Lesson


def can_access(lesson: Lesson, is_enrolled: bool) -> bool:
    return is_enrolled or lesson.is_free


@dataclass(frozen=True)
class LessonAvailability:
    """Access and playability of one lesson for one viewer."""

    can_access: bool
    playable: bool
    reason: str | None = None

    @property
    def can_play(self) -> bool:
        return self.can_access and self.playable


def evaluate_lesson(lesson: Lesson, is_enrolled: bool) -> LessonAvailability:
    """Combine the access decision with whether the video resolves."""
    allowed = can_access(lesson, is_enrolled)
    report = check_playable(lesson)
    reason = None
    if not allowed:
        reason = "enrollment_required"
    elif not report.playable:
        reason = report.reason
    return LessonAvailability(can_access=allowed, playable=report.playable, reason=reason)
