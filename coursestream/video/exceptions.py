"""Playback errors."""


class PlaybackError(Exception):
    """Base playback error."""

    def __init__(self, message: str, code: str = "playback_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class UnresolvableSourceError(PlaybackError):
    """Video locator is missing or malformed; the lesson can never play."""

    def __init__(self, message: str = "Video source could not be resolved"):
        super().__init__(message, "unresolvable_source")


class LessonLockedError(PlaybackError):
    """Viewer may not play this lesson (not enrolled, not a free preview)."""

    def __init__(self, message: str = "Enroll in this course to watch the lesson"):
        super().__init__(message, "lesson_locked")
