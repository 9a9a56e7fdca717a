"""Video sources and playback adapters."""

from .adapters import (
    COMPLETION_WINDOW_SECONDS,
    DirectMediaPlayback,
    EmbeddedPlayback,
    MediaElement,
    PlayabilityReport,
    PlaybackAdapter,
    build_adapter,
    check_playable,
)
from .exceptions import LessonLockedError, PlaybackError, UnresolvableSourceError
from .sources import DirectMedia, EmbeddedA, EmbeddedB, VideoSource, resolve_source


__all__ = [
    "COMPLETION_WINDOW_SECONDS",
    "DirectMedia",
    "DirectMediaPlayback",
    "EmbeddedA",
    "EmbeddedB",
    "EmbeddedPlayback",
    "LessonLockedError",
    "MediaElement",
    "PlayabilityReport",
    "PlaybackAdapter",
    "PlaybackError",
    "UnresolvableSourceError",
    "VideoSource",
    "build_adapter",
    "check_playable",
    "resolve_source",
]
