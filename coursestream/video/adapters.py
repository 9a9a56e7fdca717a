"""Playback adapters.

Every video source is driven through the same ``PlaybackAdapter`` interface.
Embedded providers are opaque iframes: they can be shown, but they never report
position or completion, so lessons using them are completed manually. The
direct-media adapter wraps a controllable media element and turns its native
time updates into progress and completion events.
"""

import math
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from coursestream.core.logging import get_logger
from coursestream.courses.models import Lesson

from .exceptions import UnresolvableSourceError
from .sources import DirectMedia, EmbeddedA, EmbeddedB, VideoSource, resolve_source


logger = get_logger(__name__)

# A direct-media lesson counts as watched once less than this much remains.
COMPLETION_WINDOW_SECONDS = 2.0
SKIP_SECONDS = 10.0

ProgressListener = Callable[[float], None]
CompleteListener = Callable[[], None]
Unsubscribe = Callable[[], None]


class MediaElement(Protocol):
    """Host media element the direct-media adapter forwards commands to."""

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def set_current_time(self, seconds: float) -> None: ...

    def set_volume(self, level: float) -> None: ...

    def set_muted(self, muted: bool) -> None: ...

    def request_fullscreen(self) -> None: ...


class PlaybackAdapter(ABC):
    """Uniform control surface over a video source."""

    def __init__(self, source: VideoSource):
        self.source = source
        self._progress_listeners: list[ProgressListener] = []
        self._complete_listeners: list[CompleteListener] = []
        self._detached = False

    @property
    def detached(self) -> bool:
        return self._detached

    @property
    def emits_events(self) -> bool:
        """Whether the adapter reports progress and completion on its own."""
        return False

    def on_progress(self, listener: ProgressListener) -> Unsubscribe:
        """Register a position listener; returns a callable that removes it."""
        self._progress_listeners.append(listener)
        return lambda: self._remove(self._progress_listeners, listener)

    def on_complete(self, listener: CompleteListener) -> Unsubscribe:
        """Register a completion listener; returns a callable that removes it."""
        self._complete_listeners.append(listener)
        return lambda: self._remove(self._complete_listeners, listener)

    @staticmethod
    def _remove(listeners: list, listener: Callable) -> None:
        if listener in listeners:
            listeners.remove(listener)

    def _emit_progress(self, position: float) -> None:
        if self._detached:
            return
        for listener in list(self._progress_listeners):
            listener(position)

    def _emit_complete(self) -> None:
        if self._detached:
            return
        for listener in list(self._complete_listeners):
            listener()

    def detach(self) -> None:
        """Stop all further events. Safe to call more than once."""
        if self._detached:
            return
        self._detached = True
        self._progress_listeners.clear()
        self._complete_listeners.clear()
        logger.debug("playback_adapter_detached", provider=self.source.provider.value)

    @abstractmethod
    def start(self) -> None: ...

    @abstractmethod
    def pause(self) -> None: ...

    @abstractmethod
    def seek(self, position: float) -> None: ...

    @abstractmethod
    def set_volume(self, level: float) -> None: ...

    @abstractmethod
    def mute(self) -> None: ...

    @abstractmethod
    def unmute(self) -> None: ...

    @abstractmethod
    def request_fullscreen(self) -> None: ...

    def skip(self, delta: float = SKIP_SECONDS) -> None:
        """Jump ``delta`` seconds forward (negative for backward)."""


class EmbeddedPlayback(PlaybackAdapter):
    """Iframe embed. Only visibility is modelled; other commands are ignored."""

    source: EmbeddedA | EmbeddedB

    def __init__(self, source: EmbeddedA | EmbeddedB):
        super().__init__(source)
        self.visible = False

    @property
    def embed_url(self) -> str:
        return self.source.embed_url

    def start(self) -> None:
        self.visible = True
        logger.debug("embed_shown", provider=self.source.provider.value)

    def _ignored(self, command: str) -> None:
        logger.debug(
            "embedded_command_ignored",
            command=command,
            provider=self.source.provider.value,
        )

    def pause(self) -> None:
        self._ignored("pause")

    def seek(self, position: float) -> None:
        self._ignored("seek")

    def set_volume(self, level: float) -> None:
        self._ignored("set_volume")

    def mute(self) -> None:
        self._ignored("mute")

    def unmute(self) -> None:
        self._ignored("unmute")

    def request_fullscreen(self) -> None:
        self._ignored("request_fullscreen")

    def skip(self, delta: float = SKIP_SECONDS) -> None:
        self._ignored("skip")


class DirectMediaPlayback(PlaybackAdapter):
    """Adapter over a directly controlled media element.

    The host calls ``handle_loaded_metadata`` once the element knows the
    duration and ``handle_time_update`` on every native time-update tick.
    Completion is emitted at most once per adapter; seeking back does not
    re-arm it.
    """

    source: DirectMedia

    def __init__(
        self,
        source: DirectMedia,
        initial_position: float = 0.0,
        element: MediaElement | None = None,
    ):
        super().__init__(source)
        self.element = element
        self.initial_position = max(0.0, initial_position)
        self.duration: float | None = None
        self.position = 0.0
        self.volume = 1.0
        self.muted = False
        self.playing = False
        self.fullscreen_requested = False
        self._ready = False
        self._completed = False
        self._volume_before_mute = 1.0

    @property
    def emits_events(self) -> bool:
        return True

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def completed(self) -> bool:
        return self._completed

    def handle_loaded_metadata(self, duration: float) -> None:
        """First ready state: record duration and jump to the resume point.

        Media elements report NaN (or 0, or infinity for live streams) until
        the length is known; such values leave the duration unknown, which
        also keeps completion from firing.
        """
        if math.isfinite(duration) and duration > 0:
            self.duration = float(duration)
        if self._ready:
            return
        self._ready = True
        if self.initial_position > 0:
            self.seek(self.initial_position)
        logger.debug(
            "media_ready",
            duration=self.duration,
            initial_position=self.position,
        )

    def handle_time_update(self, current_time: float) -> None:
        if self._detached or not math.isfinite(current_time):
            return
        self.position = max(0.0, current_time)
        self._emit_progress(self.position)
        if (
            not self._completed
            and self.duration is not None
            and self.duration - self.position < COMPLETION_WINDOW_SECONDS
        ):
            self._completed = True
            logger.debug("media_completed", position=self.position)
            self._emit_complete()

    def start(self) -> None:
        self.playing = True
        if self.element is not None:
            self.element.play()

    def pause(self) -> None:
        self.playing = False
        if self.element is not None:
            self.element.pause()

    def seek(self, position: float) -> None:
        """Move to ``position``, clamped to ``[0, duration]``."""
        target = max(0.0, position)
        if self.duration is not None:
            target = min(target, self.duration)
        if not math.isfinite(target):
            return
        self.position = target
        if self.element is not None:
            self.element.set_current_time(target)

    def skip(self, delta: float = SKIP_SECONDS) -> None:
        self.seek(self.position + delta)

    def set_volume(self, level: float) -> None:
        self.volume = min(1.0, max(0.0, level))
        if self.volume > 0:
            self._volume_before_mute = self.volume
        self.muted = self.volume == 0
        if self.element is not None:
            self.element.set_volume(self.volume)
            self.element.set_muted(self.muted)

    def mute(self) -> None:
        self.muted = True
        if self.element is not None:
            self.element.set_muted(True)

    def unmute(self) -> None:
        self.muted = False
        if self.volume == 0:
            self.volume = self._volume_before_mute
            if self.element is not None:
                self.element.set_volume(self.volume)
        if self.element is not None:
            self.element.set_muted(False)

    def request_fullscreen(self) -> None:
        self.fullscreen_requested = True
        if self.element is not None:
            self.element.request_fullscreen()

    def detach(self) -> None:
        super().detach()
        self.playing = False
        self.element = None


@dataclass(frozen=True)
class PlayabilityReport:
    """Whether a lesson's video can be played, and why not."""

    playable: bool
    source: VideoSource | None = None
    reason: str | None = None

    @property
    def has_video(self) -> bool:
        return self.source is not None


def check_playable(lesson: Lesson) -> PlayabilityReport:
    """Resolve a lesson's video without raising.

    A lesson without any video reference is a text lesson and counts as
    playable (it is completed manually).
    """
    if lesson.video is None:
        return PlayabilityReport(playable=True)
    try:
        source = resolve_source(lesson.video)
    except UnresolvableSourceError as e:
        return PlayabilityReport(playable=False, reason=e.message)
    return PlayabilityReport(playable=True, source=source)


def build_adapter(
    lesson: Lesson,
    initial_position: float = 0.0,
    element: MediaElement | None = None,
) -> tuple[PlaybackAdapter | None, PlayabilityReport]:
    """Build the adapter for ``lesson``.

    Returns ``(None, report)`` for text lessons and for unresolvable sources;
    ``report.playable`` distinguishes the two.
    """
    report = check_playable(lesson)
    if not report.playable or report.source is None:
        if not report.playable:
            logger.warning(
                "video_source_unresolvable",
                lesson_id=str(lesson.id),
                reason=report.reason,
            )
        return None, report

    source = report.source
    if isinstance(source, DirectMedia):
        adapter: PlaybackAdapter = DirectMediaPlayback(
            source, initial_position=initial_position, element=element
        )
    else:
        adapter = EmbeddedPlayback(source)
    return adapter, report
