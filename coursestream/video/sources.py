"""Video source resolution.

Turns a lesson's ``VideoReference`` into one of three tagged variants:

- ``EmbeddedA``: YouTube-style iframe embed (opaque, no progress events)
- ``EmbeddedB``: Vimeo-style iframe embed (opaque, no progress events)
- ``DirectMedia``: uploaded file played through a controllable media element
"""

import re
from dataclasses import dataclass
from urllib.parse import urlparse

from coursestream.courses.models import VideoProvider, VideoReference

from .exceptions import UnresolvableSourceError


# Regex patterns for locator parsing
YOUTUBE_URL_PATTERN = re.compile(
    r"(?:youtube(?:-nocookie)?\.com/(?:[^/]+/.+/|(?:v|e(?:mbed)?|shorts)/|.*[?&]v=)"
    r"|youtu\.be/)([^\"&?/\s]{11})",
    re.IGNORECASE,
)
YOUTUBE_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{11}$")
VIMEO_URL_PATTERN = re.compile(r"vimeo\.com/(?:video/)?(\d+)", re.IGNORECASE)
VIMEO_ID_PATTERN = re.compile(r"^\d+$")


@dataclass(frozen=True)
class EmbeddedA:
    """YouTube-style embed."""

    video_id: str
    provider = VideoProvider.EMBEDDED_A

    @property
    def embed_url(self) -> str:
        return (
            f"https://www.youtube.com/embed/{self.video_id}"
            "?autoplay=0&rel=0&modestbranding=1"
        )


@dataclass(frozen=True)
class EmbeddedB:
    """Vimeo-style embed."""

    video_id: str
    provider = VideoProvider.EMBEDDED_B

    @property
    def embed_url(self) -> str:
        return f"https://player.vimeo.com/video/{self.video_id}?autoplay=0"


@dataclass(frozen=True)
class DirectMedia:
    """Directly controlled media file."""

    url: str
    provider = VideoProvider.DIRECT_MEDIA


VideoSource = EmbeddedA | EmbeddedB | DirectMedia


def _youtube_id(locator: str) -> str | None:
    if YOUTUBE_ID_PATTERN.match(locator):
        return locator
    match = YOUTUBE_URL_PATTERN.search(locator)
    return match.group(1) if match else None


def _vimeo_id(locator: str) -> str | None:
    if VIMEO_ID_PATTERN.match(locator):
        return locator
    match = VIMEO_URL_PATTERN.search(locator)
    return match.group(1) if match else None


def resolve_source(reference: VideoReference | None) -> VideoSource:
    """Resolve a lesson video reference into a concrete source.

    Raises:
        UnresolvableSourceError: Missing reference, unknown provider tag, or a
            locator that doesn't identify a video for its provider.
    """
    if reference is None:
        raise UnresolvableSourceError("Lesson has no video")

    locator = (reference.locator or "").strip()
    provider = reference.provider
    if provider is None:
        raise UnresolvableSourceError(
            f"Unknown video provider: {reference.provider_tag!r}"
        )
    if not locator:
        raise UnresolvableSourceError(f"Missing locator for {provider.value} video")

    if provider is VideoProvider.EMBEDDED_A:
        video_id = _youtube_id(locator)
        if video_id is None:
            raise UnresolvableSourceError(f"Cannot parse YouTube locator: {locator}")
        return EmbeddedA(video_id=video_id)

    if provider is VideoProvider.EMBEDDED_B:
        video_id = _vimeo_id(locator)
        if video_id is None:
            raise UnresolvableSourceError(f"Cannot parse Vimeo locator: {locator}")
        return EmbeddedB(video_id=video_id)

    parsed = urlparse(locator)
    if parsed.scheme not in ("http", "https", "") or not (parsed.netloc or parsed.path):
        raise UnresolvableSourceError(f"Cannot parse media URL: {locator}")
    return DirectMedia(url=locator)
