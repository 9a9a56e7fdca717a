"""Tests for video source resolution."""

import pytest

from coursestream.courses.models import VideoProvider, VideoReference
from coursestream.video import UnresolvableSourceError
from coursestream.video.sources import DirectMedia, EmbeddedA, EmbeddedB, resolve_source


class TestEmbeddedA:
    """Tests for YouTube-style locators."""

    @pytest.mark.parametrize(
        "locator",
        [
            "dQw4w9WgXcQ",
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            "https://youtu.be/dQw4w9WgXcQ",
            "https://www.youtube.com/embed/dQw4w9WgXcQ",
            "https://www.youtube.com/watch?feature=share&v=dQw4w9WgXcQ",
        ],
    )
    def test_extracts_video_id(self, locator: str) -> None:
        source = resolve_source(VideoReference("embedded-a", locator))
        assert source == EmbeddedA(video_id="dQw4w9WgXcQ")

    def test_legacy_tag_is_accepted(self) -> None:
        source = resolve_source(VideoReference("youtube", "dQw4w9WgXcQ"))
        assert isinstance(source, EmbeddedA)
        assert source.provider is VideoProvider.EMBEDDED_A

    def test_embed_url(self) -> None:
        source = EmbeddedA(video_id="dQw4w9WgXcQ")
        assert source.embed_url.startswith("https://www.youtube.com/embed/dQw4w9WgXcQ?")

    def test_unparseable_locator(self) -> None:
        with pytest.raises(UnresolvableSourceError) as exc_info:
            resolve_source(VideoReference("youtube", "https://example.com/video"))
        assert exc_info.value.code == "unresolvable_source"


class TestEmbeddedB:
    """Tests for Vimeo-style locators."""

    @pytest.mark.parametrize(
        "locator",
        ["76979871", "https://vimeo.com/76979871", "https://player.vimeo.com/video/76979871"],
    )
    def test_extracts_video_id(self, locator: str) -> None:
        source = resolve_source(VideoReference("vimeo", locator))
        assert source == EmbeddedB(video_id="76979871")

    def test_non_numeric_id_is_rejected(self) -> None:
        with pytest.raises(UnresolvableSourceError):
            resolve_source(VideoReference("embedded-b", "abc"))


class TestDirectMedia:
    """Tests for uploaded media."""

    def test_https_url(self) -> None:
        url = "https://cdn.example.com/lessons/intro.mp4"
        assert resolve_source(VideoReference("upload", url)) == DirectMedia(url=url)

    def test_unsupported_scheme(self) -> None:
        with pytest.raises(UnresolvableSourceError):
            resolve_source(VideoReference("direct-media", "ftp://cdn.example.com/a.mp4"))


class TestUnresolvable:
    """Tests for references that can never play."""

    def test_missing_reference(self) -> None:
        with pytest.raises(UnresolvableSourceError):
            resolve_source(None)

    def test_unknown_provider(self) -> None:
        with pytest.raises(UnresolvableSourceError) as exc_info:
            resolve_source(VideoReference("dailymotion", "x7tgad0"))
        assert "dailymotion" in exc_info.value.message

    @pytest.mark.parametrize("locator", ["", "   "])
    def test_blank_locator(self, locator: str) -> None:
        with pytest.raises(UnresolvableSourceError):
            resolve_source(VideoReference("upload", locator))
