"""Course structure models.

Courses are authored elsewhere; this package only reads them. A course is an
ordered list of modules, each an ordered list of lessons. Structures are
immutable once loaded so playback never sees them change underneath it.

Cassandra table definitions for:
- Courses: title and catalogue info
- Course modules: partitioned by course
- Course lessons: partitioned by module
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from uuid import UUID


class VideoProvider(str, Enum):
    """Playback backend kinds."""

    EMBEDDED_A = "embedded-a"  # YouTube-style iframe embed
    EMBEDDED_B = "embedded-b"  # Vimeo-style iframe embed
    DIRECT_MEDIA = "direct-media"  # Uploaded file in a controllable media element

    @classmethod
    def from_tag(cls, tag: str | None) -> "VideoProvider | None":
        """Map a stored ``video_type`` tag (current or legacy) to a provider."""
        if not tag:
            return None
        tag = tag.strip().lower()
        legacy = {
            "youtube": cls.EMBEDDED_A,
            "vimeo": cls.EMBEDDED_B,
            "upload": cls.DIRECT_MEDIA,
        }
        if tag in legacy:
            return legacy[tag]
        try:
            return cls(tag)
        except ValueError:
            return None

    @property
    def is_embedded(self) -> bool:
        return self is not VideoProvider.DIRECT_MEDIA


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    title TEXT,
    description TEXT,
    category TEXT
)
"""

# Modules of a course, clustered by module id; order_index drives display order
COURSE_MODULES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_modules (
    course_id UUID,
    id UUID,
    title TEXT,
    order_index INT,
    PRIMARY KEY ((course_id), id)
)
"""

COURSE_LESSONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_lessons (
    module_id UUID,
    id UUID,
    title TEXT,
    description TEXT,
    content TEXT,
    duration_minutes INT,
    is_free BOOLEAN,
    order_index INT,
    video_type TEXT,
    video_url TEXT,
    PRIMARY KEY ((module_id), id)
)
"""

COURSES_TABLES_CQL = [
    COURSES_TABLE_CQL,
    COURSE_MODULES_TABLE_CQL,
    COURSE_LESSONS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass(frozen=True)
class VideoReference:
    """Provider tag plus source locator (URL or provider id) of a lesson video."""

    provider_tag: str
    locator: str

    @property
    def provider(self) -> VideoProvider | None:
        return VideoProvider.from_tag(self.provider_tag)


@dataclass(frozen=True)
class Lesson:
    """A single playable unit inside a module.

    Attributes:
        id: Lesson UUID
        module_id: Owning module UUID
        title: Display title
        order_index: Position within the module (gaps allowed)
        is_free: Free preview, playable without enrollment
        description: Optional summary
        content: Optional HTML/text body
        duration_minutes: Optional running time shown in the sidebar
        video: Optional video reference
    """

    id: UUID
    module_id: UUID
    title: str
    order_index: int
    is_free: bool = False
    description: str | None = None
    content: str | None = None
    duration_minutes: int | None = None
    video: VideoReference | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Lesson":
        """Create a Lesson from a ``course_lessons`` record."""
        video = None
        if row.get("video_url") is not None:
            video = VideoReference(
                provider_tag=row.get("video_type") or "",
                locator=row["video_url"],
            )
        return cls(
            id=row["id"],
            module_id=row["module_id"],
            title=row.get("title") or "",
            order_index=row.get("order_index") or 0,
            is_free=bool(row.get("is_free")),
            description=row.get("description"),
            content=row.get("content"),
            duration_minutes=row.get("duration_minutes"),
            video=video,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a ``course_lessons`` record."""
        return {
            "module_id": self.module_id,
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "content": self.content,
            "duration_minutes": self.duration_minutes,
            "is_free": self.is_free,
            "order_index": self.order_index,
            "video_type": self.video.provider_tag if self.video else None,
            "video_url": self.video.locator if self.video else None,
        }


@dataclass(frozen=True)
class Module:
    """Ordered group of lessons within a course."""

    id: UUID
    course_id: UUID
    title: str
    order_index: int
    lessons: tuple[Lesson, ...] = field(default_factory=tuple)

    @classmethod
    def from_row(cls, row: dict[str, Any], lessons: tuple[Lesson, ...] = ()) -> "Module":
        """Create a Module from a ``course_modules`` record."""
        return cls(
            id=row["id"],
            course_id=row["course_id"],
            title=row.get("title") or "",
            order_index=row.get("order_index") or 0,
            lessons=tuple(lessons),
        )


@dataclass(frozen=True)
class Course:
    """Course with its full module/lesson tree."""

    id: UUID
    title: str
    modules: tuple[Module, ...] = field(default_factory=tuple)
    description: str | None = None
    category: str | None = None

    @property
    def lesson_ids(self) -> frozenset[UUID]:
        """All lesson ids across every module."""
        return frozenset(lesson.id for module in self.modules for lesson in module.lessons)

    @property
    def total_lessons(self) -> int:
        return sum(len(module.lessons) for module in self.modules)

    @property
    def total_duration_minutes(self) -> int:
        return sum(
            lesson.duration_minutes or 0
            for module in self.modules
            for lesson in module.lessons
        )

    def find_lesson(self, lesson_id: UUID) -> Lesson | None:
        for module in self.modules:
            for lesson in module.lessons:
                if lesson.id == lesson_id:
                    return lesson
        return None
