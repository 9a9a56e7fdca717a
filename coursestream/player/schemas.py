"""Pydantic schemas for the course player outline."""

from uuid import UUID

from pydantic import BaseModel, Field

from coursestream.progress.schemas import CourseProgressResponse
from coursestream.video.adapters import check_playable
from coursestream.video.sources import DirectMedia

from .session import CoursePlayer, LessonEntry


class VideoInfo(BaseModel):
    """Resolved video of a playable lesson the viewer may open."""

    provider: str
    embed_url: str | None = None
    media_url: str | None = None


class LessonEntryResponse(BaseModel):
    """Sidebar lesson row."""

    id: UUID
    module_id: UUID
    title: str
    order_index: int
    duration_minutes: int | None = None
    is_free: bool
    can_access: bool
    playable: bool
    completed: bool
    is_current: bool
    reason: str | None = None
    video: VideoInfo | None = None

    @classmethod
    def from_entry(cls, entry: LessonEntry) -> "LessonEntryResponse":
        """Create response from a sidebar entry.

        Video locators are only revealed for lessons the viewer can open.
        """
        video = None
        if entry.availability.can_play:
            source = check_playable(entry.lesson).source
            if isinstance(source, DirectMedia):
                video = VideoInfo(provider=source.provider.value, media_url=source.url)
            elif source is not None:
                video = VideoInfo(provider=source.provider.value, embed_url=source.embed_url)
        return cls(
            id=entry.lesson.id,
            module_id=entry.module_id,
            title=entry.lesson.title,
            order_index=entry.lesson.order_index,
            duration_minutes=entry.lesson.duration_minutes,
            is_free=entry.is_free,
            can_access=entry.availability.can_access,
            playable=entry.availability.playable,
            completed=entry.completed,
            is_current=entry.is_current,
            reason=entry.availability.reason,
            video=video,
        )


class ModuleOutlineResponse(BaseModel):
    id: UUID
    title: str
    order_index: int
    lessons: list[LessonEntryResponse] = []


class PlayerOutlineResponse(BaseModel):
    """Course outline as the viewer sees it."""

    course_id: UUID
    title: str
    description: str | None = None
    is_enrolled: bool
    current_lesson_id: UUID | None = None
    next_lesson_id: UUID | None = None
    total_duration_minutes: int = Field(ge=0)
    modules: list[ModuleOutlineResponse]
    progress: CourseProgressResponse

    @classmethod
    def from_player(cls, player: CoursePlayer) -> "PlayerOutlineResponse":
        """Snapshot a player session."""
        entries = player.lessons()
        by_module: dict[UUID, list[LessonEntryResponse]] = {}
        for entry in entries:
            by_module.setdefault(entry.module_id, []).append(
                LessonEntryResponse.from_entry(entry)
            )
        modules = [
            ModuleOutlineResponse(
                id=module.id,
                title=module.title,
                order_index=module.order_index,
                lessons=by_module.get(module.id, []),
            )
            for module in sorted(player.course.modules, key=lambda m: m.order_index)
        ]
        next_lesson = player.next_lesson()
        return cls(
            course_id=player.course.id,
            title=player.course.title,
            description=player.course.description,
            is_enrolled=player.is_enrolled,
            current_lesson_id=player.current_lesson.id if player.current_lesson else None,
            next_lesson_id=next_lesson.id if next_lesson else None,
            total_duration_minutes=player.course.total_duration_minutes,
            modules=modules,
            progress=CourseProgressResponse.from_view(player.progress),
        )
