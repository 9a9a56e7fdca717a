"""Pydantic schemas for progress tracking."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from .aggregator import CourseProgressView, ModuleProgress


class UpdatePositionRequest(BaseModel):
    """Playback position tick (debounced by the client)."""

    course_id: UUID = Field(..., description="Course UUID")
    lesson_id: UUID = Field(..., description="Lesson UUID")
    position_seconds: float = Field(
        ..., ge=0, description="Current video position in seconds"
    )


class PositionSavedResponse(BaseModel):
    lesson_id: UUID
    position_seconds: float
    saved_at: datetime


class MarkLessonCompleteRequest(BaseModel):
    """Manual completion (required for embedded videos and text lessons)."""

    course_id: UUID = Field(..., description="Course UUID")
    lesson_id: UUID = Field(..., description="Lesson UUID")
    position_seconds: float | None = Field(
        default=None, ge=0, description="Position at completion, if known"
    )


class ModuleProgressResponse(BaseModel):
    module_id: UUID
    title: str
    completed: int
    total: int
    percentage: int = Field(ge=0, le=100)

    @classmethod
    def from_entity(cls, entity: ModuleProgress) -> "ModuleProgressResponse":
        """Create response from entity."""
        return cls(
            module_id=entity.module_id,
            title=entity.title,
            completed=entity.completed,
            total=entity.total,
            percentage=entity.percentage,
        )


class CourseProgressResponse(BaseModel):
    """Course progress of the viewer."""

    course_id: UUID
    completed: int
    total: int
    percentage: int = Field(ge=0, le=100, description="0-100, rounded")
    is_complete: bool
    modules: list[ModuleProgressResponse] = []

    @classmethod
    def from_view(cls, view: CourseProgressView) -> "CourseProgressResponse":
        """Create response from an aggregated view."""
        return cls(
            course_id=view.course_id,
            completed=view.completed,
            total=view.total,
            percentage=view.percentage,
            is_complete=view.is_complete,
            modules=[ModuleProgressResponse.from_entity(m) for m in view.modules],
        )
