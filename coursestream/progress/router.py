"""Progress tracking API endpoints.

Provides routes for:
- Playback position updates (debounced by the client)
- Manual lesson completion
- Course progress queries
"""

from uuid import UUID

from fastapi import APIRouter

from coursestream.auth.dependencies import CurrentViewer
from coursestream.courses.catalog import CourseError
from coursestream.courses.dependencies import handle_course_error
from coursestream.video.dependencies import handle_playback_error
from coursestream.video.exceptions import PlaybackError

from .dependencies import ProgressServiceDep, handle_progress_error
from .exceptions import ProgressError
from .schemas import (
    CourseProgressResponse,
    MarkLessonCompleteRequest,
    PositionSavedResponse,
    UpdatePositionRequest,
)


router = APIRouter(prefix="/v1/progress", tags=["progress"])


@router.put(
    "/position",
    response_model=PositionSavedResponse,
    summary="Save playback position",
)
async def update_position(
    data: UpdatePositionRequest,
    progress_service: ProgressServiceDep,
    viewer: CurrentViewer,
) -> PositionSavedResponse:
    """Persist the viewer's position in a lesson. Requires access to the lesson."""
    try:
        saved_at = await progress_service.record_position(
            user_id=viewer.id,
            course_id=data.course_id,
            lesson_id=data.lesson_id,
            position_seconds=data.position_seconds,
        )
    except CourseError as e:
        raise handle_course_error(e) from e
    except PlaybackError as e:
        raise handle_playback_error(e) from e
    except ProgressError as e:
        raise handle_progress_error(e) from e

    return PositionSavedResponse(
        lesson_id=data.lesson_id,
        position_seconds=data.position_seconds,
        saved_at=saved_at,
    )


@router.post(
    "/lesson/complete",
    response_model=CourseProgressResponse,
    summary="Mark lesson as complete",
)
async def mark_lesson_complete(
    data: MarkLessonCompleteRequest,
    progress_service: ProgressServiceDep,
    viewer: CurrentViewer,
) -> CourseProgressResponse:
    """Mark a lesson completed. Idempotent; returns the course progress."""
    try:
        view = await progress_service.complete_lesson(
            user_id=viewer.id,
            course_id=data.course_id,
            lesson_id=data.lesson_id,
            position_seconds=data.position_seconds,
        )
    except CourseError as e:
        raise handle_course_error(e) from e
    except PlaybackError as e:
        raise handle_playback_error(e) from e
    except ProgressError as e:
        raise handle_progress_error(e) from e

    return CourseProgressResponse.from_view(view)


@router.get(
    "/courses/{course_id}",
    response_model=CourseProgressResponse,
    summary="Get course progress",
)
async def get_course_progress(
    course_id: UUID,
    progress_service: ProgressServiceDep,
    viewer: CurrentViewer,
) -> CourseProgressResponse:
    try:
        view = await progress_service.course_progress(viewer.id, course_id)
    except CourseError as e:
        raise handle_course_error(e) from e
    return CourseProgressResponse.from_view(view)
