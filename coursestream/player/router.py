"""Course player API endpoint."""

from uuid import UUID

from fastapi import APIRouter, Query, Request

from coursestream.auth.dependencies import OptionalViewer
from coursestream.auth.session import InMemorySessionProvider
from coursestream.courses.catalog import CourseError
from coursestream.courses.dependencies import CourseCatalogDep, handle_course_error
from coursestream.enrollments.dependencies import EnrollmentServiceDep

from .schemas import PlayerOutlineResponse
from .session import CoursePlayer


router = APIRouter(prefix="/v1/courses", tags=["player"])


@router.get(
    "/{course_id}/player",
    response_model=PlayerOutlineResponse,
    summary="Course outline for the player",
)
async def get_player_outline(
    course_id: UUID,
    request: Request,
    catalog: CourseCatalogDep,
    enrollment_service: EnrollmentServiceDep,
    viewer: OptionalViewer,
    lesson_id: UUID | None = Query(default=None, description="Selected lesson"),
) -> PlayerOutlineResponse:
    """Lessons with per-viewer access, playability and completion.

    Anonymous visitors get the outline with only free previews unlocked.
    Without ``lesson_id`` the first lesson is selected.
    """
    try:
        course = await catalog.get_course(course_id)
    except CourseError as e:
        raise handle_course_error(e) from e

    player = await CoursePlayer.open(
        course=course,
        session=InMemorySessionProvider(viewer),
        enrollments=enrollment_service,
        repository=getattr(request.app.state, "progress_repository", None),
        settings=getattr(request.app.state, "settings", None),
        lesson_id=lesson_id,
    )
    try:
        return PlayerOutlineResponse.from_player(player)
    finally:
        player.close()
