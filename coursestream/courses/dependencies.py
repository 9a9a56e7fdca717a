"""FastAPI dependencies for course structures."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .catalog import CourseCatalog, CourseError


async def get_course_catalog(request: Request) -> CourseCatalog:
    """Get course catalog from app state."""
    app_state = request.app.state
    if not getattr(app_state, "course_catalog", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Course catalog not available",
        )
    return app_state.course_catalog


# Type alias for dependency injection
CourseCatalogDep = Annotated[CourseCatalog, Depends(get_course_catalog)]


def handle_course_error(error: CourseError) -> HTTPException:
    """Convert course errors to HTTP exceptions."""
    status_map = {
        "course_not_found": status.HTTP_404_NOT_FOUND,
        "lesson_not_found": status.HTTP_404_NOT_FOUND,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
