"""FastAPI dependencies for enrollments."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import EnrollmentError, EnrollmentService


async def get_enrollment_service(request: Request) -> EnrollmentService:
    """Get enrollment service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "enrollment_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Enrollment service not available",
        )
    return app_state.enrollment_service


# Type alias for dependency injection
EnrollmentServiceDep = Annotated[EnrollmentService, Depends(get_enrollment_service)]


def handle_enrollment_error(error: EnrollmentError) -> HTTPException:
    """Convert enrollment errors to HTTP exceptions."""
    status_map = {
        "already_enrolled": status.HTTP_409_CONFLICT,
        "enrollment_not_found": status.HTTP_404_NOT_FOUND,
        "enrollment_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
