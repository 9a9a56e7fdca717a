"""FastAPI dependencies for progress tracking."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .exceptions import ProgressError
from .service import ProgressService


async def get_progress_service(request: Request) -> ProgressService:
    """Get progress service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "progress_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progress service not available",
        )
    return app_state.progress_service


# Type alias for dependency injection
ProgressServiceDep = Annotated[ProgressService, Depends(get_progress_service)]


def handle_progress_error(error: ProgressError) -> HTTPException:
    """Convert progress errors to HTTP exceptions."""
    status_map = {
        "persistence_transient": status.HTTP_503_SERVICE_UNAVAILABLE,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
