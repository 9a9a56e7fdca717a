"""HTTP mapping of playback errors."""

from fastapi import HTTPException, status

from .exceptions import PlaybackError


def handle_playback_error(error: PlaybackError) -> HTTPException:
    """Convert playback errors to HTTP exceptions."""
    status_map = {
        "lesson_locked": status.HTTP_403_FORBIDDEN,
        "unresolvable_source": status.HTTP_422_UNPROCESSABLE_ENTITY,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
