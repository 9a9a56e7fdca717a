"""FastAPI dependencies for viewer identity.

Provides dependency injection for:
- Current viewer extraction from the bearer JWT
- Optional viewer for endpoints open to anonymous visitors (free previews)
- Admin-only access
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from coursestream.core.context import set_user_id

from .security import decode_access_token
from .session import Viewer


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


def _viewer_from_token(token: str) -> Viewer:
    payload = decode_access_token(token)
    try:
        viewer_id = UUID(str(payload["sub"]))
    except ValueError as e:
        raise JWTError("Subject is not a valid id") from e

    set_user_id(viewer_id)
    return Viewer(id=viewer_id, role=payload.get("role") or "student")


async def get_current_viewer(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> Viewer:
    """Get the authenticated viewer.

    Raises:
        HTTPException(401): If token is missing, invalid, or expired
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token not provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return _viewer_from_token(token)
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


async def get_optional_viewer(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> Viewer | None:
    """Get the viewer if authenticated, None otherwise."""
    if not token:
        return None

    try:
        return _viewer_from_token(token)
    except JWTError:
        return None


async def require_admin(
    viewer: Annotated[Viewer, Depends(get_current_viewer)],
) -> Viewer:
    """Require the ``admin`` role.

    Raises:
        HTTPException(403): Viewer is not an administrator
    """
    if not viewer.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator role required",
        )
    return viewer


# Type aliases for dependency injection
CurrentViewer = Annotated[Viewer, Depends(get_current_viewer)]
OptionalViewer = Annotated[Viewer | None, Depends(get_optional_viewer)]
AdminViewer = Annotated[Viewer, Depends(require_admin)]
