"""Request and playback context using contextvars.

Every HTTP request gets a request id; the viewer id and, while a lesson is
playing, the course and lesson ids are attached as well. Log processors read
these values so call sites don't have to pass them around.
"""

from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


request_id_var: ContextVar[str] = ContextVar("request_id", default="")
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)
course_id_var: ContextVar[str | None] = ContextVar("course_id", default=None)
lesson_id_var: ContextVar[str | None] = ContextVar("lesson_id", default=None)

_VARS: dict[str, ContextVar] = {
    "request_id": request_id_var,
    "user_id": user_id_var,
    "trace_id": trace_id_var,
    "course_id": course_id_var,
    "lesson_id": lesson_id_var,
}


def generate_request_id() -> str:
    """Generate a new unique request ID."""
    return str(uuid4())


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context.

    Args:
        request_id: Optional request ID. If not provided, generates a new one.

    Returns:
        The request ID that was set.
    """
    rid = request_id or generate_request_id()
    request_id_var.set(rid)
    return rid


def get_user_id() -> str | None:
    """Get the current viewer ID."""
    return user_id_var.get()


def set_user_id(user_id: str | UUID | None) -> None:
    """Set the viewer ID for the current context."""
    user_id_var.set(str(user_id) if user_id is not None else None)


def set_trace_id(trace_id: str | None) -> None:
    """Set the distributed trace ID for the current context."""
    trace_id_var.set(trace_id)


def get_context() -> dict[str, Any]:
    """Get all non-empty context variables as a dictionary."""
    context: dict[str, Any] = {}
    for name, var in _VARS.items():
        value = var.get()
        if value:
            context[name] = value
    return context


def clear_context() -> None:
    """Clear all context variables.

    Called at the end of each request so values don't leak between requests.
    """
    request_id_var.set("")
    user_id_var.set(None)
    trace_id_var.set(None)
    course_id_var.set(None)
    lesson_id_var.set(None)


class PlaybackContext:
    """Context manager binding viewer/course/lesson ids for a block of work.

    Usage:
        with PlaybackContext(user_id=viewer, course_id=course, lesson_id=lesson):
            logger.info("lesson_started")  # includes all three ids
    """

    def __init__(
        self,
        user_id: str | UUID | None = None,
        course_id: str | UUID | None = None,
        lesson_id: str | UUID | None = None,
    ) -> None:
        self._values = {
            "user_id": user_id,
            "course_id": course_id,
            "lesson_id": lesson_id,
        }
        self._tokens: dict[str, Any] = {}

    def __enter__(self) -> "PlaybackContext":
        for name, value in self._values.items():
            if value is not None:
                self._tokens[name] = _VARS[name].set(str(value))
        return self

    def __exit__(self, *_: object) -> None:
        for name, token in self._tokens.items():
            _VARS[name].reset(token)
        self._tokens.clear()
