# Core infrastructure
from coursestream.core.context import (
    PlaybackContext,
    clear_context,
    get_context,
    get_request_id,
    get_user_id,
    set_request_id,
    set_user_id,
)
from coursestream.core.logging import configure_structlog, get_logger


__all__ = [
    "PlaybackContext",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_user_id",
    "set_request_id",
    "set_user_id",
]
