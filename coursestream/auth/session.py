"""Viewer session provider.

Authentication itself happens elsewhere; the playback engine only needs to
know who the current viewer is and to hear when that changes (sign-in,
sign-out, account switch).
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from coursestream.core.logging import get_logger


logger = get_logger(__name__)


@dataclass(frozen=True)
class Viewer:
    """Authenticated viewer."""

    id: UUID
    role: str = "student"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


AuthChangeCallback = Callable[["Viewer | None"], None]


class Subscription:
    """Handle for an auth-change subscription.

    Usable as a context manager; leaving the block unsubscribes.
    """

    def __init__(self, release: Callable[[], None]):
        self._release: Callable[[], None] | None = release

    @property
    def active(self) -> bool:
        return self._release is not None

    def unsubscribe(self) -> None:
        if self._release is not None:
            release, self._release = self._release, None
            release()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *_: object) -> None:
        self.unsubscribe()


class SessionProvider(Protocol):
    def get_current_user(self) -> Viewer | None: ...

    def subscribe(self, callback: AuthChangeCallback) -> Subscription: ...


class InMemorySessionProvider:
    """Session provider holding the viewer in memory.

    Used per request by the HTTP layer and directly by tests.
    """

    def __init__(self, user: Viewer | None = None):
        self._user = user
        self._callbacks: list[AuthChangeCallback] = []

    def get_current_user(self) -> Viewer | None:
        return self._user

    def subscribe(self, callback: AuthChangeCallback) -> Subscription:
        self._callbacks.append(callback)

        def release() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return Subscription(release)

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks)

    def set_user(self, user: Viewer | None) -> None:
        """Change the current viewer and notify subscribers."""
        if user == self._user:
            return
        self._user = user
        logger.info(
            "viewer_changed",
            viewer_id=str(user.id) if user else None,
            subscribers=len(self._callbacks),
        )
        for callback in list(self._callbacks):
            callback(user)
