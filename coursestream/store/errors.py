"""Record store error taxonomy."""

from enum import Enum


class StoreErrorKind(str, Enum):
    """Machine-readable failure kinds reported by a record store."""

    UNIQUE_VIOLATION = "unique_violation"  # insert collided with an existing key
    NOT_FOUND = "not_found"  # delete of a missing row
    UNAVAILABLE = "unavailable"  # backend unreachable or timed out
    FAILURE = "failure"  # anything else


class StoreError(Exception):
    """Raised by every record store operation that fails."""

    def __init__(
        self,
        kind: StoreErrorKind,
        message: str,
        table: str | None = None,
    ):
        self.kind = kind
        self.message = message
        self.table = table
        super().__init__(message)

    @property
    def is_unique_violation(self) -> bool:
        """Check if the failure is a uniqueness violation."""
        return self.kind == StoreErrorKind.UNIQUE_VIOLATION

    @property
    def is_transient(self) -> bool:
        """Check if retrying the same write could succeed."""
        return self.kind in (StoreErrorKind.UNAVAILABLE, StoreErrorKind.FAILURE)

    def __repr__(self) -> str:
        return f"<StoreError {self.kind.value} table={self.table}: {self.message}>"
