"""Models for per-lesson playback progress.

Cassandra table definitions for:
- Lesson progress: playback position and completion per viewer and lesson
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID


class LessonProgressStatus(str, Enum):
    """Lesson progress status."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"  # Terminal


# ==============================================================================
# Helper Functions
# ==============================================================================


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Partition per viewer so a course outline loads in one query
LESSON_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lesson_progress (
    user_id UUID,
    lesson_id UUID,
    position_seconds DOUBLE,
    completed BOOLEAN,
    completed_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY ((user_id), lesson_id)
)
"""

PROGRESS_TABLES_CQL = [
    LESSON_PROGRESS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class PlaybackState:
    """Playback state of one lesson for one viewer.

    Attributes:
        lesson_id: Lesson UUID
        position_seconds: Last known position; only a seek moves it backward
        status: Progress status (completed is terminal)
        completed_at: When the lesson was completed
        last_persisted_at: When the state was last written successfully
    """

    lesson_id: UUID
    position_seconds: float = 0.0
    status: LessonProgressStatus = LessonProgressStatus.NOT_STARTED
    completed_at: datetime | None = None
    last_persisted_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == LessonProgressStatus.COMPLETED

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "PlaybackState":
        """Create a PlaybackState from a ``lesson_progress`` record."""
        completed = bool(row.get("completed"))
        position = float(row.get("position_seconds") or 0.0)
        if completed:
            status = LessonProgressStatus.COMPLETED
        elif position > 0:
            status = LessonProgressStatus.IN_PROGRESS
        else:
            status = LessonProgressStatus.NOT_STARTED
        return cls(
            lesson_id=row["lesson_id"],
            position_seconds=position,
            status=status,
            completed_at=ensure_utc_aware(row.get("completed_at")),
            last_persisted_at=ensure_utc_aware(row.get("updated_at")),
        )
