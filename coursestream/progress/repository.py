"""Store-backed persistence of lesson progress."""

from datetime import UTC, datetime
from uuid import UUID

from coursestream.core.logging import get_logger
from coursestream.store import RecordStore, StoreError
from coursestream.store.tables import LESSON_PROGRESS

from .exceptions import PersistenceTransientFailure
from .models import PlaybackState


logger = get_logger(__name__)


class ProgressRepository:
    """Reads and writes ``lesson_progress`` rows.

    Writes are upserts keyed by (user_id, lesson_id). Position writes never
    touch the completion columns, and completion is only ever written as
    true, so a late position write cannot undo a completion.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    async def load_states(self, user_id: UUID) -> dict[UUID, PlaybackState]:
        """All stored lesson states of a viewer, keyed by lesson id."""
        rows = await self.store.select(LESSON_PROGRESS.name, {"user_id": user_id})
        return {row["lesson_id"]: PlaybackState.from_row(row) for row in rows}

    async def completed_lesson_ids(self, user_id: UUID) -> set[UUID]:
        states = await self.load_states(user_id)
        return {lesson_id for lesson_id, state in states.items() if state.is_completed}

    async def save_position(
        self,
        user_id: UUID,
        lesson_id: UUID,
        position_seconds: float,
    ) -> datetime:
        """Persist the playback position; returns the write timestamp.

        Raises:
            PersistenceTransientFailure: The store rejected the write
        """
        now = datetime.now(UTC)
        try:
            await self.store.update(
                LESSON_PROGRESS.name,
                {"user_id": user_id, "lesson_id": lesson_id},
                {"position_seconds": float(position_seconds), "updated_at": now},
            )
        except StoreError as e:
            raise PersistenceTransientFailure(e.message, kind=e.kind.value) from e
        return now

    async def save_completion(
        self,
        user_id: UUID,
        lesson_id: UUID,
        completed_at: datetime,
        position_seconds: float | None = None,
    ) -> datetime:
        """Mark a lesson completed; returns the write timestamp.

        Raises:
            PersistenceTransientFailure: The store rejected the write
        """
        now = datetime.now(UTC)
        patch = {"completed": True, "completed_at": completed_at, "updated_at": now}
        if position_seconds is not None:
            patch["position_seconds"] = float(position_seconds)
        try:
            await self.store.update(
                LESSON_PROGRESS.name,
                {"user_id": user_id, "lesson_id": lesson_id},
                patch,
            )
        except StoreError as e:
            raise PersistenceTransientFailure(e.message, kind=e.kind.value) from e
        logger.info(
            "lesson_completion_saved",
            user_id=str(user_id),
            lesson_id=str(lesson_id),
        )
        return now
