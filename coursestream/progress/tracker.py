"""Per-viewer lesson progress state machine.

Each lesson moves ``NOT_STARTED -> IN_PROGRESS -> COMPLETED``. Completed is
terminal for the status, but the position keeps moving so the viewer can
resume a rewatched lesson.

Persistence is best effort and never blocks playback. Every accepted tick may
dispatch a position write as an asyncio task; writes are coalesced so one is
sent only when the position moved at least ``min_delta_seconds`` away from
the last written (or in-flight) position, or when the previous write failed.
A failed position write is not queued: the next tick simply tries again.
Completion gets one durable write with a bounded number of retries; if all
attempts fail it is re-sent on the next tick.
"""

import asyncio
import math
from collections.abc import Coroutine
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from coursestream.config.settings import Settings
from coursestream.core.logging import get_logger

from .exceptions import PersistenceTransientFailure
from .models import LessonProgressStatus, PlaybackState
from .repository import ProgressRepository


logger = get_logger(__name__)


class ProgressTracker:
    """Tracks playback state for one viewer across the lessons of a session."""

    def __init__(
        self,
        user_id: UUID | None,
        repository: ProgressRepository | None = None,
        *,
        states: dict[UUID, PlaybackState] | None = None,
        min_delta_seconds: float = 10.0,
        completion_write_retries: int = 1,
        failure_notice_threshold: int = 5,
    ):
        self.user_id = user_id
        self.repository = repository
        self.min_delta_seconds = min_delta_seconds
        self.completion_write_retries = completion_write_retries
        self.failure_notice_threshold = failure_notice_threshold

        self._states: dict[UUID, PlaybackState] = dict(states or {})
        self._persisted_position: dict[UUID, float] = {
            lesson_id: state.position_seconds for lesson_id, state in self._states.items()
        }
        self._inflight_position: dict[UUID, float] = {}
        self._failed_position: set[UUID] = set()
        self._unsaved_completion: set[UUID] = set()
        self._inflight_completion: set[UUID] = set()
        self._tasks: set[asyncio.Task] = set()
        self._consecutive_failures = 0
        self._closed = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        user_id: UUID | None,
        repository: ProgressRepository | None = None,
        states: dict[UUID, PlaybackState] | None = None,
    ) -> "ProgressTracker":
        return cls(
            user_id,
            repository,
            states=states,
            min_delta_seconds=settings.progress_min_delta_seconds,
            completion_write_retries=settings.completion_write_retries,
            failure_notice_threshold=settings.persistence_failure_notice_threshold,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def persists(self) -> bool:
        return self.repository is not None and self.user_id is not None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def persistence_degraded(self) -> bool:
        """True once position writes failed repeatedly with no success since."""
        return self._consecutive_failures >= self.failure_notice_threshold

    @property
    def pending_writes(self) -> int:
        return len(self._tasks)

    @property
    def completed_ids(self) -> frozenset[UUID]:
        return frozenset(
            lesson_id for lesson_id, state in self._states.items() if state.is_completed
        )

    def state(self, lesson_id: UUID) -> PlaybackState:
        """Current state of a lesson; a fresh NOT_STARTED state if never seen."""
        return self._states.get(lesson_id) or PlaybackState(lesson_id=lesson_id)

    def has_unsaved_completion(self, lesson_id: UUID) -> bool:
        return lesson_id in self._unsaved_completion

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _ensure(self, lesson_id: UUID) -> PlaybackState:
        state = self._states.get(lesson_id)
        if state is None:
            state = PlaybackState(lesson_id=lesson_id)
            self._states[lesson_id] = state
        return state

    @staticmethod
    def _validate_position(position: float) -> float:
        if not math.isfinite(position) or position < 0:
            raise ValueError(f"Invalid playback position: {position!r}")
        return float(position)

    def _begin(self, state: PlaybackState) -> None:
        if state.status == LessonProgressStatus.NOT_STARTED:
            state.status = LessonProgressStatus.IN_PROGRESS
            logger.info("lesson_started", lesson_id=str(state.lesson_id))

    def play(self, lesson_id: UUID) -> None:
        """Explicit start of playback (embedded and text lessons)."""
        if self._closed:
            return
        self._begin(self._ensure(lesson_id))

    def tick(self, lesson_id: UUID, position: float) -> None:
        """Progress event from the adapter. Never moves the position backward."""
        if self._closed:
            return
        position = self._validate_position(position)
        state = self._ensure(lesson_id)
        self._begin(state)
        if position > state.position_seconds:
            state.position_seconds = position
        self._after_change(lesson_id, state)

    def seek_to(self, lesson_id: UUID, position: float) -> None:
        """Explicit seek; the only way the position moves backward."""
        if self._closed:
            return
        position = self._validate_position(position)
        state = self._ensure(lesson_id)
        self._begin(state)
        state.position_seconds = position
        self._after_change(lesson_id, state)

    def mark_complete(self, lesson_id: UUID) -> bool:
        """Complete a lesson. Returns False if it was already completed."""
        if self._closed:
            return False
        state = self._ensure(lesson_id)
        if state.is_completed:
            return False

        state.status = LessonProgressStatus.COMPLETED
        state.completed_at = datetime.now(UTC)
        logger.info(
            "lesson_completed",
            lesson_id=str(lesson_id),
            position_seconds=state.position_seconds,
        )
        if self.persists:
            self._unsaved_completion.add(lesson_id)
            self._dispatch_completion(lesson_id, state)
        return True

    def close(self) -> None:
        """Stop accepting events. Dispatched writes still run to completion."""
        if self._closed:
            return
        self._closed = True
        logger.debug("progress_tracker_closed", pending_writes=len(self._tasks))

    async def drain(self) -> None:
        """Wait for every dispatched write to finish."""
        while self._tasks:
            await asyncio.gather(*self._tasks)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _after_change(self, lesson_id: UUID, state: PlaybackState) -> None:
        if not self.persists:
            return
        if (
            lesson_id in self._unsaved_completion
            and lesson_id not in self._inflight_completion
        ):
            self._dispatch_completion(lesson_id, state)
        if self._should_write_position(lesson_id, state):
            self._dispatch_position(lesson_id, state.position_seconds)

    def _should_write_position(self, lesson_id: UUID, state: PlaybackState) -> bool:
        if lesson_id in self._failed_position:
            return True
        baseline = self._inflight_position.get(
            lesson_id, self._persisted_position.get(lesson_id, 0.0)
        )
        return abs(state.position_seconds - baseline) >= self.min_delta_seconds

    def _dispatch_position(self, lesson_id: UUID, position: float) -> None:
        self._failed_position.discard(lesson_id)
        self._inflight_position[lesson_id] = position
        self._spawn(self._write_position(lesson_id, position))

    def _dispatch_completion(self, lesson_id: UUID, state: PlaybackState) -> None:
        self._inflight_completion.add(lesson_id)
        self._spawn(self._write_completion(lesson_id, state))

    async def _write_position(self, lesson_id: UUID, position: float) -> None:
        if self.repository is None or self.user_id is None:
            return
        try:
            written_at = await self.repository.save_position(
                self.user_id, lesson_id, position
            )
        except PersistenceTransientFailure as e:
            self._position_failed(lesson_id, position, e.kind)
            return
        except Exception:
            logger.exception(
                "progress_persist_error",
                lesson_id=str(lesson_id),
                position_seconds=position,
            )
            self._position_failed(lesson_id, position, "unexpected")
            return

        self._consecutive_failures = 0
        self._persisted_position[lesson_id] = position
        if self._inflight_position.get(lesson_id) == position:
            del self._inflight_position[lesson_id]
        state = self._states.get(lesson_id)
        if state is not None:
            state.last_persisted_at = written_at
        logger.debug(
            "progress_persisted",
            lesson_id=str(lesson_id),
            position_seconds=position,
        )

    def _position_failed(self, lesson_id: UUID, position: float, kind: str) -> None:
        self._consecutive_failures += 1
        self._failed_position.add(lesson_id)
        if self._inflight_position.get(lesson_id) == position:
            del self._inflight_position[lesson_id]
        logger.warning(
            "progress_persist_failed",
            lesson_id=str(lesson_id),
            position_seconds=position,
            kind=kind,
            consecutive_failures=self._consecutive_failures,
        )
        if self._consecutive_failures == self.failure_notice_threshold:
            logger.error(
                "progress_persistence_degraded",
                consecutive_failures=self._consecutive_failures,
            )

    async def _write_completion(self, lesson_id: UUID, state: PlaybackState) -> None:
        if self.repository is None or self.user_id is None:
            return
        attempts = 1 + self.completion_write_retries
        try:
            for attempt in range(1, attempts + 1):
                try:
                    written_at = await self.repository.save_completion(
                        self.user_id,
                        lesson_id,
                        state.completed_at or datetime.now(UTC),
                        state.position_seconds,
                    )
                except PersistenceTransientFailure as e:
                    logger.warning(
                        "progress_completion_persist_failed",
                        lesson_id=str(lesson_id),
                        attempt=attempt,
                        attempts=attempts,
                        kind=e.kind,
                    )
                    continue
                except Exception:
                    logger.exception(
                        "progress_completion_persist_error",
                        lesson_id=str(lesson_id),
                        attempt=attempt,
                        attempts=attempts,
                    )
                    continue
                self._unsaved_completion.discard(lesson_id)
                state.last_persisted_at = written_at
                return
            logger.error(
                "progress_completion_not_saved",
                lesson_id=str(lesson_id),
                attempts=attempts,
            )
        finally:
            self._inflight_completion.discard(lesson_id)
