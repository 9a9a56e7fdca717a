"""Tests for the progress tracker state machine and write coalescing."""

import math
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from coursestream.progress import (
    LessonProgressStatus,
    PersistenceTransientFailure,
    PlaybackState,
    ProgressTracker,
)


def _repository() -> MagicMock:
    repository = MagicMock()
    repository.save_position = AsyncMock(return_value=datetime.now(UTC))
    repository.save_completion = AsyncMock(return_value=datetime.now(UTC))
    return repository


def _tracker(repository=None, **kwargs) -> ProgressTracker:
    return ProgressTracker(uuid4(), repository, **kwargs)


class TestTransitions:
    """Tests for status transitions without persistence."""

    def test_unknown_lesson_is_not_started(self) -> None:
        tracker = _tracker()
        state = tracker.state(uuid4())
        assert state.status == LessonProgressStatus.NOT_STARTED
        assert state.position_seconds == 0.0

    def test_tick_starts_lesson(self) -> None:
        tracker = _tracker()
        lesson_id = uuid4()

        tracker.tick(lesson_id, 3.0)

        assert tracker.state(lesson_id).status == LessonProgressStatus.IN_PROGRESS
        assert not tracker.persists

    def test_play_starts_lesson_without_position(self) -> None:
        tracker = _tracker()
        lesson_id = uuid4()

        tracker.play(lesson_id)

        state = tracker.state(lesson_id)
        assert state.status == LessonProgressStatus.IN_PROGRESS
        assert state.position_seconds == 0.0

    def test_tick_never_moves_backward(self) -> None:
        """Only an explicit seek moves the position backward."""
        tracker = _tracker()
        lesson_id = uuid4()

        tracker.tick(lesson_id, 50.0)
        tracker.tick(lesson_id, 20.0)
        assert tracker.state(lesson_id).position_seconds == 50.0

        tracker.seek_to(lesson_id, 20.0)
        assert tracker.state(lesson_id).position_seconds == 20.0

    @pytest.mark.parametrize("position", [-1.0, math.nan, math.inf])
    def test_rejects_invalid_positions(self, position: float) -> None:
        tracker = _tracker()
        with pytest.raises(ValueError):
            tracker.tick(uuid4(), position)

    def test_completed_is_terminal(self) -> None:
        """Further ticks and seeks never leave COMPLETED."""
        tracker = _tracker()
        lesson_id = uuid4()

        assert tracker.mark_complete(lesson_id)
        tracker.tick(lesson_id, 5.0)
        tracker.seek_to(lesson_id, 0.0)

        state = tracker.state(lesson_id)
        assert state.status == LessonProgressStatus.COMPLETED
        assert state.completed_at is not None
        assert lesson_id in tracker.completed_ids

    def test_mark_complete_is_idempotent(self) -> None:
        tracker = _tracker()
        lesson_id = uuid4()

        assert tracker.mark_complete(lesson_id)
        first_completed_at = tracker.state(lesson_id).completed_at
        assert not tracker.mark_complete(lesson_id)
        assert tracker.state(lesson_id).completed_at == first_completed_at

    def test_loaded_states_are_used(self) -> None:
        lesson_id = uuid4()
        tracker = _tracker(
            states={
                lesson_id: PlaybackState(
                    lesson_id=lesson_id,
                    position_seconds=90.0,
                    status=LessonProgressStatus.IN_PROGRESS,
                )
            }
        )
        assert tracker.state(lesson_id).position_seconds == 90.0

    def test_closed_tracker_ignores_events(self) -> None:
        tracker = _tracker()
        lesson_id = uuid4()
        tracker.close()

        tracker.tick(lesson_id, 30.0)

        assert not tracker.mark_complete(lesson_id)
        assert tracker.state(lesson_id).status == LessonProgressStatus.NOT_STARTED
        assert tracker.closed


class TestPositionWrites:
    """Tests for best-effort position persistence."""

    @pytest.mark.asyncio
    async def test_writes_are_coalesced_by_delta(self) -> None:
        """Only moves of at least min_delta_seconds trigger a write."""
        repository = _repository()
        tracker = _tracker(repository, min_delta_seconds=10.0)
        lesson_id = uuid4()

        for position in (1.0, 4.0, 9.9, 10.0, 12.0, 19.0, 20.5):
            tracker.tick(lesson_id, position)
        await tracker.drain()

        written = [call.args[2] for call in repository.save_position.await_args_list]
        assert written == [10.0, 20.5]
        assert tracker.state(lesson_id).last_persisted_at is not None

    @pytest.mark.asyncio
    async def test_failed_write_is_retried_on_next_tick(self) -> None:
        repository = _repository()
        repository.save_position.side_effect = [
            PersistenceTransientFailure("down", kind="unavailable"),
            datetime.now(UTC),
        ]
        tracker = _tracker(repository, min_delta_seconds=10.0)
        lesson_id = uuid4()

        tracker.tick(lesson_id, 15.0)
        await tracker.drain()
        tracker.tick(lesson_id, 16.0)
        await tracker.drain()

        written = [call.args[2] for call in repository.save_position.await_args_list]
        assert written == [15.0, 16.0]
        assert tracker.pending_writes == 0

    @pytest.mark.asyncio
    async def test_failure_keeps_in_memory_state(self) -> None:
        repository = _repository()
        repository.save_position.side_effect = PersistenceTransientFailure("down")
        tracker = _tracker(repository)
        lesson_id = uuid4()

        tracker.tick(lesson_id, 42.0)
        await tracker.drain()

        assert tracker.state(lesson_id).position_seconds == 42.0
        assert tracker.state(lesson_id).last_persisted_at is None

    @pytest.mark.asyncio
    async def test_repeated_failures_mark_persistence_degraded(self) -> None:
        """The flag rises at the threshold and clears after one success."""
        repository = _repository()
        repository.save_position.side_effect = PersistenceTransientFailure("down")
        tracker = _tracker(repository, failure_notice_threshold=3)
        lesson_id = uuid4()

        for position in (10.0, 11.0):
            tracker.tick(lesson_id, position)
            await tracker.drain()
        assert not tracker.persistence_degraded

        tracker.tick(lesson_id, 12.0)
        await tracker.drain()
        assert tracker.persistence_degraded

        repository.save_position.side_effect = None
        tracker.tick(lesson_id, 13.0)
        await tracker.drain()
        assert not tracker.persistence_degraded

    @pytest.mark.asyncio
    async def test_unexpected_write_error_is_contained(self) -> None:
        """A non-store error counts as a failed write; drain does not raise."""
        repository = _repository()
        repository.save_position.side_effect = [
            RuntimeError("driver bug"),
            datetime.now(UTC),
        ]
        tracker = _tracker(
            repository, min_delta_seconds=10.0, failure_notice_threshold=1
        )
        lesson_id = uuid4()

        tracker.tick(lesson_id, 20.0)
        await tracker.drain()
        assert tracker.persistence_degraded

        tracker.tick(lesson_id, 21.0)
        await tracker.drain()

        written = [call.args[2] for call in repository.save_position.await_args_list]
        assert written == [20.0, 21.0]
        assert not tracker.persistence_degraded

    @pytest.mark.asyncio
    async def test_anonymous_viewer_never_writes(self) -> None:
        repository = _repository()
        tracker = ProgressTracker(None, repository)
        lesson_id = uuid4()

        tracker.tick(lesson_id, 100.0)
        tracker.mark_complete(lesson_id)
        await tracker.drain()

        repository.save_position.assert_not_awaited()
        repository.save_completion.assert_not_awaited()


class TestCompletionWrites:
    """Tests for durable completion writes."""

    @pytest.mark.asyncio
    async def test_completion_written_once(self) -> None:
        repository = _repository()
        tracker = _tracker(repository)
        lesson_id = uuid4()

        tracker.tick(lesson_id, 5.0)
        tracker.mark_complete(lesson_id)
        tracker.mark_complete(lesson_id)
        await tracker.drain()

        repository.save_completion.assert_awaited_once()
        assert not tracker.has_unsaved_completion(lesson_id)

    @pytest.mark.asyncio
    async def test_completion_is_retried_before_giving_up(self) -> None:
        repository = _repository()
        repository.save_completion.side_effect = [
            PersistenceTransientFailure("timeout"),
            datetime.now(UTC),
        ]
        tracker = _tracker(repository, completion_write_retries=1)
        lesson_id = uuid4()

        tracker.mark_complete(lesson_id)
        await tracker.drain()

        assert repository.save_completion.await_count == 2
        assert not tracker.has_unsaved_completion(lesson_id)

    @pytest.mark.asyncio
    async def test_unexpected_completion_error_is_retried(self) -> None:
        repository = _repository()
        repository.save_completion.side_effect = [
            ValueError("bad row"),
            datetime.now(UTC),
        ]
        tracker = _tracker(repository, completion_write_retries=1)
        lesson_id = uuid4()

        tracker.mark_complete(lesson_id)
        await tracker.drain()

        assert repository.save_completion.await_count == 2
        assert not tracker.has_unsaved_completion(lesson_id)

    @pytest.mark.asyncio
    async def test_unsaved_completion_resent_on_next_tick(self) -> None:
        """After every attempt fails, the next tick re-sends the completion."""
        repository = _repository()
        repository.save_completion.side_effect = [
            PersistenceTransientFailure("timeout"),
            PersistenceTransientFailure("timeout"),
            datetime.now(UTC),
        ]
        tracker = _tracker(repository, completion_write_retries=1)
        lesson_id = uuid4()

        tracker.mark_complete(lesson_id)
        await tracker.drain()
        assert tracker.has_unsaved_completion(lesson_id)
        assert tracker.state(lesson_id).is_completed

        tracker.tick(lesson_id, 1.0)
        await tracker.drain()

        assert repository.save_completion.await_count == 3
        assert not tracker.has_unsaved_completion(lesson_id)

    @pytest.mark.asyncio
    async def test_close_lets_dispatched_writes_finish(self) -> None:
        repository = _repository()
        tracker = _tracker(repository)
        lesson_id = uuid4()

        tracker.mark_complete(lesson_id)
        tracker.close()
        await tracker.drain()

        repository.save_completion.assert_awaited_once()
        assert tracker.pending_writes == 0
