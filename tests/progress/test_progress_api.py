"""Tests for the progress HTTP endpoints."""

import asyncio
from uuid import uuid4

from coursestream.courses.catalog import CourseCatalog
from coursestream.courses.navigation import ordered_lessons
from coursestream.enrollments.models import OfferingKind, PaymentStatus
from coursestream.enrollments.service import EnrollmentService
from coursestream.store import StoreError, StoreErrorKind


def _seed(store, course, user_id=None, payment_status=PaymentStatus.PAID) -> None:
    async def _run() -> None:
        await CourseCatalog(store).save_course(course)
        if user_id is not None:
            enrollments = EnrollmentService(store)
            await enrollments.enroll(user_id, OfferingKind.COURSE, course.id)
            await enrollments.set_payment_status(
                user_id, OfferingKind.COURSE, course.id, payment_status
            )

    asyncio.run(_run())


class TestUpdatePosition:
    """Tests for PUT /v1/progress/position."""

    def test_requires_authentication(self, client) -> None:
        response = client.put(
            "/v1/progress/position",
            json={"course_id": str(uuid4()), "lesson_id": str(uuid4()), "position_seconds": 1},
        )
        assert response.status_code == 401
        assert response.json()["error"] is True

    def test_enrolled_viewer_saves_position(
        self, client, store, build_course, auth_headers
    ) -> None:
        user_id = uuid4()
        course = build_course()
        _seed(store, course, user_id)
        lesson = ordered_lessons(course)[1]

        response = client.put(
            "/v1/progress/position",
            json={
                "course_id": str(course.id),
                "lesson_id": str(lesson.id),
                "position_seconds": 73.5,
            },
            headers=auth_headers(user_id),
        )

        assert response.status_code == 200
        assert response.json()["position_seconds"] == 73.5

    def test_locked_lesson_is_forbidden(
        self, client, store, build_course, auth_headers
    ) -> None:
        """A pending enrollment does not unlock paid lessons."""
        user_id = uuid4()
        course = build_course()
        _seed(store, course, user_id, payment_status=PaymentStatus.PENDING)

        response = client.put(
            "/v1/progress/position",
            json={
                "course_id": str(course.id),
                "lesson_id": str(ordered_lessons(course)[0].id),
                "position_seconds": 10,
            },
            headers=auth_headers(user_id),
        )

        assert response.status_code == 403

    def test_negative_position_is_rejected(self, client, auth_headers) -> None:
        response = client.put(
            "/v1/progress/position",
            json={
                "course_id": str(uuid4()),
                "lesson_id": str(uuid4()),
                "position_seconds": -3,
            },
            headers=auth_headers(uuid4()),
        )
        assert response.status_code == 422

    def test_unknown_course(self, client, auth_headers) -> None:
        response = client.put(
            "/v1/progress/position",
            json={
                "course_id": str(uuid4()),
                "lesson_id": str(uuid4()),
                "position_seconds": 3,
            },
            headers=auth_headers(uuid4()),
        )
        assert response.status_code == 404


class TestCompletion:
    """Tests for manual completion and course progress."""

    def test_complete_free_lesson_without_enrollment(
        self, client, store, build_course, auth_headers
    ) -> None:
        user_id = uuid4()
        course = build_course((2, 2), free_lessons=(0,))
        _seed(store, course)

        response = client.post(
            "/v1/progress/lesson/complete",
            json={
                "course_id": str(course.id),
                "lesson_id": str(ordered_lessons(course)[0].id),
            },
            headers=auth_headers(user_id),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["completed"] == 1
        assert data["percentage"] == 25

    def test_completion_is_idempotent(
        self, client, store, build_course, auth_headers
    ) -> None:
        user_id = uuid4()
        course = build_course((1, 1))
        _seed(store, course, user_id)
        payload = {
            "course_id": str(course.id),
            "lesson_id": str(ordered_lessons(course)[0].id),
        }

        first = client.post(
            "/v1/progress/lesson/complete", json=payload, headers=auth_headers(user_id)
        )
        second = client.post(
            "/v1/progress/lesson/complete", json=payload, headers=auth_headers(user_id)
        )

        assert first.json()["percentage"] == 50
        assert second.json()["percentage"] == 50

        progress = client.get(
            f"/v1/progress/courses/{course.id}", headers=auth_headers(user_id)
        )
        assert progress.status_code == 200
        assert progress.json()["completed"] == 1
        assert [m["percentage"] for m in progress.json()["modules"]] == [100, 0]

    def test_completion_write_is_retried(
        self, client, store, build_course, auth_headers
    ) -> None:
        """A completion write that fails once succeeds on the retry."""
        user_id = uuid4()
        course = build_course((2,), free_lessons=(0,))
        _seed(store, course)
        original_update = store.update
        failures = []

        async def update(table, key, patch):
            if patch.get("completed") and not failures:
                failures.append(table)
                raise StoreError(StoreErrorKind.UNAVAILABLE, "down", table)
            return await original_update(table, key, patch)

        store.update = update

        response = client.post(
            "/v1/progress/lesson/complete",
            json={
                "course_id": str(course.id),
                "lesson_id": str(ordered_lessons(course)[0].id),
            },
            headers=auth_headers(user_id),
        )

        assert response.status_code == 200
        assert response.json()["completed"] == 1
        assert len(failures) == 1

    def test_exhausted_completion_retries_are_unavailable(
        self, client, store, build_course, auth_headers
    ) -> None:
        user_id = uuid4()
        course = build_course((2,), free_lessons=(0,))
        _seed(store, course)
        attempts = []

        async def update(table, key, patch):
            attempts.append(table)
            raise StoreError(StoreErrorKind.UNAVAILABLE, "down", table)

        store.update = update

        response = client.post(
            "/v1/progress/lesson/complete",
            json={
                "course_id": str(course.id),
                "lesson_id": str(ordered_lessons(course)[0].id),
            },
            headers=auth_headers(user_id),
        )

        assert response.status_code == 503
        assert len(attempts) == 2
