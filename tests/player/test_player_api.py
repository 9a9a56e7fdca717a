"""Tests for the player outline endpoint."""

import asyncio
from uuid import uuid4

from coursestream.courses.catalog import CourseCatalog
from coursestream.courses.models import VideoReference
from coursestream.courses.navigation import ordered_lessons


def _save(store, course) -> None:
    asyncio.run(CourseCatalog(store).save_course(course))


class TestPlayerOutline:
    """Tests for GET /v1/courses/{course_id}/player."""

    def test_unknown_course(self, client) -> None:
        response = client.get(f"/v1/courses/{uuid4()}/player")
        assert response.status_code == 404

    def test_anonymous_outline_hides_locked_videos(
        self, client, store, build_course
    ) -> None:
        course = build_course((1, 1), free_lessons=(0,))
        _save(store, course)

        response = client.get(f"/v1/courses/{course.id}/player")

        assert response.status_code == 200
        data = response.json()
        free, locked = (module["lessons"][0] for module in data["modules"])
        assert free["can_access"] is True
        assert free["video"]["media_url"].endswith(".mp4")
        assert locked["can_access"] is False
        assert locked["video"] is None
        assert locked["reason"] == "enrollment_required"
        assert data["is_enrolled"] is False
        assert data["progress"]["percentage"] == 0

    def test_outline_reflects_completion(
        self, client, store, build_course, auth_headers
    ) -> None:
        user_id = uuid4()
        course = build_course(
            (2,), free_lessons=(0, 1), videos={1: VideoReference("vimeo", "76979871")}
        )
        _save(store, course)
        first, second = ordered_lessons(course)
        client.post(
            "/v1/progress/lesson/complete",
            json={"course_id": str(course.id), "lesson_id": str(first.id)},
            headers=auth_headers(user_id),
        )

        response = client.get(
            f"/v1/courses/{course.id}/player",
            params={"lesson_id": str(second.id)},
            headers=auth_headers(user_id),
        )

        data = response.json()
        lessons = data["modules"][0]["lessons"]
        assert [lesson["completed"] for lesson in lessons] == [True, False]
        assert lessons[1]["is_current"] is True
        assert lessons[1]["video"]["embed_url"].startswith("https://player.vimeo.com/")
        assert data["next_lesson_id"] is None
        assert data["progress"]["percentage"] == 50
