"""Shared pytest fixtures."""

import os


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from collections.abc import Callable, Iterator, Sequence  # noqa: E402
from uuid import UUID, uuid4  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from coursestream.auth.security import create_access_token  # noqa: E402
from coursestream.config import get_settings  # noqa: E402
from coursestream.courses.models import (  # noqa: E402
    Course,
    Lesson,
    Module,
    VideoReference,
)
from coursestream.main import create_app, install_services  # noqa: E402
from coursestream.store import InMemoryRecordStore  # noqa: E402


CourseBuilder = Callable[..., Course]


def _default_video(position: int) -> VideoReference:
    return VideoReference("upload", f"https://cdn.example.com/lessons/{position}.mp4")


@pytest.fixture
def build_course() -> CourseBuilder:
    """Factory for course trees.

    ``lessons_per_module`` gives the lesson count of each module; lessons are
    numbered across the whole course (0-based) for ``free_lessons`` and
    ``videos``.
    """

    def _build(
        lessons_per_module: Sequence[int] = (2, 2),
        *,
        free_lessons: Sequence[int] = (),
        videos: dict[int, VideoReference | None] | None = None,
        title: str = "Pharmacology Basics",
    ) -> Course:
        videos = videos or {}
        course_id = uuid4()
        modules = []
        position = 0
        for module_index, count in enumerate(lessons_per_module):
            module_id = uuid4()
            lessons = []
            for lesson_index in range(count):
                lessons.append(
                    Lesson(
                        id=uuid4(),
                        module_id=module_id,
                        title=f"Lesson {module_index + 1}.{lesson_index + 1}",
                        order_index=lesson_index,
                        is_free=position in free_lessons,
                        duration_minutes=10,
                        video=videos.get(position, _default_video(position)),
                    )
                )
                position += 1
            modules.append(
                Module(
                    id=module_id,
                    course_id=course_id,
                    title=f"Module {module_index + 1}",
                    order_index=module_index,
                    lessons=tuple(lessons),
                )
            )
        return Course(id=course_id, title=title, modules=tuple(modules))

    return _build


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def client(store: InMemoryRecordStore) -> Iterator[TestClient]:
    """Test client over a fresh app backed by the ``store`` fixture."""
    app = create_app()
    install_services(app, store, get_settings())
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    def _headers(user_id: UUID, role: str = "student") -> dict[str, str]:
        token = create_access_token({"sub": str(user_id), "role": role})
        return {"Authorization": f"Bearer {token}"}

    return _headers
