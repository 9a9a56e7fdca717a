"""Logical table layout shared by every record store implementation.

Each table is identified by its primary key; inserting a row whose primary
key already exists is a uniqueness violation. The first ``partition_size``
key columns form the Cassandra partition key.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class TableSpec:
    """Name and key layout of a persisted table."""

    name: str
    primary_key: tuple[str, ...]
    partition_size: int = 1

    @property
    def partition_key(self) -> tuple[str, ...]:
        return self.primary_key[: self.partition_size]

    def key_of(self, record: dict) -> tuple:
        """Extract the primary key tuple from a record or key mapping."""
        return tuple(record[column] for column in self.primary_key)


COURSES = TableSpec("courses", ("id",))
COURSE_MODULES = TableSpec("course_modules", ("course_id", "id"))
COURSE_LESSONS = TableSpec("course_lessons", ("module_id", "id"))

COURSE_ENROLLMENTS = TableSpec("course_enrollments", ("user_id", "course_id"))
CLASS_ENROLLMENTS = TableSpec("class_enrollments", ("user_id", "class_group_id"))
MENTORSHIP_ENROLLMENTS = TableSpec(
    "mentorship_enrollments", ("user_id", "mentorship_id")
)

LESSON_PROGRESS = TableSpec("lesson_progress", ("user_id", "lesson_id"))

CERTIFICATES = TableSpec("certificates", ("certificate_code",))
CERTIFICATE_VERIFICATIONS = TableSpec(
    "certificate_verifications", ("certificate_id", "id")
)

TABLES: dict[str, TableSpec] = {
    spec.name: spec
    for spec in (
        COURSES,
        COURSE_MODULES,
        COURSE_LESSONS,
        COURSE_ENROLLMENTS,
        CLASS_ENROLLMENTS,
        MENTORSHIP_ENROLLMENTS,
        LESSON_PROGRESS,
        CERTIFICATES,
        CERTIFICATE_VERIFICATIONS,
    )
}
