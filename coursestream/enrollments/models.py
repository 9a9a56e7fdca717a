"""Enrollment models and Cassandra schema.

Each offering kind has its own enrollment table keyed by (user, offering):
- Courses: ``course_enrollments`` (``course_id``)
- Classes: ``class_enrollments`` (``class_group_id``)
- Mentorships: ``mentorship_enrollments`` (``mentorship_id``)

A second enrollment of the same user in the same offering collides on the
primary key.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from coursestream.store.tables import (
    CLASS_ENROLLMENTS,
    COURSE_ENROLLMENTS,
    MENTORSHIP_ENROLLMENTS,
    TableSpec,
)


class OfferingKind(str, Enum):
    """Kinds of purchasable offering."""

    COURSE = "course"
    CLASS = "class"  # Scheduled class group
    MENTORSHIP = "mentorship"

    @property
    def table(self) -> TableSpec:
        return _OFFERING_TABLES[self][0]

    @property
    def offering_column(self) -> str:
        return _OFFERING_TABLES[self][1]


_OFFERING_TABLES: dict[OfferingKind, tuple[TableSpec, str]] = {
    OfferingKind.COURSE: (COURSE_ENROLLMENTS, "course_id"),
    OfferingKind.CLASS: (CLASS_ENROLLMENTS, "class_group_id"),
    OfferingKind.MENTORSHIP: (MENTORSHIP_ENROLLMENTS, "mentorship_id"),
}


class PaymentStatus(str, Enum):
    """Payment state of an enrollment."""

    PENDING = "pending"  # Created on enrollment, awaiting payment
    PAID = "paid"  # Written by admins for courses and classes
    CONFIRMED = "confirmed"  # Written by admins for mentorships
    CANCELLED = "cancelled"

    @property
    def is_paid(self) -> bool:
        return self in (PaymentStatus.PAID, PaymentStatus.CONFIRMED)


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

COURSE_ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_enrollments (
    user_id UUID,
    course_id UUID,
    payment_status TEXT,
    payment_reference TEXT,
    enrolled_at TIMESTAMP,
    PRIMARY KEY ((user_id), course_id)
)
"""

CLASS_ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.class_enrollments (
    user_id UUID,
    class_group_id UUID,
    payment_status TEXT,
    payment_reference TEXT,
    enrolled_at TIMESTAMP,
    PRIMARY KEY ((user_id), class_group_id)
)
"""

MENTORSHIP_ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.mentorship_enrollments (
    user_id UUID,
    mentorship_id UUID,
    payment_status TEXT,
    payment_reference TEXT,
    enrolled_at TIMESTAMP,
    PRIMARY KEY ((user_id), mentorship_id)
)
"""

ENROLLMENTS_TABLES_CQL = [
    COURSE_ENROLLMENTS_TABLE_CQL,
    CLASS_ENROLLMENTS_TABLE_CQL,
    MENTORSHIP_ENROLLMENTS_TABLE_CQL,
]


# ==============================================================================
# Entity
# ==============================================================================


@dataclass(frozen=True)
class EnrollmentFact:
    """A viewer's enrollment in one offering."""

    user_id: UUID
    kind: OfferingKind
    offering_id: UUID
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_reference: str | None = None
    enrolled_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_paid(self) -> bool:
        return self.payment_status.is_paid

    @classmethod
    def from_row(cls, kind: OfferingKind, row: dict[str, Any]) -> "EnrollmentFact":
        """Create instance from a row of the kind's enrollment table."""
        return cls(
            user_id=row["user_id"],
            kind=kind,
            offering_id=row[kind.offering_column],
            payment_status=PaymentStatus(row.get("payment_status") or "pending"),
            payment_reference=row.get("payment_reference"),
            enrolled_at=ensure_utc_aware(row.get("enrolled_at")) or datetime.now(UTC),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a row of the kind's enrollment table."""
        return {
            "user_id": self.user_id,
            self.kind.offering_column: self.offering_id,
            "payment_status": self.payment_status.value,
            "payment_reference": self.payment_reference,
            "enrolled_at": self.enrolled_at,
        }
