"""Certificate models and Cassandra schema.

Cassandra table definitions for:
- Certificates: keyed by the public certificate code
- Certificate verifications: append-only log of public lookups
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from coursestream.enrollments.models import OfferingKind


# Kinds a certificate record can name; mentorships have no column.
CERTIFIABLE_KINDS = frozenset({OfferingKind.COURSE, OfferingKind.CLASS})

EligibilityKey = tuple[UUID, OfferingKind, UUID]


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

# Code is the primary key, so a code collision fails the LWT insert
CERTIFICATES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.certificates (
    certificate_code TEXT PRIMARY KEY,
    id UUID,
    user_id UUID,
    course_id UUID,
    class_group_id UUID,
    issued_at TIMESTAMP,
    is_public BOOLEAN
)
"""

CERTIFICATE_VERIFICATIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.certificate_verifications (
    certificate_id UUID,
    id TIMEUUID,
    verified_at TIMESTAMP,
    PRIMARY KEY ((certificate_id), id)
) WITH CLUSTERING ORDER BY (id DESC)
"""

CERTIFICATES_TABLES_CQL = [
    CERTIFICATES_TABLE_CQL,
    CERTIFICATE_VERIFICATIONS_TABLE_CQL,
]


# ==============================================================================
# Entities
# ==============================================================================


@dataclass(frozen=True)
class EligibleCertificate:
    """A paid enrollment that has no certificate yet."""

    user_id: UUID
    kind: OfferingKind
    offering_id: UUID

    @property
    def key(self) -> EligibilityKey:
        return (self.user_id, self.kind, self.offering_id)


@dataclass(frozen=True)
class CertificateRecord:
    """Issued certificate. Immutable once written.

    Attributes:
        id: Certificate UUID
        user_id: Holder UUID
        certificate_code: Public verification code
        issued_at: Issue timestamp
        is_public: Whether public verification may reveal it
        course_id: Course the certificate is for, if any
        class_group_id: Class group the certificate is for, if any
    """

    user_id: UUID
    certificate_code: str
    id: UUID = field(default_factory=uuid4)
    issued_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    is_public: bool = True
    course_id: UUID | None = None
    class_group_id: UUID | None = None

    @property
    def kind(self) -> OfferingKind | None:
        if self.course_id is not None:
            return OfferingKind.COURSE
        if self.class_group_id is not None:
            return OfferingKind.CLASS
        return None

    @property
    def offering_id(self) -> UUID | None:
        return self.course_id or self.class_group_id

    def eligibility_keys(self) -> list[EligibilityKey]:
        """One key per offering column that is set."""
        keys: list[EligibilityKey] = []
        if self.course_id is not None:
            keys.append((self.user_id, OfferingKind.COURSE, self.course_id))
        if self.class_group_id is not None:
            keys.append((self.user_id, OfferingKind.CLASS, self.class_group_id))
        return keys

    @classmethod
    def for_candidate(cls, candidate: EligibleCertificate, code: str) -> "CertificateRecord":
        """New record certifying ``candidate``."""
        return cls(
            user_id=candidate.user_id,
            certificate_code=code,
            course_id=candidate.offering_id
            if candidate.kind == OfferingKind.COURSE
            else None,
            class_group_id=candidate.offering_id
            if candidate.kind == OfferingKind.CLASS
            else None,
        )

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "CertificateRecord":
        """Create instance from a ``certificates`` record."""
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            certificate_code=row["certificate_code"],
            issued_at=ensure_utc_aware(row.get("issued_at")) or datetime.now(UTC),
            is_public=row.get("is_public") is not False,
            course_id=row.get("course_id"),
            class_group_id=row.get("class_group_id"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a ``certificates`` record."""
        return {
            "certificate_code": self.certificate_code,
            "id": self.id,
            "user_id": self.user_id,
            "course_id": self.course_id,
            "class_group_id": self.class_group_id,
            "issued_at": self.issued_at,
            "is_public": self.is_public,
        }
