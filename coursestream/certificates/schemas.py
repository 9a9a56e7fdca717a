"""Pydantic schemas for certificates."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from coursestream.enrollments.models import OfferingKind

from .models import CertificateRecord, EligibleCertificate


class EligibleCertificateResponse(BaseModel):
    user_id: UUID
    kind: OfferingKind
    offering_id: UUID

    @classmethod
    def from_entity(cls, entity: EligibleCertificate) -> "EligibleCertificateResponse":
        """Create response from entity."""
        return cls(
            user_id=entity.user_id,
            kind=entity.kind,
            offering_id=entity.offering_id,
        )


class EligibleCertificateListResponse(BaseModel):
    items: list[EligibleCertificateResponse]
    total: int


class IssueCertificateRequest(BaseModel):
    """Issue a certificate for an eligible enrollment."""

    user_id: UUID = Field(..., description="Certificate holder")
    kind: OfferingKind = Field(..., description="course or class")
    offering_id: UUID = Field(..., description="Course or class group UUID")

    def to_candidate(self) -> EligibleCertificate:
        return EligibleCertificate(
            user_id=self.user_id,
            kind=self.kind,
            offering_id=self.offering_id,
        )


class CertificateResponse(BaseModel):
    """Issued certificate."""

    id: UUID
    certificate_code: str
    user_id: UUID
    kind: OfferingKind | None
    course_id: UUID | None = None
    class_group_id: UUID | None = None
    issued_at: datetime
    is_public: bool

    @classmethod
    def from_entity(cls, entity: CertificateRecord) -> "CertificateResponse":
        """Create response from entity."""
        return cls(
            id=entity.id,
            certificate_code=entity.certificate_code,
            user_id=entity.user_id,
            kind=entity.kind,
            course_id=entity.course_id,
            class_group_id=entity.class_group_id,
            issued_at=entity.issued_at,
            is_public=entity.is_public,
        )


class CertificateListResponse(BaseModel):
    items: list[CertificateResponse]
    total: int


class CertificateVerificationResponse(BaseModel):
    """Public verification result; holder details stay private."""

    valid: bool = True
    certificate_code: str
    kind: OfferingKind | None
    offering_id: UUID | None
    issued_at: datetime

    @classmethod
    def from_entity(cls, entity: CertificateRecord) -> "CertificateVerificationResponse":
        """Create response from entity."""
        return cls(
            certificate_code=entity.certificate_code,
            kind=entity.kind,
            offering_id=entity.offering_id,
            issued_at=entity.issued_at,
        )
