"""Pydantic schemas for enrollments."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from .models import EnrollmentFact, OfferingKind, PaymentStatus


class EnrollRequest(BaseModel):
    """Request to enroll in an offering."""

    kind: OfferingKind = Field(..., description="Offering kind")
    offering_id: UUID = Field(..., description="Course, class group or mentorship UUID")
    payment_reference: str | None = Field(
        default=None, max_length=200, description="Payment gateway reference"
    )


class PaymentStatusUpdateRequest(BaseModel):
    """Admin update of an enrollment's payment status."""

    user_id: UUID
    kind: OfferingKind
    offering_id: UUID
    payment_status: PaymentStatus


class EnrollmentResponse(BaseModel):
    """Enrollment response."""

    user_id: UUID
    kind: OfferingKind
    offering_id: UUID
    payment_status: PaymentStatus
    is_paid: bool
    enrolled_at: datetime

    @classmethod
    def from_entity(cls, entity: EnrollmentFact) -> "EnrollmentResponse":
        """Create response from entity."""
        return cls(
            user_id=entity.user_id,
            kind=entity.kind,
            offering_id=entity.offering_id,
            payment_status=entity.payment_status,
            is_paid=entity.is_paid,
            enrolled_at=entity.enrolled_at,
        )


class EnrollmentListResponse(BaseModel):
    items: list[EnrollmentResponse]
    total: int
