"""Enrollment service.

Creates pending enrollments, answers "is this viewer enrolled?" for the
access policy, and lists paid enrollments for certificate eligibility.
"""

from uuid import UUID

from coursestream.core.logging import get_logger
from coursestream.store import RecordStore, StoreError

from .models import EnrollmentFact, OfferingKind, PaymentStatus


logger = get_logger(__name__)


class EnrollmentError(Exception):
    """Base enrollment error."""

    def __init__(self, message: str, code: str = "enrollment_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class DuplicateEnrollmentError(EnrollmentError):
    """Viewer is already enrolled in this offering."""

    def __init__(self, message: str = "Already enrolled"):
        super().__init__(message, "already_enrolled")


class EnrollmentNotFoundError(EnrollmentError):
    """Enrollment not found."""

    def __init__(self, message: str = "Enrollment not found"):
        super().__init__(message, "enrollment_not_found")


class EnrollmentUnavailableError(EnrollmentError):
    """The store could not complete the enrollment operation."""

    def __init__(self, message: str = "Enrollment could not be saved"):
        super().__init__(message, "enrollment_unavailable")


class EnrollmentService:
    """Enrollment records across all offering kinds."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def enroll(
        self,
        user_id: UUID,
        kind: OfferingKind,
        offering_id: UUID,
        payment_reference: str | None = None,
    ) -> EnrollmentFact:
        """Create a pending enrollment.

        Raises:
            DuplicateEnrollmentError: The viewer already has an enrollment
            EnrollmentUnavailableError: Any other store failure
        """
        fact = EnrollmentFact(
            user_id=user_id,
            kind=kind,
            offering_id=offering_id,
            payment_status=PaymentStatus.PENDING,
            payment_reference=payment_reference,
        )
        try:
            await self.store.insert(kind.table.name, fact.to_dict())
        except StoreError as e:
            if e.is_unique_violation:
                logger.info(
                    "enrollment_duplicate",
                    user_id=str(user_id),
                    kind=kind.value,
                    offering_id=str(offering_id),
                )
                raise DuplicateEnrollmentError() from e
            logger.error(
                "enrollment_failed",
                user_id=str(user_id),
                kind=kind.value,
                offering_id=str(offering_id),
                error_kind=e.kind.value,
            )
            raise EnrollmentUnavailableError() from e

        logger.info(
            "enrollment_created",
            user_id=str(user_id),
            kind=kind.value,
            offering_id=str(offering_id),
        )
        return fact

    async def get_enrollment(
        self,
        user_id: UUID,
        kind: OfferingKind,
        offering_id: UUID,
    ) -> EnrollmentFact | None:
        rows = await self.store.select(
            kind.table.name,
            {"user_id": user_id, kind.offering_column: offering_id},
        )
        return EnrollmentFact.from_row(kind, rows[0]) if rows else None

    async def is_enrolled(
        self,
        user_id: UUID | None,
        kind: OfferingKind,
        offering_id: UUID,
    ) -> bool:
        """True iff the viewer holds a paid or confirmed enrollment."""
        if user_id is None:
            return False
        fact = await self.get_enrollment(user_id, kind, offering_id)
        return fact is not None and fact.is_paid

    async def set_payment_status(
        self,
        user_id: UUID,
        kind: OfferingKind,
        offering_id: UUID,
        payment_status: PaymentStatus,
    ) -> EnrollmentFact:
        """Record the outcome of a payment (admin action).

        Raises:
            EnrollmentNotFoundError: No enrollment to update
        """
        fact = await self.get_enrollment(user_id, kind, offering_id)
        if fact is None:
            raise EnrollmentNotFoundError()

        await self.store.update(
            kind.table.name,
            {"user_id": user_id, kind.offering_column: offering_id},
            {"payment_status": payment_status.value},
        )
        logger.info(
            "enrollment_payment_status_changed",
            user_id=str(user_id),
            kind=kind.value,
            offering_id=str(offering_id),
            old_status=fact.payment_status.value,
            new_status=payment_status.value,
        )
        return EnrollmentFact(
            user_id=fact.user_id,
            kind=fact.kind,
            offering_id=fact.offering_id,
            payment_status=payment_status,
            payment_reference=fact.payment_reference,
            enrolled_at=fact.enrolled_at,
        )

    async def list_paid(self, kind: OfferingKind) -> list[EnrollmentFact]:
        """All paid or confirmed enrollments of one offering kind."""
        rows = await self.store.select(kind.table.name)
        facts = [EnrollmentFact.from_row(kind, row) for row in rows]
        return [fact for fact in facts if fact.is_paid]

    async def list_for_user(self, user_id: UUID) -> list[EnrollmentFact]:
        """Every enrollment of a viewer across all offering kinds."""
        facts: list[EnrollmentFact] = []
        for kind in OfferingKind:
            rows = await self.store.select(kind.table.name, {"user_id": user_id})
            facts.extend(EnrollmentFact.from_row(kind, row) for row in rows)
        return facts
