"""Enrollments in courses, classes and mentorships."""

from .models import EnrollmentFact, OfferingKind, PaymentStatus
from .service import DuplicateEnrollmentError, EnrollmentError, EnrollmentService


__all__ = [
    "DuplicateEnrollmentError",
    "EnrollmentError",
    "EnrollmentFact",
    "EnrollmentService",
    "OfferingKind",
    "PaymentStatus",
]
