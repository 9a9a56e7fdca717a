"""Certificate eligibility, issuance and verification."""

from .eligibility import compute_eligible
from .models import CERTIFIABLE_KINDS, CertificateRecord, EligibleCertificate
from .service import (
    AlreadyCertifiedError,
    CertificateError,
    CertificateIssuanceError,
    CertificateNotFoundError,
    CertificateService,
    NotCertifiableError,
    NotEligibleError,
    generate_certificate_code,
)


__all__ = [
    "CERTIFIABLE_KINDS",
    "AlreadyCertifiedError",
    "CertificateError",
    "CertificateIssuanceError",
    "CertificateNotFoundError",
    "CertificateRecord",
    "CertificateService",
    "EligibleCertificate",
    "NotCertifiableError",
    "NotEligibleError",
    "compute_eligible",
    "generate_certificate_code",
]
