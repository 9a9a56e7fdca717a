"""Certificate eligibility: paid enrollments minus issued certificates."""

from collections.abc import Iterable

from coursestream.enrollments.models import EnrollmentFact

from .models import CERTIFIABLE_KINDS, CertificateRecord, EligibilityKey, EligibleCertificate


def compute_eligible(
    paid_enrollments: Iterable[EnrollmentFact],
    certificates: Iterable[CertificateRecord],
) -> list[EligibleCertificate]:
    """Paid enrollments that do not have a certificate yet.

    Runs in O(E + C): issued certificates are indexed into a set of
    (user, kind, offering) keys and each enrollment is a membership test.
    Unpaid and non-certifiable enrollments are skipped. The result keeps
    input order and holds each key at most once.
    """
    issued: set[EligibilityKey] = set()
    for certificate in certificates:
        issued.update(certificate.eligibility_keys())

    eligible: list[EligibleCertificate] = []
    seen: set[EligibilityKey] = set()
    for enrollment in paid_enrollments:
        if not enrollment.is_paid or enrollment.kind not in CERTIFIABLE_KINDS:
            continue
        candidate = EligibleCertificate(
            user_id=enrollment.user_id,
            kind=enrollment.kind,
            offering_id=enrollment.offering_id,
        )
        if candidate.key in issued or candidate.key in seen:
            continue
        seen.add(candidate.key)
        eligible.append(candidate)
    return eligible
