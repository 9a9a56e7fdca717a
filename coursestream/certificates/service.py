"""Certificate issuance and public verification."""

import secrets
from datetime import UTC, datetime
from uuid import uuid1

from coursestream.core.logging import get_logger
from coursestream.enrollments.models import OfferingKind
from coursestream.enrollments.service import EnrollmentService
from coursestream.store import RecordStore, StoreError
from coursestream.store.tables import CERTIFICATE_VERIFICATIONS, CERTIFICATES

from .eligibility import compute_eligible
from .models import CERTIFIABLE_KINDS, CertificateRecord, EligibleCertificate


logger = get_logger(__name__)

_BASE36_DIGITS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
CODE_RANDOM_LENGTH = 6


class CertificateError(Exception):
    """Base certificate error."""

    def __init__(self, message: str, code: str = "certificate_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CertificateIssuanceError(CertificateError):
    """The certificate insert was rejected; nothing was written."""

    def __init__(self, message: str = "Certificate could not be issued", kind: str | None = None):
        super().__init__(message, "issuance_failed")
        self.kind = kind

    @property
    def is_conflict(self) -> bool:
        return self.kind == "unique_violation"


class CertificateNotFoundError(CertificateError):
    """No public certificate with this code."""

    def __init__(self, message: str = "Certificate not found"):
        super().__init__(message, "certificate_not_found")


class NotCertifiableError(CertificateError):
    """Offering kind cannot carry a certificate."""

    def __init__(self, message: str = "Offering kind cannot be certified"):
        super().__init__(message, "not_certifiable")


class NotEligibleError(CertificateError):
    """The holder has no paid enrollment in the offering."""

    def __init__(self, message: str = "No paid enrollment for this offering"):
        super().__init__(message, "not_eligible")


class AlreadyCertifiedError(CertificateError):
    """A certificate for this holder and offering already exists."""

    def __init__(self, message: str = "Certificate already issued"):
        super().__init__(message, "already_certified")


def to_base36(value: int) -> str:
    """Uppercase base-36 representation of a non-negative integer."""
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def generate_certificate_code(prefix: str, now: datetime | None = None) -> str:
    """``<PREFIX>-CERT-<base36 ms timestamp>-<6 random base36 chars>``.

    Codes are unique in practice but not guaranteed; a collision fails the
    insert as a uniqueness violation.
    """
    now = now or datetime.now(UTC)
    millis = int(now.timestamp() * 1000)
    suffix = "".join(secrets.choice(_BASE36_DIGITS) for _ in range(CODE_RANDOM_LENGTH))
    return f"{prefix}-CERT-{to_base36(millis)}-{suffix}".upper()


class CertificateService:
    """Eligibility listing, issuance and verification of certificates."""

    def __init__(
        self,
        store: RecordStore,
        enrollments: EnrollmentService,
        code_prefix: str = "JU10",
    ):
        self.store = store
        self.enrollments = enrollments
        self.code_prefix = code_prefix

    async def _all_certificates(self) -> list[CertificateRecord]:
        rows = await self.store.select(CERTIFICATES.name)
        return [CertificateRecord.from_row(row) for row in rows]

    async def list_eligible(self) -> list[EligibleCertificate]:
        """Paid enrollments of every kind that still lack a certificate."""
        paid = []
        for kind in OfferingKind:
            paid.extend(await self.enrollments.list_paid(kind))
        certificates = await self._all_certificates()
        eligible = compute_eligible(paid, certificates)
        logger.debug(
            "certificate_eligibility_computed",
            paid_enrollments=len(paid),
            certificates=len(certificates),
            eligible=len(eligible),
        )
        return eligible

    async def issue(
        self,
        candidate: EligibleCertificate,
        code: str | None = None,
    ) -> CertificateRecord:
        """Issue a certificate with a single insert.

        The candidate must still be eligible: a paid enrollment and no
        certificate naming the same holder and offering.

        Raises:
            NotCertifiableError: Candidate kind has no certificate column
            NotEligibleError: No paid enrollment in the offering
            AlreadyCertifiedError: The offering is already certified for the holder
            CertificateIssuanceError: The store rejected the insert
        """
        if candidate.kind not in CERTIFIABLE_KINDS:
            raise NotCertifiableError()

        try:
            enrolled = await self.enrollments.is_enrolled(
                candidate.user_id, candidate.kind, candidate.offering_id
            )
            held = await self.store.select(
                CERTIFICATES.name, {"user_id": candidate.user_id}
            )
        except StoreError as e:
            raise CertificateIssuanceError(e.message, kind=e.kind.value) from e

        if not enrolled:
            raise NotEligibleError()
        if any(
            candidate.key in CertificateRecord.from_row(row).eligibility_keys()
            for row in held
        ):
            logger.info(
                "certificate_already_issued",
                user_id=str(candidate.user_id),
                kind=candidate.kind.value,
                offering_id=str(candidate.offering_id),
            )
            raise AlreadyCertifiedError()

        record = CertificateRecord.for_candidate(
            candidate, code or generate_certificate_code(self.code_prefix)
        )
        try:
            await self.store.insert(CERTIFICATES.name, record.to_dict())
        except StoreError as e:
            logger.error(
                "certificate_issue_failed",
                user_id=str(candidate.user_id),
                kind=candidate.kind.value,
                offering_id=str(candidate.offering_id),
                error_kind=e.kind.value,
            )
            raise CertificateIssuanceError(e.message, kind=e.kind.value) from e

        logger.info(
            "certificate_issued",
            certificate_id=str(record.id),
            certificate_code=record.certificate_code,
            user_id=str(record.user_id),
            kind=candidate.kind.value,
            offering_id=str(candidate.offering_id),
        )
        return record

    async def get_by_code(self, code: str) -> CertificateRecord | None:
        rows = await self.store.select(CERTIFICATES.name, {"certificate_code": code})
        return CertificateRecord.from_row(rows[0]) if rows else None

    async def verify(self, code: str) -> CertificateRecord:
        """Public lookup of a certificate by its code.

        The lookup is logged in ``certificate_verifications``; a failure to
        log does not fail the verification.

        Raises:
            CertificateNotFoundError: Unknown code or private certificate
        """
        record = await self.get_by_code(code.strip())
        if record is None or not record.is_public:
            logger.info("certificate_verification_miss", certificate_code=code)
            raise CertificateNotFoundError()

        try:
            await self.store.insert(
                CERTIFICATE_VERIFICATIONS.name,
                {
                    "certificate_id": record.id,
                    "id": uuid1(),
                    "verified_at": datetime.now(UTC),
                },
            )
        except StoreError as e:
            logger.warning(
                "certificate_verification_log_failed",
                certificate_id=str(record.id),
                error_kind=e.kind.value,
            )

        logger.info("certificate_verified", certificate_id=str(record.id))
        return record

    async def list_certificates(self, search: str | None = None) -> list[CertificateRecord]:
        """All certificates, newest first, optionally filtered.

        ``search`` matches a fragment of the code (case-insensitive) or the
        exact holder/offering id.
        """
        certificates = await self._all_certificates()
        if search:
            term = search.strip().lower()
            certificates = [
                c
                for c in certificates
                if term in c.certificate_code.lower()
                or term == str(c.user_id)
                or (c.offering_id is not None and term == str(c.offering_id))
            ]
        return sorted(certificates, key=lambda c: c.issued_at, reverse=True)
