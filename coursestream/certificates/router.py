"""Certificate API endpoints.

Provides routes for:
- Admin: eligible enrollments, issuance, listing
- Public: verification by certificate code
"""

from fastapi import APIRouter, Query, status

from coursestream.auth.dependencies import AdminViewer

from .dependencies import CertificateServiceDep, handle_certificate_error
from .schemas import (
    CertificateListResponse,
    CertificateResponse,
    CertificateVerificationResponse,
    EligibleCertificateListResponse,
    EligibleCertificateResponse,
    IssueCertificateRequest,
)
from .service import CertificateError


admin_router = APIRouter(prefix="/v1/admin/certificates", tags=["admin"])
public_router = APIRouter(prefix="/v1/certificates", tags=["certificates"])


@admin_router.get(
    "/eligible",
    response_model=EligibleCertificateListResponse,
    summary="List enrollments eligible for a certificate",
)
async def list_eligible(
    certificate_service: CertificateServiceDep,
    _admin: AdminViewer,
) -> EligibleCertificateListResponse:
    eligible = await certificate_service.list_eligible()
    items = [EligibleCertificateResponse.from_entity(e) for e in eligible]
    return EligibleCertificateListResponse(items=items, total=len(items))


@admin_router.post(
    "",
    response_model=CertificateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Issue a certificate",
)
async def issue_certificate(
    data: IssueCertificateRequest,
    certificate_service: CertificateServiceDep,
    _admin: AdminViewer,
) -> CertificateResponse:
    try:
        record = await certificate_service.issue(data.to_candidate())
    except CertificateError as e:
        raise handle_certificate_error(e) from e
    return CertificateResponse.from_entity(record)


@admin_router.get(
    "",
    response_model=CertificateListResponse,
    summary="List issued certificates",
)
async def list_certificates(
    certificate_service: CertificateServiceDep,
    _admin: AdminViewer,
    search: str | None = Query(default=None, max_length=100),
) -> CertificateListResponse:
    records = await certificate_service.list_certificates(search)
    items = [CertificateResponse.from_entity(r) for r in records]
    return CertificateListResponse(items=items, total=len(items))


@public_router.get(
    "/{code}",
    response_model=CertificateVerificationResponse,
    summary="Verify a certificate",
)
async def verify_certificate(
    code: str,
    certificate_service: CertificateServiceDep,
) -> CertificateVerificationResponse:
    """Public verification. Unknown and private certificates are both 404."""
    try:
        record = await certificate_service.verify(code)
    except CertificateError as e:
        raise handle_certificate_error(e) from e
    return CertificateVerificationResponse.from_entity(record)
