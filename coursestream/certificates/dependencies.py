"""FastAPI dependencies for certificates."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import CertificateError, CertificateIssuanceError, CertificateService


async def get_certificate_service(request: Request) -> CertificateService:
    """Get certificate service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "certificate_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Certificate service not available",
        )
    return app_state.certificate_service


# Type alias for dependency injection
CertificateServiceDep = Annotated[CertificateService, Depends(get_certificate_service)]


def handle_certificate_error(error: CertificateError) -> HTTPException:
    """Convert certificate errors to HTTP exceptions.

    A rejected issuance is a conflict when the code (or record) already
    exists, and a bad gateway when the store itself failed.
    """
    if isinstance(error, CertificateIssuanceError):
        status_code = (
            status.HTTP_409_CONFLICT if error.is_conflict else status.HTTP_502_BAD_GATEWAY
        )
        return HTTPException(status_code=status_code, detail=error.message)

    status_map = {
        "certificate_not_found": status.HTTP_404_NOT_FOUND,
        "not_certifiable": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "not_eligible": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "already_certified": status.HTTP_409_CONFLICT,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
