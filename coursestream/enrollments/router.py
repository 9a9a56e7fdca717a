"""Enrollment API endpoints."""

from fastapi import APIRouter, status

from coursestream.auth.dependencies import AdminViewer, CurrentViewer

from .dependencies import EnrollmentServiceDep, handle_enrollment_error
from .schemas import (
    EnrollmentListResponse,
    EnrollmentResponse,
    EnrollRequest,
    PaymentStatusUpdateRequest,
)
from .service import EnrollmentError


router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])
admin_router = APIRouter(prefix="/v1/admin/enrollments", tags=["admin"])


@router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in an offering",
)
async def enroll(
    data: EnrollRequest,
    enrollment_service: EnrollmentServiceDep,
    viewer: CurrentViewer,
) -> EnrollmentResponse:
    """Create a pending enrollment. Returns 409 if already enrolled."""
    try:
        fact = await enrollment_service.enroll(
            user_id=viewer.id,
            kind=data.kind,
            offering_id=data.offering_id,
            payment_reference=data.payment_reference,
        )
    except EnrollmentError as e:
        raise handle_enrollment_error(e) from e
    return EnrollmentResponse.from_entity(fact)


@router.get(
    "/me",
    response_model=EnrollmentListResponse,
    summary="List my enrollments",
)
async def list_my_enrollments(
    enrollment_service: EnrollmentServiceDep,
    viewer: CurrentViewer,
) -> EnrollmentListResponse:
    facts = await enrollment_service.list_for_user(viewer.id)
    items = [EnrollmentResponse.from_entity(fact) for fact in facts]
    return EnrollmentListResponse(items=items, total=len(items))


@admin_router.put(
    "/payment-status",
    response_model=EnrollmentResponse,
    summary="Set enrollment payment status",
)
async def set_payment_status(
    data: PaymentStatusUpdateRequest,
    enrollment_service: EnrollmentServiceDep,
    _admin: AdminViewer,
) -> EnrollmentResponse:
    try:
        fact = await enrollment_service.set_payment_status(
            user_id=data.user_id,
            kind=data.kind,
            offering_id=data.offering_id,
            payment_status=data.payment_status,
        )
    except EnrollmentError as e:
        raise handle_enrollment_error(e) from e
    return EnrollmentResponse.from_entity(fact)
