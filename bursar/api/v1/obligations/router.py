"""Fee obligations router: assign, list, payment options, payments, single reminder."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from bursar.api.v1.payments.schemas import PaymentResponse
from bursar.api.v1.payments.service import list_obligation_payments
from bursar.api.v1.reminders.schemas import ReminderResult
from bursar.api.v1.reminders.service import send_obligation_reminder
from bursar.auth.dependencies import get_current_user
from bursar.auth.rbac import check_permission
from bursar.auth.schemas import CurrentUser
from bursar.core.enums import ObligationStatus
from bursar.core.exceptions import ServiceError
from bursar.db.session import get_db
from bursar.integrations.resend import ResendMailer, get_mailer

from .schemas import (
    BulkObligationCreate,
    BulkObligationResult,
    ObligationCreate,
    ObligationResponse,
    PaymentOptionsResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/obligations", tags=["obligations"])


@router.post(
    "",
    response_model=ObligationResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("fees", "create"))],
)
async def assign_obligation(
    payload: ObligationCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> ObligationResponse:
    try:
        return await service.assign_obligation(db, payload, changed_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/bulk",
    response_model=BulkObligationResult,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("fees", "create"))],
)
async def bulk_assign_obligations(
    payload: BulkObligationCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> BulkObligationResult:
    try:
        return await service.bulk_assign_obligations(db, payload, changed_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[ObligationResponse],
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def list_obligations(
    student_id: Optional[UUID] = Query(None),
    session: Optional[str] = Query(None),
    term: Optional[str] = Query(None),
    status_filter: Optional[ObligationStatus] = Query(None, alias="status"),
    outstanding_only: bool = Query(False, description="Only obligations with a balance left"),
    db: AsyncSession = Depends(get_db),
) -> List[ObligationResponse]:
    return await service.list_obligations(
        db,
        student_id=student_id,
        session=session,
        term=term,
        status_filter=status_filter,
        outstanding_only=outstanding_only,
    )


@router.get(
    "/{obligation_id}",
    response_model=ObligationResponse,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def get_obligation(
    obligation_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> ObligationResponse:
    try:
        return service.ob_to_response(await service.get_obligation(db, obligation_id))
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{obligation_id}/payment-options",
    response_model=PaymentOptionsResponse,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def get_payment_options(
    obligation_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> PaymentOptionsResponse:
    try:
        return await service.get_payment_options(db, obligation_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{obligation_id}/payments",
    response_model=List[PaymentResponse],
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def list_payments_for_obligation(
    obligation_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> List[PaymentResponse]:
    try:
        await service.get_obligation(db, obligation_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return await list_obligation_payments(db, obligation_id)


@router.post(
    "/{obligation_id}/reminder",
    response_model=ReminderResult,
    dependencies=[Depends(check_permission("fees", "update"))],
)
async def send_reminder(
    obligation_id: UUID,
    db: AsyncSession = Depends(get_db),
    mailer: ResendMailer = Depends(get_mailer),
) -> ReminderResult:
    try:
        return await send_obligation_reminder(db, mailer, obligation_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
