"""Payments router: manual entry, online checkout, verification, history, receipts."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from bursar.auth.dependencies import get_current_user
from bursar.auth.rbac import check_permission
from bursar.auth.schemas import CurrentUser
from bursar.core.exceptions import ServiceError
from bursar.db.session import get_db
from bursar.integrations.paystack import PaystackClient, get_paystack_client
from bursar.integrations.resend import ResendMailer, get_mailer

from .schemas import (
    InitializePaymentRequest,
    InitializePaymentResponse,
    ManualPaymentCreate,
    PaymentResponse,
    RecordPaymentResponse,
    TransactionStatusResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/payments", tags=["payments"])


@router.post(
    "",
    response_model=RecordPaymentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission("fees", "create"))],
)
async def record_manual_payment(
    payload: ManualPaymentCreate,
    db: AsyncSession = Depends(get_db),
    mailer: ResendMailer = Depends(get_mailer),
    current_user: CurrentUser = Depends(get_current_user),
) -> RecordPaymentResponse:
    """Cash, bank transfer, cheque or POS payment entered by the bursary."""
    try:
        result = await service.record_manual_payment(db, payload, recorded_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not result.already_recorded:
        payment = await service.get_payment_by_reference(db, result.payment.transaction_reference)
        if payment is not None:
            await service.send_payment_receipt(db, mailer, payment)
    return result


@router.post(
    "/initialize",
    response_model=InitializePaymentResponse,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def initialize_payment(
    payload: InitializePaymentRequest,
    db: AsyncSession = Depends(get_db),
    client: PaystackClient = Depends(get_paystack_client),
    current_user: CurrentUser = Depends(get_current_user),
) -> InitializePaymentResponse:
    try:
        return await service.initialize_online_payment(db, client, payload, initiated_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/verify",
    response_model=VerifyPaymentResponse,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def verify_payment(
    payload: VerifyPaymentRequest,
    db: AsyncSession = Depends(get_db),
    client: PaystackClient = Depends(get_paystack_client),
    mailer: ResendMailer = Depends(get_mailer),
) -> VerifyPaymentResponse:
    try:
        return await service.verify_payment(db, client, payload.reference, mailer=mailer)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/transactions/{reference}",
    response_model=TransactionStatusResponse,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def get_transaction_status(
    reference: str,
    db: AsyncSession = Depends(get_db),
) -> TransactionStatusResponse:
    try:
        return await service.get_transaction_status(db, reference)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[PaymentResponse],
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def get_payment_history(
    student_id: UUID,
    session: Optional[str] = Query(None),
    term: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[PaymentResponse]:
    return await service.get_payment_history(db, student_id, session=session, term=term)


@router.get(
    "/receipts/{receipt_number}",
    response_model=PaymentResponse,
    dependencies=[Depends(check_permission("fees", "read"))],
)
async def get_receipt(
    receipt_number: str,
    db: AsyncSession = Depends(get_db),
) -> PaymentResponse:
    try:
        return await service.get_payment_by_receipt(db, receipt_number)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
