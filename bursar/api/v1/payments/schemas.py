"""Payments schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from bursar.api.v1.obligations.schemas import ObligationResponse
from bursar.core.enums import PaymentMethod, PaymentOption


class ManualPaymentCreate(BaseModel):
    student_id: UUID
    fee_type_id: UUID
    session: str = Field(..., max_length=20, description="e.g. 2024/2025")
    term: str = Field(..., max_length=20, description="first, second, third")
    amount_paid: Decimal = Field(..., gt=0)
    payment_method: PaymentMethod = PaymentMethod.CASH
    payment_option: PaymentOption = PaymentOption.FULL
    obligation_id: Optional[UUID] = None
    transaction_reference: Optional[str] = Field(None, max_length=100)
    paid_at: Optional[datetime] = None


class PaymentResponse(BaseModel):
    id: UUID
    obligation_id: Optional[UUID] = None
    student_id: Optional[UUID] = None
    fee_type_id: Optional[UUID] = None
    session: Optional[str] = None
    term: Optional[str] = None
    amount_paid: Decimal
    platform_fee: Decimal
    school_amount: Decimal
    payment_method: str
    transaction_reference: str
    receipt_number: str
    installment_number: Optional[int] = None
    payer_email: Optional[str] = None
    channel: Optional[str] = None
    currency: Optional[str] = None
    paid_at: datetime
    recorded_by: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class RecordPaymentResponse(BaseModel):
    payment: PaymentResponse
    obligation: Optional[ObligationResponse] = None
    already_recorded: bool = False


# --- Online ---
class InitializePaymentRequest(BaseModel):
    student_id: UUID
    fee_type_id: UUID
    session: str = Field(..., max_length=20)
    term: str = Field(..., max_length=20)
    payment_option: PaymentOption = PaymentOption.FULL
    amount: Optional[Decimal] = Field(None, gt=0, description="Defaults to the amount of the chosen option")
    email: Optional[str] = Field(None, max_length=255, description="Payer email; defaults to the billing contact")
    callback_url: Optional[str] = Field(None, max_length=500)


class InitializePaymentResponse(BaseModel):
    authorization_url: str
    access_code: Optional[str] = None
    reference: str
    amount: Decimal
    platform_fee: Decimal
    school_amount: Decimal
    installment_number: Optional[int] = None


class VerifyPaymentRequest(BaseModel):
    reference: str = Field(..., min_length=1, max_length=100)


class VerifyPaymentResponse(BaseModel):
    verified: bool
    status: str
    message: str
    payment: Optional[PaymentResponse] = None
    obligation: Optional[ObligationResponse] = None
    already_recorded: bool = False


class TransactionStatusResponse(BaseModel):
    reference: str
    status: str = Field(..., description="processing, paid")
    amount: Decimal
    receipt_number: Optional[str] = None
    payment_id: Optional[UUID] = None
