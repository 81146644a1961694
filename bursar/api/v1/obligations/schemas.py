"""Fee obligation schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from bursar.core.enums import ObligationStatus, PaymentOption


class ObligationCreate(BaseModel):
    student_id: UUID
    fee_type_id: UUID
    session: str = Field(..., max_length=20, description="e.g. 2024/2025")
    term: str = Field(..., max_length=20, description="first, second, third")
    total_amount: Optional[Decimal] = Field(None, ge=0, description="Defaults to the fee type amount")
    allow_installments: bool = False
    installments_count: int = Field(2, ge=1, le=2)


class BulkObligationCreate(BaseModel):
    """Assign one fee to every active student of a class, or to an explicit list of students."""

    fee_type_id: UUID
    session: str = Field(..., max_length=20)
    term: str = Field(..., max_length=20)
    class_name: Optional[str] = Field(None, max_length=100)
    student_ids: List[UUID] = Field(default_factory=list)
    allow_installments: bool = False

    @model_validator(mode="after")
    def _require_target(self) -> "BulkObligationCreate":
        if not self.class_name and not self.student_ids:
            raise ValueError("class_name or student_ids is required")
        return self


class BulkObligationResult(BaseModel):
    created: int
    skipped_student_ids: List[UUID]


class ObligationResponse(BaseModel):
    id: UUID
    student_id: UUID
    fee_type_id: UUID
    session: str
    term: str
    total_amount: Decimal
    amount_paid: Decimal
    balance: Decimal
    status: ObligationStatus
    allow_installments: bool
    installments_count: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PaymentOptionItem(BaseModel):
    option: PaymentOption
    amount: Decimal
    installment_number: Optional[int] = None


class PaymentOptionsResponse(BaseModel):
    obligation_id: UUID
    status: ObligationStatus
    balance: Decimal
    options: List[PaymentOptionItem]
