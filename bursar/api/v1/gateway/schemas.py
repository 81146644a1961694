"""Gateway onboarding schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SubaccountCreate(BaseModel):
    business_name: str = Field(..., min_length=1, max_length=255)
    bank_code: str = Field(..., min_length=1, max_length=20)
    bank_name: Optional[str] = Field(None, max_length=255)
    account_number: str = Field(..., min_length=10, max_length=10, pattern=r"^\d+$")
    account_name: Optional[str] = Field(None, max_length=255)
    school_percentage: Decimal = Field(Decimal("95"), ge=0, le=100)


class SplitCreate(BaseModel):
    subaccount_code: Optional[str] = Field(None, max_length=100, description="Defaults to the stored school subaccount")
    school_percentage: Optional[Decimal] = Field(None, ge=0, le=100)


class GatewaySettingsResponse(BaseModel):
    id: UUID
    gateway_name: str
    school_subaccount_code: Optional[str] = None
    split_code: Optional[str] = None
    school_bank_name: Optional[str] = None
    school_account_number: Optional[str] = None
    school_account_name: Optional[str] = None
    school_percentage: Decimal
    platform_percentage: Decimal
    is_active: bool
    updated_at: datetime

    class Config:
        from_attributes = True


class BankItem(BaseModel):
    name: str
    code: str
    slug: Optional[str] = None


class ResolveAccountRequest(BaseModel):
    account_number: str = Field(..., min_length=10, max_length=10, pattern=r"^\d+$")
    bank_code: str = Field(..., min_length=1, max_length=20)


class ResolveAccountResponse(BaseModel):
    account_name: str
    account_number: str
