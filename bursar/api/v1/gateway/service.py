"""Gateway onboarding: school subaccount, split rule and the persisted settings row."""

import logging
from decimal import Decimal
from typing import List, Optional

from fastapi import status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bursar.core.audit_service import log_fee_audit
from bursar.core.exceptions import ServiceError
from bursar.core.models import PaymentGatewaySettings
from bursar.integrations.paystack import PaystackClient

from .schemas import (
    BankItem,
    GatewaySettingsResponse,
    ResolveAccountRequest,
    ResolveAccountResponse,
    SplitCreate,
    SubaccountCreate,
)

logger = logging.getLogger(__name__)

GATEWAY_NAME = "paystack"


async def load_gateway_settings(db: AsyncSession) -> Optional[PaymentGatewaySettings]:
    """Active settings row, read fresh for every operation."""
    return (
        await db.execute(
            select(PaymentGatewaySettings).where(
                PaymentGatewaySettings.gateway_name == GATEWAY_NAME,
                PaymentGatewaySettings.is_active.is_(True),
            )
        )
    ).scalar_one_or_none()


async def _settings_row(db: AsyncSession) -> PaymentGatewaySettings:
    row = (
        await db.execute(select(PaymentGatewaySettings).where(PaymentGatewaySettings.gateway_name == GATEWAY_NAME))
    ).scalar_one_or_none()
    if row is None:
        row = PaymentGatewaySettings(gateway_name=GATEWAY_NAME, is_active=True)
        db.add(row)
    return row


def _snapshot(row: PaymentGatewaySettings) -> dict:
    return {
        "school_subaccount_code": row.school_subaccount_code,
        "split_code": row.split_code,
        "school_account_number": row.school_account_number,
        "school_percentage": str(row.school_percentage) if row.school_percentage is not None else None,
    }


async def get_gateway_settings(db: AsyncSession) -> GatewaySettingsResponse:
    row = await load_gateway_settings(db)
    if not row:
        raise ServiceError("Payment gateway is not set up", status.HTTP_404_NOT_FOUND)
    return GatewaySettingsResponse.model_validate(row)


async def create_school_subaccount(
    db: AsyncSession,
    client: PaystackClient,
    payload: SubaccountCreate,
    changed_by=None,
) -> GatewaySettingsResponse:
    """Register the school's settlement account with the gateway and store the subaccount code."""
    platform_percentage = Decimal("100") - payload.school_percentage
    data = await client.create_subaccount(
        business_name=payload.business_name.strip(),
        bank_code=payload.bank_code,
        account_number=payload.account_number,
        percentage_charge=platform_percentage,
    )
    subaccount_code = (data or {}).get("subaccount_code")
    if not subaccount_code:
        raise ServiceError("Gateway did not return a subaccount code", status.HTTP_502_BAD_GATEWAY)

    row = await _settings_row(db)
    old = _snapshot(row) if row.id else None
    row.school_subaccount_code = subaccount_code
    row.school_bank_name = payload.bank_name or data.get("settlement_bank")
    row.school_account_number = payload.account_number
    row.school_account_name = payload.account_name or data.get("account_name") or payload.business_name
    row.school_percentage = payload.school_percentage
    row.platform_percentage = platform_percentage
    row.is_active = True
    await db.flush()
    await log_fee_audit(db, "payment_gateway_settings", row.id, "SUBACCOUNT", old, _snapshot(row), changed_by)
    await db.commit()
    await db.refresh(row)
    logger.info(f"Created gateway subaccount {subaccount_code} for account {payload.account_number}")
    return GatewaySettingsResponse.model_validate(row)


async def create_split_rule(
    db: AsyncSession,
    client: PaystackClient,
    payload: SplitCreate,
    changed_by=None,
) -> GatewaySettingsResponse:
    """Create the percentage split used on every checkout and store its code."""
    row = await load_gateway_settings(db)
    subaccount_code = payload.subaccount_code or (row.school_subaccount_code if row else None)
    if not subaccount_code:
        raise ServiceError("Create the school subaccount first", status.HTTP_400_BAD_REQUEST)
    school_share = payload.school_percentage
    if school_share is None:
        school_share = row.school_percentage if row else Decimal("95")

    data = await client.create_split(subaccount_code=subaccount_code, school_share=school_share)
    split_code = (data or {}).get("split_code")
    if not split_code:
        raise ServiceError("Gateway did not return a split code", status.HTTP_502_BAD_GATEWAY)

    if row is None:
        row = await _settings_row(db)
    old = _snapshot(row) if row.id else None
    row.school_subaccount_code = subaccount_code
    row.split_code = split_code
    row.school_percentage = school_share
    row.platform_percentage = Decimal("100") - Decimal(str(school_share))
    await db.flush()
    await log_fee_audit(db, "payment_gateway_settings", row.id, "SPLIT", old, _snapshot(row), changed_by)
    await db.commit()
    await db.refresh(row)
    logger.info(f"Created split {split_code} for subaccount {subaccount_code}")
    return GatewaySettingsResponse.model_validate(row)


async def list_banks(client: PaystackClient, country: str = "nigeria") -> List[BankItem]:
    banks = await client.list_banks(country)
    return [BankItem(**bank) for bank in banks if bank.get("name") and bank.get("code")]


async def resolve_account_name(client: PaystackClient, payload: ResolveAccountRequest) -> ResolveAccountResponse:
    data = await client.resolve_account_name(account_number=payload.account_number, bank_code=payload.bank_code)
    data = data or {}
    if not data.get("account_name"):
        raise ServiceError("Could not resolve account name", status.HTTP_400_BAD_REQUEST)
    return ResolveAccountResponse(
        account_name=data["account_name"],
        account_number=data.get("account_number") or payload.account_number,
    )
