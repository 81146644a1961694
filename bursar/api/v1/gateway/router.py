"""Gateway onboarding router (platform admin only)."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from bursar.auth.rbac import require_platform_admin
from bursar.auth.schemas import CurrentUser
from bursar.core.exceptions import ServiceError
from bursar.db.session import get_db
from bursar.integrations.paystack import PaystackClient, get_paystack_client

from .schemas import (
    BankItem,
    GatewaySettingsResponse,
    ResolveAccountRequest,
    ResolveAccountResponse,
    SplitCreate,
    SubaccountCreate,
)
from . import service

router = APIRouter(prefix="/api/v1/gateway", tags=["gateway"])


@router.get("/settings", response_model=GatewaySettingsResponse)
async def get_gateway_settings(
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_platform_admin),
) -> GatewaySettingsResponse:
    try:
        return await service.get_gateway_settings(db)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/subaccount", response_model=GatewaySettingsResponse, status_code=status.HTTP_201_CREATED)
async def create_school_subaccount(
    payload: SubaccountCreate,
    db: AsyncSession = Depends(get_db),
    client: PaystackClient = Depends(get_paystack_client),
    current_user: CurrentUser = Depends(require_platform_admin),
) -> GatewaySettingsResponse:
    try:
        return await service.create_school_subaccount(db, client, payload, changed_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/split", response_model=GatewaySettingsResponse, status_code=status.HTTP_201_CREATED)
async def create_split_rule(
    payload: SplitCreate,
    db: AsyncSession = Depends(get_db),
    client: PaystackClient = Depends(get_paystack_client),
    current_user: CurrentUser = Depends(require_platform_admin),
) -> GatewaySettingsResponse:
    try:
        return await service.create_split_rule(db, client, payload, changed_by=current_user.id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/banks", response_model=List[BankItem])
async def list_banks(
    country: str = Query("nigeria"),
    client: PaystackClient = Depends(get_paystack_client),
    _: CurrentUser = Depends(require_platform_admin),
) -> List[BankItem]:
    try:
        return await service.list_banks(client, country)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/resolve-account", response_model=ResolveAccountResponse)
async def resolve_account_name(
    payload: ResolveAccountRequest,
    client: PaystackClient = Depends(get_paystack_client),
    _: CurrentUser = Depends(require_platform_admin),
) -> ResolveAccountResponse:
    try:
        return await service.resolve_account_name(client, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
