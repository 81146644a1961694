"""Reconciliation queue router (platform admin only)."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bursar.auth.rbac import require_platform_admin
from bursar.auth.schemas import CurrentUser
from bursar.core.enums import ReconciliationIssueStatus
from bursar.core.exceptions import ServiceError
from bursar.db.session import get_db

from .schemas import ReconciliationIssueResponse, RetrySummary
from . import service

router = APIRouter(prefix="/api/v1/reconciliation", tags=["reconciliation"])


@router.get("/issues", response_model=List[ReconciliationIssueResponse])
async def list_issues(
    status_filter: Optional[ReconciliationIssueStatus] = Query(ReconciliationIssueStatus.OPEN, alias="status"),
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_platform_admin),
) -> List[ReconciliationIssueResponse]:
    return await service.list_reconciliation_issues(db, status_filter)


@router.post("/issues/{issue_id}/retry", response_model=ReconciliationIssueResponse)
async def retry_issue(
    issue_id: UUID,
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_platform_admin),
) -> ReconciliationIssueResponse:
    try:
        return await service.retry_reconciliation_issue(db, issue_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/retry", response_model=RetrySummary)
async def retry_all(
    db: AsyncSession = Depends(get_db),
    _: CurrentUser = Depends(require_platform_admin),
) -> RetrySummary:
    return await service.retry_open_issues(db)
