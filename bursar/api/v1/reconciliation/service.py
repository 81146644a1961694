"""
Reconciliation queue for charges the gateway captured but the ledger could not record.
Issues hold the raw transaction payload and are replayed through the normal recording path.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bursar.api.v1.payments.service import record_successful_transaction
from bursar.core.enums import ReconciliationIssueStatus
from bursar.core.exceptions import ServiceError
from bursar.core.models import ReconciliationIssue

from .schemas import ReconciliationIssueResponse, RetrySummary

logger = logging.getLogger(__name__)


async def queue_reconciliation_issue(
    db: AsyncSession,
    reference: Optional[str],
    source: str,
    payload: Dict[str, Any],
    error: str,
) -> ReconciliationIssue:
    """Store a confirmed transaction for later replay. Reuses the open issue for the same reference."""
    await db.rollback()
    reference = reference or "unknown"
    issue = (
        await db.execute(
            select(ReconciliationIssue).where(
                ReconciliationIssue.reference == reference,
                ReconciliationIssue.status == ReconciliationIssueStatus.OPEN.value,
            )
        )
    ).scalar_one_or_none()
    if issue is None:
        issue = ReconciliationIssue(
            reference=reference,
            source=source,
            payload=payload,
            status=ReconciliationIssueStatus.OPEN.value,
            attempts=0,
        )
        db.add(issue)
    issue.error = error
    await db.commit()
    await db.refresh(issue)
    logger.warning(f"Queued reconciliation issue {issue.id} for {reference} ({source}): {error}")
    return issue


async def list_reconciliation_issues(
    db: AsyncSession,
    status_filter: Optional[ReconciliationIssueStatus] = ReconciliationIssueStatus.OPEN,
) -> List[ReconciliationIssueResponse]:
    stmt = select(ReconciliationIssue).order_by(ReconciliationIssue.created_at)
    if status_filter is not None:
        stmt = stmt.where(ReconciliationIssue.status == status_filter.value)
    result = await db.execute(stmt)
    return [ReconciliationIssueResponse.model_validate(issue) for issue in result.scalars().all()]


async def retry_reconciliation_issue(db: AsyncSession, issue_id: UUID) -> ReconciliationIssueResponse:
    """Replay one issue. Recording is idempotent, so an issue recorded elsewhere in the meantime resolves too."""
    issue = await db.get(ReconciliationIssue, issue_id)
    if not issue:
        raise ServiceError("Reconciliation issue not found", status.HTTP_404_NOT_FOUND)
    if issue.status == ReconciliationIssueStatus.RESOLVED.value:
        return ReconciliationIssueResponse.model_validate(issue)

    payload = dict(issue.payload or {})
    attempts = (issue.attempts or 0) + 1
    try:
        recorded = await record_successful_transaction(db, payload)
    except (ServiceError, SQLAlchemyError) as e:
        await db.rollback()
        message = e.message if isinstance(e, ServiceError) else str(e)
        issue = await db.get(ReconciliationIssue, issue_id, populate_existing=True)
        issue.attempts = attempts
        issue.error = message
        await db.commit()
        await db.refresh(issue)
        logger.error(f"Retry of reconciliation issue {issue_id} failed: {message}")
        return ReconciliationIssueResponse.model_validate(issue)

    issue = await db.get(ReconciliationIssue, issue_id, populate_existing=True)
    issue.attempts = attempts
    if recorded is None:
        issue.error = f"Transaction status is {payload.get('status')!r}; nothing to record"
    else:
        payment, _created = recorded
        issue.payment_id = payment.id
        issue.status = ReconciliationIssueStatus.RESOLVED.value
        issue.resolved_at = datetime.now(timezone.utc)
        issue.error = None
        logger.info(f"Reconciliation issue {issue_id} resolved with receipt {payment.receipt_number}")
    await db.commit()
    await db.refresh(issue)
    return ReconciliationIssueResponse.model_validate(issue)


async def retry_open_issues(db: AsyncSession) -> RetrySummary:
    ids = (
        await db.execute(
            select(ReconciliationIssue.id)
            .where(ReconciliationIssue.status == ReconciliationIssueStatus.OPEN.value)
            .order_by(ReconciliationIssue.created_at)
        )
    ).scalars().all()
    resolved = 0
    errors: List[str] = []
    for issue_id in ids:
        result = await retry_reconciliation_issue(db, issue_id)
        if result.status == ReconciliationIssueStatus.RESOLVED:
            resolved += 1
        else:
            errors.append(f"{result.reference}: {result.error}")
    return RetrySummary(resolved=resolved, still_open=len(ids) - resolved, errors=errors)
