"""Scheduled reminder sweep, triggered by the platform scheduler."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from bursar.auth.dependencies import require_cron_secret
from bursar.core.exceptions import ServiceError
from bursar.db.session import get_db
from bursar.integrations.resend import ResendMailer, get_mailer

from .schemas import ReminderSummary
from . import service

router = APIRouter(prefix="/api/v1/reminders", tags=["reminders"])


@router.post("/run", response_model=ReminderSummary, dependencies=[Depends(require_cron_secret)])
async def run_fee_reminders(
    db: AsyncSession = Depends(get_db),
    mailer: ResendMailer = Depends(get_mailer),
) -> ReminderSummary:
    try:
        return await service.run_fee_reminders(db, mailer)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
