"""
Outstanding-balance reminders: a sweep over every pending or partial obligation, and a
single reminder for one obligation. One email per obligation, no retries.
"""

import asyncio
import logging
from decimal import Decimal
from typing import Dict, List
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bursar.core.enums import ObligationStatus
from bursar.core.exceptions import ServiceError
from bursar.core.models import FeeObligation, FeeType, Student
from bursar.integrations.resend import ResendMailer
from bursar.notifications.service import load_school_profile, resolve_contact_emails
from bursar.notifications.templates import ReminderContext, SchoolProfile, render_reminder_html

from .schemas import ReminderResult, ReminderSummary

logger = logging.getLogger(__name__)

MAX_REPORTED_ERRORS = 10
DEFAULT_SEND_INTERVAL = 0.1  # seconds between sends, stays under the email provider's rate limit

OUTSTANDING_STATUSES = (ObligationStatus.pending.value, ObligationStatus.partial.value)


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def _reminder_context(ob: FeeObligation, student: Student, fee_type: FeeType) -> ReminderContext:
    return ReminderContext(
        student_name=student.full_name or "Student",
        admission_number=student.admission_number,
        class_name=student.class_name or "N/A",
        fee_type=fee_type.name if fee_type else "School Fee",
        total_amount=_to_decimal(ob.total_amount),
        amount_paid=_to_decimal(ob.amount_paid),
        balance=_to_decimal(ob.balance),
        session=ob.session,
        term=ob.term,
    )


async def _send_reminder(
    mailer: ResendMailer,
    school: SchoolProfile,
    recipient: str,
    context: ReminderContext,
) -> None:
    await mailer.send(
        to=[recipient],
        subject=f"Fee Payment Reminder - {context.student_name} ({context.admission_number})",
        html=render_reminder_html(school, context),
        sender_name=school.name,
    )


async def run_fee_reminders(
    db: AsyncSession,
    mailer: ResendMailer,
    send_interval: float = DEFAULT_SEND_INTERVAL,
) -> ReminderSummary:
    """Email every billing contact with an outstanding balance. Per-item failures are counted, not raised."""
    mailer.ensure_configured()
    logger.info("Starting scheduled fee reminder job")

    obligations: List[FeeObligation] = list(
        (
            await db.execute(
                select(FeeObligation)
                .where(FeeObligation.status.in_(OUTSTANDING_STATUSES), FeeObligation.balance > 0)
                .order_by(FeeObligation.created_at)
            )
        ).scalars().all()
    )
    summary = ReminderSummary()
    if not obligations:
        logger.info("No outstanding obligations found")
        return summary
    logger.info(f"Found {len(obligations)} outstanding obligations")

    student_ids = {ob.student_id for ob in obligations}
    fee_type_ids = {ob.fee_type_id for ob in obligations}
    students: Dict[UUID, Student] = {
        s.id: s for s in (await db.execute(select(Student).where(Student.id.in_(student_ids)))).scalars().all()
    }
    fee_types: Dict[UUID, FeeType] = {
        f.id: f for f in (await db.execute(select(FeeType).where(FeeType.id.in_(fee_type_ids)))).scalars().all()
    }
    contacts = await resolve_contact_emails(db, student_ids)
    school = await load_school_profile(db)

    for index, ob in enumerate(obligations):
        student = students.get(ob.student_id)
        recipient = contacts.get(ob.student_id)
        if not student or not recipient:
            logger.info(f"Skipping obligation {ob.id}: no contact email")
            summary.skipped += 1
            continue
        try:
            await _send_reminder(mailer, school, recipient, _reminder_context(ob, student, fee_types.get(ob.fee_type_id)))
            summary.sent += 1
            logger.info(f"Reminder sent to {recipient} for obligation {ob.id}")
        except ServiceError as e:
            summary.failed += 1
            if len(summary.errors) < MAX_REPORTED_ERRORS:
                summary.errors.append(f"Obligation {ob.id}: {e.message}")
            logger.error(f"Error processing obligation {ob.id}: {e.message}")
        if send_interval and index < len(obligations) - 1:
            await asyncio.sleep(send_interval)

    logger.info(
        f"Fee reminder job completed: sent={summary.sent} failed={summary.failed} skipped={summary.skipped}"
    )
    return summary


async def send_obligation_reminder(
    db: AsyncSession,
    mailer: ResendMailer,
    obligation_id: UUID,
) -> ReminderResult:
    """Send one reminder now. Unlike the sweep, failures are reported to the caller."""
    mailer.ensure_configured()
    ob = await db.get(FeeObligation, obligation_id, populate_existing=True)
    if not ob:
        raise ServiceError("Fee obligation not found", status.HTTP_404_NOT_FOUND)
    if ob.status not in OUTSTANDING_STATUSES or _to_decimal(ob.balance) <= 0:
        raise ServiceError("This fee has no outstanding balance", status.HTTP_400_BAD_REQUEST)

    student = await db.get(Student, ob.student_id)
    recipient = (await resolve_contact_emails(db, [ob.student_id])).get(ob.student_id)
    if not student or not recipient:
        return ReminderResult(obligation_id=ob.id, sent=False, message="No contact email for this student")

    fee_type = await db.get(FeeType, ob.fee_type_id)
    school = await load_school_profile(db)
    await _send_reminder(mailer, school, recipient, _reminder_context(ob, student, fee_type))
    logger.info(f"Reminder sent to {recipient} for obligation {ob.id}")
    return ReminderResult(obligation_id=ob.id, sent=True, recipient=recipient, message="Reminder sent")
