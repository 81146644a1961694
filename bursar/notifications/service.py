"""Contact resolution and receipt delivery. Sending never affects recorded payments."""

import logging
from datetime import datetime
from typing import Dict, Iterable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bursar.core.enums import PaymentMethod
from bursar.core.exceptions import ServiceError
from bursar.core.models import FeePayment, FeeType, Guardian, SchoolSettings, Student, StudentGuardian
from bursar.integrations.resend import ResendMailer
from bursar.notifications.templates import ReceiptContext, SchoolProfile, render_receipt_html

logger = logging.getLogger(__name__)

DEFAULT_SCHOOL_NAME = "School Management System"

PAYMENT_METHOD_LABELS = {
    PaymentMethod.CASH.value: "Cash",
    PaymentMethod.BANK_TRANSFER.value: "Bank Transfer",
    PaymentMethod.ONLINE.value: "Online",
    PaymentMethod.CHEQUE.value: "Cheque",
    PaymentMethod.POS.value: "POS",
}


async def load_school_profile(db: AsyncSession) -> SchoolProfile:
    row = (await db.execute(select(SchoolSettings).limit(1))).scalar_one_or_none()
    if not row:
        return SchoolProfile(name=DEFAULT_SCHOOL_NAME)
    return SchoolProfile(
        name=row.school_name,
        address=row.school_address or "",
        phone=row.school_phone or "",
        email=row.school_email or "",
        primary_color=row.primary_color,
        logo_url=row.logo_url,
    )


async def resolve_contact_emails(db: AsyncSession, student_ids: Iterable[UUID]) -> Dict[UUID, str]:
    """
    Billing contact per student: primary guardian, then any guardian, then the student's own email.
    Students with no usable address are absent from the result.
    """
    ids = list(set(student_ids))
    if not ids:
        return {}
    rows = (
        await db.execute(
            select(StudentGuardian.student_id, StudentGuardian.is_primary, Guardian.email)
            .join(Guardian, StudentGuardian.guardian_id == Guardian.id)
            .where(StudentGuardian.student_id.in_(ids), Guardian.email.isnot(None))
            .order_by(StudentGuardian.is_primary.desc())
        )
    ).all()
    contacts: Dict[UUID, str] = {}
    for student_id, _is_primary, email in rows:
        if email and student_id not in contacts:
            contacts[student_id] = email
    missing = [sid for sid in ids if sid not in contacts]
    if missing:
        student_rows = (
            await db.execute(select(Student.id, Student.email).where(Student.id.in_(missing)))
        ).all()
        for student_id, email in student_rows:
            if email:
                contacts[student_id] = email
    return contacts


async def resolve_contact_email(
    db: AsyncSession,
    student_id: Optional[UUID],
    payer_email: Optional[str] = None,
) -> Optional[str]:
    """The gateway payer's email wins; otherwise the student's billing contact."""
    if payer_email:
        return payer_email
    if student_id is None:
        return None
    return (await resolve_contact_emails(db, [student_id])).get(student_id)


async def send_payment_receipt(
    db: AsyncSession,
    mailer: ResendMailer,
    payment: FeePayment,
    payer_email: Optional[str] = None,
) -> bool:
    """Email the receipt for a recorded payment. Returns True when sent; failures are logged, never raised."""
    if not mailer.is_configured:
        logger.info(f"Skipping receipt {payment.receipt_number}: email service not configured")
        return False
    try:
        recipient = await resolve_contact_email(db, payment.student_id, payer_email or payment.payer_email)
        if not recipient:
            logger.info(f"Skipping receipt {payment.receipt_number}: no recipient email")
            return False

        student = await db.get(Student, payment.student_id) if payment.student_id else None
        fee_type = await db.get(FeeType, payment.fee_type_id) if payment.fee_type_id else None
        school = await load_school_profile(db)
        paid_at = payment.paid_at or datetime.utcnow()

        html = render_receipt_html(
            school,
            ReceiptContext(
                student_name=(student.full_name if student else None) or "Student",
                admission_number=student.admission_number if student else "N/A",
                class_name=(student.class_name if student else None) or "N/A",
                fee_type=fee_type.name if fee_type else "School Fee",
                amount=payment.amount_paid,
                payment_method=PAYMENT_METHOD_LABELS.get(payment.payment_method, payment.payment_method),
                payment_date=paid_at.strftime("%d %b %Y"),
                receipt_number=payment.receipt_number,
                session=payment.session or "",
                term=payment.term or "",
            ),
        )
        await mailer.send(
            to=[recipient],
            subject=f"Payment Receipt - {payment.receipt_number}",
            html=html,
            sender_name=school.name,
        )
    except ServiceError as e:
        logger.error(f"Failed to send receipt {payment.receipt_number}: {e.message}")
        return False
    except SQLAlchemyError as e:
        logger.error(f"Failed to build receipt {payment.receipt_number}: {e}", exc_info=True)
        return False
    logger.info(f"Receipt {payment.receipt_number} sent to {recipient}")
    return True
