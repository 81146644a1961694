"""Fee obligations: assignment, lookup and payment options. Amounts are changed only by the payments service."""

import logging
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bursar.core.audit_service import log_fee_audit
from bursar.core.enums import ObligationStatus
from bursar.core.exceptions import ServiceError
from bursar.core.models import FeeObligation, FeeType, Student

from . import policy
from .schemas import (
    BulkObligationCreate,
    BulkObligationResult,
    ObligationCreate,
    ObligationResponse,
    PaymentOptionItem,
    PaymentOptionsResponse,
)

logger = logging.getLogger(__name__)


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def ob_to_response(ob: FeeObligation) -> ObligationResponse:
    return ObligationResponse(
        id=ob.id,
        student_id=ob.student_id,
        fee_type_id=ob.fee_type_id,
        session=ob.session,
        term=ob.term,
        total_amount=_to_decimal(ob.total_amount),
        amount_paid=_to_decimal(ob.amount_paid),
        balance=_to_decimal(ob.balance),
        status=ob.status,
        allow_installments=ob.allow_installments,
        installments_count=ob.installments_count,
        created_at=ob.created_at,
        updated_at=ob.updated_at,
    )


def new_obligation(
    student_id: UUID,
    fee_type_id: UUID,
    session: str,
    term: str,
    total: Decimal,
    allow_installments: bool,
    installments_count: int = 2,
) -> FeeObligation:
    return FeeObligation(
        student_id=student_id,
        fee_type_id=fee_type_id,
        session=session,
        term=term,
        total_amount=total,
        amount_paid=Decimal("0"),
        balance=total,
        status=policy.derive_status(total, Decimal("0")).value,
        allow_installments=allow_installments,
        installments_count=installments_count,
    )


async def find_obligation(
    db: AsyncSession,
    student_id: UUID,
    fee_type_id: UUID,
    session: str,
    term: str,
) -> Optional[FeeObligation]:
    stmt = (
        select(FeeObligation)
        .where(
            FeeObligation.student_id == student_id,
            FeeObligation.fee_type_id == fee_type_id,
            FeeObligation.session == session,
            FeeObligation.term == term,
        )
        .execution_options(populate_existing=True)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def assign_obligation(
    db: AsyncSession,
    payload: ObligationCreate,
    changed_by: Optional[UUID],
) -> ObligationResponse:
    student = await db.get(Student, payload.student_id)
    if not student or not student.is_active:
        raise ServiceError("Invalid student", status.HTTP_400_BAD_REQUEST)
    fee_type = await db.get(FeeType, payload.fee_type_id)
    if not fee_type or not fee_type.is_active:
        raise ServiceError("Invalid fee type", status.HTTP_400_BAD_REQUEST)
    total = payload.total_amount if payload.total_amount is not None else _to_decimal(fee_type.amount)
    session = payload.session.strip()
    term = payload.term.strip().lower()
    try:
        ob = new_obligation(
            student.id, fee_type.id, session, term, total,
            payload.allow_installments, payload.installments_count,
        )
        db.add(ob)
        await db.flush()
        await log_fee_audit(
            db, "fee_obligations", ob.id, "CREATE", None,
            {"total_amount": str(total), "session": session, "term": term, "allow_installments": ob.allow_installments},
            changed_by,
        )
        await db.commit()
        await db.refresh(ob)
        return ob_to_response(ob)
    except IntegrityError:
        await db.rollback()
        raise ServiceError(
            "Fee already assigned to this student for the selected term",
            status.HTTP_409_CONFLICT,
        )


async def bulk_assign_obligations(
    db: AsyncSession,
    payload: BulkObligationCreate,
    changed_by: Optional[UUID],
) -> BulkObligationResult:
    fee_type = await db.get(FeeType, payload.fee_type_id)
    if not fee_type or not fee_type.is_active:
        raise ServiceError("Invalid fee type", status.HTTP_400_BAD_REQUEST)
    session = payload.session.strip()
    term = payload.term.strip().lower()

    stmt = select(Student.id).where(Student.is_active.is_(True))
    if payload.class_name:
        stmt = stmt.where(Student.class_name == payload.class_name)
    if payload.student_ids:
        stmt = stmt.where(Student.id.in_(payload.student_ids))
    student_ids = list((await db.execute(stmt)).scalars().all())
    if not student_ids:
        raise ServiceError("No students found for this assignment", status.HTTP_404_NOT_FOUND)

    existing = (
        await db.execute(
            select(FeeObligation.student_id).where(
                FeeObligation.fee_type_id == fee_type.id,
                FeeObligation.session == session,
                FeeObligation.term == term,
                FeeObligation.student_id.in_(student_ids),
            )
        )
    ).scalars().all()
    existing_ids = set(existing)
    new_ids = [sid for sid in student_ids if sid not in existing_ids]

    total = _to_decimal(fee_type.amount)
    for sid in new_ids:
        db.add(new_obligation(sid, fee_type.id, session, term, total, payload.allow_installments))
    try:
        await db.flush()
        await log_fee_audit(
            db, "fee_types", fee_type.id, "BULK_ASSIGN", None,
            {"session": session, "term": term, "students": len(new_ids), "total_amount": str(total)},
            changed_by,
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ServiceError(
            "Fee was assigned concurrently to some of these students; please retry",
            status.HTTP_409_CONFLICT,
        )
    logger.info(f"Assigned fee {fee_type.id} to {len(new_ids)} students for {session} {term}")
    return BulkObligationResult(created=len(new_ids), skipped_student_ids=sorted(existing_ids, key=str))


async def list_obligations(
    db: AsyncSession,
    student_id: Optional[UUID] = None,
    session: Optional[str] = None,
    term: Optional[str] = None,
    status_filter: Optional[ObligationStatus] = None,
    outstanding_only: bool = False,
) -> List[ObligationResponse]:
    stmt = select(FeeObligation)
    if student_id is not None:
        stmt = stmt.where(FeeObligation.student_id == student_id)
    if session:
        stmt = stmt.where(FeeObligation.session == session)
    if term:
        stmt = stmt.where(FeeObligation.term == term)
    if status_filter is not None:
        stmt = stmt.where(FeeObligation.status == status_filter.value)
    if outstanding_only:
        stmt = stmt.where(FeeObligation.balance > 0)
    stmt = stmt.order_by(FeeObligation.session.desc(), FeeObligation.term, FeeObligation.created_at)
    result = await db.execute(stmt.execution_options(populate_existing=True))
    return [ob_to_response(ob) for ob in result.scalars().all()]


async def get_obligation(db: AsyncSession, obligation_id: UUID) -> FeeObligation:
    ob = await db.get(FeeObligation, obligation_id, populate_existing=True)
    if not ob:
        raise ServiceError("Fee obligation not found", status.HTTP_404_NOT_FOUND)
    return ob


async def get_payment_options(db: AsyncSession, obligation_id: UUID) -> PaymentOptionsResponse:
    ob = await get_obligation(db, obligation_id)
    return PaymentOptionsResponse(
        obligation_id=ob.id,
        status=ob.status,
        balance=_to_decimal(ob.balance),
        options=[
            PaymentOptionItem(
                option=option,
                amount=policy.amount_for_option(ob, option),
                installment_number=policy.INSTALLMENT_NUMBERS[option],
            )
            for option in policy.payment_options(ob)
        ],
    )
