"""
Payments service: the single recording path shared by manual entry, client verification
and gateway webhooks, plus online checkout initialization and payment lookups.

Recording is idempotent on transaction_reference. The fee_payments unique constraint is
the arbiter when two callers race on the same reference; the loser rolls back and gets
the winner's row. The obligation is incremented in one UPDATE in the same transaction
as the payment insert, so the ledger never holds one without the other.
"""

import json
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from fastapi import status
from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bursar.api.v1.gateway.service import load_gateway_settings
from bursar.api.v1.obligations import policy
from bursar.api.v1.obligations.service import find_obligation, new_obligation, ob_to_response
from bursar.core.audit_service import log_fee_audit
from bursar.core.config import settings
from bursar.core.enums import GatewayTransactionStatus, ObligationStatus, PaymentMethod
from bursar.core.exceptions import ReconciliationError, ServiceError
from bursar.core.models import FeeObligation, FeePayment, FeeType, GatewayTransaction, Student
from bursar.core.receipts import generate_receipt_number, generate_transaction_reference
from bursar.core.split import compute_split, from_minor_units
from bursar.integrations.paystack import PaystackClient
from bursar.integrations.resend import ResendMailer
from bursar.notifications.service import resolve_contact_email, send_payment_receipt

from .schemas import (
    InitializePaymentRequest,
    InitializePaymentResponse,
    ManualPaymentCreate,
    PaymentResponse,
    RecordPaymentResponse,
    TransactionStatusResponse,
    VerifyPaymentResponse,
)

logger = logging.getLogger(__name__)

MAX_RECEIPT_ATTEMPTS = 3


def _to_uuid(val) -> Optional[UUID]:
    if val is None or val == "":
        return None
    if isinstance(val, UUID):
        return val
    try:
        return UUID(str(val))
    except ValueError:
        return None


def _to_decimal(val) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


@dataclass(frozen=True)
class PaymentEntry:
    """Everything the recording path needs, whatever the payment method."""

    amount: Decimal
    payment_method: PaymentMethod
    student_id: Optional[UUID] = None
    fee_type_id: Optional[UUID] = None
    session: Optional[str] = None
    term: Optional[str] = None
    obligation_id: Optional[UUID] = None
    transaction_reference: Optional[str] = None
    installment_number: Optional[int] = None
    payer_email: Optional[str] = None
    channel: Optional[str] = None
    currency: Optional[str] = None
    paid_at: Optional[datetime] = None


@dataclass
class VerificationResult:
    status: str
    payment: Optional[FeePayment] = None
    already_recorded: bool = False


# --- Lookups ---
def pt_to_response(pt: FeePayment) -> PaymentResponse:
    return PaymentResponse(
        id=pt.id,
        obligation_id=pt.obligation_id,
        student_id=pt.student_id,
        fee_type_id=pt.fee_type_id,
        session=pt.session,
        term=pt.term,
        amount_paid=_to_decimal(pt.amount_paid),
        platform_fee=_to_decimal(pt.platform_fee),
        school_amount=_to_decimal(pt.school_amount),
        payment_method=pt.payment_method,
        transaction_reference=pt.transaction_reference,
        receipt_number=pt.receipt_number,
        installment_number=pt.installment_number,
        payer_email=pt.payer_email,
        channel=pt.channel,
        currency=pt.currency,
        paid_at=pt.paid_at,
        recorded_by=pt.recorded_by,
        created_at=pt.created_at,
    )


async def get_payment_by_reference(db: AsyncSession, reference: str) -> Optional[FeePayment]:
    return (
        await db.execute(select(FeePayment).where(FeePayment.transaction_reference == reference))
    ).scalar_one_or_none()


async def get_payment_by_receipt(db: AsyncSession, receipt_number: str) -> PaymentResponse:
    pt = (
        await db.execute(select(FeePayment).where(FeePayment.receipt_number == receipt_number))
    ).scalar_one_or_none()
    if not pt:
        raise ServiceError("Receipt not found", status.HTTP_404_NOT_FOUND)
    return pt_to_response(pt)


async def get_payment_history(
    db: AsyncSession,
    student_id: UUID,
    session: Optional[str] = None,
    term: Optional[str] = None,
) -> List[PaymentResponse]:
    stmt = select(FeePayment).where(FeePayment.student_id == student_id)
    if session:
        stmt = stmt.where(FeePayment.session == session)
    if term:
        stmt = stmt.where(FeePayment.term == term)
    stmt = stmt.order_by(FeePayment.paid_at.desc())
    result = await db.execute(stmt)
    return [pt_to_response(pt) for pt in result.scalars().all()]


async def list_obligation_payments(db: AsyncSession, obligation_id: UUID) -> List[PaymentResponse]:
    result = await db.execute(
        select(FeePayment)
        .where(FeePayment.obligation_id == obligation_id)
        .order_by(FeePayment.paid_at)
    )
    return [pt_to_response(pt) for pt in result.scalars().all()]


# --- Ledger update ---
async def apply_payment_to_obligation(db: AsyncSession, obligation_id: UUID, amount: Decimal) -> None:
    """
    Atomic increment. amount_paid, balance and status are all computed from the row's
    current values inside one UPDATE, so concurrent payments serialize on the row lock.
    """
    new_paid = FeeObligation.amount_paid + amount
    remaining = FeeObligation.total_amount - new_paid
    await db.execute(
        update(FeeObligation)
        .where(FeeObligation.id == obligation_id)
        .values(
            amount_paid=new_paid,
            balance=case((remaining > 0, remaining), else_=0),
            status=case(
                (remaining <= 0, ObligationStatus.paid.value),
                (new_paid > 0, ObligationStatus.partial.value),
                else_=ObligationStatus.pending.value,
            ),
            updated_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )


async def _resolve_obligation(db: AsyncSession, entry: PaymentEntry) -> Tuple[Optional[FeeObligation], PaymentEntry]:
    """
    Find the obligation a payment settles: explicit id first (only if it matches the payment's
    student and fee type), then the (student, fee type, session, term) key. A first payment
    against an unassigned fee creates the obligation from the fee type's default amount.
    """
    if entry.obligation_id:
        ob = await db.get(FeeObligation, entry.obligation_id, populate_existing=True)
        if ob and (entry.student_id in (None, ob.student_id)) and (entry.fee_type_id in (None, ob.fee_type_id)):
            return ob, replace(
                entry,
                student_id=ob.student_id,
                fee_type_id=ob.fee_type_id,
                session=ob.session,
                term=ob.term,
            )
        logger.warning(
            f"Obligation {entry.obligation_id} does not match payment "
            f"{entry.transaction_reference} (student={entry.student_id}, fee_type={entry.fee_type_id}); using key lookup"
        )

    if not (entry.student_id and entry.fee_type_id and entry.session and entry.term):
        return None, entry

    ob = await find_obligation(db, entry.student_id, entry.fee_type_id, entry.session, entry.term)
    if ob:
        return ob, replace(entry, obligation_id=ob.id)

    fee_type = await db.get(FeeType, entry.fee_type_id)
    if not fee_type:
        return None, entry
    total = _to_decimal(fee_type.amount)
    try:
        async with db.begin_nested():
            ob = new_obligation(
                entry.student_id,
                entry.fee_type_id,
                entry.session,
                entry.term,
                total,
                allow_installments=entry.installment_number is not None,
            )
            db.add(ob)
        logger.info(f"Created obligation {ob.id} implicitly for payment {entry.transaction_reference}")
    except IntegrityError:
        # Created concurrently by another request
        ob = await find_obligation(db, entry.student_id, entry.fee_type_id, entry.session, entry.term)
    return ob, replace(entry, obligation_id=ob.id if ob else None)


def _ensure_replay(existing: FeePayment, entry: PaymentEntry, amount: Decimal) -> None:
    """A reference already in use may only come back for the same payment."""
    mismatched = (
        _to_decimal(existing.amount_paid) != amount
        or (entry.student_id is not None and existing.student_id not in (None, entry.student_id))
        or (entry.fee_type_id is not None and existing.fee_type_id not in (None, entry.fee_type_id))
    )
    if mismatched:
        logger.warning(
            f"Reference {existing.transaction_reference} already belongs to payment {existing.receipt_number}; "
            f"rejecting a different payment (student={entry.student_id}, fee_type={entry.fee_type_id}, amount={amount})"
        )
        raise ServiceError(
            f"Transaction reference {existing.transaction_reference} is already used by another payment",
            status.HTTP_409_CONFLICT,
        )


async def record_payment(
    db: AsyncSession,
    entry: PaymentEntry,
    *,
    recorded_by: Optional[UUID] = None,
    enforce_policy: bool = True,
) -> Tuple[FeePayment, bool]:
    """
    Record one payment and apply it to its obligation. Returns (payment, created).

    enforce_policy=False is for charges the gateway already captured: they are recorded even
    when they break installment or balance rules, and the violation is logged instead.
    """
    reference = entry.transaction_reference or generate_transaction_reference("MAN")
    entry = replace(entry, transaction_reference=reference)

    amount = _to_decimal(entry.amount)

    existing = await get_payment_by_reference(db, reference)
    if existing:
        _ensure_replay(existing, entry, amount)
        logger.info(f"Payment already recorded for {reference}: {existing.receipt_number}")
        return existing, False

    split = compute_split(amount, settings.platform_fee_percent)

    for attempt in range(MAX_RECEIPT_ATTEMPTS):
        try:
            obligation, resolved = await _resolve_obligation(db, entry)
            overpaid = Decimal("0")
            if obligation is not None:
                try:
                    policy.validate_payment(obligation, amount, resolved.installment_number)
                except ServiceError as e:
                    if enforce_policy:
                        raise
                    logger.warning(f"Captured payment {reference} breaks fee rules ({e.message}); recording anyway")
                overpaid = amount - _to_decimal(obligation.balance)

            payment = FeePayment(
                obligation_id=obligation.id if obligation else None,
                student_id=resolved.student_id,
                fee_type_id=resolved.fee_type_id,
                session=resolved.session,
                term=resolved.term,
                amount_paid=amount,
                platform_fee=split.platform_fee,
                school_amount=split.school_amount,
                payment_method=PaymentMethod(resolved.payment_method).value,
                transaction_reference=reference,
                receipt_number=generate_receipt_number(),
                installment_number=resolved.installment_number,
                payer_email=resolved.payer_email,
                channel=resolved.channel,
                currency=resolved.currency,
                paid_at=resolved.paid_at or datetime.now(timezone.utc),
                recorded_by=recorded_by,
            )
            db.add(payment)
            await db.flush()

            await log_fee_audit(
                db, "fee_payments", payment.id, "CREATE", None,
                {
                    "amount_paid": str(amount),
                    "platform_fee": str(split.platform_fee),
                    "school_amount": str(split.school_amount),
                    "payment_method": payment.payment_method,
                    "transaction_reference": reference,
                    "obligation_id": str(payment.obligation_id) if payment.obligation_id else None,
                },
                recorded_by,
            )
            if obligation is not None:
                old = {
                    "amount_paid": str(_to_decimal(obligation.amount_paid)),
                    "balance": str(_to_decimal(obligation.balance)),
                    "status": obligation.status,
                }
                await apply_payment_to_obligation(db, obligation.id, amount)
                await db.refresh(obligation)
                await log_fee_audit(
                    db, "fee_obligations", obligation.id, "UPDATE", old,
                    {
                        "amount_paid": str(_to_decimal(obligation.amount_paid)),
                        "balance": str(_to_decimal(obligation.balance)),
                        "status": obligation.status,
                    },
                    recorded_by,
                )
                if overpaid > 0:
                    logger.warning(f"Payment {reference} overpays obligation {obligation.id} by {overpaid}")
                    await log_fee_audit(
                        db, "fee_obligations", obligation.id, "OVERPAYMENT", None,
                        {"transaction_reference": reference, "overpaid_amount": str(overpaid)},
                        recorded_by,
                    )
            elif resolved.student_id is None:
                logger.warning(f"Payment {reference} recorded without student context; needs manual linking")
            await db.commit()
        except ServiceError:
            await db.rollback()
            raise
        except IntegrityError:
            await db.rollback()
            existing = await get_payment_by_reference(db, reference)
            if existing:
                _ensure_replay(existing, entry, amount)
                logger.info(f"Concurrent recording of {reference} lost the race; returning {existing.receipt_number}")
                return existing, False
            if attempt == MAX_RECEIPT_ATTEMPTS - 1:
                raise ReconciliationError(f"Could not record payment {reference}")
            logger.warning(f"Receipt number collision recording {reference}; retrying")
            continue

        await db.refresh(payment)
        logger.info(
            f"Recorded payment {payment.receipt_number}: {amount} via {payment.payment_method} "
            f"(ref {reference}, obligation {payment.obligation_id})"
        )
        return payment, True

    raise ReconciliationError(f"Could not record payment {reference}")


# --- Manual entry ---
async def record_manual_payment(
    db: AsyncSession,
    payload: ManualPaymentCreate,
    recorded_by: Optional[UUID],
) -> RecordPaymentResponse:
    if payload.payment_method == PaymentMethod.ONLINE:
        raise ServiceError(
            "Online payments are recorded through gateway verification",
            status.HTTP_400_BAD_REQUEST,
        )
    student = await db.get(Student, payload.student_id)
    if not student:
        raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)
    fee_type = await db.get(FeeType, payload.fee_type_id)
    if not fee_type:
        raise ServiceError("Fee type not found", status.HTTP_404_NOT_FOUND)

    entry = PaymentEntry(
        amount=payload.amount_paid,
        payment_method=payload.payment_method,
        student_id=payload.student_id,
        fee_type_id=payload.fee_type_id,
        session=payload.session.strip(),
        term=payload.term.strip().lower(),
        obligation_id=payload.obligation_id,
        transaction_reference=(payload.transaction_reference or "").strip() or None,
        installment_number=policy.INSTALLMENT_NUMBERS[payload.payment_option],
        paid_at=payload.paid_at,
    )
    payment, created = await record_payment(db, entry, recorded_by=recorded_by)
    return await _record_response(db, payment, created)


async def _record_response(db: AsyncSession, payment: FeePayment, created: bool) -> RecordPaymentResponse:
    obligation = await db.get(FeeObligation, payment.obligation_id) if payment.obligation_id else None
    if obligation is not None:
        await db.refresh(obligation)
    return RecordPaymentResponse(
        payment=pt_to_response(payment),
        obligation=ob_to_response(obligation) if obligation else None,
        already_recorded=not created,
    )


# --- Gateway transactions ---
def _metadata_dict(raw: Any) -> Dict[str, Any]:
    """Flatten gateway metadata: top-level keys plus Paystack custom_fields variables."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            return {}
    if not isinstance(raw, dict):
        return {}
    values: Dict[str, Any] = {}
    for field in raw.get("custom_fields") or []:
        if isinstance(field, dict) and field.get("variable_name"):
            values[field["variable_name"]] = field.get("value")
    for key, value in raw.items():
        if key != "custom_fields" and value is not None:
            values[key] = value
    return values


def _parse_paid_at(value: Any) -> Optional[datetime]:
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _installment_number(value: Any) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number in (1, 2) else None


async def resolve_transaction_context(db: AsyncSession, transaction: Dict[str, Any]) -> PaymentEntry:
    """
    Business context for a confirmed gateway transaction. The locally stored checkout intent
    is trusted; round-tripped metadata is only a fallback and every id in it is re-checked.
    """
    reference = transaction.get("reference")
    amount = from_minor_units(transaction.get("amount") or 0)
    customer = transaction.get("customer") or {}
    base = PaymentEntry(
        amount=amount,
        payment_method=PaymentMethod.ONLINE,
        transaction_reference=reference,
        payer_email=customer.get("email"),
        channel=transaction.get("channel"),
        currency=transaction.get("currency"),
        paid_at=_parse_paid_at(transaction.get("paid_at") or transaction.get("paidAt")),
    )

    intent = (
        await db.execute(select(GatewayTransaction).where(GatewayTransaction.reference == reference))
    ).scalar_one_or_none()
    if intent:
        if _to_decimal(intent.amount) != amount:
            logger.warning(f"Transaction {reference} charged {amount}, initialized for {intent.amount}")
        return replace(
            base,
            student_id=intent.student_id,
            fee_type_id=intent.fee_type_id,
            session=intent.session,
            term=intent.term,
            obligation_id=intent.obligation_id,
            installment_number=intent.installment_number,
        )

    meta = _metadata_dict(transaction.get("metadata"))
    student_id = _to_uuid(meta.get("student_id"))
    if student_id and not await db.get(Student, student_id):
        logger.warning(f"Transaction {reference} names unknown student {student_id}")
        student_id = None
    fee_type_id = _to_uuid(meta.get("fee_type_id"))
    if fee_type_id and not await db.get(FeeType, fee_type_id):
        logger.warning(f"Transaction {reference} names unknown fee type {fee_type_id}")
        fee_type_id = None
    return replace(
        base,
        student_id=student_id,
        fee_type_id=fee_type_id,
        session=(str(meta["session"]) if meta.get("session") else None),
        term=(str(meta["term"]).lower() if meta.get("term") else None),
        obligation_id=_to_uuid(meta.get("obligation_id")),
        installment_number=_installment_number(meta.get("installment_number")),
    )


async def record_successful_transaction(
    db: AsyncSession,
    transaction: Dict[str, Any],
) -> Optional[Tuple[FeePayment, bool]]:
    """Record a gateway transaction if it succeeded. Returns None for any other status."""
    if transaction.get("status") != "success":
        return None
    if not transaction.get("reference"):
        raise ServiceError("Transaction has no reference", status.HTTP_400_BAD_REQUEST)

    entry = await resolve_transaction_context(db, transaction)
    payment, created = await record_payment(db, entry, enforce_policy=False)

    await db.execute(
        update(GatewayTransaction)
        .where(
            GatewayTransaction.reference == entry.transaction_reference,
            GatewayTransaction.status != GatewayTransactionStatus.success.value,
        )
        .values(status=GatewayTransactionStatus.success.value, updated_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return payment, created


async def verify_transaction(
    db: AsyncSession,
    client: PaystackClient,
    reference: str,
) -> VerificationResult:
    """Client-triggered confirmation. Returns the existing payment if the webhook got there first."""
    from bursar.api.v1.reconciliation.service import queue_reconciliation_issue

    reference = reference.strip()
    existing = await get_payment_by_reference(db, reference)
    if existing:
        return VerificationResult(status="success", payment=existing, already_recorded=True)

    transaction = await client.verify_transaction(reference)
    current = (transaction or {}).get("status") or "unknown"
    if current != "success":
        logger.info(f"Transaction {reference} not successful yet: {current}")
        return VerificationResult(status=current)

    try:
        recorded = await record_successful_transaction(db, transaction)
    except (ReconciliationError, SQLAlchemyError) as e:
        await db.rollback()
        logger.error(f"Verified transaction {reference} could not be recorded: {e}", exc_info=True)
        try:
            await queue_reconciliation_issue(db, reference, "verify", transaction, str(e))
        except SQLAlchemyError:
            logger.exception(f"Could not queue verified transaction {reference} for reconciliation")
            raise ReconciliationError(f"Payment {reference} confirmed but could not be recorded")
        raise ReconciliationError("Payment confirmed but not yet recorded; it has been queued for reconciliation")
    payment, created = recorded
    return VerificationResult(status="success", payment=payment, already_recorded=not created)


async def verify_payment(
    db: AsyncSession,
    client: PaystackClient,
    reference: str,
    mailer: Optional[ResendMailer] = None,
) -> VerifyPaymentResponse:
    result = await verify_transaction(db, client, reference)
    if result.payment is not None and not result.already_recorded and mailer is not None:
        await send_payment_receipt(db, mailer, result.payment)
    if result.payment is None:
        return VerifyPaymentResponse(
            verified=False,
            status=result.status,
            message=f"Transaction {result.status}",
        )
    recorded = await _record_response(db, result.payment, not result.already_recorded)
    return VerifyPaymentResponse(
        verified=True,
        status=result.status,
        message="Payment already recorded" if result.already_recorded else "Payment verified and recorded",
        payment=recorded.payment,
        obligation=recorded.obligation,
        already_recorded=result.already_recorded,
    )


async def initialize_online_payment(
    db: AsyncSession,
    client: PaystackClient,
    payload: InitializePaymentRequest,
    initiated_by: Optional[UUID],
) -> InitializePaymentResponse:
    """Open a hosted checkout for a fee. Each call gets a new reference, so a failed attempt is simply retried."""
    student = await db.get(Student, payload.student_id)
    if not student or not student.is_active:
        raise ServiceError("Student not found", status.HTTP_404_NOT_FOUND)
    fee_type = await db.get(FeeType, payload.fee_type_id)
    if not fee_type:
        raise ServiceError("Fee type not found", status.HTTP_404_NOT_FOUND)
    session = payload.session.strip()
    term = payload.term.strip().lower()

    obligation = await find_obligation(db, student.id, fee_type.id, session, term)
    installment_number = policy.INSTALLMENT_NUMBERS[payload.payment_option]
    if obligation is not None:
        amount = payload.amount if payload.amount is not None else policy.amount_for_option(obligation, payload.payment_option)
        policy.validate_payment(obligation, amount, installment_number)
    else:
        # No obligation yet: check against the one the first payment will create
        draft = new_obligation(
            student.id,
            fee_type.id,
            session,
            term,
            _to_decimal(fee_type.amount),
            allow_installments=installment_number is not None,
        )
        amount = payload.amount if payload.amount is not None else policy.amount_for_option(draft, payload.payment_option)
        policy.validate_payment(draft, amount, installment_number)

    email = payload.email or await resolve_contact_email(db, student.id)
    if not email:
        raise ServiceError("An email address is required for online payment", status.HTTP_400_BAD_REQUEST)

    split = compute_split(amount, settings.platform_fee_percent)
    gateway_settings = await load_gateway_settings(db)
    reference = generate_transaction_reference("BRS")
    obligation_id = str(obligation.id) if obligation else None
    metadata = {
        "student_id": str(student.id),
        "fee_type_id": str(fee_type.id),
        "session": session,
        "term": term,
        "obligation_id": obligation_id,
        "installment_number": installment_number,
        "custom_fields": [
            {"display_name": "Student", "variable_name": "admission_number", "value": student.admission_number},
            {"display_name": "Fee Type", "variable_name": "fee_type", "value": fee_type.name},
            {"display_name": "Session", "variable_name": "session", "value": session},
            {"display_name": "Term", "variable_name": "term", "value": term},
            {"display_name": "Platform Fee", "variable_name": "platform_fee", "value": str(split.platform_fee)},
            {"display_name": "School Amount", "variable_name": "school_amount", "value": str(split.school_amount)},
        ],
    }

    data = await client.initialize_transaction(
        email=email,
        amount=amount,
        reference=reference,
        metadata=metadata,
        callback_url=payload.callback_url or settings.payment_callback_url,
        split_code=gateway_settings.split_code if gateway_settings else None,
    )
    data = data or {}
    reference = data.get("reference") or reference

    intent = GatewayTransaction(
        reference=reference,
        student_id=student.id,
        fee_type_id=fee_type.id,
        obligation_id=obligation.id if obligation else None,
        session=session,
        term=term,
        amount=amount,
        platform_fee=split.platform_fee,
        school_amount=split.school_amount,
        installment_number=installment_number,
        email=email,
        authorization_url=data.get("authorization_url"),
        status=GatewayTransactionStatus.initialized.value,
        initiated_by=initiated_by,
    )
    db.add(intent)
    await db.commit()
    logger.info(f"Initialized checkout {reference} for student {student.id}: {amount}")

    return InitializePaymentResponse(
        authorization_url=data.get("authorization_url"),
        access_code=data.get("access_code"),
        reference=reference,
        amount=amount,
        platform_fee=split.platform_fee,
        school_amount=split.school_amount,
        installment_number=installment_number,
    )


async def get_transaction_status(db: AsyncSession, reference: str) -> TransactionStatusResponse:
    """paid once recorded; processing while only the checkout intent exists."""
    payment = await get_payment_by_reference(db, reference)
    if payment:
        return TransactionStatusResponse(
            reference=reference,
            status="paid",
            receipt_number=payment.receipt_number,
            amount=_to_decimal(payment.amount_paid),
            payment_id=payment.id,
        )
    intent = (
        await db.execute(select(GatewayTransaction).where(GatewayTransaction.reference == reference))
    ).scalar_one_or_none()
    if not intent:
        raise ServiceError("Transaction not found", status.HTTP_404_NOT_FOUND)
    return TransactionStatusResponse(
        reference=reference,
        status="processing",
        amount=_to_decimal(intent.amount),
    )
