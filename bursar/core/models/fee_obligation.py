"""Fee obligation: what a student owes for one fee type in one session/term. Source of truth for balances."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from bursar.core.enums import ObligationStatus
from bursar.db.session import Base


class FeeObligation(Base):
    """
    One row per (student, fee type, session, term).
    amount_paid, balance and status change only through the payment recording path,
    in a single UPDATE (see api.v1.payments.service.apply_payment_to_obligation).
    """

    __tablename__ = "fee_obligations"
    __table_args__ = (
        UniqueConstraint(
            "student_id",
            "fee_type_id",
            "session",
            "term",
            name="uq_fee_obligation_student_fee_session_term",
        ),
        CheckConstraint(
            "status IN ('pending','partial','paid')",
            name="chk_fee_obligation_status",
        ),
        CheckConstraint("amount_paid >= 0", name="chk_fee_obligation_amount_paid"),
        CheckConstraint("balance >= 0", name="chk_fee_obligation_balance"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="RESTRICT"), nullable=False, index=True)
    fee_type_id = Column(UUID(as_uuid=True), ForeignKey("fee_types.id", ondelete="RESTRICT"), nullable=False)
    session = Column(String(20), nullable=False)  # e.g. 2024/2025
    term = Column(String(20), nullable=False)  # first, second, third
    total_amount = Column(Numeric(12, 2), nullable=False)
    amount_paid = Column(Numeric(12, 2), nullable=False, default=0)
    balance = Column(Numeric(12, 2), nullable=False)
    status = Column(String(20), nullable=False, default=ObligationStatus.pending.value, index=True)
    allow_installments = Column(Boolean, nullable=False, default=False)
    installments_count = Column(Integer, nullable=False, default=2)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    student = relationship("Student")
    fee_type = relationship("FeeType")
