"""Fee payment: append-only record of one confirmed transaction (manual or gateway)."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from bursar.db.session import Base


class FeePayment(Base):
    """
    Never updated after insert. transaction_reference is the idempotency key:
    the unique constraint is what closes the webhook/verify race.
    """

    __tablename__ = "fee_payments"
    __table_args__ = (
        CheckConstraint("amount_paid > 0", name="chk_fee_payment_amount"),
        CheckConstraint(
            "installment_number IS NULL OR installment_number IN (1, 2)",
            name="chk_fee_payment_installment_number",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    obligation_id = Column(
        UUID(as_uuid=True),
        ForeignKey("fee_obligations.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    # Nullable: a captured gateway charge whose context cannot be resolved is still recorded
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="RESTRICT"), nullable=True, index=True)
    fee_type_id = Column(UUID(as_uuid=True), ForeignKey("fee_types.id", ondelete="RESTRICT"), nullable=True)
    session = Column(String(20), nullable=True)
    term = Column(String(20), nullable=True)
    amount_paid = Column(Numeric(12, 2), nullable=False)
    platform_fee = Column(Numeric(12, 2), nullable=False)
    school_amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(String(30), nullable=False)  # cash, bank_transfer, online, cheque, pos
    transaction_reference = Column(String(100), unique=True, nullable=False)
    receipt_number = Column(String(40), unique=True, nullable=False)
    installment_number = Column(Integer, nullable=True)
    payer_email = Column(String(255), nullable=True)
    channel = Column(String(30), nullable=True)  # gateway channel: card, bank, ussd
    currency = Column(String(3), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=False)
    recorded_by = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    obligation = relationship("FeeObligation", backref="payments")
    student = relationship("Student")
    fee_type = relationship("FeeType")
