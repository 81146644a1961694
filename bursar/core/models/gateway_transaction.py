"""Checkout intent: a transaction initialized with the gateway, kept as server-side business context."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.dialects.postgresql import UUID

from bursar.core.enums import GatewayTransactionStatus
from bursar.db.session import Base


class GatewayTransaction(Base):
    __tablename__ = "gateway_transactions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    reference = Column(String(100), unique=True, nullable=False)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="RESTRICT"), nullable=False)
    fee_type_id = Column(UUID(as_uuid=True), ForeignKey("fee_types.id", ondelete="RESTRICT"), nullable=False)
    obligation_id = Column(UUID(as_uuid=True), ForeignKey("fee_obligations.id", ondelete="SET NULL"), nullable=True)
    session = Column(String(20), nullable=False)
    term = Column(String(20), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    platform_fee = Column(Numeric(12, 2), nullable=False)
    school_amount = Column(Numeric(12, 2), nullable=False)
    installment_number = Column(Integer, nullable=True)
    email = Column(String(255), nullable=False)
    authorization_url = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, default=GatewayTransactionStatus.initialized.value)
    initiated_by = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
