"""Gateway settlement configuration: subaccount and split rule for the school. One row per gateway."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Numeric, String
from sqlalchemy.dialects.postgresql import UUID

from bursar.db.session import Base


class PaymentGatewaySettings(Base):
    __tablename__ = "payment_gateway_settings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    gateway_name = Column(String(50), unique=True, nullable=False, default="paystack")
    school_subaccount_code = Column(String(100), nullable=True)
    split_code = Column(String(100), nullable=True)
    school_bank_name = Column(String(255), nullable=True)
    school_account_number = Column(String(20), nullable=True)
    school_account_name = Column(String(255), nullable=True)
    school_percentage = Column(Numeric(5, 2), nullable=False, default=95)
    platform_percentage = Column(Numeric(5, 2), nullable=False, default=5)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
