"""Confirmed gateway transactions that could not be recorded. Kept until a retry succeeds."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID

from bursar.core.enums import ReconciliationIssueStatus
from bursar.db.session import Base


class ReconciliationIssue(Base):
    __tablename__ = "reconciliation_issues"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    reference = Column(String(100), nullable=False, index=True)
    source = Column(String(30), nullable=False)  # webhook, verify
    payload = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    error = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=ReconciliationIssueStatus.OPEN.value, index=True)
    attempts = Column(Integer, nullable=False, default=0)
    payment_id = Column(UUID(as_uuid=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
