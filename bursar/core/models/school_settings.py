"""School profile used to brand receipts and reminders. Single row."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String
from sqlalchemy.dialects.postgresql import UUID

from bursar.db.session import Base


class SchoolSettings(Base):
    __tablename__ = "school_settings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    school_name = Column(String(255), nullable=False)
    school_address = Column(String(500), nullable=True)
    school_phone = Column(String(50), nullable=True)
    school_email = Column(String(255), nullable=True)
    primary_color = Column(String(20), nullable=True)
    logo_url = Column(String(500), nullable=True)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
