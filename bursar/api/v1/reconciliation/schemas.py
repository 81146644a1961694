from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from bursar.core.enums import ReconciliationIssueStatus


class ReconciliationIssueResponse(BaseModel):
    id: UUID
    reference: str
    source: str
    error: Optional[str] = None
    status: ReconciliationIssueStatus
    attempts: int
    payment_id: Optional[UUID] = None
    created_at: datetime
    resolved_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RetrySummary(BaseModel):
    resolved: int
    still_open: int
    errors: List[str]
