from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ReminderSummary(BaseModel):
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    errors: List[str] = Field(default_factory=list, description="First few failure messages")


class ReminderResult(BaseModel):
    obligation_id: UUID
    sent: bool
    recipient: Optional[str] = None
    message: str
