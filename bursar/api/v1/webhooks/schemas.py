from typing import Optional

from pydantic import BaseModel


class WebhookAck(BaseModel):
    received: bool = True
    queued: bool = False
    receipt_number: Optional[str] = None
