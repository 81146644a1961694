"""Gateway webhooks. Authenticated by signature, not by bearer token."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from bursar.core.exceptions import ServiceError
from bursar.db.session import get_db
from bursar.integrations.resend import ResendMailer, get_mailer

from .schemas import WebhookAck
from . import service

router = APIRouter(prefix="/api/v1/webhooks", tags=["webhooks"])


@router.post("/paystack", response_model=WebhookAck)
async def paystack_webhook(
    request: Request,
    x_paystack_signature: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
    mailer: ResendMailer = Depends(get_mailer),
) -> WebhookAck:
    body = await request.body()
    try:
        service.verify_signature(body, x_paystack_signature)
        event = service.parse_event(body)
        return await service.handle_event(db, mailer, event)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
