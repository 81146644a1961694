"""
Paystack webhook handling. The signature is checked against the raw request body before
anything is parsed; charge.success goes through the shared recording path.
"""

import hashlib
import hmac
import json
import logging
from typing import Any, Dict, Optional

from fastapi import status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bursar.api.v1.payments.service import record_successful_transaction
from bursar.api.v1.reconciliation.service import queue_reconciliation_issue
from bursar.core.config import settings
from bursar.core.enums import WebhookEvent
from bursar.core.exceptions import ConfigurationError, ReconciliationError, ServiceError, WebhookSignatureError
from bursar.integrations.resend import ResendMailer
from bursar.notifications.service import send_payment_receipt

from .schemas import WebhookAck

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-paystack-signature"


def compute_signature(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha512).hexdigest()


def verify_signature(body: bytes, signature: Optional[str], secret: Optional[str] = None) -> None:
    secret = secret or settings.webhook_secret
    if not secret:
        raise ConfigurationError("Paystack webhook secret not configured")
    if not signature:
        logger.warning("Webhook rejected: missing signature")
        raise WebhookSignatureError("Missing signature")
    if not hmac.compare_digest(compute_signature(body, secret), signature.strip().lower()):
        logger.warning("Webhook rejected: invalid signature")
        raise WebhookSignatureError()


def parse_event(body: bytes) -> Dict[str, Any]:
    try:
        event = json.loads(body)
    except ValueError:
        raise ServiceError("Malformed webhook payload", status.HTTP_400_BAD_REQUEST)
    if not isinstance(event, dict):
        raise ServiceError("Malformed webhook payload", status.HTTP_400_BAD_REQUEST)
    return event


async def _handle_charge_success(db: AsyncSession, mailer: ResendMailer, data: Dict[str, Any]) -> WebhookAck:
    reference = data.get("reference")
    try:
        recorded = await record_successful_transaction(db, data)
    except (ServiceError, SQLAlchemyError) as e:
        message = e.message if isinstance(e, ServiceError) else str(e)
        logger.error(f"Could not record charge {reference}: {message}", exc_info=True)
        try:
            await queue_reconciliation_issue(db, reference, "webhook", data, message)
        except SQLAlchemyError:
            logger.exception(f"Could not queue charge {reference} for reconciliation")
            raise ReconciliationError(f"Charge {reference} could not be recorded")
        return WebhookAck(queued=True)

    if recorded is None:
        return WebhookAck()
    payment, created = recorded
    if created:
        customer = data.get("customer") or {}
        await send_payment_receipt(db, mailer, payment, payer_email=customer.get("email"))
    else:
        logger.info(f"Duplicate delivery for {reference}; receipt {payment.receipt_number} already issued")
    return WebhookAck(receipt_number=payment.receipt_number)


async def handle_event(db: AsyncSession, mailer: ResendMailer, event: Dict[str, Any]) -> WebhookAck:
    event_type = event.get("event")
    data = event.get("data") or {}
    logger.info(f"Received Paystack webhook event: {event_type}")

    if event_type == WebhookEvent.CHARGE_SUCCESS.value:
        if not isinstance(data, dict):
            raise ServiceError("Malformed webhook payload", status.HTTP_400_BAD_REQUEST)
        return await _handle_charge_success(db, mailer, data)
    reference = data.get("reference") if isinstance(data, dict) else None
    if event_type == WebhookEvent.CHARGE_FAILED.value:
        logger.info(f"Payment failed: {reference}")
    elif event_type == WebhookEvent.TRANSFER_SUCCESS.value:
        logger.info(f"Transfer successful: {reference}")
    elif event_type == WebhookEvent.TRANSFER_FAILED.value:
        logger.info(f"Transfer failed: {reference}")
    else:
        logger.info(f"Unhandled event type: {event_type}")
    return WebhookAck()
