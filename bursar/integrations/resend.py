"""Transactional email through the Resend HTTP API."""

import logging
from typing import List, Optional

import httpx

from bursar.core.config import settings
from bursar.core.exceptions import ConfigurationError, NotificationError

logger = logging.getLogger(__name__)


class ResendMailer:
    def __init__(
        self,
        api_key: Optional[str],
        *,
        from_address: str = "onboarding@resend.dev",
        base_url: str = "https://api.resend.com",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.from_address = from_address
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def ensure_configured(self) -> None:
        if not self.api_key:
            raise ConfigurationError("Email service not configured")

    async def send(self, *, to: List[str], subject: str, html: str, sender_name: Optional[str] = None) -> str:
        """Send one email. Returns the provider message id."""
        self.ensure_configured()
        sender = f"{sender_name} <{self.from_address}>" if sender_name else self.from_address
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={"Authorization": f"Bearer {self.api_key}"},
            ) as client:
                response = await client.post(
                    "/emails",
                    json={"from": sender, "to": to, "subject": subject, "html": html},
                )
        except httpx.TimeoutException:
            raise NotificationError("Email service timed out")
        except httpx.RequestError as e:
            raise NotificationError(f"Could not reach email service: {e}")

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}

        if response.status_code >= 400:
            message = body.get("message") or response.text
            raise NotificationError(f"Email rejected [{response.status_code}]: {message}")
        return body.get("id") or ""


def get_mailer() -> ResendMailer:
    """FastAPI dependency; overridden in tests."""
    return ResendMailer(
        settings.resend_api_key,
        from_address=settings.email_from_address,
        base_url=settings.resend_base_url,
    )
