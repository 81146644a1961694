"""
Paystack HTTP client.

Every call returns the gateway's `data` payload or raises GatewayError with the
gateway's own message. Nothing is retried here: create_subaccount and
initialize_transaction are not idempotent, and a timed-out initialization must
be retried by the caller with a fresh reference.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

from bursar.core.config import settings
from bursar.core.exceptions import ConfigurationError, GatewayError
from bursar.core.split import to_minor_units

logger = logging.getLogger(__name__)


class PaystackClient:
    def __init__(
        self,
        secret_key: Optional[str],
        *,
        base_url: str = "https://api.paystack.co",
        timeout: float = 30.0,
        currency: str = "NGN",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.currency = currency
        self._transport = transport

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        if not self.secret_key:
            raise ConfigurationError("Paystack not configured")

        headers = {"Authorization": f"Bearer {self.secret_key}"}
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers=headers,
            ) as client:
                response = await client.request(method, path, json=json, params=params)
        except httpx.TimeoutException:
            logger.error(f"Paystack {method} {path} timed out after {self.timeout}s")
            raise GatewayError("Payment gateway timed out", timed_out=True)
        except httpx.RequestError as e:
            logger.error(f"Paystack {method} {path} failed: {e}")
            raise GatewayError(f"Could not reach payment gateway: {e}")

        try:
            body = response.json()
        except ValueError:
            logger.error(f"Paystack {method} {path} returned non-JSON [{response.status_code}]: {response.text[:200]}")
            raise GatewayError(
                f"Invalid response from payment gateway (HTTP {response.status_code})",
                http_status=response.status_code,
            )

        if not isinstance(body, dict) or not body.get("status"):
            message = (body.get("message") if isinstance(body, dict) else None) or "Payment gateway request failed"
            logger.warning(f"Paystack {method} {path} rejected [{response.status_code}]: {message}")
            raise GatewayError(message, http_status=response.status_code)

        return body.get("data")

    async def initialize_transaction(
        self,
        *,
        email: str,
        amount: Decimal,
        reference: str,
        metadata: Dict[str, Any],
        callback_url: Optional[str] = None,
        split_code: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Open a hosted checkout. Returns authorization_url, access_code, reference."""
        payload: Dict[str, Any] = {
            "email": email,
            "amount": to_minor_units(amount),
            "currency": self.currency,
            "reference": reference,
            "metadata": metadata,
        }
        if callback_url:
            payload["callback_url"] = callback_url
        if split_code:
            payload["split_code"] = split_code
        return await self._request("POST", "/transaction/initialize", json=payload)

    async def verify_transaction(self, reference: str) -> Dict[str, Any]:
        return await self._request("GET", f"/transaction/verify/{reference}")

    async def create_subaccount(
        self,
        *,
        business_name: str,
        bank_code: str,
        account_number: str,
        percentage_charge: Decimal,
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            "/subaccount",
            json={
                "business_name": business_name,
                "bank_code": bank_code,
                "account_number": account_number,
                "percentage_charge": float(percentage_charge),
            },
        )

    async def create_split(
        self,
        *,
        subaccount_code: str,
        school_share: Decimal,
        name: str = "School Fee Split",
    ) -> Dict[str, Any]:
        """Percentage split; the school subaccount bears the gateway charges."""
        return await self._request(
            "POST",
            "/split",
            json={
                "name": name,
                "type": "percentage",
                "currency": self.currency,
                "subaccounts": [{"subaccount": subaccount_code, "share": float(school_share)}],
                "bearer_type": "subaccount",
                "bearer_subaccount": subaccount_code,
            },
        )

    async def list_banks(self, country: str = "nigeria") -> List[Dict[str, Any]]:
        data = await self._request("GET", "/bank", params={"country": country})
        return [
            {"name": bank.get("name"), "code": bank.get("code"), "slug": bank.get("slug")}
            for bank in (data or [])
        ]

    async def resolve_account_name(self, *, account_number: str, bank_code: str) -> Dict[str, Any]:
        return await self._request(
            "GET",
            "/bank/resolve",
            params={"account_number": account_number, "bank_code": bank_code},
        )


def get_paystack_client() -> PaystackClient:
    """FastAPI dependency; overridden in tests."""
    return PaystackClient(
        settings.paystack_secret_key,
        base_url=settings.paystack_base_url,
        timeout=settings.paystack_timeout_seconds,
        currency=settings.paystack_currency,
    )
