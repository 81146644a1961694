from typing import Optional

from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ConfigurationError(ServiceError):
    """A required credential or setting is missing. Raised before any side effect."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class GatewayError(ServiceError):
    """The payment gateway rejected a call, failed, or timed out."""

    def __init__(
        self,
        message: str,
        *,
        http_status: Optional[int] = None,
        timed_out: bool = False,
    ) -> None:
        code = status.HTTP_504_GATEWAY_TIMEOUT if timed_out else status.HTTP_502_BAD_GATEWAY
        super().__init__(message, code)
        self.http_status = http_status
        self.timed_out = timed_out


class WebhookSignatureError(ServiceError):
    def __init__(self, message: str = "Invalid signature") -> None:
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)


class ReconciliationError(ServiceError):
    """A confirmed transaction could not be written to the ledger. Needs retry or manual follow-up."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class NotificationError(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_502_BAD_GATEWAY)
