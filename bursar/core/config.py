from decimal import Decimal
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(15, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Gateway (Paystack). Webhooks are signed with the secret key unless a dedicated secret is set.
    paystack_secret_key: Optional[str] = Field(None, alias="PAYSTACK_SECRET_KEY")
    paystack_webhook_secret: Optional[str] = Field(None, alias="PAYSTACK_WEBHOOK_SECRET")
    paystack_base_url: str = Field("https://api.paystack.co", alias="PAYSTACK_BASE_URL")
    paystack_currency: str = Field("NGN", alias="PAYSTACK_CURRENCY")
    paystack_timeout_seconds: float = Field(30.0, alias="PAYSTACK_TIMEOUT_SECONDS")
    payment_callback_url: Optional[str] = Field(None, alias="PAYMENT_CALLBACK_URL")
    platform_fee_percent: Decimal = Field(Decimal("5"), alias="PLATFORM_FEE_PERCENT")

    # Email (Resend)
    resend_api_key: Optional[str] = Field(None, alias="RESEND_API_KEY")
    resend_base_url: str = Field("https://api.resend.com", alias="RESEND_BASE_URL")
    email_from_address: str = Field("onboarding@resend.dev", alias="EMAIL_FROM_ADDRESS")

    # Shared secret sent by the scheduler that triggers reminder sweeps
    cron_secret: Optional[str] = Field(None, alias="CRON_SECRET")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    @property
    def webhook_secret(self) -> Optional[str]:
        return self.paystack_webhook_secret or self.paystack_secret_key

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
