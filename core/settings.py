"""
Payment-related settings using pydantic-settings v2 with nested env keys.

Example environment:
    PAYPAY__PARTNER_ID=200001234567
    PAYPAY__PRIVATE_KEY_PATH=/run/secrets/paypay_private.pem
    PAYPAY__PAYPAY_PUBLIC_KEY_PATH=/run/secrets/paypay_public.pem
    PAYPAY__ENVIRONMENT=sandbox
    RETRY__MAX=3
"""
from __future__ import annotations

from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


GATEWAY_URLS = {
    "sandbox": "https://gateway.paypayafrica.com/recv.do",
    "production": "https://gateway.paypayafrica.com/recv.do",
}


class PaymentTimeouts(BaseModel):
    connect: float = 5.0
    read: float = 30.0
    write: float = 30.0
    total: float = 30.0


class PaymentRetry(BaseModel):
    max: int = 2


class ValidationBounds(BaseModel):
    min_amount: Decimal = Decimal("1.00")
    max_amount: Decimal = Decimal("10000000.00")
    min_trade_no_length: int = 6
    max_trade_no_length: int = 32


class PayPaySettings(BaseModel):
    partner_id: Optional[str] = None
    # Path to a PEM file, or the PEM text itself
    private_key_path: Optional[str] = None
    paypay_public_key_path: Optional[str] = None
    sale_product_code: str = "050200030"
    language: Literal["pt", "en"] = "pt"
    environment: Literal["sandbox", "production"] = "production"
    gateway: Optional[str] = None  # overrides the environment URL
    default_payer_ip: Optional[str] = None
    verify_responses: bool = True
    require_response_signature: bool = False

    @property
    def api_url(self) -> str:
        return self.gateway or GATEWAY_URLS[self.environment]


class PaymentSettings(BaseSettings):
    timeouts: PaymentTimeouts = Field(default_factory=PaymentTimeouts)
    retry: PaymentRetry = Field(default_factory=PaymentRetry)
    limits: ValidationBounds = Field(default_factory=ValidationBounds)

    paypay: PayPaySettings = Field(default_factory=PayPaySettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )


payment_settings = PaymentSettings()
