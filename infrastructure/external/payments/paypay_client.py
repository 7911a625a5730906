"""
PayPay Africa adapter.

Builds signed, RSA-encrypted envelopes, posts them form-encoded to the
gateway and normalizes the reply into `Success` / `Failure`.

Validation, key and crypto problems raise immediately; transport failures
and gateway-reported errors are returned as `Failure`.
"""
from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

import httpx

from application.dtos.payments import Failure, NormalizedResult
from application.ports.payment_gateway import PayerIpResolver
from core.config import settings
from core.settings import PaymentSettings, payment_settings
from domain.common.exceptions import ConfigurationError, GatewayError, NetworkError, ValidationError
from domain.payment.entity import OperationKind, OrderDetails
from domain.payment.validators import ValidationLimits, validate_trade_number
from infrastructure.crypto import CryptoEngine, KeyKind, KeyMaterial, load_key
from infrastructure.external.payments.base import BasePaymentClient
from infrastructure.external.payments.builder import BuilderConfig, Language, RequestBuilder, new_request_no
from infrastructure.external.payments.ip_resolver import PublicIpResolver, StaticIpResolver
from infrastructure.external.payments.normalizer import normalize, verify_signature
from infrastructure.external.payments.transport import HttpxTransport


SUPPORTED_METHODS = {
    "multicaixa": ["EXPRESS", "REFERENCE"],
    "paypay_app": ["APP_PAYMENT"],
    "currencies": ["AOA"],
}


@dataclass
class PayPayConfig:
    partner_id: str
    private_key: KeyMaterial
    paypay_public_key: Optional[KeyMaterial] = None
    api_url: str = "https://gateway.paypayafrica.com/recv.do"
    environment: str = "production"
    language: Language = "pt"
    sale_product_code: str = "050200030"
    default_payer_ip: Optional[str] = None
    verify_responses: bool = True
    require_response_signature: bool = False
    timeouts: dict[str, float] = field(default_factory=dict)
    limits: ValidationLimits = field(default_factory=ValidationLimits)

    @classmethod
    def from_settings(cls, cfg: PaymentSettings = payment_settings) -> "PayPayConfig":
        pp = cfg.paypay
        if not (pp.partner_id and pp.private_key_path):
            raise ConfigurationError(
                "PAYPAY configuration incomplete",
                details={"missing": [n for n in ("partner_id", "private_key_path") if not getattr(pp, n)]},
            )
        return cls(
            partner_id=pp.partner_id,
            private_key=load_key(pp.private_key_path, KeyKind.PRIVATE),
            paypay_public_key=(
                load_key(pp.paypay_public_key_path, KeyKind.PUBLIC) if pp.paypay_public_key_path else None
            ),
            api_url=pp.api_url,
            environment=pp.environment,
            language=pp.language,
            sale_product_code=pp.sale_product_code,
            default_payer_ip=pp.default_payer_ip,
            verify_responses=pp.verify_responses,
            require_response_signature=pp.require_response_signature,
            timeouts=cfg.timeouts.model_dump(),
            limits=ValidationLimits(**cfg.limits.model_dump()),
        )


class PayPayClient(BasePaymentClient):
    provider = "paypay"

    def __init__(
        self,
        config: Optional[PayPayConfig] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        ip_resolver: Optional[PayerIpResolver] = None,
        clock: Optional[Callable[[], datetime]] = None,
        nonce_factory: Callable[[], str] = new_request_no,
    ) -> None:
        self.config = config or PayPayConfig.from_settings()
        super().__init__(timeouts=self.config.timeouts or None, http_client=http_client)
        self.engine = CryptoEngine(self.config.private_key, self.config.paypay_public_key)
        if ip_resolver is None:
            ip_resolver = (
                StaticIpResolver(self.config.default_payer_ip)
                if self.config.default_payer_ip
                else PublicIpResolver()
            )
        self.builder = RequestBuilder(
            self.engine,
            BuilderConfig(
                partner_id=self.config.partner_id,
                sale_product_code=self.config.sale_product_code,
                language=self.config.language,
                limits=self.config.limits,
            ),
            ip_resolver,
            clock=clock or (lambda: datetime.now(timezone.utc)),
            nonce_factory=nonce_factory,
        )

    # Use-cases
    async def create_express_payment(self, order: OrderDetails) -> NormalizedResult:
        """MULTICAIXA Express: the payer confirms on the phone given in `order.phone_num`."""
        return await self.create_payment(OperationKind.EXPRESS, order)

    async def create_reference_payment(self, order: OrderDetails) -> NormalizedResult:
        """MULTICAIXA reference: returns entity/reference ids to pay at an ATM or bank app."""
        return await self.create_payment(OperationKind.REFERENCE, order)

    async def create_app_payment(self, order: OrderDetails) -> NormalizedResult:
        """PayPay App: returns a dynamic link / QR code."""
        return await self.create_payment(OperationKind.APP, order)

    async def create_payment(self, kind: Union[OperationKind, str], order: OrderDetails) -> NormalizedResult:
        if kind in (OperationKind.STATUS_QUERY, OperationKind.CLOSE):
            raise ValidationError("operation", kind, "express | reference | app", "Not a payment operation")
        return await self._call(kind, order, getattr(order, "out_trade_no", None))

    async def query_order_status(self, out_trade_no: str) -> NormalizedResult:
        return await self._call(OperationKind.STATUS_QUERY, out_trade_no, out_trade_no)

    async def close_order(self, out_trade_no: str) -> NormalizedResult:
        return await self._call(OperationKind.CLOSE, out_trade_no, out_trade_no)

    def verify_response_signature(self, response: dict[str, Any]) -> bool:
        """Check a reply's `sign` with the PayPay public key."""
        if not self.engine.can_verify:
            raise ConfigurationError("PayPay public key is required to verify responses")
        return verify_signature(response, self.engine)

    # Helpers
    @staticmethod
    def generate_trade_number(prefix: str = "", limits: Optional[ValidationLimits] = None) -> str:
        """`<prefix><epoch ms>_<8 hex>`, validated as a trade number."""
        trade_no = f"{prefix}{int(time.time() * 1000)}_{secrets.token_hex(4)}"
        if limits is None:
            return validate_trade_number(trade_no)
        return validate_trade_number(trade_no, limits)

    def sanitized_config(self) -> dict[str, Any]:
        return {
            "partner_id": self.config.partner_id,
            "environment": self.config.environment,
            "language": self.config.language,
            "api_url": self.config.api_url,
            "sale_product_code": self.config.sale_product_code,
            "verify_responses": self.config.verify_responses,
            "version": settings.VERSION,
        }

    def sdk_info(self) -> dict[str, Any]:
        return {
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "environment": self.config.environment,
            "supported_methods": SUPPORTED_METHODS,
            "keys": self.engine.key_info(),
        }

    @property
    def is_sandbox(self) -> bool:
        return self.config.environment == "sandbox"

    async def destroy(self) -> None:
        """Close the http client and wipe key material; the client is unusable afterwards."""
        await self.aclose()
        self.engine.clear()
        self._log("paypay_client_destroyed")

    async def _call(self, kind: Any, subject: Any, out_trade_no: Optional[str]) -> NormalizedResult:
        kind_name = getattr(kind, "value", kind)
        try:
            envelope = await self.builder.build(kind, subject)
        except NetworkError as exc:
            # payer IP lookup failed
            return Failure(error=exc)

        self._log("paypay_request", operation=kind_name, service=envelope.service, out_trade_no=out_trade_no)
        transport = HttpxTransport(self.http)
        try:
            status, body = await transport.post_form(self.config.api_url, envelope.to_params())
        except (NetworkError, GatewayError) as exc:
            self._log("paypay_request_failed", operation=kind_name, out_trade_no=out_trade_no, kind=exc.kind.value)
            return Failure(error=exc)

        result = normalize(
            body,
            out_trade_no,
            engine=self.engine if self.config.verify_responses else None,
            require_signature=self.config.require_response_signature,
            http_status=status,
        )
        self._log(
            "paypay_response",
            operation=kind_name,
            out_trade_no=out_trade_no,
            http_status=status,
            ok=result.ok,
        )
        return result
