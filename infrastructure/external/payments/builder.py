"""
Builds signed PayPay request envelopes.

Order of work is fixed: validate, resolve payer IP, build biz_content,
encrypt, assemble the envelope, sign last. Nothing touches the keys until
validation has passed.
"""
from __future__ import annotations

import json
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Literal, Optional, Union, get_args

from application.dtos.payments import RequestEnvelope
from application.ports.payment_gateway import PayerIpResolver
from core.logging_config import get_logger
from domain.common.exceptions import ConfigurationError
from domain.payment.entity import (
    AppPayment,
    ExpressPayment,
    Operation,
    OperationKind,
    OrderDetails,
    ReferencePayment,
)
from domain.payment.service import make_operation
from domain.payment.validators import DEFAULT_LIMITS, ValidationLimits, format_amount, validate_payer_ip
from infrastructure.crypto import CryptoEngine


logger = get_logger(__name__)

# Gateway clock is West Africa Time
GATEWAY_TZ = timezone(timedelta(hours=1))
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

CASHIER_TYPE = "SDK"
TIMEOUT_EXPRESS = "15m"
PAY_PRODUCT_CODE = "31"
PAYEE_IDENTITY_TYPE = "1"
QUANTITY = "1"

Language = Literal["pt", "en"]
SUPPORTED_LANGUAGES = frozenset(get_args(Language))


@dataclass(frozen=True)
class BuilderConfig:
    partner_id: str
    sale_product_code: str = "050200030"
    language: Language = "pt"
    currency: str = "AOA"
    limits: ValidationLimits = DEFAULT_LIMITS


def gateway_timestamp(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(GATEWAY_TZ).strftime(TIMESTAMP_FORMAT)


def new_request_no() -> str:
    return secrets.token_hex(16)


def _dumps(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


class RequestBuilder:
    def __init__(
        self,
        engine: CryptoEngine,
        config: BuilderConfig,
        ip_resolver: PayerIpResolver,
        *,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        nonce_factory: Callable[[], str] = new_request_no,
    ) -> None:
        if not config.partner_id:
            raise ConfigurationError("partner_id is required")
        if config.language not in SUPPORTED_LANGUAGES:
            raise ConfigurationError(
                f"Unsupported language: {config.language!r}",
                details={"language": config.language, "supported": sorted(SUPPORTED_LANGUAGES)},
            )
        self.engine = engine
        self.config = config
        self.ip_resolver = ip_resolver
        self._clock = clock
        self._nonce_factory = nonce_factory

    async def build(self, kind: Union[OperationKind, str], subject: Union[OrderDetails, str]) -> RequestEnvelope:
        operation = make_operation(kind, subject, self.config.limits)
        biz = await self.biz_content(operation)
        envelope = RequestEnvelope(
            biz_content=self.engine.encrypt(_dumps(biz)),
            partner_id=self.config.partner_id,
            service=operation.service,
            request_no=self._nonce_factory(),
            timestamp=gateway_timestamp(self._clock()),
            language=self.config.language,
        )
        signed = envelope.model_copy(update={"sign": self.engine.sign(envelope.signing_params())})
        logger.debug(
            "paypay_request_built",
            operation=operation.kind.value,
            service=operation.service,
            request_no=signed.request_no,
        )
        return signed

    async def biz_content(self, operation: Operation) -> dict[str, Any]:
        """Plain biz_content for an operation, before encryption."""
        if not isinstance(operation, (ExpressPayment, ReferencePayment, AppPayment)):
            return {"out_trade_no": operation.out_trade_no}

        order = operation.order
        payer_ip = order.payer_ip
        if payer_ip is None:
            payer_ip = validate_payer_ip(await self.ip_resolver.resolve())
        amount = format_amount(order.amount)  # type: ignore[arg-type]

        biz: dict[str, Any] = {
            "cashier_type": CASHIER_TYPE,
            "payer_ip": payer_ip,
            "sale_product_code": self.config.sale_product_code,
            "timeout_express": TIMEOUT_EXPRESS,
            "trade_info": {
                "currency": self.config.currency,
                "out_trade_no": order.out_trade_no,
                "payee_identity": self.config.partner_id,
                "payee_identity_type": PAYEE_IDENTITY_TYPE,
                "price": amount,
                "quantity": QUANTITY,
                "subject": order.subject,
                "total_amount": amount,
            },
        }
        if isinstance(operation, ExpressPayment):
            biz["pay_method"] = {
                "pay_product_code": PAY_PRODUCT_CODE,
                "amount": amount,
                "bank_code": operation.bank_code,
                "phone_num": operation.phone_num,
            }
        elif isinstance(operation, ReferencePayment):
            biz["pay_method"] = {
                "pay_product_code": PAY_PRODUCT_CODE,
                "amount": amount,
                "bank_code": operation.bank_code,
            }
        return biz
