"""
Turns raw gateway replies into `Success` / `Failure`.

The reply is a trust boundary: when the counterparty public key is known
and the reply is signed, the signature is checked before any business
field is read.
"""
from __future__ import annotations

import json
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from application.dtos.payments import Failure, NormalizedResult, PaymentData, Success
from core.logging_config import get_logger
from domain.common.exceptions import CryptoError, ErrorKind, GatewayError
from domain.payment.entity import PaymentStatus
from infrastructure.crypto import CryptoEngine
from infrastructure.external.payments.exceptions import classify_http_status, gateway_error
from shared.codes.payment_codes import (
    BIZ_STATUS_TO_INTERNAL,
    GATEWAY_SUCCESS_CODES,
    GATEWAY_SUCCESS_FLAGS,
    TRADE_STATUS_TO_INTERNAL,
)


logger = get_logger(__name__)

TWO_PLACES = Decimal("0.01")

_DATA_FIELDS = (
    "out_trade_no",
    "trade_no",
    "trade_status",
    "dynamic_link",
    "qr_code",
    "trade_token",
    "reference_id",
    "entity_id",
    "return_url",
)


def is_success(raw: dict[str, Any]) -> bool:
    if str(raw.get("code", "")) in GATEWAY_SUCCESS_CODES:
        return True
    flag = raw.get("is_success")
    return flag is True or (isinstance(flag, str) and flag in GATEWAY_SUCCESS_FLAGS)


def business_fields(raw: dict[str, Any]) -> dict[str, Any]:
    """Top-level fields overlaid with a `biz_content` object or JSON string."""
    merged = {k: v for k, v in raw.items() if k != "biz_content"}
    biz = raw.get("biz_content")
    if isinstance(biz, str):
        try:
            biz = json.loads(biz)
        except ValueError:
            logger.debug("paypay_biz_content_not_json")
            biz = None
    if isinstance(biz, dict):
        merged.update(biz)
    return merged


def _amount(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value)).quantize(TWO_PLACES)
    except (InvalidOperation, ValueError):
        return None


def _status(fields: dict[str, Any]) -> str:
    trade_status = fields.get("trade_status")
    if trade_status in TRADE_STATUS_TO_INTERNAL:
        return TRADE_STATUS_TO_INTERNAL[trade_status]
    status = fields.get("status")
    if status in BIZ_STATUS_TO_INTERNAL:
        return BIZ_STATUS_TO_INTERNAL[status]
    return PaymentStatus.UNKNOWN.value


def to_payment_data(raw: dict[str, Any], out_trade_no: Optional[str] = None) -> PaymentData:
    fields = business_fields(raw)
    data = {k: (None if fields.get(k) is None else str(fields[k])) for k in _DATA_FIELDS}
    data["out_trade_no"] = data["out_trade_no"] or out_trade_no
    data["inner_trade_no"] = data["trade_no"]
    data["return_url"] = data["return_url"] or data["dynamic_link"]
    return PaymentData(
        **data,
        status=_status(fields),
        total_amount=_amount(fields.get("total_amount")),
        raw=raw,
    )


def verify_signature(raw: dict[str, Any], engine: CryptoEngine) -> bool:
    return engine.verify({k: v for k, v in raw.items() if k != "sign"}, raw.get("sign"))


def normalize(
    raw: dict[str, Any],
    out_trade_no: Optional[str] = None,
    *,
    engine: Optional[CryptoEngine] = None,
    require_signature: bool = False,
    http_status: Optional[int] = None,
) -> NormalizedResult:
    if not isinstance(raw, dict):
        return Failure(error=GatewayError("Gateway response is not an object", kind=ErrorKind.UNKNOWN))

    if engine is not None and engine.can_verify:
        if raw.get("sign"):
            if not verify_signature(raw, engine):
                logger.warning("paypay_response_signature_invalid", out_trade_no=out_trade_no)
                return Failure(error=CryptoError("Response signature verification failed"), raw=raw)
        elif require_signature:
            return Failure(error=CryptoError("Response is not signed"), raw=raw)

    if is_success(raw) and (http_status is None or http_status < 400):
        return Success(data=to_payment_data(raw, out_trade_no))

    if raw.get("code") is None and raw.get("sub_code") is None and http_status is not None:
        kind = classify_http_status(http_status) or ErrorKind.UNKNOWN
        error = GatewayError(
            raw.get("msg") or f"Gateway responded with HTTP {http_status}",
            kind=kind,
            details={"http_status": http_status},
        )
    else:
        error = gateway_error(raw, http_status=http_status)
    logger.info(
        "paypay_gateway_failure",
        out_trade_no=out_trade_no,
        kind=error.kind.value,
        gateway_code=error.gateway_code,
        sub_code=error.sub_code,
    )
    return Failure(error=error, raw=raw)
