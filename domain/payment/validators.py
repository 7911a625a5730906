"""
订单输入校验 - 纯函数，失败时抛出 ValidationError(field, value, expected_format)
"""
from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from domain.common.exceptions import ValidationError
from domain.payment.entity import OrderDetails


TWO_PLACES = Decimal("0.01")
DEFAULT_SUBJECT = "Purchase"
SUBJECT_MAX_LENGTH = 128

_TRADE_NO_RE = re.compile(r"[A-Za-z0-9_-]+")
_PHONE_STRIP_RE = re.compile(r"[\s\-()]")
_PHONE_LOCAL_RE = re.compile(r"9[0-9]{8}")
_PHONE_INTL_RE = re.compile(r"2449[0-9]{8}")
_SUBJECT_FORBIDDEN_RE = re.compile(r"[<>'\"&\x00-\x1f\x7f]")


@dataclass(frozen=True)
class ValidationLimits:
    """校验边界（统一的一套常量，可通过配置覆盖）"""
    min_amount: Decimal = Decimal("1.00")
    max_amount: Decimal = Decimal("10000000.00")
    min_trade_no_length: int = 6
    max_trade_no_length: int = 32
    currency: str = "AOA"


DEFAULT_LIMITS = ValidationLimits()


def validate_trade_number(value: Any, limits: ValidationLimits = DEFAULT_LIMITS) -> str:
    expected = (
        f"{limits.min_trade_no_length}-{limits.max_trade_no_length} characters "
        "of letters, digits, '-' or '_'"
    )
    if not isinstance(value, str) or not value:
        raise ValidationError("out_trade_no", value, expected, "Trade number is required and must be a string")
    if not limits.min_trade_no_length <= len(value) <= limits.max_trade_no_length:
        raise ValidationError(
            "out_trade_no",
            value,
            expected,
            f"Trade number must be between {limits.min_trade_no_length} and "
            f"{limits.max_trade_no_length} characters",
        )
    if not _TRADE_NO_RE.fullmatch(value):
        raise ValidationError(
            "out_trade_no",
            value,
            expected,
            "Trade number can only contain letters, numbers, dashes, and underscores",
        )
    return value


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise InvalidOperation
    if isinstance(value, float):
        return Decimal(repr(value))
    if isinstance(value, (Decimal, int)):
        return Decimal(value)
    if isinstance(value, str):
        return Decimal(value.strip())
    raise InvalidOperation


def validate_amount(value: Any, limits: ValidationLimits = DEFAULT_LIMITS) -> Decimal:
    """金额校验，返回保留两位小数的 Decimal"""
    expected = f"decimal between {limits.min_amount} and {limits.max_amount} with at most 2 decimal places"
    if value is None:
        raise ValidationError("amount", value, expected, "Amount is required")
    try:
        amount = _to_decimal(value)
    except (InvalidOperation, ValueError):
        raise ValidationError("amount", value, expected, "Amount must be a number") from None
    if not amount.is_finite():
        raise ValidationError("amount", value, expected, "Amount must be a valid number")
    if amount <= 0:
        raise ValidationError("amount", value, expected, "Amount must be greater than zero")
    if amount.normalize().as_tuple().exponent < -2:
        raise ValidationError("amount", value, expected, "Amount cannot have more than 2 decimal places")
    if amount < limits.min_amount:
        raise ValidationError(
            "amount", value, expected, f"Amount must be at least {limits.min_amount} {limits.currency}"
        )
    if amount > limits.max_amount:
        raise ValidationError(
            "amount", value, expected, f"Amount cannot exceed {limits.max_amount} {limits.currency}"
        )
    return amount.quantize(TWO_PLACES)


def format_amount(amount: Decimal) -> str:
    """网关要求的两位小数字符串，如 1000 -> '1000.00'"""
    return f"{amount.quantize(TWO_PLACES):.2f}"


def normalize_phone_number(value: Any) -> str:
    """
    规范化安哥拉手机号

    - 9XXXXXXXX     -> 2449XXXXXXXX
    - 2449XXXXXXXX  -> 不变
    - 其他格式       -> ValidationError
    """
    expected = "244XXXXXXXXX or 9XXXXXXXX"
    if not isinstance(value, str) or not value:
        raise ValidationError("phone_num", value, expected, "Phone number is required and must be a string")
    cleaned = _PHONE_STRIP_RE.sub("", value)
    if _PHONE_INTL_RE.fullmatch(cleaned):
        return cleaned
    if _PHONE_LOCAL_RE.fullmatch(cleaned):
        return "244" + cleaned
    raise ValidationError(
        "phone_num",
        value,
        expected,
        "Invalid Angola phone number format. Expected: 244XXXXXXXXX or 9XXXXXXXX",
    )


def validate_subject(value: Optional[str]) -> str:
    expected = f"1-{SUBJECT_MAX_LENGTH} characters without markup or control characters"
    if value is None:
        return DEFAULT_SUBJECT
    if not isinstance(value, str):
        raise ValidationError("subject", value, expected, "Subject must be a string")
    if not value.strip():
        raise ValidationError("subject", value, expected, "Subject cannot be empty")
    if len(value) > SUBJECT_MAX_LENGTH:
        raise ValidationError("subject", value, expected, f"Subject cannot exceed {SUBJECT_MAX_LENGTH} characters")
    if _SUBJECT_FORBIDDEN_RE.search(value):
        raise ValidationError("subject", value, expected, "Subject contains invalid characters")
    return value


def validate_payer_ip(value: Any) -> str:
    try:
        return str(ipaddress.ip_address(value))
    except (TypeError, ValueError):
        raise ValidationError("payer_ip", value, "IPv4 or IPv6 address", "Invalid IP address format") from None


def validate_order(order: OrderDetails, limits: ValidationLimits = DEFAULT_LIMITS) -> OrderDetails:
    """校验订单的通用字段，返回规范化后的副本（手机号由具体操作决定是否校验）"""
    if not isinstance(order, OrderDetails):
        raise ValidationError("order", order, "OrderDetails", "Order details are required")
    return replace(
        order,
        out_trade_no=validate_trade_number(order.out_trade_no, limits),
        amount=validate_amount(order.amount, limits),
        subject=validate_subject(order.subject),
        payer_ip=validate_payer_ip(order.payer_ip) if order.payer_ip is not None else None,
    )
