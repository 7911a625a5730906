"""
Payment specific codes, gateway code table and trade status mapping.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Local pre-flight errors
    KEY_FORMAT_ERROR = 60010
    CRYPTO_ERROR = 60011

    # Gateway and transport errors
    PROVIDER_ERROR = 60000
    TIMEOUT = 60003
    RATE_LIMITED = 60004
    NETWORK_ERROR = 60005
    AUTH_ERROR = 60006
    SERVICE_UNAVAILABLE = 60007
    PAYMENT_FAILED = 60008


# Result codes the gateway uses for a successful call
GATEWAY_SUCCESS_CODES = frozenset({"10000", "S0001"})

# `is_success` flag values the gateway uses for a successful call
GATEWAY_SUCCESS_FLAGS = frozenset({"T", "true", "TRUE", "True"})


# Gateway code -> ErrorKind value. Numeric result codes and the symbolic
# sub-codes share one table; sub_code is looked up before code.
GATEWAY_CODE_TABLE: dict[str, str] = {
    # Numeric result codes
    "20000": "service_unavailable",
    "20001": "validation",
    "40001": "validation",
    "40002": "validation",
    "40003": "validation",
    "40004": "crypto",
    "40005": "crypto",
    "50000": "service_unavailable",
    "50001": "payment_failed",
    # Symbolic codes
    "INVALID_PARAMETER": "validation",
    "MISSING_PARAMETER": "validation",
    "INVALID_SIGNATURE": "crypto",
    "SIGNATURE_ERROR": "crypto",
    "UNAUTHORIZED": "auth",
    "FORBIDDEN": "auth",
    "RATE_LIMIT_EXCEEDED": "rate_limit",
    "SERVICE_UNAVAILABLE": "service_unavailable",
    "INTERNAL_ERROR": "service_unavailable",
    "PAYMENT_FAILED": "payment_failed",
    "INSUFFICIENT_FUNDS": "payment_failed",
}


# Fallback messages when the gateway sends a bare numeric code
GATEWAY_CODE_MESSAGES: dict[str, str] = {
    "20000": "Service temporarily unavailable",
    "20001": "Insufficient input parameters",
    "40001": "Missing input parameters",
    "40002": "Invalid input parameters",
    "40003": "Invalid data format",
    "40004": "Invalid signature",
    "40005": "Invalid encryption key",
    "50000": "Internal system error",
    "50001": "Payment processing error",
}


# Gateway trade_status -> internal status
TRADE_STATUS_TO_INTERNAL = {
    "WAIT_BUYER_PAY": "pending",
    "TRADE_SUCCESS": "succeeded",
    "TRADE_FINISHED": "succeeded",
    "TRADE_CLOSED": "canceled",
}

# Short biz_content `status` flags on create replies
BIZ_STATUS_TO_INTERNAL = {
    "P": "pending",
    "S": "succeeded",
    "F": "failed",
}
