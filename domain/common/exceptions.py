"""Domain-level exceptions shared by the domain, infrastructure and application layers.

`PayPayError` is the single error type raised by the SDK. It carries an
`ErrorKind` tag; the subclasses below only fix the tag and shape the payload,
so retry and classification decisions read `kind` rather than the class.
"""
from __future__ import annotations

import random
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode


class BusinessException(Exception):
    """Base business exception."""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Structured form for logging."""
        return {
            "error_type": self.error_type,
            "code": int(self.code),
            "message": self.message,
            "details": self.details or {},
            "field": self.field,
            "timestamp": self.timestamp.isoformat(),
        }


class ErrorKind(str, Enum):
    """Closed error taxonomy."""
    KEY_FORMAT = "key_format"
    VALIDATION = "validation"
    CRYPTO = "crypto"
    NETWORK = "network"
    TIMEOUT = "timeout"
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    SERVICE_UNAVAILABLE = "service_unavailable"
    PAYMENT_FAILED = "payment_failed"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


# Kinds that only a gateway reply can produce
GATEWAY_KINDS = frozenset({
    ErrorKind.AUTH,
    ErrorKind.RATE_LIMIT,
    ErrorKind.SERVICE_UNAVAILABLE,
    ErrorKind.PAYMENT_FAILED,
    ErrorKind.UNKNOWN,
})

_KIND_CODES: dict[ErrorKind, int] = {
    ErrorKind.KEY_FORMAT: PaymentCode.KEY_FORMAT_ERROR,
    ErrorKind.VALIDATION: BusinessCode.PARAM_VALIDATION_ERROR,
    ErrorKind.CRYPTO: PaymentCode.CRYPTO_ERROR,
    ErrorKind.NETWORK: PaymentCode.NETWORK_ERROR,
    ErrorKind.TIMEOUT: PaymentCode.TIMEOUT,
    ErrorKind.AUTH: PaymentCode.AUTH_ERROR,
    ErrorKind.RATE_LIMIT: PaymentCode.RATE_LIMITED,
    ErrorKind.SERVICE_UNAVAILABLE: PaymentCode.SERVICE_UNAVAILABLE,
    ErrorKind.PAYMENT_FAILED: PaymentCode.PAYMENT_FAILED,
    ErrorKind.CONFIGURATION: BusinessCode.CONFIGURATION_ERROR,
    ErrorKind.UNKNOWN: PaymentCode.PROVIDER_ERROR,
}


class PayPayError(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        details: Optional[dict] = None,
        field: Optional[str] = None,
        error_type: Optional[str] = None,
    ) -> None:
        self.kind = ErrorKind(kind)
        super().__init__(
            code=_KIND_CODES[self.kind],
            message=message,
            error_type=error_type or type(self).__name__,
            details=details,
            field=field,
        )

    @property
    def family(self) -> str:
        """Coarse grouping: the kind itself, or `gateway` for gateway-only kinds."""
        return "gateway" if self.kind in GATEWAY_KINDS else self.kind.value

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["kind"] = self.kind.value
        return data


class KeyFormatError(PayPayError):
    def __init__(self, message: str, *, key_kind: str, details: Optional[dict] = None):
        full_details = {"key_kind": key_kind}
        if details:
            full_details.update(details)
        super().__init__(message, kind=ErrorKind.KEY_FORMAT, details=full_details)


class ValidationError(PayPayError):
    """Invalid caller input; carries the field, the value and the expected format."""

    def __init__(self, field: str, value: Any, expected_format: str, message: Optional[str] = None):
        self.value = value
        self.expected_format = expected_format
        shown = f'"{value}"' if isinstance(value, str) else value
        super().__init__(
            message or f"Validation failed for field '{field}'. Expected: {expected_format}, got: {shown}",
            kind=ErrorKind.VALIDATION,
            details={"field": field, "value": value, "expected_format": expected_format},
            field=field,
        )


class CryptoError(PayPayError):
    def __init__(self, message: str, *, details: Optional[dict] = None):
        super().__init__(message, kind=ErrorKind.CRYPTO, details=details)


class NetworkError(PayPayError):
    """Transport-level failure (connection, DNS, timeout)."""

    def __init__(self, message: str, *, timeout: bool = False, details: Optional[dict] = None):
        super().__init__(
            message,
            kind=ErrorKind.TIMEOUT if timeout else ErrorKind.NETWORK,
            details=details,
        )


class GatewayError(PayPayError):
    """Business failure reported by the gateway."""

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        gateway_code: Optional[str] = None,
        sub_code: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        self.gateway_code = gateway_code
        self.sub_code = sub_code
        full_details = {"gateway_code": gateway_code, "sub_code": sub_code}
        if details:
            full_details.update(details)
        super().__init__(message, kind=kind, details=full_details)


class ConfigurationError(PayPayError):
    def __init__(self, message: str, *, details: Optional[dict] = None):
        super().__init__(message, kind=ErrorKind.CONFIGURATION, details=details)


RETRYABLE_KINDS = frozenset({
    ErrorKind.NETWORK,
    ErrorKind.TIMEOUT,
    ErrorKind.SERVICE_UNAVAILABLE,
    ErrorKind.RATE_LIMIT,
})

RETRY_BASE_DELAY = 1.0
RETRY_MAX_DELAY = 30.0
RETRY_JITTER = 0.25
# 2 ** 5 * base already exceeds the cap
_MAX_BACKOFF_EXPONENT = 5


def is_retryable(error: BaseException) -> bool:
    return isinstance(error, PayPayError) and error.kind in RETRYABLE_KINDS


def retry_delay(error: BaseException, attempt: int, rng: Optional[random.Random] = None) -> float:
    """Seconds to wait before `attempt` (1-based): exponential, capped, +/-25% jitter."""
    if not is_retryable(error):
        return 0.0
    exponent = min(max(attempt, 1) - 1, _MAX_BACKOFF_EXPONENT)
    base = min(RETRY_BASE_DELAY * 2 ** exponent, RETRY_MAX_DELAY)
    spread = (rng or random).uniform(-RETRY_JITTER, RETRY_JITTER)
    return base * (1 + spread)
