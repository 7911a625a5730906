"""
Gateway error classification.

Everything here is a pure mapping onto `ErrorKind`; retry policy lives next to
the kinds in `domain.common.exceptions`.
"""
from __future__ import annotations

from typing import Any, Optional

import httpx

from domain.common.exceptions import ErrorKind, GatewayError, NetworkError
from shared.codes.payment_codes import GATEWAY_CODE_MESSAGES, GATEWAY_CODE_TABLE


def classify(code: Optional[Any], sub_code: Optional[Any] = None) -> ErrorKind:
    """Map a gateway code pair to an ErrorKind; sub_code wins over code."""
    for candidate in (sub_code, code):
        if candidate is None:
            continue
        kind = GATEWAY_CODE_TABLE.get(str(candidate).strip())
        if kind is not None:
            return ErrorKind(kind)
    return ErrorKind.UNKNOWN


def classify_http_status(status: int) -> Optional[ErrorKind]:
    """Fallback used when the body carries no recognizable code."""
    if status in (401, 403):
        return ErrorKind.AUTH
    if status == 429:
        return ErrorKind.RATE_LIMIT
    if status >= 500:
        return ErrorKind.SERVICE_UNAVAILABLE
    if status >= 400:
        return ErrorKind.VALIDATION
    return None


def gateway_error(raw: dict[str, Any], *, http_status: Optional[int] = None) -> GatewayError:
    """Build the GatewayError for a failed reply, keeping the raw code, sub-code and message."""
    code = raw.get("code")
    sub_code = raw.get("sub_code")
    kind = classify(code, sub_code)
    if kind is ErrorKind.UNKNOWN and http_status is not None:
        kind = classify_http_status(http_status) or ErrorKind.UNKNOWN
    message = (
        raw.get("sub_msg")
        or raw.get("msg")
        or GATEWAY_CODE_MESSAGES.get(str(code))
        or "Gateway request failed"
    )
    details: dict[str, Any] = {"msg": raw.get("msg"), "sub_msg": raw.get("sub_msg")}
    if http_status is not None:
        details["http_status"] = http_status
    return GatewayError(
        str(message),
        kind=kind,
        gateway_code=None if code is None else str(code),
        sub_code=None if sub_code is None else str(sub_code),
        details=details,
    )


def from_network_error(exc: BaseException) -> NetworkError:
    """Wrap an httpx transport exception; timeouts keep their own kind."""
    if isinstance(exc, NetworkError):
        return exc
    timeout = isinstance(exc, httpx.TimeoutException)
    message = "Request to payment gateway timed out" if timeout else "Unable to reach payment gateway"
    return NetworkError(message, timeout=timeout, details={"cause": type(exc).__name__, "reason": str(exc)})

