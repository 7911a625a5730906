"""
Shared business codes used across layers (Domain/Infrastructure/Application).

`BusinessCode` holds the codes for local input and configuration problems;
gateway-specific codes live under `shared.codes.payment_codes`.
"""
from enum import IntEnum


class BusinessCode(IntEnum):
    """Codes for errors raised before any gateway call."""

    PARAM_VALIDATION_ERROR = 10003
    CONFIGURATION_ERROR = 40001


__all__ = ["BusinessCode"]
