"""
Payment DTOs (Pydantic v2) used at application boundaries.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from domain.common.exceptions import PayPayError


class RequestEnvelope(BaseModel):
    """The signed form body posted to the gateway."""

    charset: Literal["UTF-8"] = "UTF-8"
    biz_content: str
    partner_id: str
    service: str
    request_no: str
    format: Literal["JSON"] = "JSON"
    sign_type: Literal["RSA"] = "RSA"
    version: Literal["1.0"] = "1.0"
    timestamp: str
    language: Literal["pt", "en"] = "pt"
    sign: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    def signing_params(self) -> dict[str, str]:
        """Every field the signature covers (canonicalize drops sign/sign_type)."""
        return self.model_dump(exclude={"sign"})

    def to_params(self) -> dict[str, str]:
        if self.sign is None:
            raise ValueError("envelope is not signed")
        return self.model_dump()


class PaymentData(BaseModel):
    """Normalized business fields from a successful gateway reply."""

    out_trade_no: Optional[str] = None
    inner_trade_no: Optional[str] = None
    trade_no: Optional[str] = None
    trade_status: Optional[str] = None
    status: str = "unknown"
    dynamic_link: Optional[str] = None
    qr_code: Optional[str] = None
    trade_token: Optional[str] = None
    reference_id: Optional[str] = None
    entity_id: Optional[str] = None
    total_amount: Optional[Decimal] = None
    return_url: Optional[str] = None
    raw: dict[str, Any] = Field(default_factory=dict)


class Success(BaseModel):
    ok: Literal[True] = True
    data: PaymentData

    def unwrap(self) -> PaymentData:
        return self.data


class Failure(BaseModel):
    ok: Literal[False] = False
    error: PayPayError
    raw: Optional[dict[str, Any]] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def unwrap(self) -> PaymentData:
        raise self.error


NormalizedResult = Union[Success, Failure]
