"""
Payment gateway port (application/ports) exposing a replaceable protocol.

Application depends on this Protocol; infrastructure implements adapters.
"""
from __future__ import annotations

from typing import Any, Protocol, Union, runtime_checkable

from application.dtos.payments import NormalizedResult
from domain.payment.entity import OperationKind, OrderDetails


@runtime_checkable
class PayPayGateway(Protocol):
    """Async gateway protocol.

    Validation, key and crypto problems raise; anything the gateway or the
    network reports comes back as a `Failure`.
    """

    provider: str

    async def create_payment(self, kind: Union[OperationKind, str], order: OrderDetails) -> NormalizedResult: ...

    async def query_order_status(self, out_trade_no: str) -> NormalizedResult: ...

    async def close_order(self, out_trade_no: str) -> NormalizedResult: ...

    def verify_response_signature(self, response: dict[str, Any]) -> bool: ...


@runtime_checkable
class PayerIpResolver(Protocol):
    """Supplies the payer IP when the order does not carry one."""

    async def resolve(self) -> str: ...
