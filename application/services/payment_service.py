"""
Application service orchestrating payment use-cases.

This class depends only on the application PayPayGateway port, DTOs and
the domain retry policy. The retry budget is passed in by the caller.
The gateway implementation is provided by infrastructure and must be
injected from the composition root, keeping dependencies one-way.

Retries are driven by the failure's kind. Payment creation is only retried
when the request provably never reached the gateway, since a reply (even a
failed one) means the order may already exist.
"""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, Union

from tenacity import AsyncRetrying, RetryCallState, retry_if_result, stop_after_attempt

from application.dtos.payments import Failure, NormalizedResult
from application.ports.payment_gateway import PayPayGateway
from core.logging_config import get_logger
from domain.common.exceptions import ErrorKind, PayPayError, is_retryable, retry_delay
from domain.payment.entity import OperationKind, OrderDetails


logger = get_logger(__name__)

DEFAULT_MAX_RETRIES = 2

# httpx exceptions raised before any byte of the request left the client
PRE_SEND_CAUSES = frozenset({"ConnectError", "ConnectTimeout", "PoolTimeout"})


def _failure(result: Any) -> Optional[PayPayError]:
    return result.error if isinstance(result, Failure) else None


def retryable_result(result: Any) -> bool:
    error = _failure(result)
    return error is not None and is_retryable(error)


def retryable_create_result(result: Any) -> bool:
    error = _failure(result)
    if error is None or error.kind not in (ErrorKind.NETWORK, ErrorKind.TIMEOUT):
        return False
    return (error.details or {}).get("cause") in PRE_SEND_CAUSES


def _wait(retry_state: RetryCallState) -> float:
    error = _failure(retry_state.outcome.result()) if retry_state.outcome else None
    return retry_delay(error, retry_state.attempt_number) if error is not None else 0.0


def _log_retry(retry_state: RetryCallState) -> None:
    error = _failure(retry_state.outcome.result()) if retry_state.outcome else None
    logger.warning(
        "payment_retry",
        attempt=retry_state.attempt_number,
        kind=error.kind.value if error is not None else None,
        wait=retry_state.next_action.sleep if retry_state.next_action else None,
    )


class PaymentService:
    def __init__(
        self,
        gateway: PayPayGateway,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.gateway = gateway
        self.max_retries = max_retries
        self._sleep = sleep

    async def _with_retry(
        self,
        fn: Callable[..., Awaitable[NormalizedResult]],
        predicate: Callable[[Any], bool],
        *args: Any,
    ) -> NormalizedResult:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=_wait,
            retry=retry_if_result(predicate),
            before_sleep=_log_retry,
            retry_error_callback=lambda state: state.outcome.result(),
            sleep=self._sleep,
        )
        return await retrying(fn, *args)

    async def create_payment(self, kind: Union[OperationKind, str], order: OrderDetails) -> NormalizedResult:
        logger.info(
            "payment_create_request",
            operation=getattr(kind, "value", kind),
            out_trade_no=order.out_trade_no,
            provider=self.gateway.provider,
        )
        result = await self._with_retry(
            self.gateway.create_payment, retryable_create_result, kind, order
        )
        self._log_result("payment_create_response", order.out_trade_no, result)
        return result

    async def create_express_payment(self, order: OrderDetails) -> NormalizedResult:
        return await self.create_payment(OperationKind.EXPRESS, order)

    async def create_reference_payment(self, order: OrderDetails) -> NormalizedResult:
        return await self.create_payment(OperationKind.REFERENCE, order)

    async def create_app_payment(self, order: OrderDetails) -> NormalizedResult:
        return await self.create_payment(OperationKind.APP, order)

    async def query_order_status(self, out_trade_no: str) -> NormalizedResult:
        logger.info("payment_query_request", out_trade_no=out_trade_no, provider=self.gateway.provider)
        result = await self._with_retry(
            self.gateway.query_order_status, retryable_result, out_trade_no
        )
        self._log_result("payment_query_response", out_trade_no, result)
        return result

    async def close_order(self, out_trade_no: str) -> NormalizedResult:
        logger.info("payment_close_request", out_trade_no=out_trade_no, provider=self.gateway.provider)
        result = await self._with_retry(
            self.gateway.close_order, retryable_result, out_trade_no
        )
        self._log_result("payment_close_response", out_trade_no, result)
        return result

    @staticmethod
    def _log_result(event: str, out_trade_no: str, result: NormalizedResult) -> None:
        error = _failure(result)
        if error is None:
            logger.info(event, out_trade_no=out_trade_no, status=result.data.status)  # type: ignore[union-attr]
        else:
            logger.info(event, out_trade_no=out_trade_no, kind=error.kind.value, code=int(error.code))

    async def aclose(self) -> None:
        # Best-effort close underlying resources
        close = getattr(self.gateway, "aclose", None)
        if callable(close):
            await close()
