"""
Form-encoded HTTP transport over a pooled httpx.AsyncClient.
"""
from __future__ import annotations

from typing import Any, Mapping

import httpx

from core.logging_config import get_logger
from domain.common.exceptions import ErrorKind, GatewayError
from infrastructure.external.payments.exceptions import from_network_error


logger = get_logger(__name__)

FORM_HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded",
    "Accept": "application/json",
}


class HttpxTransport:
    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def post_form(self, url: str, params: Mapping[str, Any]) -> tuple[int, dict[str, Any]]:
        """POST `params` once-encoded and return (status, decoded JSON body)."""
        form = {k: str(params[k]) for k in sorted(params) if params[k] is not None}
        try:
            resp = await self._client.post(url, data=form, headers=FORM_HEADERS)
        except httpx.HTTPError as exc:
            logger.warning("paypay_transport_error", url=url, error=type(exc).__name__)
            raise from_network_error(exc) from exc

        try:
            body = resp.json()
        except ValueError:
            raise GatewayError(
                "Gateway returned a non-JSON response",
                kind=ErrorKind.UNKNOWN,
                details={"http_status": resp.status_code, "body": resp.text[:200]},
            ) from None
        if not isinstance(body, dict):
            raise GatewayError(
                "Gateway returned an unexpected response shape",
                kind=ErrorKind.UNKNOWN,
                details={"http_status": resp.status_code},
            )
        logger.debug("paypay_transport_response", url=url, status=resp.status_code)
        return resp.status_code, body

    async def aclose(self) -> None:
        await self._client.aclose()
