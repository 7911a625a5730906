"""
Payer IP providers used by the request builder when an order carries no IP.
"""
from __future__ import annotations

from typing import Optional

import httpx

from core.logging_config import get_logger
from domain.common.exceptions import NetworkError


logger = get_logger(__name__)

IPIFY_URL = "https://api.ipify.org?format=json"
HTTPBIN_URL = "https://httpbin.org/ip"


class StaticIpResolver:
    def __init__(self, ip: str) -> None:
        self.ip = ip

    async def resolve(self) -> str:
        return self.ip


class PublicIpResolver:
    """Asks ipify for the public address, falling back to httpbin."""

    def __init__(self, *, timeout: float = 5.0, client: Optional[httpx.AsyncClient] = None) -> None:
        self._timeout = timeout
        self._client = client

    async def _fetch(self, client: httpx.AsyncClient, url: str, field: str) -> str:
        resp = await client.get(url, timeout=self._timeout)
        resp.raise_for_status()
        body = resp.json()
        if not isinstance(body, dict):
            raise ValueError(f"unexpected response body: {type(body).__name__}")
        value = body.get(field)
        if not value:
            raise ValueError(f"no '{field}' in response")
        # httpbin may return "client, proxy"
        return str(value).split(",")[0].strip()

    async def resolve(self) -> str:
        client = self._client or httpx.AsyncClient()
        try:
            for url, field in ((IPIFY_URL, "ip"), (HTTPBIN_URL, "origin")):
                try:
                    return await self._fetch(client, url, field)
                except (httpx.HTTPError, ValueError) as exc:
                    logger.warning("payer_ip_lookup_failed", url=url, error=str(exc))
        finally:
            if self._client is None:
                await client.aclose()
        raise NetworkError("Failed to obtain client IP address", details={"sources": [IPIFY_URL, HTTPBIN_URL]})
