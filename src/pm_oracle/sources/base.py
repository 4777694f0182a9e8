"""Data-source adapter contracts and the shared HTTP JSON fetcher.

Adapters never raise for provider problems: transport errors, non-2xx
responses and malformed payloads are logged at WARNING and returned as None
so the resolver can treat "no data" as a first-class outcome.
"""

import logging
import math
from typing import Any, Protocol

import httpx

from src.pm_oracle.domain.evidence import Reading

logger = logging.getLogger(__name__)


class PriceSource(Protocol):
    name: str

    async def get_price(self, asset: str) -> Reading | None: ...


class MetricSource(Protocol):
    name: str

    async def get_protocol_tvl(self, protocol: str) -> Reading | None: ...

    async def get_chain_tvl(self, chain: str) -> Reading | None: ...


class CountSource(Protocol):
    name: str

    async def get_profile_count(self) -> Reading | None: ...


def is_number(value: Any) -> bool:
    """Finite int/float; JSON booleans do not count."""
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


class HttpJsonSource:
    """Owns one httpx.AsyncClient with an explicit timeout."""

    name = "http"

    def __init__(
        self,
        base_url: str,
        timeout: float,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._headers = {"Accept": "application/json", **(headers or {})}
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(self, path: str, params: dict[str, str] | None = None) -> Any:
        try:
            response = await self._client.get(path, params=params, headers=self._headers)
        except httpx.HTTPError as exc:
            logger.warning("%s: request to %s failed: %r", self.name, path, exc)
            return None

        if not response.is_success:
            logger.warning("%s: %s returned HTTP %d", self.name, path, response.status_code)
            return None

        try:
            return response.json()
        except ValueError:
            logger.warning("%s: %s returned a non-JSON body", self.name, path)
            return None
