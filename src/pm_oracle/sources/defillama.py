"""DefiLlama TVL adapter (metric_threshold markets)."""

import logging

import httpx

from config.settings import settings
from src.pm_common.datetime_utils import utc_now
from src.pm_oracle.domain.evidence import Reading
from src.pm_oracle.sources.base import HttpJsonSource, is_number

logger = logging.getLogger(__name__)

PROTOCOL_SLUGS: dict[str, str] = {
    "EIGENLAYER": "eigenlayer",
    "LIDO": "lido",
    "AAVE": "aave",
    "UNISWAP": "uniswap",
    "MAKERDAO": "makerdao",
    "COMPOUND": "compound-finance",
    "CURVE": "curve-dex",
    "CONVEX": "convex-finance",
    "ROCKET_POOL": "rocket-pool",
    "PENDLE": "pendle",
}

CHAIN_NAMES: dict[str, str] = {
    "BASE": "Base",
    "ARBITRUM": "Arbitrum",
    "OPTIMISM": "Optimism",
    "POLYGON": "Polygon",
    "ETHEREUM": "Ethereum",
    "AVALANCHE": "Avalanche",
    "BSC": "BSC",
    "SOLANA": "Solana",
}


def protocol_slug(protocol: str) -> str:
    return PROTOCOL_SLUGS.get(protocol.upper(), protocol.lower())


def chain_name(chain: str) -> str:
    return CHAIN_NAMES.get(chain.upper(), chain)


class DefiLlamaTVLSource(HttpJsonSource):
    name = "defillama"

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        super().__init__(
            settings.DEFILLAMA_API_BASE,
            settings.ORACLE_SOURCE_TIMEOUT_SECONDS,
            client=client,
        )

    async def get_protocol_tvl(self, protocol: str) -> Reading | None:
        slug = protocol_slug(protocol)
        data = await self._get_json(f"/protocol/{slug}")
        if not isinstance(data, dict) or not is_number(data.get("tvl")):
            # The protocol endpoint sometimes returns a TVL history list here.
            logger.warning("defillama: no current TVL for protocol %s", slug)
            return None

        return Reading(
            value=float(data["tvl"]),
            timestamp=utc_now().isoformat(),
            raw={
                "name": data.get("name"),
                "tvl": data["tvl"],
                "chainTvls": data.get("chainTvls"),
            },
        )

    async def get_chain_tvl(self, chain: str) -> Reading | None:
        wanted = chain_name(chain).lower()
        data = await self._get_json("/v2/chains")
        if not isinstance(data, list):
            return None

        for entry in data:
            if not isinstance(entry, dict):
                continue
            name = entry.get("name")
            if isinstance(name, str) and name.lower() == wanted:
                if not is_number(entry.get("tvl")):
                    break
                return Reading(
                    value=float(entry["tvl"]),
                    timestamp=utc_now().isoformat(),
                    raw=entry,
                )

        logger.warning("defillama: no TVL for chain %s", chain)
        return None
