"""CoinGecko spot price adapter (price_close markets)."""

import logging

import httpx

from config.settings import settings
from src.pm_common.datetime_utils import from_epoch_seconds, utc_now
from src.pm_oracle.domain.evidence import Reading
from src.pm_oracle.sources.base import HttpJsonSource, is_number

logger = logging.getLogger(__name__)

SYMBOL_TO_ID: dict[str, str] = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "SOL": "solana",
    "AVAX": "avalanche-2",
    "MATIC": "matic-network",
    "ARB": "arbitrum",
    "OP": "optimism",
    "LINK": "chainlink",
    "UNI": "uniswap",
    "AAVE": "aave",
}


def coin_id_for(symbol: str) -> str:
    """Known tickers map to CoinGecko ids; anything else is passed through lower-cased."""
    return SYMBOL_TO_ID.get(symbol.upper(), symbol.lower())


class CoinGeckoPriceSource(HttpJsonSource):
    name = "coingecko"

    def __init__(
        self,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(
            settings.COINGECKO_API_BASE,
            settings.ORACLE_SOURCE_TIMEOUT_SECONDS,
            client=client,
        )
        self._api_key = api_key if api_key is not None else settings.COINGECKO_API_KEY

    async def get_price(self, asset: str) -> Reading | None:
        coin_id = coin_id_for(asset)
        params = {
            "ids": coin_id,
            "vs_currencies": "usd",
            "include_last_updated_at": "true",
        }
        if self._api_key:
            params["x_cg_demo_api_key"] = self._api_key

        data = await self._get_json("/simple/price", params)
        if not isinstance(data, dict):
            return None

        entry = data.get(coin_id)
        if not isinstance(entry, dict) or not is_number(entry.get("usd")):
            logger.warning("coingecko: no USD price for %s", coin_id)
            return None

        updated = entry.get("last_updated_at")
        timestamp = from_epoch_seconds(updated) if is_number(updated) else utc_now().isoformat()
        return Reading(value=float(entry["usd"]), timestamp=timestamp, raw=data)
