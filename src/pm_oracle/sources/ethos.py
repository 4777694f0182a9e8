"""Ethos network profile-count adapter (count_threshold markets)."""

import logging

import httpx

from config.settings import settings
from src.pm_common.datetime_utils import utc_now
from src.pm_oracle.domain.evidence import Reading
from src.pm_oracle.sources.base import HttpJsonSource, is_number

logger = logging.getLogger(__name__)


class EthosProfileCountSource(HttpJsonSource):
    name = "ethos"

    def __init__(
        self,
        client_id: str | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(
            settings.ETHOS_API_BASE,
            settings.ORACLE_SOURCE_TIMEOUT_SECONDS,
            headers={"X-Ethos-Client": client_id or settings.ETHOS_CLIENT_ID},
            client=client,
        )

    async def get_profile_count(self) -> Reading | None:
        """A failed call is None, never 0: zero is a real reading."""
        data = await self._get_json("/v1/stats/profiles")
        if not isinstance(data, dict) or not is_number(data.get("count")):
            logger.warning("ethos: profile stats response has no numeric count")
            return None
        count = data["count"]
        return Reading(value=float(count), timestamp=utc_now().isoformat(), raw={"count": count})
