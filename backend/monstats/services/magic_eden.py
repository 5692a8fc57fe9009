from __future__ import annotations
import asyncio
import logging
from typing import Optional

import httpx

from monstats.config import get_settings
from monstats.services.nft_valuation import NftHolding
from monstats.services.upstream import get_json_with_retry

settings = get_settings()
logger = logging.getLogger(__name__)


class MagicEdenClient:
    """Magic Eden user-collections snapshot (Reservoir-style v3 RTP API)."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._semaphore = asyncio.Semaphore(settings.magic_eden_rate_limit)
        self._transport = transport

    async def get_user_collections(self, address: str) -> list[NftHolding]:
        url = (
            f"{settings.magic_eden_base_url}/v3/rtp/{settings.magic_eden_chain}"
            f"/users/{address}/collections/v3"
        )
        async with self._semaphore:
            data = await get_json_with_retry(
                url,
                params={
                    "includeTopBid": "false",
                    "includeLiquidCount": "false",
                    "offset": 0,
                    "limit": 100,
                },
                headers={"Accept": "application/json"},
                transport=self._transport,
                label=f"Magic Eden collections {address[:10]}",
            )

        holdings = []
        for raw in data.get("collections") or []:
            try:
                holdings.append(NftHolding.from_api(raw))
            except (TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed NFT collection for {address[:10]}: {e}")
        return holdings


magic_eden_client = MagicEdenClient()
