from __future__ import annotations
import asyncio
import logging
from typing import Optional

import httpx

from monstats.config import get_settings
from monstats.services.metrics import Transaction
from monstats.services.upstream import UpstreamError, get_json_with_retry

settings = get_settings()
logger = logging.getLogger(__name__)

NO_DATA_MARKERS = (
    "no transactions found",
    "no records found",
    "no data found",
    "no transactions",
)


def is_no_data_message(message: Optional[str]) -> bool:
    text = (message or "").lower()
    return any(marker in text for marker in NO_DATA_MARKERS)


def _check_response(data: dict) -> None:
    if str(data.get("status")) == "1" or is_no_data_message(data.get("message")):
        return
    # status "0" with anything else ("NOTOK", rate limit, ...) is worth another try
    detail = data.get("result") if isinstance(data.get("result"), str) else ""
    raise UpstreamError(f"Etherscan API error: {data.get('message')} {detail}".strip())


class EtherscanClient:
    """Etherscan v2 ``txlist`` client with block-range pagination."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = settings.etherscan_api_key
        self._semaphore = asyncio.Semaphore(settings.etherscan_rate_limit)
        self._transport = transport

    async def get_transactions_batch(self, address: str, start_block: int = 0) -> list[dict]:
        """One page of up to tx_page_size transactions, ascending by block.

        An explicit "no transactions found" answer is a terminal empty page.
        """
        params = {
            "chainid": settings.etherscan_chain_id,
            "module": "account",
            "action": "txlist",
            "address": address,
            "page": 1,
            "offset": settings.tx_page_size,
            "startblock": start_block,
            "endblock": 99999999,
            "sort": "asc",
            "apikey": self.api_key,
        }
        async with self._semaphore:
            data = await get_json_with_retry(
                settings.etherscan_api_url,
                params=params,
                headers={"Accept": "application/json"},
                transport=self._transport,
                label=f"Etherscan txlist {address[:10]}@{start_block}",
                validate=_check_response,
            )

        if str(data.get("status")) != "1":
            logger.info(f"Etherscan returned '{data.get('message')}' for {address[:10]} from block {start_block}")
            return []
        result = data.get("result") or []
        return result if isinstance(result, list) else []

    async def get_transactions(self, address: str) -> list[Transaction]:
        """All transactions for ``address``.

        The next page starts at the last block seen (not last + 1) so a block
        split across a page boundary is not lost; duplicates are dropped by hash.
        Any failure after retries propagates and the partial list is discarded.
        """
        seen: set[str] = set()
        transactions: list[Transaction] = []
        start_block = 0

        for batch_num in range(1, settings.tx_max_batches + 1):
            batch = await self.get_transactions_batch(address, start_block)
            new = [row for row in batch if row.get("hash") not in seen]
            for row in new:
                seen.add(row.get("hash"))
                transactions.append(Transaction.from_api(row))

            logger.debug(
                f"Etherscan batch {batch_num} for {address[:10]}: {len(batch)} rows, {len(new)} new"
            )
            if len(batch) < settings.tx_page_size or not new:
                break
            start_block = Transaction.from_api(batch[-1]).block_number
        else:
            logger.warning(
                f"Stopped paginating {address[:10]} after {settings.tx_max_batches} batches"
            )

        logger.info(f"Fetched {len(transactions)} transactions for {address[:10]}")
        return transactions


etherscan_client = EtherscanClient()
