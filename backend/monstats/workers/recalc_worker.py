from __future__ import annotations
import asyncio
import logging
from monstats.config import get_settings
from monstats.database import async_session
from monstats.services.rankings import recalculate_rankings

settings = get_settings()
logger = logging.getLogger(__name__)


async def run_recalc_worker():
    """Periodically re-score the whole population so per-wallet writes
    cannot drift too far from a consistent snapshot."""
    interval = settings.recalc_interval_seconds
    if interval <= 0:
        logger.info("Ranking recalculation worker disabled")
        return

    logger.info(f"Ranking recalculation worker started (every {interval}s)")
    while True:
        try:
            async with async_session() as db:
                updated = await recalculate_rankings(db)
            logger.info(f"Worker recalculated {updated} wallets")
        except Exception as e:
            logger.error(f"Ranking recalculation failed: {e}", exc_info=True)
        await asyncio.sleep(interval)
