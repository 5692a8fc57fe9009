from __future__ import annotations
import asyncio
import logging
import time
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from monstats.models.wallet import Wallet
from monstats.services.metrics import WalletMetrics
from monstats.services.scoring import ScoreWeights, score_population
from monstats.services.wallet_stats import RAW_METRIC_FIELDS

logger = logging.getLogger(__name__)


def assign_ranks(total_scores: list[float], ids: list[int]) -> list[int]:
    """Stable 1-based ranks: total score descending, ties by insertion order."""
    order = sorted(range(len(total_scores)), key=lambda i: (-total_scores[i], ids[i]))
    ranks = [0] * len(total_scores)
    for position, idx in enumerate(order, start=1):
        ranks[idx] = position
    return ranks


async def recalculate_rankings(db: AsyncSession, weights: Optional[ScoreWeights] = None) -> int:
    """Re-score every stored wallet against one snapshot of the whole population.

    Idempotent: with no wallet updates in between, two runs write identical
    scores and ranks. Returns the number of wallets updated.
    """
    started = time.monotonic()
    weights = weights or ScoreWeights.from_settings()

    result = await db.execute(select(Wallet).order_by(Wallet.id))
    wallets = list(result.scalars().all())
    if not wallets:
        logger.info("Ranking recalculation: no wallets stored")
        return 0

    # Plain snapshot so scoring can run off the event loop
    snapshot = [
        WalletMetrics(**{f: getattr(w, f) for f in RAW_METRIC_FIELDS}) for w in wallets
    ]
    scores = await asyncio.to_thread(score_population, snapshot, weights)
    ranks = assign_ranks([s.total_score for s in scores], [w.id for w in wallets])

    for wallet, wallet_scores, rank in zip(wallets, scores, ranks):
        for name, value in wallet_scores.to_dict().items():
            setattr(wallet, name, value)
        wallet.rank = rank

    await db.commit()
    logger.info(
        f"Recalculated rankings for {len(wallets)} wallets in {time.monotonic() - started:.2f}s"
    )
    return len(wallets)
