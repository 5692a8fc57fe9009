from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from monstats.models.wallet import Wallet
from monstats.services.etherscan import EtherscanClient, etherscan_client
from monstats.services.magic_eden import MagicEdenClient, magic_eden_client
from monstats.services.metrics import WalletMetrics, extract_metrics
from monstats.services.nft_valuation import calculate_nft_bag_value
from monstats.services.scoring import ComponentScores, ScoreWeights, calculate_component_scores
from monstats.services.upstream import NoActivityError

logger = logging.getLogger(__name__)

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")

RAW_METRIC_FIELDS = (
    "tx_count",
    "gas_spent_mon",
    "total_volume",
    "nft_bag_value",
    "is_day1_user",
    "longest_streak",
    "days_active",
)


class InvalidWalletAddress(ValueError):
    pass


@dataclass
class WalletStats:
    wallet_address: str
    metrics: WalletMetrics
    scores: Optional[ComponentScores] = None  # None when the population could not be loaded
    persisted: bool = False


def normalize_address(address: Optional[str]) -> str:
    """Validate a 0x address and return its canonical lower-case form."""
    if not address or not ADDRESS_PATTERN.match(address.strip()):
        raise InvalidWalletAddress("Invalid wallet address")
    return address.strip().lower()


async def fetch_wallet_metrics(
    address: str,
    etherscan: EtherscanClient = etherscan_client,
    magic_eden: MagicEdenClient = magic_eden_client,
) -> WalletMetrics:
    """Pull transactions and NFT holdings and derive the raw metrics.

    Raises NoActivityError when the wallet has no transactions at all.
    Upstream failures propagate; nothing is persisted from here.
    """
    transactions = await etherscan.get_transactions(address)
    if not transactions:
        raise NoActivityError("No transactions found for this wallet")

    holdings = await magic_eden.get_user_collections(address)
    nft_bag_value = calculate_nft_bag_value(holdings)
    return extract_metrics(transactions, nft_bag_value=nft_bag_value)


async def load_population(db: AsyncSession, exclude_address: Optional[str] = None) -> list[WalletMetrics]:
    """Raw metrics of every stored wallet, optionally without one address."""
    columns = [getattr(Wallet, f) for f in RAW_METRIC_FIELDS]
    query = select(*columns)
    if exclude_address:
        query = query.where(Wallet.wallet_address != exclude_address)
    result = await db.execute(query)
    return [WalletMetrics(**dict(zip(RAW_METRIC_FIELDS, row))) for row in result.all()]


async def upsert_wallet(
    db: AsyncSession, address: str, metrics: WalletMetrics, scores: ComponentScores
) -> Wallet:
    result = await db.execute(select(Wallet).where(Wallet.wallet_address == address))
    wallet = result.scalar_one_or_none()
    if wallet is None:
        wallet = Wallet(wallet_address=address)
        db.add(wallet)

    for name in RAW_METRIC_FIELDS:
        setattr(wallet, name, getattr(metrics, name))
    wallet.transaction_history = metrics.transaction_history
    for name, value in scores.to_dict().items():
        setattr(wallet, name, value)
    wallet.updated_at = datetime.now(timezone.utc)
    return wallet


async def refresh_wallet_stats(
    db: AsyncSession,
    address: str,
    weights: Optional[ScoreWeights] = None,
    etherscan: EtherscanClient = etherscan_client,
    magic_eden: MagicEdenClient = magic_eden_client,
) -> WalletStats:
    """Fetch fresh metrics for one wallet, score it against the stored
    population and upsert it.

    Scores computed here are only as fresh as the population snapshot; the
    recalculation batch is what brings every wallet back in line. A database
    failure after the metrics are in hand is logged and the stats are still
    returned.
    """
    address = normalize_address(address)
    # Resolve the weight table before spending any upstream calls
    weights = weights or ScoreWeights.from_settings()
    metrics = await fetch_wallet_metrics(address, etherscan, magic_eden)
    stats = WalletStats(wallet_address=address, metrics=metrics)

    try:
        population = await load_population(db, exclude_address=address)
        population.append(metrics)
        stats.scores = calculate_component_scores(metrics, population, weights)
        await upsert_wallet(db, address, metrics, stats.scores)
        await db.commit()
        stats.persisted = True
        logger.info(f"Wallet {address} saved (total score {stats.scores.total_score})")
    except SQLAlchemyError:
        logger.exception(f"Failed to persist stats for {address}")
        await db.rollback()

    return stats
