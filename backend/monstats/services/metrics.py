from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional

from monstats.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

WEI_PER_MON = 10 ** 18
# Rows stamped further ahead than this are upstream garbage, not activity
MAX_CLOCK_SKEW_SECONDS = 24 * 60 * 60


def _to_int(raw) -> int:
    """Parse an upstream numeric string; anything malformed counts as zero."""
    if raw is None or raw == "":
        return 0
    try:
        return int(raw)
    except (TypeError, ValueError):
        try:
            return int(float(raw))
        except (TypeError, ValueError):
            return 0


@dataclass
class Transaction:
    hash: str
    from_address: str
    to_address: str
    value: int  # wei
    gas: int
    gas_price: int  # wei
    timestamp: int  # unix seconds
    block_number: int

    @classmethod
    def from_api(cls, raw: dict) -> "Transaction":
        """Build from an Etherscan txlist row (all fields are strings)."""
        # gasUsed is the actual consumption; fall back to the gas limit when absent
        gas = raw.get("gasUsed") or raw.get("gas")
        return cls(
            hash=raw.get("hash", ""),
            from_address=raw.get("from", "") or "",
            to_address=raw.get("to", "") or "",
            value=_to_int(raw.get("value")),
            gas=_to_int(gas),
            gas_price=_to_int(raw.get("gasPrice")),
            timestamp=_to_int(raw.get("timeStamp")),
            block_number=_to_int(raw.get("blockNumber")),
        )

    @property
    def value_mon(self) -> float:
        return self.value / WEI_PER_MON

    @property
    def gas_cost_mon(self) -> float:
        return (self.gas * self.gas_price) / WEI_PER_MON

    @property
    def utc_date(self) -> date:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc).date()


@dataclass
class WalletMetrics:
    tx_count: int = 0
    gas_spent_mon: float = 0.0
    total_volume: float = 0.0
    nft_bag_value: float = 0.0
    is_day1_user: bool = False
    longest_streak: int = 0
    days_active: int = 0
    transaction_history: list[dict] = field(default_factory=list)


def launch_date(launch_timestamp: Optional[int] = None) -> date:
    ts = settings.launch_timestamp if launch_timestamp is None else launch_timestamp
    return datetime.fromtimestamp(ts, tz=timezone.utc).date()


def filter_after_launch(
    transactions: Iterable[Transaction],
    launch_timestamp: Optional[int] = None,
    now: Optional[int] = None,
) -> list[Transaction]:
    """Drop everything before the launch epoch or stamped in the future.

    A tx exactly at the epoch is kept.
    """
    cutoff = settings.launch_timestamp if launch_timestamp is None else launch_timestamp
    if now is None:
        now = int(datetime.now(timezone.utc).timestamp())
    latest = now + MAX_CLOCK_SKEW_SECONDS

    kept = []
    for tx in transactions:
        if tx.timestamp > latest:
            logger.warning(f"Ignoring transaction {tx.hash} with future timestamp {tx.timestamp}")
            continue
        if tx.timestamp >= cutoff:
            kept.append(tx)
    return kept


def calculate_gas_spent(transactions: list[Transaction]) -> float:
    return sum(tx.gas_cost_mon for tx in transactions)


def calculate_total_volume(transactions: list[Transaction]) -> float:
    return sum(tx.value_mon for tx in transactions)


def is_day1_user(transactions: list[Transaction], day1: date) -> bool:
    return any(tx.utc_date == day1 for tx in transactions)


def calculate_longest_streak(active_dates: Iterable[date]) -> int:
    """Longest run of consecutive calendar days in ``active_dates``."""
    days = sorted(set(active_dates))
    if not days:
        return 0

    longest = 1
    current = 1
    for prev, curr in zip(days, days[1:]):
        if (curr - prev).days == 1:
            current += 1
            longest = max(longest, current)
        else:
            current = 1
    return longest


def generate_transaction_history(transactions: list[Transaction]) -> list[dict]:
    """Daily buckets of tx count / volume / gas, gap-filled between the first
    and last active day so charts get a continuous x-axis.
    """
    if not transactions:
        return []

    daily: dict[date, dict] = {}
    for tx in transactions:
        bucket = daily.setdefault(tx.utc_date, {"transactions": 0, "volume": 0.0, "gasSpent": 0.0})
        bucket["transactions"] += 1
        bucket["volume"] += tx.value_mon
        bucket["gasSpent"] += tx.gas_cost_mon

    start = min(daily)
    end = max(daily)
    history = []
    day = start
    while day <= end:
        bucket = daily.get(day)
        history.append({
            "date": day.isoformat(),
            "transactions": bucket["transactions"] if bucket else 0,
            "volume": bucket["volume"] if bucket else 0.0,
            "gasSpent": bucket["gasSpent"] if bucket else 0.0,
        })
        day += timedelta(days=1)
    return history


def calculate_days_active(transaction_history: list[dict]) -> int:
    if not transaction_history:
        return 0
    return sum(1 for day in transaction_history if day.get("transactions", 0) > 0)


def extract_metrics(
    transactions: list[Transaction],
    nft_bag_value: float = 0.0,
    launch_timestamp: Optional[int] = None,
) -> WalletMetrics:
    """Derive the seven raw scoring metrics for one wallet.

    The launch-epoch filter is applied once here and every metric (count,
    gas, volume, day-1 flag, streak, daily history) is computed from the same
    filtered list.
    """
    valid = filter_after_launch(transactions, launch_timestamp)
    if len(valid) < len(transactions):
        logger.debug(f"Dropped {len(transactions) - len(valid)} pre-launch transactions")

    history = generate_transaction_history(valid)
    return WalletMetrics(
        tx_count=len(valid),
        gas_spent_mon=calculate_gas_spent(valid),
        total_volume=calculate_total_volume(valid),
        nft_bag_value=nft_bag_value,
        is_day1_user=is_day1_user(valid, launch_date(launch_timestamp)),
        longest_streak=calculate_longest_streak(tx.utc_date for tx in valid),
        days_active=calculate_days_active(history),
        transaction_history=history,
    )
