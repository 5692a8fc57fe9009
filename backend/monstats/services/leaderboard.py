from __future__ import annotations
import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from monstats.config import get_settings
from monstats.models.wallet import Wallet

settings = get_settings()
logger = logging.getLogger(__name__)

# Public sort key -> model attribute
SORT_FIELDS = {
    "totalScore": "total_score",
    "txCount": "tx_count",
    "gasSpentMON": "gas_spent_mon",
    "totalVolume": "total_volume",
    "nftBagValue": "nft_bag_value",
    "isDay1User": "is_day1_user",
    "longestStreak": "longest_streak",
    "daysActive": "days_active",
}
SORT_ORDERS = ("asc", "desc")

METRIC_ATTRS = (
    "tx_count",
    "gas_spent_mon",
    "total_volume",
    "nft_bag_value",
    "is_day1_user",
    "longest_streak",
    "days_active",
)
SCORE_ATTRS = (
    "volume_score",
    "gas_score",
    "transaction_score",
    "nft_score",
    "days_active_score",
    "streak_score",
    "day1_bonus_score",
    "total_score",
)


class InvalidLeaderboardQuery(ValueError):
    pass


@dataclass
class LeaderboardQuery:
    page: int = 1
    page_size: int = field(default_factory=lambda: settings.default_page_size)
    search: Optional[str] = None
    sort_by: str = "totalScore"
    sort_order: str = "desc"

    def validate(self) -> "LeaderboardQuery":
        if self.sort_by not in SORT_FIELDS:
            raise InvalidLeaderboardQuery(
                f"Invalid sortBy '{self.sort_by}'. Must be one of: {', '.join(SORT_FIELDS)}"
            )
        if self.sort_order not in SORT_ORDERS:
            raise InvalidLeaderboardQuery("Invalid sortOrder. Must be 'asc' or 'desc'")
        if self.page < 1:
            raise InvalidLeaderboardQuery("page must be >= 1")
        if not 1 <= self.page_size <= settings.max_page_size:
            raise InvalidLeaderboardQuery(f"pageSize must be between 1 and {settings.max_page_size}")
        self.search = (self.search or "").strip() or None
        return self

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


@dataclass
class LeaderboardPage:
    entries: list[dict]
    current_page: int
    page_size: int
    total_users: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool
    sort_by: str
    sort_order: str
    search: Optional[str] = None
    last_updated: Optional[datetime] = None


def to_entry(wallet, position_number: int) -> dict:
    return {
        "position_number": position_number,
        "wallet_address": wallet.wallet_address,
        "total_score": wallet.total_score,
        "rank": wallet.rank,
        "metrics": {a: getattr(wallet, a) for a in METRIC_ATTRS},
        "scores": {a: getattr(wallet, a) for a in SCORE_ATTRS},
    }


def _build_page(query: LeaderboardQuery, rows: Sequence, total: int, last_updated) -> LeaderboardPage:
    total_pages = math.ceil(total / query.page_size) if total else 0
    return LeaderboardPage(
        entries=[to_entry(w, query.offset + i + 1) for i, w in enumerate(rows)],
        current_page=query.page,
        page_size=query.page_size,
        total_users=total,
        total_pages=total_pages,
        has_next_page=query.page < total_pages,
        has_previous_page=query.page > 1,
        sort_by=query.sort_by,
        sort_order=query.sort_order,
        search=query.search,
        last_updated=last_updated,
    )


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def query_leaderboard(db: AsyncSession, query: LeaderboardQuery) -> LeaderboardPage:
    """Filter, then sort, then paginate, all pushed down to SQL.

    Position numbers are offsets into the sorted, filtered result, so they
    change with the sort key and the search. Ties fall back to insertion order.
    """
    query.validate()
    column = getattr(Wallet, SORT_FIELDS[query.sort_by])
    order_clause = column.desc() if query.sort_order == "desc" else column.asc()

    conditions = []
    if query.search:
        conditions.append(
            Wallet.wallet_address.ilike(f"%{_escape_like(query.search)}%", escape="\\")
        )

    count_result = await db.execute(select(func.count(Wallet.id)).where(*conditions))
    total = count_result.scalar() or 0

    result = await db.execute(
        select(Wallet)
        .where(*conditions)
        .order_by(order_clause, Wallet.id.asc())
        .offset(query.offset)
        .limit(query.page_size)
    )
    rows = result.scalars().all()

    updated_result = await db.execute(select(func.max(Wallet.updated_at)))
    return _build_page(query, rows, total, updated_result.scalar())
