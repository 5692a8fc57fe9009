from __future__ import annotations
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel


class TransactionDataPoint(BaseModel):
    date: str
    transactions: int
    volume: float
    gasSpent: float


class WalletMetricsOut(BaseModel):
    tx_count: int
    gas_spent_mon: float
    total_volume: float
    nft_bag_value: float
    is_day1_user: bool
    longest_streak: int
    days_active: int

    model_config = {"from_attributes": True}


class WalletScoresOut(BaseModel):
    volume_score: float
    gas_score: float
    transaction_score: float
    nft_score: float
    days_active_score: float
    streak_score: float
    day1_bonus_score: float
    total_score: float

    model_config = {"from_attributes": True}


class WalletStatsResponse(BaseModel):
    wallet_address: str
    metrics: WalletMetricsOut
    scores: Optional[WalletScoresOut] = None
    transaction_history: List[TransactionDataPoint] = []
    persisted: bool = False


class LeaderboardEntry(BaseModel):
    position_number: int
    wallet_address: str
    total_score: float
    rank: Optional[int] = None
    metrics: WalletMetricsOut
    scores: WalletScoresOut


class PaginationInfo(BaseModel):
    current_page: int
    page_size: int
    total_users: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


class LeaderboardResponse(BaseModel):
    leaderboard: List[LeaderboardEntry]
    pagination: PaginationInfo
    sort_by: str
    sort_order: str
    search: Optional[str] = None
    last_updated: Optional[datetime] = None


class RecalculateResponse(BaseModel):
    message: str
    total_users: int
    last_updated: datetime


class WeightRow(BaseModel):
    label: str
    weight: float


class WeightsResponse(BaseModel):
    weights: List[WeightRow]
    total: float
