from __future__ import annotations
from datetime import datetime
from typing import Optional
from sqlalchemy import String, Float, Integer, Boolean, DateTime, JSON, func
from sqlalchemy.orm import Mapped, mapped_column
from monstats.database import Base


class Wallet(Base):
    __tablename__ = "wallets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    wallet_address: Mapped[str] = mapped_column(String(42), unique=True, index=True)  # lower-cased

    # Raw metrics
    tx_count: Mapped[int] = mapped_column(Integer, default=0)
    gas_spent_mon: Mapped[float] = mapped_column(Float, default=0.0)
    total_volume: Mapped[float] = mapped_column(Float, default=0.0)
    nft_bag_value: Mapped[float] = mapped_column(Float, default=0.0)
    is_day1_user: Mapped[bool] = mapped_column(Boolean, default=False)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0)
    days_active: Mapped[int] = mapped_column(Integer, default=0)

    # Component scores (0-100), derived from the whole population
    volume_score: Mapped[float] = mapped_column(Float, default=0.0)
    gas_score: Mapped[float] = mapped_column(Float, default=0.0)
    transaction_score: Mapped[float] = mapped_column(Float, default=0.0)
    nft_score: Mapped[float] = mapped_column(Float, default=0.0)
    days_active_score: Mapped[float] = mapped_column(Float, default=0.0)
    streak_score: Mapped[float] = mapped_column(Float, default=0.0)
    day1_bonus_score: Mapped[float] = mapped_column(Float, default=0.0)
    total_score: Mapped[float] = mapped_column(Float, default=0.0, index=True)

    # Written only by the recalculation batch
    rank: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    transaction_history: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)  # chart series
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
