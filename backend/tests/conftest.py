"""Shared fixtures: throwaway SQLite databases and wallet row factories."""
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool, StaticPool

from monstats.database import Base
from monstats.models.wallet import Wallet
import monstats.models  # noqa: F401

LAUNCH_TS = 1739923200  # 2025-02-19T00:00:00Z
DAY = 86400


def make_wallet(address: str, **fields) -> Wallet:
    """Wallet row with every metric/score defaulting to zero."""
    values = {
        "tx_count": 0,
        "gas_spent_mon": 0.0,
        "total_volume": 0.0,
        "nft_bag_value": 0.0,
        "is_day1_user": False,
        "longest_streak": 0,
        "days_active": 0,
        "volume_score": 0.0,
        "gas_score": 0.0,
        "transaction_score": 0.0,
        "nft_score": 0.0,
        "days_active_score": 0.0,
        "streak_score": 0.0,
        "day1_bonus_score": 0.0,
        "total_score": 0.0,
        "updated_at": datetime(2025, 3, 1, tzinfo=timezone.utc),
    }
    values.update(fields)
    return Wallet(wallet_address=address.lower(), **values)


def addr(n: int) -> str:
    return "0x" + f"{n:040x}"


@pytest_asyncio.fixture
async def db():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def sync_db_path(tmp_path):
    """File-backed SQLite with tables created, for TestClient-based tests.

    TestClient runs the app on its own event loop, so the API tests build a
    separate async engine (NullPool) on this file rather than sharing ``db``.
    """
    path = tmp_path / "monstats_test.db"
    engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(engine)
    engine.dispose()
    return path


@pytest.fixture
def api_client(sync_db_path):
    from fastapi.testclient import TestClient
    from monstats.database import get_db
    from monstats.main import app

    engine = create_async_engine(f"sqlite+aiosqlite:///{sync_db_path}", poolclass=NullPool)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def _get_test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_test_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seed_sync(sync_db_path):
    """Insert Wallet rows through a synchronous session."""
    from sqlalchemy.orm import Session

    def _seed(wallets):
        engine = create_engine(f"sqlite:///{sync_db_path}")
        with Session(engine) as session:
            session.add_all(wallets)
            session.commit()
        engine.dispose()

    return _seed
