from __future__ import annotations
from pydantic import model_validator
from pydantic_settings import BaseSettings
from functools import lru_cache

WEIGHT_FIELDS = (
    "weight_volume",
    "weight_gas",
    "weight_transactions",
    "weight_nft",
    "weight_days_active",
    "weight_streak",
    "weight_day1_bonus",
)


def check_weight_table(values) -> None:
    values = list(values)
    if any(w < 0 for w in values):
        raise ValueError("Score weights must be non-negative")
    total = sum(values)
    if abs(total - 1.0) > 1e-9:
        raise ValueError(f"Score weights must sum to 1.0, got {total}")


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./monstats.db"

    etherscan_api_key: str = ""
    etherscan_api_url: str = "https://api.etherscan.io/v2/api"
    etherscan_chain_id: int = 10143  # Monad testnet
    etherscan_rate_limit: int = 5  # concurrent requests

    magic_eden_base_url: str = "https://api-mainnet.magiceden.dev"
    magic_eden_chain: str = "monad-testnet"
    magic_eden_rate_limit: int = 5

    # Upstream fetch behaviour
    upstream_timeout_seconds: float = 30.0
    upstream_max_attempts: int = 3
    upstream_backoff_base_seconds: float = 1.0
    upstream_backoff_max_seconds: float = 5.0
    tx_page_size: int = 10000
    tx_max_batches: int = 100

    # 2025-02-19T00:00:00Z, Monad testnet launch
    launch_timestamp: int = 1739923200

    # Score weights, must sum to 1.0
    weight_volume: float = 0.25
    weight_gas: float = 0.20
    weight_transactions: float = 0.15
    weight_nft: float = 0.20
    weight_days_active: float = 0.10
    weight_streak: float = 0.05
    weight_day1_bonus: float = 0.05

    default_page_size: int = 25
    max_page_size: int = 100

    admin_token: str = ""  # empty = recalculation endpoint is unauthenticated
    recalc_interval_seconds: int = 0  # 0 disables the background recalculation worker

    frontend_url: str = "http://localhost:3000"
    extra_cors_origins: str = ""  # comma-separated additional origins for production

    model_config = {"env_file": ".env", "extra": "ignore"}

    @model_validator(mode="after")
    def check_score_weights(self) -> "Settings":
        check_weight_table(getattr(self, f) for f in WEIGHT_FIELDS)
        return self


@lru_cache()
def get_settings() -> Settings:
    return Settings()
