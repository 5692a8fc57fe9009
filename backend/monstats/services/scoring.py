from __future__ import annotations
import logging
import math
from bisect import bisect_left
from dataclasses import dataclass, asdict
from typing import Optional, Sequence

from monstats.config import WEIGHT_FIELDS, Settings, check_weight_table, get_settings

logger = logging.getLogger(__name__)

# (metric attribute, score attribute, log transform)
# Volume-like metrics are log-scaled so a few whales cannot flatten everyone else.
NORMALIZED_METRICS = [
    ("total_volume", "volume_score", True),
    ("gas_spent_mon", "gas_score", True),
    ("tx_count", "transaction_score", False),
    ("nft_bag_value", "nft_score", True),
    ("days_active", "days_active_score", False),
    ("longest_streak", "streak_score", False),
]

_DEFAULT_WEIGHTS = {name: Settings.model_fields[name].default for name in WEIGHT_FIELDS}


@dataclass(frozen=True)
class ScoreWeights:
    # Defaults come from Settings so there is a single weight table
    volume: float = _DEFAULT_WEIGHTS["weight_volume"]
    gas: float = _DEFAULT_WEIGHTS["weight_gas"]
    transactions: float = _DEFAULT_WEIGHTS["weight_transactions"]
    nft: float = _DEFAULT_WEIGHTS["weight_nft"]
    days_active: float = _DEFAULT_WEIGHTS["weight_days_active"]
    streak: float = _DEFAULT_WEIGHTS["weight_streak"]
    day1_bonus: float = _DEFAULT_WEIGHTS["weight_day1_bonus"]

    def __post_init__(self):
        check_weight_table(asdict(self).values())

    @classmethod
    def from_settings(cls) -> "ScoreWeights":
        s = get_settings()
        return cls(
            volume=s.weight_volume,
            gas=s.weight_gas,
            transactions=s.weight_transactions,
            nft=s.weight_nft,
            days_active=s.weight_days_active,
            streak=s.weight_streak,
            day1_bonus=s.weight_day1_bonus,
        )


@dataclass
class ComponentScores:
    volume_score: float = 0.0
    gas_score: float = 0.0
    transaction_score: float = 0.0
    nft_score: float = 0.0
    days_active_score: float = 0.0
    streak_score: float = 0.0
    day1_bonus_score: float = 0.0
    total_score: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def _transform(value: float, use_log: bool) -> float:
    return math.log1p(value) if use_log else value


def _percentile_from_sorted(value: float, sorted_values: Sequence[float]) -> float:
    n = len(sorted_values)
    if n == 0:
        return 0.0
    if n == 1:
        return 100.0
    # Index of the first member >= value, i.e. the share of the population strictly below.
    # A value above every member has no such index and scores 0.
    idx = bisect_left(sorted_values, value)
    if idx == n:
        return 0.0
    return round(idx / n * 100, 2)


def normalize_to_percentile(value: float, population: Sequence[float], use_log: bool = False) -> float:
    """Map ``value`` to 0-100 by its rank within ``population``.

    The population should include the wallet being scored. With a single
    member the score is always 100. The top wallet of N scores (N-1)/N*100.
    """
    if len(population) == 1:
        return 100.0
    transformed = sorted(_transform(v, use_log) for v in population)
    return _percentile_from_sorted(_transform(value, use_log), transformed)


def compose_total_score(scores: ComponentScores, weights: ScoreWeights) -> float:
    total = (
        scores.volume_score * weights.volume
        + scores.gas_score * weights.gas
        + scores.transaction_score * weights.transactions
        + scores.nft_score * weights.nft
        + scores.days_active_score * weights.days_active
        + scores.streak_score * weights.streak
        + scores.day1_bonus_score * weights.day1_bonus
    )
    return round(total, 2)


def calculate_component_scores(
    metrics,
    population: Sequence,
    weights: Optional[ScoreWeights] = None,
) -> ComponentScores:
    """Score one wallet against ``population`` (objects exposing the raw metric attributes)."""
    weights = weights or ScoreWeights.from_settings()
    scores = ComponentScores()
    for metric, score_attr, use_log in NORMALIZED_METRICS:
        column = [getattr(m, metric) for m in population]
        setattr(scores, score_attr, normalize_to_percentile(getattr(metrics, metric), column, use_log))

    scores.day1_bonus_score = 100.0 if metrics.is_day1_user else 0.0
    scores.total_score = compose_total_score(scores, weights)
    return scores


def score_population(population: Sequence, weights: Optional[ScoreWeights] = None) -> list[ComponentScores]:
    """Score every member of a snapshot against the snapshot itself.

    Same results as calling calculate_component_scores per wallet, but each
    metric column is transformed and sorted only once.
    """
    weights = weights or ScoreWeights.from_settings()
    if not population:
        return []

    columns = {}
    for metric, _, use_log in NORMALIZED_METRICS:
        columns[metric] = sorted(_transform(getattr(m, metric), use_log) for m in population)

    results = []
    for member in population:
        scores = ComponentScores()
        for metric, score_attr, use_log in NORMALIZED_METRICS:
            value = _transform(getattr(member, metric), use_log)
            setattr(scores, score_attr, _percentile_from_sorted(value, columns[metric]))
        scores.day1_bonus_score = 100.0 if member.is_day1_user else 0.0
        scores.total_score = compose_total_score(scores, weights)
        results.append(scores)

    logger.debug(f"Scored population of {len(population)} wallets")
    return results


def get_score_breakdown(scores: ComponentScores, weights: Optional[ScoreWeights] = None) -> list[dict]:
    weights = weights or ScoreWeights.from_settings()
    return [
        {"label": "Volume", "score": scores.volume_score, "weight": weights.volume},
        {"label": "Gas Spent", "score": scores.gas_score, "weight": weights.gas},
        {"label": "Transactions", "score": scores.transaction_score, "weight": weights.transactions},
        {"label": "NFT Value", "score": scores.nft_score, "weight": weights.nft},
        {"label": "Days Active", "score": scores.days_active_score, "weight": weights.days_active},
        {"label": "Streak", "score": scores.streak_score, "weight": weights.streak},
        {"label": "Day 1 Bonus", "score": scores.day1_bonus_score, "weight": weights.day1_bonus},
    ]
