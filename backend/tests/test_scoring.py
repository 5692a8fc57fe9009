"""Tests for percentile normalization and weighted score composition."""
import math
import random

import pytest
from pydantic import ValidationError

from monstats.config import Settings
from monstats.services.metrics import WalletMetrics
from monstats.services.scoring import (
    ComponentScores,
    ScoreWeights,
    calculate_component_scores,
    compose_total_score,
    get_score_breakdown,
    normalize_to_percentile,
    score_population,
)


def random_population(n: int, seed: int = 7) -> list[WalletMetrics]:
    rng = random.Random(seed)
    return [
        WalletMetrics(
            tx_count=rng.randint(0, 5000),
            gas_spent_mon=rng.choice([0.0, rng.uniform(0, 50), rng.uniform(0, 1e6)]),
            total_volume=rng.choice([0.0, rng.uniform(0, 100), rng.uniform(0, 1e9)]),
            nft_bag_value=rng.choice([0.0, rng.uniform(0, 500)]),
            is_day1_user=rng.random() < 0.2,
            longest_streak=rng.randint(0, 60),
            days_active=rng.randint(0, 120),
        )
        for _ in range(n)
    ]


class TestNormalizeToPercentile:

    def test_single_member_population_scores_100(self):
        for value in (0, 1, 12345.6):
            assert normalize_to_percentile(value, [value]) == 100
            assert normalize_to_percentile(value, [value], use_log=True) == 100

    def test_empty_population(self):
        assert normalize_to_percentile(5, []) == 0

    def test_top_wallet_never_reaches_100(self):
        assert normalize_to_percentile(4, [1, 2, 3, 4]) == 75.0
        assert normalize_to_percentile(1, [1, 2, 3, 4]) == 0.0

    def test_ties_share_the_lower_rank(self):
        assert normalize_to_percentile(3, [3, 1, 3]) == 33.33

    def test_rounded_to_two_decimals(self):
        score = normalize_to_percentile(2, [1, 2, 3, 4, 5, 6, 7])
        assert score == 14.29

    def test_monotonic_in_value(self):
        population = [5, 1, 3, 3, 9, 0, 0, 250, 7]
        for use_log in (False, True):
            scored = sorted((v, normalize_to_percentile(v, population, use_log)) for v in population)
            for (v1, s1), (v2, s2) in zip(scored, scored[1:]):
                assert s2 >= s1, f"value {v2} scored {s2} < {s1} for smaller value {v1}"

    def test_log_transform_preserves_order(self):
        population = [0, 10, 1_000_000]
        linear = [normalize_to_percentile(v, population) for v in population]
        logged = [normalize_to_percentile(v, population, use_log=True) for v in population]
        assert linear == sorted(linear)
        assert logged == sorted(logged)
        assert logged == linear

    def test_log_transform_compresses_whale_spacing(self):
        """The whale sits far less above the middle wallet on the log scale."""
        bottom, middle, top = 0, 10, 1_000_000
        linear_gap = (top - middle) / (top - bottom)
        log_gap = (math.log1p(top) - math.log1p(middle)) / (math.log1p(top) - math.log1p(bottom))
        assert log_gap < linear_gap


class TestScoreWeights:

    def test_default_weights_sum_to_one(self):
        weights = ScoreWeights.from_settings()
        total = sum([
            weights.volume, weights.gas, weights.transactions, weights.nft,
            weights.days_active, weights.streak, weights.day1_bonus,
        ])
        assert abs(total - 1.0) < 1e-9

    def test_alternate_table_is_valid(self):
        ScoreWeights(nft=0.15, streak=0.10)

    def test_rejects_weights_not_summing_to_one(self):
        with pytest.raises(ValueError):
            ScoreWeights(volume=0.5)

    def test_rejects_negative_weight(self):
        with pytest.raises(ValueError):
            ScoreWeights(volume=0.35, streak=-0.05)

    def test_defaults_match_settings(self):
        assert ScoreWeights() == ScoreWeights.from_settings()


class TestSettingsWeightTable:
    """A bad WEIGHT_* table is rejected when settings load, not per request."""

    def test_rejects_table_not_summing_to_one(self):
        with pytest.raises(ValidationError, match="sum to 1.0"):
            Settings(weight_volume=0.5)

    def test_rejects_negative_weight(self):
        with pytest.raises(ValidationError, match="non-negative"):
            Settings(weight_volume=0.35, weight_streak=-0.05)

    def test_accepts_alternate_table(self):
        settings = Settings(weight_nft=0.15, weight_streak=0.10)
        assert settings.weight_nft == 0.15


class TestComponentScores:

    def test_total_is_weighted_sum(self):
        weights = ScoreWeights()
        population = random_population(40)
        for member in population:
            s = calculate_component_scores(member, population, weights)
            expected = (
                s.volume_score * weights.volume
                + s.gas_score * weights.gas
                + s.transaction_score * weights.transactions
                + s.nft_score * weights.nft
                + s.days_active_score * weights.days_active
                + s.streak_score * weights.streak
                + s.day1_bonus_score * weights.day1_bonus
            )
            assert abs(s.total_score - expected) <= 0.01
            assert 0 <= s.total_score <= 100
            for value in s.to_dict().values():
                assert 0 <= value <= 100

    def test_day1_bonus_is_binary(self):
        population = [WalletMetrics(is_day1_user=True), WalletMetrics(is_day1_user=False)]
        assert calculate_component_scores(population[0], population).day1_bonus_score == 100
        assert calculate_component_scores(population[1], population).day1_bonus_score == 0

    def test_lone_wallet_gets_full_marks(self):
        only = WalletMetrics(is_day1_user=True)
        scores = calculate_component_scores(only, [only], ScoreWeights())
        assert scores.total_score == 100.0

    def test_batch_matches_per_wallet_scoring(self):
        weights = ScoreWeights(nft=0.15, streak=0.10)
        population = random_population(25, seed=11)
        batch = score_population(population, weights)
        for member, batch_scores in zip(population, batch):
            assert batch_scores == calculate_component_scores(member, population, weights)

    def test_batch_empty(self):
        assert score_population([]) == []

    def test_weights_change_total(self):
        a = WalletMetrics(total_volume=100.0)
        b = WalletMetrics(longest_streak=10)
        population = [a, b]
        volume_heavy = ScoreWeights()
        streak_heavy = ScoreWeights(volume=0.05, streak=0.25)
        assert calculate_component_scores(a, population, volume_heavy).total_score == 12.5
        assert calculate_component_scores(b, population, streak_heavy).total_score == 12.5


class TestScoreBreakdown:

    def test_labels_and_weights(self):
        scores = ComponentScores(volume_score=50.0, day1_bonus_score=100.0)
        weights = ScoreWeights()
        rows = get_score_breakdown(scores, weights)
        assert [r["label"] for r in rows] == [
            "Volume", "Gas Spent", "Transactions", "NFT Value", "Days Active", "Streak", "Day 1 Bonus",
        ]
        assert rows[0] == {"label": "Volume", "score": 50.0, "weight": 0.25}
        assert compose_total_score(scores, weights) == 17.5
