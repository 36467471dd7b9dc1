# -*- coding: utf-8 -*-
"""
Tests for src/harness_features/imputation.py
"""

import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.harness_features.config import FeatureConfig
from src.harness_features.errors import InvariantViolationError
from src.harness_features.imputation import BreedStats, ImputationStats, compute_imputation_stats
from src.harness_features.records import PriorStart, Race, Runner


def _runner(record=None, kms=()):
    starts = tuple(
        PriorStart(date="2026-01-01", driver="A B", km_time=km, distance=dist)
        for km, dist in kms
    )
    return Runner(number=1, record=record, prior_starts=starts)


@pytest.fixture
def corpus():
    return [
        Race(race_id="c1", cold_blood=True, runners=(
            _runner(record=26.0, kms=[(28.0, 2100), (27.0, 1600)]),
            _runner(record=30.0, kms=[(None, 2100), (0.0, 2100)]),
            _runner(record=None),
        )),
        Race(race_id="w1", cold_blood=False, runners=(
            _runner(record=14.0, kms=[(15.0, 2600)]),
        )),
    ]


class TestComputeImputationStats:

    def test_breed_means(self, corpus):
        stats = compute_imputation_stats(corpus)
        assert stats.mean_record(True) == pytest.approx(28.0)
        # 28.0 and 27.0 + (2100 - 1600) / 2000
        assert stats.mean_km_time(True) == pytest.approx((28.0 + 27.25) / 2)
        assert stats.mean_record(False) == pytest.approx(14.0)
        assert stats.mean_km_time(False) == pytest.approx(14.75)

    def test_sample_counts(self, corpus):
        stats = compute_imputation_stats(corpus)
        assert stats.cold_blood.record_samples == 2
        assert stats.cold_blood.km_time_samples == 2
        assert stats.warm_blood.record_samples == 1

    def test_missing_breed_uses_configured_defaults(self, corpus):
        stats = compute_imputation_stats([corpus[0]])
        assert stats.warm_blood == BreedStats(15.0, 16.0, 0, 0)

    def test_empty_corpus(self):
        stats = compute_imputation_stats([])
        assert stats == ImputationStats.from_config()
        assert stats.mean_record(True) == 28.0
        assert stats.mean_km_time(True) == 29.0

    def test_custom_divisor(self, corpus):
        config = FeatureConfig(km_time_divisor=500.0)
        stats = compute_imputation_stats([corpus[1]], config)
        assert stats.mean_km_time(False) == pytest.approx(14.0)


class TestImputationStatsPersistence:

    def test_save_and_load(self, tmp_path, corpus):
        stats = compute_imputation_stats(corpus)
        path = stats.save(tmp_path / "imputation_stats.json")
        assert ImputationStats.load(path) == stats

    def test_missing_breed_rejected(self):
        with pytest.raises(InvariantViolationError):
            ImputationStats.from_dict({"cold_blood": {"mean_record": 1.0, "mean_km_time": 2.0}})

    def test_malformed_entry_rejected(self):
        data = {
            "cold_blood": {"mean_record": 1.0},
            "warm_blood": {"mean_record": 1.0, "mean_km_time": 2.0},
        }
        with pytest.raises(InvariantViolationError):
            ImputationStats.from_dict(data)
