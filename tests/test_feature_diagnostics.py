# -*- coding: utf-8 -*-
"""
Tests for src/harness_features/diagnostics.py
"""

import numpy as np
import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.harness_features.config import FeatureConfig
from src.harness_features.diagnostics import (
    compute_coverage,
    format_report,
    real_history_rows,
    save_report,
    static_frame,
)
from src.harness_features.feature_schema import STATIC_FEATURE_NAMES
from src.harness_features.pipeline import build_training_set
from src.harness_features.records import PriorStart, Race, Runner


@pytest.fixture
def tensors():
    starts = tuple(
        PriorStart(date=f"2026-01-{10 + i:02d}", driver="Mika Forss", position=i + 1)
        for i in range(3)
    )
    race = Race(
        race_id="R1", distance=2100, date="2026-01-31",
        runners=(
            Runner(number=1, driver="Mika Forss", betting_fraction=0.3, win_fraction=0.2,
                   position=1, prior_starts=starts),
            Runner(number=2, driver="Ari Moilanen", position=4),
        ),
    )
    return build_training_set([race]).tensors


class TestCoverage:

    def test_static_frame(self, tensors):
        df = static_frame(tensors)
        assert list(df.columns[:3]) == ["race_id", "number", "name"]
        assert set(STATIC_FEATURE_NAMES) <= set(df.columns)
        assert df["label"].tolist() == [1, 0]

    def test_real_history_rows(self, tensors):
        assert real_history_rows(tensors).tolist() == [3, 0]

    def test_custom_sentinel(self):
        race = Race(
            race_id="R2", distance=2100, date="2026-01-31",
            runners=(
                Runner(number=1, driver="Mika Forss", position=1,
                       prior_starts=(PriorStart(date="2026-01-10", driver="Mika Forss", position=2),)),
                Runner(number=2, driver="Ari Moilanen", position=2),
            ),
        )
        config = FeatureConfig(sentinel=-2.0)
        custom = build_training_set([race], config=config).tensors
        assert real_history_rows(custom, config.sentinel).tolist() == [1, 0]
        report = compute_coverage(custom, sentinel=config.sentinel)
        assert report.mean_history_rows == pytest.approx(0.5)
        assert report.no_history_rate == pytest.approx(0.5)

    def test_default_sentinel_follows_config(self, tensors):
        padding = tensors.history[1]
        assert np.all(padding == FeatureConfig().sentinel)
        assert real_history_rows(tensors).tolist() == [3, 0]

    def test_report(self, tensors):
        report = compute_coverage(tensors)
        assert report.n_runners == 2
        assert report.n_races == 1
        assert report.history_cap == 8
        assert report.static_known_rates["win_fraction"] == pytest.approx(0.5)
        assert report.static_known_rates["podium_index"] == pytest.approx(0.5)
        assert report.history_known_rates["position"] == pytest.approx(1.0)
        assert report.history_known_rates["km_time"] == pytest.approx(0.0)
        assert report.mean_history_rows == pytest.approx(1.5)
        assert report.no_history_rate == pytest.approx(0.5)
        assert report.label_rate == pytest.approx(0.5)

    def test_format_and_save(self, tmp_path, tensors):
        report = compute_coverage(tensors)
        text = format_report(report)
        assert "Feature Coverage Report" in text
        assert "runners: 2" in text

        save_report(report, tmp_path)
        assert (tmp_path / "feature_stats.csv").exists()
        assert (tmp_path / "coverage_report.txt").read_text(encoding="utf-8") == text

    def test_to_dict(self, tensors):
        data = compute_coverage(tensors).to_dict()
        assert data["n_runners"] == 2
        assert "feature_stats" not in data
