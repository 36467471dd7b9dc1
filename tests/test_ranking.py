# -*- coding: utf-8 -*-
"""
Tests for src/harness_features/ranking.py
"""

import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.harness_features.ranking import RankResult, rank_race, rank_signal
from src.harness_features.records import Runner


class TestRankSignal:

    def test_descending_order(self):
        ranks = rank_signal([0.10, 0.40, 0.25])
        assert [r.rank for r in ranks] == [3.0, 1.0, 2.0]
        assert all(r.known for r in ranks)

    def test_zero_values_get_neutral_rank(self):
        ranks = rank_signal([0.10, 0.0, 0.40, 0.0])
        neutral = (4 + 1) / 2
        assert ranks[1] == RankResult(neutral, False)
        assert ranks[3] == RankResult(neutral, False)
        assert ranks[0] == RankResult(2.0, True)
        assert ranks[2] == RankResult(1.0, True)

    def test_no_signal_all_neutral(self):
        ranks = rank_signal([0.0] * 8)
        assert all(r.rank == 4.5 for r in ranks)
        assert not any(r.known for r in ranks)

    def test_ties_keep_source_order(self):
        ranks = rank_signal([0.2, 0.3, 0.2])
        assert [r.rank for r in ranks] == [2.0, 1.0, 3.0]

    def test_empty(self):
        assert rank_signal([]) == []


class TestRankRace:

    def test_signals_ranked_independently(self):
        starters = [
            Runner(number=1, betting_fraction=0.5, win_fraction=0.0),
            Runner(number=2, betting_fraction=0.2, win_fraction=0.0),
            Runner(number=3, betting_fraction=0.0, win_fraction=0.0),
        ]
        ranks = rank_race(starters)
        assert [r.rank for r in ranks.betting] == [1.0, 2.0, 2.0]
        assert [r.known for r in ranks.betting] == [True, True, False]
        assert all(r.rank == 2.0 and not r.known for r in ranks.win)
