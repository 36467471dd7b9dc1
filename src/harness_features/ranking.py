# -*- coding: utf-8 -*-
"""
ranking.py - Race-relative rank of the market signals

Raw betting / win percentages are not comparable between races of different
field size or pool volume, so each signal is turned into a rank inside one
race. Scratched runners are excluded before ranking.

Runners without a positive value, and every runner of a race where nobody
has one, get the neutral rank (n + 1) / 2.
"""

from dataclasses import dataclass
from typing import List, Sequence

from .records import Runner


@dataclass(frozen=True)
class RankResult:
    rank: float
    known: bool


@dataclass(frozen=True)
class RaceRanks:
    """Betting and win ranks, parallel to the starters passed to rank_race()"""
    betting: List[RankResult]
    win: List[RankResult]


def rank_signal(values: Sequence[float]) -> List[RankResult]:
    """
    1-based descending rank of each value inside one race.

    >>> [r.rank for r in rank_signal([0.1, 0.0, 0.4])]
    [2.0, 2.0, 1.0]
    """
    n = len(values)
    neutral = (n + 1) / 2.0
    has_signal = any(v > 0 for v in values)
    if not has_signal:
        return [RankResult(neutral, False) for _ in values]

    # sorted() is stable: ties keep source order
    order = sorted(range(n), key=lambda i: values[i], reverse=True)
    position = {idx: pos + 1 for pos, idx in enumerate(order)}
    return [
        RankResult(float(position[i]), True) if values[i] > 0 else RankResult(neutral, False)
        for i in range(n)
    ]


def rank_race(starters: Sequence[Runner]) -> RaceRanks:
    return RaceRanks(
        betting=rank_signal([r.betting_fraction for r in starters]),
        win=rank_signal([r.win_fraction for r in starters]),
    )
