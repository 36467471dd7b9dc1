# -*- coding: utf-8 -*-
"""
vectors.py - Static feature vector and history matrix of one runner

【Static vector】 STATIC_FEATURE_COUNT columns, order in feature_schema.py
【History matrix】 history_cap x HISTORY_FEATURE_COUNT, newest start first.
Rows past the runner's valid prior starts are sentinel in every column.

Missing fields never raise: every value has a known flag or a documented
fallback (FeatureConfig.fallbacks / ImputationStats).

IDs are resolved through whatever resolver is passed in: IdentityMapBuilder
when building the training corpus, IdentityMaps at inference. Resolution
order per runner is coach, driver, then driver and track of each history
row.
"""

import math
from typing import List, Optional, Protocol, Sequence

import numpy as np

from .config import FeatureConfig
from .feature_schema import (
    HISTORY_FEATURE_COUNT,
    HISTORY_INDEX,
    STATIC_FEATURE_COUNT,
    STATIC_INDEX,
)
from .identity import COACH, DRIVER, TRACK
from .imputation import ImputationStats
from .parsers import cart_flags, days_since, encode_track_condition, normalize_km_time, shoe_flags
from .ranking import RankResult
from .records import PriorStart, Race, Runner


class NameResolver(Protocol):
    def resolve(self, name, kind: str) -> int: ...


def _flag(value) -> float:
    return 1.0 if value else 0.0


# =============================================================================
# Prior starts
# =============================================================================

def valid_prior_starts(runner: Runner, cap: Optional[int] = None) -> List[PriorStart]:
    """Prior starts with both a date and a driver, newest first, optionally capped"""
    starts = runner.valid_prior_starts
    return starts[:cap] if cap is not None else starts


def weighted_podium_index(
    prior_starts: Sequence[PriorStart],
    weights: Optional[dict] = None,
) -> float:
    """
    Weighted placing score in [0, 1].

    Every valid start counts in the denominator, including disqualified,
    did-not-finish and unplaced ones. 1st/2nd/3rd add 1.00/0.50/0.33.
    Placeholder rows are ignored entirely.
    """
    weights = weights if weights is not None else FeatureConfig().podium_weights
    valid = [ps for ps in prior_starts if ps.is_valid]
    if not valid:
        return 0.0
    score = sum(weights.get(ps.position, 0.0) for ps in valid if ps.position is not None)
    return score / len(valid)


# =============================================================================
# Static vector
# =============================================================================

def build_static_vector(
    race: Race,
    runner: Runner,
    resolver: NameResolver,
    stats: ImputationStats,
    betting_rank: RankResult,
    win_rank: RankResult,
    config: FeatureConfig,
) -> np.ndarray:
    scales = config.scales
    fallbacks = config.fallbacks
    vec = np.zeros(STATIC_FEATURE_COUNT, dtype=np.float32)

    def put(name: str, value: float):
        vec[STATIC_INDEX[name]] = value

    coach_id = resolver.resolve(runner.coach, COACH)
    driver_id = resolver.resolve(runner.driver, DRIVER)
    record = runner.record if runner.record else stats.mean_record(race.cold_blood)

    put("start_number", (runner.number or fallbacks["start_number"]) / scales["start_number"])
    put("coach_id", coach_id / scales["coach_id"])
    put("race_record", record / scales["race_record"])
    put("driver_id", driver_id / scales["driver_id"])
    put("age", (runner.age or fallbacks["age"]) / scales["age"])
    put("gender", (runner.gender or fallbacks["gender"]) / scales["gender"])
    put("cold_blood", _flag(race.cold_blood))

    front_active, front_known = shoe_flags(runner.front_shoes)
    rear_active, rear_known = shoe_flags(runner.rear_shoes)
    put("front_shoes_active", front_active)
    put("front_shoes_known", front_known)
    put("rear_shoes_active", rear_active)
    put("rear_shoes_known", rear_known)
    put("front_shoes_changed", _flag(runner.front_shoes_changed))
    put("rear_shoes_changed", _flag(runner.rear_shoes_changed))

    put("race_distance", (race.distance or fallbacks["race_distance"]) / scales["race_distance"])
    put("car_start", _flag(race.car_start))

    put("betting_fraction", runner.betting_fraction)
    put("win_fraction", runner.win_fraction)
    put("win_fraction_known", _flag(runner.win_fraction > 0))
    put("record_from_car_start", _flag(runner.record_from_car_start))

    cart_active, cart_known = cart_flags(runner.special_cart)
    put("special_cart_active", cart_active)
    put("special_cart_known", cart_known)

    put("betting_rank", betting_rank.rank / scales["rank"])
    put("betting_rank_known", _flag(betting_rank.known))
    put("win_rank", win_rank.rank / scales["rank"])
    put("win_rank_known", _flag(win_rank.known))

    valid = runner.valid_prior_starts
    put("podium_index", weighted_podium_index(valid, config.podium_weights))
    put("podium_index_known", _flag(valid))
    return vec


# =============================================================================
# History matrix
# =============================================================================

def _history_row(
    race: Race,
    ps: PriorStart,
    resolver: NameResolver,
    stats: ImputationStats,
    config: FeatureConfig,
) -> np.ndarray:
    scales = config.scales
    fallbacks = config.fallbacks
    row = np.zeros(HISTORY_FEATURE_COUNT, dtype=np.float32)

    def put(name: str, value: float):
        row[HISTORY_INDEX[name]] = value

    km = None
    if ps.km_time:
        km = normalize_km_time(
            ps.km_time, ps.distance,
            divisor=config.km_time_divisor, anchor=config.km_time_anchor,
        )
    if km is not None and km > 0:
        put("km_time", km / scales["km_time"])
        put("km_time_known", 1.0)
    else:
        put("km_time", stats.mean_km_time(race.cold_blood) / scales["km_time"])

    if ps.distance:
        put("distance", ps.distance / scales["distance"])
        put("distance_known", 1.0)
    else:
        put("distance", fallbacks["distance"])

    days = days_since(
        race.date, ps.date,
        cap=config.max_days_since, default=fallbacks["days_since"],
    )
    put("days_since", days / scales["days_since"])

    if ps.position is not None and ps.position > 0:
        put("position", ps.position / scales["position"])
        put("position_known", 1.0)
    else:
        put("position", fallbacks["position"])

    if ps.first_prize and ps.first_prize > 0:
        put("prize", math.log1p(ps.first_prize) / scales["prize_log"])
        put("prize_known", 1.0)
    else:
        put("prize", fallbacks["prize"])

    if ps.win_odds and ps.win_odds > 0:
        put("odds", math.log1p(ps.win_odds) / scales["odds_log"])
        put("odds_known", 1.0)
    else:
        put("odds", fallbacks["odds"])

    put("car_start", _flag(ps.car_start))
    put("gait_fault", _flag(ps.gait_fault))
    put("start_post", (ps.post or fallbacks["start_post"]) / scales["start_post"])
    put("driver_id", resolver.resolve(ps.driver, DRIVER) / scales["driver_id"])
    put("track_id", resolver.resolve(ps.track, TRACK) / scales["track_id"])
    put("disqualified", _flag(ps.disqualified))
    put("dnf", _flag(ps.dnf))

    front = shoe_flags(ps.front_shoes)
    rear = shoe_flags(ps.rear_shoes)
    cart = cart_flags(ps.special_cart)
    put("front_shoes_active", front[0])
    put("front_shoes_known", front[1])
    put("rear_shoes_active", rear[0])
    put("rear_shoes_known", rear[1])
    put("special_cart_active", cart[0])
    put("special_cart_known", cart[1])

    put("track_condition", encode_track_condition(
        ps.track_condition, config.track_conditions, config.neutral_track_condition,
    ))
    return row


def build_history_matrix(
    race: Race,
    runner: Runner,
    resolver: NameResolver,
    stats: ImputationStats,
    config: FeatureConfig,
) -> np.ndarray:
    """
    (history_cap, HISTORY_FEATURE_COUNT) float32 matrix.

    The first min(cap, valid starts) rows are real, the rest are sentinel.
    """
    matrix = np.full(
        (config.history_cap, HISTORY_FEATURE_COUNT), config.sentinel, dtype=np.float32,
    )
    for i, ps in enumerate(valid_prior_starts(runner, config.history_cap)):
        matrix[i] = _history_row(race, ps, resolver, stats, config)
    return matrix
