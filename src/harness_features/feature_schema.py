# -*- coding: utf-8 -*-
"""
feature_schema.py - Column order of the static vector and the history matrix

The order here is the contract with the trained model. vectors.py writes
columns by looking up their index in these lists.
"""

from typing import Dict, List

FEATURE_SCHEMA_VERSION = 1

# =============================================================================
# Static vector (one row per starter)
# =============================================================================

STATIC_FEATURE_NAMES = [
    # Identity / horse (7)
    "start_number",
    "coach_id",
    "race_record",
    "driver_id",
    "age",
    "gender",
    "cold_blood",
    # Equipment (6)
    "front_shoes_active", "front_shoes_known",
    "rear_shoes_active", "rear_shoes_known",
    "front_shoes_changed",
    "rear_shoes_changed",
    # Race context (2)
    "race_distance",
    "car_start",
    # Market (3)
    "betting_fraction",
    "win_fraction", "win_fraction_known",
    # Record type (1)
    "record_from_car_start",
    # Cart (2)
    "special_cart_active", "special_cart_known",
    # Race-relative ranks (4)
    "betting_rank", "betting_rank_known",
    "win_rank", "win_rank_known",
    # Form (2)
    "podium_index", "podium_index_known",
]

STATIC_FEATURE_COUNT = len(STATIC_FEATURE_NAMES)  # 27

# =============================================================================
# History matrix (history_cap rows per starter, newest first)
# =============================================================================

HISTORY_FEATURE_NAMES = [
    "km_time", "km_time_known",
    "distance", "distance_known",
    "days_since",
    "position", "position_known",
    "prize", "prize_known",
    "odds", "odds_known",
    "car_start",
    "gait_fault",
    "start_post",
    "driver_id",
    "track_id",
    "disqualified",
    "dnf",
    "front_shoes_active", "front_shoes_known",
    "rear_shoes_active", "rear_shoes_known",
    "special_cart_active", "special_cart_known",
    "track_condition",
]

HISTORY_FEATURE_COUNT = len(HISTORY_FEATURE_NAMES)  # 25

STATIC_INDEX = {name: i for i, name in enumerate(STATIC_FEATURE_NAMES)}
HISTORY_INDEX = {name: i for i, name in enumerate(HISTORY_FEATURE_NAMES)}

_STATIC_GROUPS = {
    "identity": ["start_number", "coach_id", "driver_id", "age", "gender", "cold_blood"],
    "record": ["race_record", "record_from_car_start"],
    "equipment": [
        "front_shoes_active", "front_shoes_known", "rear_shoes_active", "rear_shoes_known",
        "front_shoes_changed", "rear_shoes_changed", "special_cart_active", "special_cart_known",
    ],
    "race": ["race_distance", "car_start"],
    "market": [
        "betting_fraction", "win_fraction", "win_fraction_known",
        "betting_rank", "betting_rank_known", "win_rank", "win_rank_known",
    ],
    "form": ["podium_index", "podium_index_known"],
}


def get_feature_groups() -> Dict[str, List[str]]:
    """Static feature names grouped for coverage reports"""
    return {group: list(names) for group, names in _STATIC_GROUPS.items()}


def known_flag_columns(names: List[str]) -> Dict[str, str]:
    """value column -> its known-flag column ("win_fraction" -> "win_fraction_known")"""
    return {
        name[: -len("_known")]: name
        for name in names
        if name.endswith("_known") and name[: -len("_known")] in names
    }
