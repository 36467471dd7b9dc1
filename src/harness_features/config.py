# -*- coding: utf-8 -*-
"""
config.py - Feature contract constants

Every scale constant, fallback value and vocabulary that shapes a feature
lives here. The training corpus builder and the inference builder read the
same FeatureConfig, and the persisted artifacts carry its fingerprint so a
mismatch is caught before any tensor is produced.

Usage:
    from src.harness_features.config import FeatureConfig, load_feature_config

    config = load_feature_config()                  # config/feature_constants.yaml
    config = load_feature_config(Path("my.yaml"))   # explicit file
    config = FeatureConfig()                        # built-in defaults
"""

import hashlib
import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "feature_constants.yaml"


# =============================================================================
# Defaults
# =============================================================================

DEFAULT_SCALES = {
    "start_number": 20.0,
    "coach_id": 2000.0,
    "race_record": 50.0,
    "driver_id": 3000.0,
    "age": 15.0,
    "gender": 3.0,
    "race_distance": 3100.0,
    "rank": 20.0,
    "km_time": 100.0,
    "distance": 3100.0,
    "days_since": 365.0,
    "position": 20.0,
    "prize_log": 10.0,
    "odds_log": 5.0,
    "start_post": 30.0,
    "track_id": 500.0,
}

DEFAULT_FALLBACKS = {
    "start_number": 1.0,
    "age": 5.0,
    "gender": 2.0,
    "race_distance": 2100.0,
    "distance": 0.67,
    "days_since": 30.0,
    "position": 0.5,
    "prize": 0.55,
    "odds": 0.5,
    "start_post": 1.0,
}

# Used only when the training corpus has no sample for a breed
DEFAULT_BREED_MEANS = {
    "cold_blood": {"record": 28.0, "km_time": 29.0},
    "warm_blood": {"record": 15.0, "km_time": 16.0},
}

# 0.0 = heaviest going, 1.0 = lightest / fastest
DEFAULT_TRACK_CONDITIONS = {
    "heavy track": 0.00,
    "heavy": 0.00,
    "sloppy": 0.10,
    "quite heavy track": 0.25,
    "good": 0.70,
    "winter track": 0.75,
    "fast": 0.85,
    "light track": 1.00,
}

DEFAULT_PODIUM_WEIGHTS = {1: 1.00, 2: 0.50, 3: 0.33}


@dataclass
class FeatureConfig:
    """Constants shared by training and inference feature builds"""
    history_cap: int = 8
    sentinel: float = -1.0
    km_time_anchor: float = 2100.0  # metres; normalize(km, anchor) == km
    km_time_divisor: float = 2000.0
    max_days_since: float = 365.0
    neutral_track_condition: float = 0.5
    scales: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_SCALES))
    fallbacks: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_FALLBACKS))
    breed_means: Dict[str, Dict[str, float]] = field(
        default_factory=lambda: {k: dict(v) for k, v in DEFAULT_BREED_MEANS.items()}
    )
    track_conditions: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_TRACK_CONDITIONS))
    podium_weights: Dict[int, float] = field(default_factory=lambda: dict(DEFAULT_PODIUM_WEIGHTS))

    def __post_init__(self):
        if self.history_cap < 1:
            raise ValueError(f"history_cap must be positive, got {self.history_cap}")
        if self.km_time_divisor <= 0:
            raise ValueError(f"km_time_divisor must be positive, got {self.km_time_divisor}")
        if self.sentinel >= 0:
            # every real feature is >= 0, padding has to stay distinguishable
            raise ValueError(f"sentinel must be negative, got {self.sentinel}")

        for name, defaults in (("scales", DEFAULT_SCALES), ("fallbacks", DEFAULT_FALLBACKS)):
            values = getattr(self, name)
            missing = sorted(set(defaults) - set(values))
            unknown = sorted(set(values) - set(defaults))
            if missing or unknown:
                raise ValueError(f"{name}: missing={missing} unknown={unknown}")

        for breed in DEFAULT_BREED_MEANS:
            if breed not in self.breed_means:
                raise ValueError(f"breed_means: missing breed '{breed}'")

        # normalise numeric types so YAML "20" and "20.0" give the same fingerprint
        self.history_cap = int(self.history_cap)
        for name in ("sentinel", "km_time_anchor", "km_time_divisor",
                     "max_days_since", "neutral_track_condition"):
            setattr(self, name, float(getattr(self, name)))
        self.scales = {k: float(v) for k, v in self.scales.items()}
        self.fallbacks = {k: float(v) for k, v in self.fallbacks.items()}
        self.breed_means = {
            breed: {k: float(v) for k, v in means.items()}
            for breed, means in self.breed_means.items()
        }
        self.podium_weights = {int(k): float(v) for k, v in self.podium_weights.items()}
        self.track_conditions = {
            str(k).strip().lower(): float(v) for k, v in self.track_conditions.items()
        }

    def to_dict(self) -> Dict[str, Any]:
        """辞書形式に変換 (JSON 互換)"""
        data = asdict(self)
        data["podium_weights"] = {str(k): v for k, v in sorted(self.podium_weights.items())}
        return data

    def fingerprint(self) -> str:
        """
        Deterministic sha256 of the constants.

        Persisted next to the identity maps; inference compares it with its own
        config before building anything.
        """
        payload = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()


# =============================================================================
# YAML loading
# =============================================================================

_REPLACED_KEYS = ("track_conditions", "podium_weights")


def _merge(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_feature_config(path: Optional[Path] = None) -> FeatureConfig:
    """
    YAML からFeatureConfigを読み込む

    Args:
        path: YAML file (default: config/feature_constants.yaml)

    Returns:
        FeatureConfig. Keys absent from the file keep their built-in defaults.

    Raises:
        ValueError: unknown top-level keys or invalid values
    """
    path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if not path.exists():
        logger.warning(f"Feature config not found: {path} (using built-in defaults)")
        return FeatureConfig()

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"Feature config must be a mapping: {path}")

    base = FeatureConfig().to_dict()
    unknown = sorted(set(raw) - set(base))
    if unknown:
        raise ValueError(f"Unknown feature config keys in {path}: {unknown}")

    # vocabularies are replaced wholesale, numeric tables are merged key by key
    merged = _merge(base, {k: v for k, v in raw.items() if k not in _REPLACED_KEYS})
    merged.update({k: raw[k] for k in _REPLACED_KEYS if k in raw})
    config = FeatureConfig(**merged)
    logger.debug(f"Loaded feature config from {path} (fingerprint={config.fingerprint()[:12]})")
    return config
