# -*- coding: utf-8 -*-
"""
imputation.py - Breed-conditioned fallback means

Computed once from the training corpus and persisted
(imputation_stats.json). Inference loads the persisted values; it never
recomputes or hardcodes its own.

- mean_record:  mean of positive race records of all runners of the breed
- mean_km_time: mean of positive normalised km times of all prior starts
"""

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Union

import pandas as pd

from .config import FeatureConfig
from .errors import InvariantViolationError
from .parsers import normalize_km_time
from .records import COLD_BLOOD, WARM_BLOOD, Race

logger = logging.getLogger(__name__)

BREEDS = (COLD_BLOOD, WARM_BLOOD)


@dataclass(frozen=True)
class BreedStats:
    mean_record: float
    mean_km_time: float
    record_samples: int = 0
    km_time_samples: int = 0


@dataclass(frozen=True)
class ImputationStats:
    cold_blood: BreedStats
    warm_blood: BreedStats

    def for_breed(self, cold_blood: bool) -> BreedStats:
        return self.cold_blood if cold_blood else self.warm_blood

    def mean_record(self, cold_blood: bool) -> float:
        return self.for_breed(cold_blood).mean_record

    def mean_km_time(self, cold_blood: bool) -> float:
        return self.for_breed(cold_blood).mean_km_time

    @classmethod
    def from_config(cls, config: Optional[FeatureConfig] = None) -> "ImputationStats":
        """Configured default means, no samples"""
        config = config or FeatureConfig()
        return cls(**{
            breed: BreedStats(
                mean_record=config.breed_means[breed]["record"],
                mean_km_time=config.breed_means[breed]["km_time"],
            )
            for breed in BREEDS
        })

    def to_dict(self) -> Dict[str, Any]:
        return {breed: asdict(getattr(self, breed)) for breed in BREEDS}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ImputationStats":
        stats = {}
        for breed in BREEDS:
            entry = data.get(breed) if isinstance(data, Mapping) else None
            if not isinstance(entry, Mapping):
                raise InvariantViolationError(f"imputation stats missing breed '{breed}'")
            try:
                stats[breed] = BreedStats(
                    mean_record=float(entry["mean_record"]),
                    mean_km_time=float(entry["mean_km_time"]),
                    record_samples=int(entry.get("record_samples", 0)),
                    km_time_samples=int(entry.get("km_time_samples", 0)),
                )
            except (KeyError, TypeError, ValueError) as e:
                raise InvariantViolationError(f"imputation stats for '{breed}' malformed: {e}") from e
        return cls(**stats)

    def save(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
        return path

    @classmethod
    def load(cls, path: Union[str, Path]) -> "ImputationStats":
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))


def _sample_frames(races: Iterable[Race], config: FeatureConfig):
    records = []
    km_times = []
    for race in races:
        breed = race.breed
        for runner in race.runners:
            if runner.record is not None and runner.record > 0:
                records.append({"breed": breed, "value": runner.record})
            for ps in runner.prior_starts:
                if ps.km_time is None or ps.km_time <= 0:
                    continue
                km = normalize_km_time(
                    ps.km_time, ps.distance,
                    divisor=config.km_time_divisor, anchor=config.km_time_anchor,
                )
                if km > 0:
                    km_times.append({"breed": breed, "value": km})

    columns = ["breed", "value"]
    return pd.DataFrame(records, columns=columns), pd.DataFrame(km_times, columns=columns)


def compute_imputation_stats(
    races: Iterable[Race],
    config: Optional[FeatureConfig] = None,
) -> ImputationStats:
    """
    Per-breed means over the training corpus.

    A breed without samples keeps the configured default mean.
    """
    config = config or FeatureConfig()
    df_record, df_km = _sample_frames(races, config)

    record_agg = df_record.groupby("breed")["value"].agg(["mean", "count"])
    km_agg = df_km.groupby("breed")["value"].agg(["mean", "count"])

    stats = {}
    for breed in BREEDS:
        defaults = config.breed_means[breed]
        if breed in record_agg.index:
            mean_record = float(record_agg.loc[breed, "mean"])
            n_record = int(record_agg.loc[breed, "count"])
        else:
            mean_record, n_record = defaults["record"], 0
        if breed in km_agg.index:
            mean_km = float(km_agg.loc[breed, "mean"])
            n_km = int(km_agg.loc[breed, "count"])
        else:
            mean_km, n_km = defaults["km_time"], 0

        stats[breed] = BreedStats(mean_record, mean_km, n_record, n_km)
        logger.info(
            f"{breed}: mean record={mean_record:.3f} (n={n_record:,}), "
            f"mean km time={mean_km:.3f} (n={n_km:,})"
        )

    return ImputationStats(**stats)
