# -*- coding: utf-8 -*-
"""
pipeline.py - Training and inference entry points

【Inference】
    pipeline = FeaturePipeline(maps, stats, config)
    tensors = pipeline.build_race(race)

    maps / stats / config are loaded once and never modified; one pipeline
    can serve any number of races, concurrently.

【Training】
    training_set = build_training_set(races, config)

    Imputation statistics are computed over the whole corpus first, then the
    identity maps are built sequentially while walking races in corpus order.
    The frozen maps and the statistics are what inference later loads.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from tqdm import tqdm

from .assembler import RaceTensors, RunnerMeta, assemble, stack
from .config import FeatureConfig
from .errors import NoDataError, NoStartersError
from .identity import IdentityMapBuilder, IdentityMaps
from .imputation import ImputationStats, compute_imputation_stats
from .parsers import parse_race_date
from .ranking import rank_race
from .records import Race, race_from_api
from .vectors import NameResolver, build_history_matrix, build_static_vector

logger = logging.getLogger(__name__)


def _build_race_tensors(
    race: Race,
    resolver: NameResolver,
    stats: ImputationStats,
    config: FeatureConfig,
    with_labels: bool = False,
) -> RaceTensors:
    starters = race.starters
    if not starters:
        raise NoStartersError(race.race_id)

    ranks = rank_race(starters)
    rows = []
    for i, runner in enumerate(starters):
        static_vec = build_static_vector(
            race, runner, resolver, stats, ranks.betting[i], ranks.win[i], config,
        )
        history_mat = build_history_matrix(race, runner, resolver, stats, config)
        meta = RunnerMeta(number=runner.number, name=runner.name, driver=runner.driver, race_id=race.race_id)
        rows.append((static_vec, history_mat, meta))

    labels = [r.top3 for r in starters] if with_labels else None
    return assemble(rows, config.history_cap, labels=labels, race_id=race.race_id)


# =============================================================================
# Inference
# =============================================================================

class FeaturePipeline:
    """Read-only feature builder for live races"""

    def __init__(
        self,
        maps: IdentityMaps,
        stats: ImputationStats,
        config: Optional[FeatureConfig] = None,
    ):
        self.maps = maps
        self.stats = stats
        self.config = config or FeatureConfig()

    def build_race(self, race: Race) -> RaceTensors:
        """
        Tensors for the starters of one race.

        Raises:
            NoStartersError: every runner is scratched (no data available)
            InvariantViolationError: shape / length contract broken
        """
        tensors = _build_race_tensors(race, self.maps, self.stats, self.config)
        logger.debug(f"[{race.race_id}] built features for {len(tensors)} starters")
        return tensors

    def build_from_api(
        self,
        race_info: Mapping[str, Any],
        runners_payload: Any,
        meet_date: Optional[str] = None,
    ) -> RaceTensors:
        """Raw card / runners payloads -> tensors"""
        return self.build_race(race_from_api(race_info, runners_payload, meet_date))


# =============================================================================
# Training
# =============================================================================

@dataclass
class TrainingSet:
    tensors: RaceTensors
    maps: IdentityMaps
    stats: ImputationStats
    config: FeatureConfig
    data_meta: Dict[str, Any] = field(default_factory=dict)


def _date_range(races: List[Race]) -> Dict[str, Optional[str]]:
    dates = [d for d in (parse_race_date(r.date) for r in races) if d is not None]
    if not dates:
        return {"first_date": None, "last_date": None}
    return {"first_date": min(dates).isoformat(), "last_date": max(dates).isoformat()}


def build_training_set(
    races: Iterable[Race],
    config: Optional[FeatureConfig] = None,
    seed_maps: Optional[IdentityMaps] = None,
    progress: bool = False,
) -> TrainingSet:
    """
    Training tensors, labels, identity maps and imputation statistics.

    Args:
        races: corpus races, in corpus order
        config: feature constants (default: built-in)
        seed_maps: existing maps to extend instead of starting empty
        progress: show a tqdm progress bar

    Raises:
        NoDataError: no race in the corpus has a starter
    """
    config = config or FeatureConfig()
    races = list(races)
    stats = compute_imputation_stats(races, config)
    builder = IdentityMapBuilder(seed_maps)

    parts = []
    used = []
    skipped = 0
    for race in tqdm(races, desc="Build features", unit="race", disable=not progress):
        try:
            parts.append(_build_race_tensors(race, builder, stats, config, with_labels=True))
        except NoStartersError as e:
            logger.info(f"Skip: {e}")
            skipped += 1
            continue
        used.append(race)

    if not parts:
        raise NoDataError(f"no race with starters among {len(races)} corpus races")

    tensors = stack(parts)
    maps = builder.freeze()
    data_meta = {
        "race_count": len(parts),
        "skipped_races": skipped,
        "runner_count": len(tensors),
        "positive_labels": int(tensors.labels.sum()),
        **_date_range(used),
    }
    logger.info(
        f"Training set: {data_meta['race_count']:,} races, {data_meta['runner_count']:,} runners, "
        f"{data_meta['positive_labels']:,} top-3 labels, {maps!r}"
    )
    return TrainingSet(tensors=tensors, maps=maps, stats=stats, config=config, data_meta=data_meta)
