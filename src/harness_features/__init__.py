# -*- coding: utf-8 -*-
"""
src/harness_features - Harness race top-3 feature pipeline

Turns partially missing race / runner / prior start records into fixed-shape
float32 tensors for a sequence model, identically for the training corpus
and for live races.

【設計原則】
1. One parser per field: training and inference share parsers.py
2. Fixed shapes: every runner gets STATIC_FEATURE_COUNT static values and a
   history_cap x HISTORY_FEATURE_COUNT history block, sentinel padded
3. Injected state: identity maps and imputation statistics are built once in
   training, persisted, and loaded read-only by inference
4. Parity check: persisted artifacts carry the feature config fingerprint

【Modules】
- text / parsers:   name cleaning and field decoding
- records:          Race / Runner / PriorStart and the payload adapters
- identity:         coach / driver / track IDs
- imputation:       breed fallback means
- ranking:          race-relative market ranks
- vectors:          static vector and history matrix
- assembler:        per-race tensors
- pipeline:         FeaturePipeline (inference), build_training_set (training)
- artifacts:        persisted maps / stats / manifest
- diagnostics:      coverage report
"""

from .config import (
    DEFAULT_CONFIG_PATH,
    FeatureConfig,
    load_feature_config,
)

from .errors import (
    FeaturePipelineError,
    InvariantViolationError,
    MappingSchemaError,
    NoDataError,
    NoStartersError,
)

from .text import clean_text

from .parsers import (
    FinishResult,
    KmTime,
    RaceRecord,
    encode_track_condition,
    normalize_km_time,
    parse_betting_fraction,
    parse_finish_position,
    parse_gender,
    parse_km_time,
    parse_shoes,
    parse_special_cart,
    parse_win_fraction,
    select_race_record,
)

from .records import (
    PriorStart,
    Race,
    Runner,
    load_corpus,
    race_from_api,
    race_from_dict,
    race_to_dict,
    save_corpus,
)

from .identity import (
    IdentityMapBuilder,
    IdentityMaps,
    identity_key,
)

from .imputation import (
    BreedStats,
    ImputationStats,
    compute_imputation_stats,
)

from .ranking import (
    RaceRanks,
    RankResult,
    rank_race,
    rank_signal,
)

from .feature_schema import (
    FEATURE_SCHEMA_VERSION,
    HISTORY_FEATURE_COUNT,
    HISTORY_FEATURE_NAMES,
    STATIC_FEATURE_COUNT,
    STATIC_FEATURE_NAMES,
    get_feature_groups,
)

from .vectors import (
    build_history_matrix,
    build_static_vector,
    valid_prior_starts,
    weighted_podium_index,
)

from .assembler import (
    RaceTensors,
    RunnerMeta,
    assemble,
    stack,
)

from .pipeline import (
    FeaturePipeline,
    TrainingSet,
    build_training_set,
)

from .artifacts import (
    FeatureArtifacts,
    FeatureManifest,
)

from .diagnostics import (
    CoverageReport,
    compute_coverage,
    format_report,
    save_report,
)

__all__ = [
    # config
    "DEFAULT_CONFIG_PATH",
    "FeatureConfig",
    "load_feature_config",
    # errors
    "FeaturePipelineError",
    "InvariantViolationError",
    "MappingSchemaError",
    "NoDataError",
    "NoStartersError",
    # text / parsers
    "clean_text",
    "FinishResult",
    "KmTime",
    "RaceRecord",
    "encode_track_condition",
    "normalize_km_time",
    "parse_betting_fraction",
    "parse_finish_position",
    "parse_gender",
    "parse_km_time",
    "parse_shoes",
    "parse_special_cart",
    "parse_win_fraction",
    "select_race_record",
    # records
    "PriorStart",
    "Race",
    "Runner",
    "load_corpus",
    "race_from_api",
    "race_from_dict",
    "race_to_dict",
    "save_corpus",
    # identity
    "IdentityMapBuilder",
    "IdentityMaps",
    "identity_key",
    # imputation
    "BreedStats",
    "ImputationStats",
    "compute_imputation_stats",
    # ranking
    "RaceRanks",
    "RankResult",
    "rank_race",
    "rank_signal",
    # schema
    "FEATURE_SCHEMA_VERSION",
    "HISTORY_FEATURE_COUNT",
    "HISTORY_FEATURE_NAMES",
    "STATIC_FEATURE_COUNT",
    "STATIC_FEATURE_NAMES",
    "get_feature_groups",
    # vectors / assembler
    "build_history_matrix",
    "build_static_vector",
    "valid_prior_starts",
    "weighted_podium_index",
    "RaceTensors",
    "RunnerMeta",
    "assemble",
    "stack",
    # pipeline / artifacts
    "FeaturePipeline",
    "TrainingSet",
    "build_training_set",
    "FeatureArtifacts",
    "FeatureManifest",
    # diagnostics
    "CoverageReport",
    "compute_coverage",
    "format_report",
    "save_report",
]
