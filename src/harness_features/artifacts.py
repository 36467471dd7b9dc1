# -*- coding: utf-8 -*-
"""
artifacts.py - Persisted training-time state loaded by inference

Directory layout:
    <dir>/mappings.json          identity maps
    <dir>/imputation_stats.json  breed fallback means
    <dir>/feature_manifest.json  schema version, column names, config fingerprint

load() refuses a directory built with a different feature config or schema:
building tensors from it would silently disagree with the trained model.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .config import FeatureConfig
from .errors import InvariantViolationError
from .feature_schema import FEATURE_SCHEMA_VERSION, HISTORY_FEATURE_NAMES, STATIC_FEATURE_NAMES
from .identity import IdentityMaps
from .imputation import ImputationStats
from .pipeline import FeaturePipeline, TrainingSet

logger = logging.getLogger(__name__)

MAPPINGS_FILE = "mappings.json"
STATS_FILE = "imputation_stats.json"
MANIFEST_FILE = "feature_manifest.json"


@dataclass
class FeatureManifest:
    config_fingerprint: str
    history_cap: int
    sentinel: float
    schema_version: int = FEATURE_SCHEMA_VERSION
    static_feature_names: List[str] = field(default_factory=lambda: list(STATIC_FEATURE_NAMES))
    history_feature_names: List[str] = field(default_factory=lambda: list(HISTORY_FEATURE_NAMES))
    data_meta: Dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=lambda: datetime.now().isoformat(timespec="seconds"))

    @classmethod
    def for_config(cls, config: FeatureConfig, data_meta: Optional[Dict[str, Any]] = None) -> "FeatureManifest":
        return cls(
            config_fingerprint=config.fingerprint(),
            history_cap=config.history_cap,
            sentinel=config.sentinel,
            data_meta=dict(data_meta or {}),
        )

    def check(self, config: FeatureConfig):
        """
        Raises:
            InvariantViolationError: schema or constants differ from the running code
        """
        if self.schema_version != FEATURE_SCHEMA_VERSION:
            raise InvariantViolationError(
                f"feature schema version {self.schema_version} != {FEATURE_SCHEMA_VERSION}"
            )
        if self.static_feature_names != STATIC_FEATURE_NAMES:
            raise InvariantViolationError("static feature names differ from the persisted manifest")
        if self.history_feature_names != HISTORY_FEATURE_NAMES:
            raise InvariantViolationError("history feature names differ from the persisted manifest")
        if self.config_fingerprint != config.fingerprint():
            raise InvariantViolationError(
                f"feature config fingerprint mismatch: artifacts={self.config_fingerprint[:12]} "
                f"running={config.fingerprint()[:12]}"
            )


@dataclass
class FeatureArtifacts:
    maps: IdentityMaps
    stats: ImputationStats
    manifest: FeatureManifest

    @classmethod
    def from_training_set(cls, training_set: TrainingSet) -> "FeatureArtifacts":
        return cls(
            maps=training_set.maps,
            stats=training_set.stats,
            manifest=FeatureManifest.for_config(training_set.config, training_set.data_meta),
        )

    def pipeline(self, config: FeatureConfig) -> FeaturePipeline:
        self.manifest.check(config)
        return FeaturePipeline(self.maps, self.stats, config)

    def save(self, directory: Union[str, Path]) -> Path:
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        self.maps.save(directory / MAPPINGS_FILE)
        self.stats.save(directory / STATS_FILE)
        with open(directory / MANIFEST_FILE, "w", encoding="utf-8") as f:
            json.dump(asdict(self.manifest), f, ensure_ascii=False, indent=2)
        logger.info(f"Saved feature artifacts to {directory}")
        return directory

    @classmethod
    def load(cls, directory: Union[str, Path], config: Optional[FeatureConfig] = None) -> "FeatureArtifacts":
        """
        Load and verify artifacts against the running config.

        Raises:
            FileNotFoundError: a required file is missing
            InvariantViolationError: malformed files or config mismatch
        """
        directory = Path(directory)
        for name in (MAPPINGS_FILE, STATS_FILE, MANIFEST_FILE):
            if not (directory / name).exists():
                raise FileNotFoundError(f"Feature artifact not found: {directory / name}")

        with open(directory / MANIFEST_FILE, "r", encoding="utf-8") as f:
            raw = json.load(f)
        try:
            manifest = FeatureManifest(**raw)
        except TypeError as e:
            raise InvariantViolationError(f"malformed feature manifest: {e}") from e

        manifest.check(config or FeatureConfig())
        artifacts = cls(
            maps=IdentityMaps.load(directory / MAPPINGS_FILE),
            stats=ImputationStats.load(directory / STATS_FILE),
            manifest=manifest,
        )
        logger.info(f"Loaded feature artifacts from {directory} (built {manifest.created_at})")
        return artifacts
