# -*- coding: utf-8 -*-
"""
diagnostics.py - Coverage report of built feature tensors

【Contents】
1. Known-flag rates (how often a value was present rather than imputed)
2. History depth (real rows per runner, share of runners without history)
3. Per-feature min / mean / max of the static matrix
4. Warnings for values outside the expected range
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd

from .assembler import RaceTensors
from .config import FeatureConfig
from .feature_schema import (
    HISTORY_FEATURE_NAMES,
    STATIC_FEATURE_NAMES,
    get_feature_groups,
    known_flag_columns,
)

logger = logging.getLogger(__name__)

# ids and ranks are scaled to land near [0, 1]; larger values mean a scale is too small
RANGE_WARN_THRESHOLD = 1.5


@dataclass
class CoverageReport:
    """カバレッジレポート"""
    generated_at: str
    n_runners: int
    n_races: int
    history_cap: int
    static_known_rates: Dict[str, float]
    history_known_rates: Dict[str, float]
    mean_history_rows: float
    no_history_rate: float
    feature_stats: pd.DataFrame
    group_means: Dict[str, float] = field(default_factory=dict)
    label_rate: Optional[float] = None
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generated_at": self.generated_at,
            "n_runners": self.n_runners,
            "n_races": self.n_races,
            "history_cap": self.history_cap,
            "static_known_rates": self.static_known_rates,
            "history_known_rates": self.history_known_rates,
            "mean_history_rows": self.mean_history_rows,
            "no_history_rate": self.no_history_rate,
            "group_means": self.group_means,
            "label_rate": self.label_rate,
            "warnings": self.warnings,
        }


def static_frame(tensors: RaceTensors) -> pd.DataFrame:
    """Static matrix as a DataFrame with runner metadata columns"""
    df = pd.DataFrame(tensors.static, columns=STATIC_FEATURE_NAMES)
    df.insert(0, "race_id", [m.race_id for m in tensors.metadata])
    df.insert(1, "number", [m.number for m in tensors.metadata])
    df.insert(2, "name", [m.name for m in tensors.metadata])
    if tensors.labels is not None:
        df["label"] = tensors.labels
    return df


def real_history_rows(tensors: RaceTensors, sentinel: Optional[float] = None) -> np.ndarray:
    """Number of non-padding history rows per runner (sentinel defaults to FeatureConfig)"""
    if sentinel is None:
        sentinel = FeatureConfig().sentinel
    if len(tensors) == 0:
        return np.zeros(0, dtype=np.int64)
    is_padding = np.all(tensors.history == sentinel, axis=2)
    return (~is_padding).sum(axis=1)


def compute_coverage(tensors: RaceTensors, sentinel: Optional[float] = None) -> CoverageReport:
    if sentinel is None:
        sentinel = FeatureConfig().sentinel
    df = static_frame(tensors)
    n = len(df)

    static_known = {
        value: float(df[flag].mean()) if n else 0.0
        for value, flag in known_flag_columns(STATIC_FEATURE_NAMES).items()
    }

    rows = real_history_rows(tensors, sentinel)
    history_known = {}
    if rows.sum() > 0:
        real = tensors.history[~np.all(tensors.history == sentinel, axis=2)]
        hdf = pd.DataFrame(real, columns=HISTORY_FEATURE_NAMES)
        history_known = {
            value: float(hdf[flag].mean())
            for value, flag in known_flag_columns(HISTORY_FEATURE_NAMES).items()
        }

    feature_stats = df[STATIC_FEATURE_NAMES].agg(["min", "mean", "max"]).T

    group_means = {
        group: float(df[names].to_numpy().mean()) if n else 0.0
        for group, names in get_feature_groups().items()
    }

    warnings = []
    for name, row in feature_stats.iterrows():
        if n and row["max"] > RANGE_WARN_THRESHOLD:
            warnings.append(f"{name}: max {row['max']:.3f} exceeds {RANGE_WARN_THRESHOLD}")
        if n and row["min"] < 0:
            warnings.append(f"{name}: negative value {row['min']:.3f} in static matrix")
    if n and static_known.get("betting_rank", 1.0) == 0.0:
        warnings.append("no runner has betting data")

    return CoverageReport(
        generated_at=datetime.now().isoformat(timespec="seconds"),
        n_runners=n,
        n_races=int(df["race_id"].nunique()) if n else 0,
        history_cap=tensors.history_cap,
        static_known_rates=static_known,
        history_known_rates=history_known,
        mean_history_rows=float(rows.mean()) if n else 0.0,
        no_history_rate=float((rows == 0).mean()) if n else 0.0,
        feature_stats=feature_stats,
        group_means=group_means,
        label_rate=float(tensors.labels.mean()) if tensors.labels is not None and n else None,
        warnings=warnings,
    )


def format_report(report: CoverageReport) -> str:
    lines = []
    lines.append("=" * 70)
    lines.append("Feature Coverage Report")
    lines.append(f"Generated: {report.generated_at}")
    lines.append("=" * 70)
    lines.append("")

    lines.append("[Size]")
    lines.append(f"  races: {report.n_races:,}  runners: {report.n_runners:,}  history cap: {report.history_cap}")
    if report.label_rate is not None:
        lines.append(f"  top-3 label rate: {report.label_rate*100:.1f}%")
    lines.append("")

    lines.append("[Static known rates]")
    for name, rate in report.static_known_rates.items():
        lines.append(f"  {name:24s}: {rate*100:5.1f}%")
    lines.append("")

    lines.append("[History]")
    lines.append(f"  mean real rows: {report.mean_history_rows:.2f} / {report.history_cap}")
    lines.append(f"  runners without history: {report.no_history_rate*100:.1f}%")
    for name, rate in report.history_known_rates.items():
        lines.append(f"  {name:24s}: {rate*100:5.1f}%")
    lines.append("")

    if report.warnings:
        lines.append("[Warnings]")
        for warning in report.warnings:
            lines.append(f"  - {warning}")
        lines.append("")

    lines.append("=" * 70)
    return "\n".join(lines)


def save_report(report: CoverageReport, output_dir: Union[str, Path]) -> Path:
    """feature_stats.csv + coverage_report.txt"""
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    report.feature_stats.to_csv(output_dir / "feature_stats.csv", index_label="feature")
    (output_dir / "coverage_report.txt").write_text(format_report(report), encoding="utf-8")
    logger.info(f"Saved coverage report to {output_dir}")
    return output_dir
