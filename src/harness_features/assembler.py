# -*- coding: utf-8 -*-
"""
assembler.py - Per-race tensors handed to the model

RaceTensors keeps static rows, history blocks and runner metadata in one
order so predictions can be attached back to start numbers after inference.
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import InvariantViolationError
from .feature_schema import HISTORY_FEATURE_COUNT, STATIC_FEATURE_COUNT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RunnerMeta:
    number: Optional[int]
    name: str
    driver: str
    race_id: str = ""


@dataclass
class RaceTensors:
    """
    static:   (n, STATIC_FEATURE_COUNT) float32
    history:  (n, history_cap, HISTORY_FEATURE_COUNT) float32
    metadata: n RunnerMeta
    labels:   (n,) int8, training only
    """
    static: np.ndarray
    history: np.ndarray
    metadata: List[RunnerMeta] = field(default_factory=list)
    labels: Optional[np.ndarray] = None

    def __len__(self) -> int:
        return len(self.metadata)

    @property
    def history_cap(self) -> int:
        return int(self.history.shape[1])

    def to_npz(self, path: Union[str, Path]) -> Path:
        """Arrays to .npz, metadata as a JSON string inside the archive"""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        arrays = {
            "static": self.static,
            "history": self.history,
            "metadata": np.array(json.dumps([asdict(m) for m in self.metadata])),
        }
        if self.labels is not None:
            arrays["labels"] = self.labels
        np.savez_compressed(path, **arrays)
        logger.info(f"Saved tensors: static={self.static.shape} history={self.history.shape} -> {path}")
        return path

    @classmethod
    def from_npz(cls, path: Union[str, Path]) -> "RaceTensors":
        with np.load(path, allow_pickle=False) as data:
            metadata = [RunnerMeta(**m) for m in json.loads(str(data["metadata"]))]
            labels = data["labels"] if "labels" in data.files else None
            tensors = cls(
                static=data["static"],
                history=data["history"],
                metadata=metadata,
                labels=labels,
            )
        _check_shapes(tensors.static, tensors.history, tensors.metadata, tensors.labels, tensors.history_cap)
        return tensors


def _check_shapes(static, history, metadata, labels, history_cap: int, race_id: str = ""):
    n = len(metadata)
    if static.shape != (n, STATIC_FEATURE_COUNT):
        raise InvariantViolationError(
            f"static matrix shape {static.shape} != ({n}, {STATIC_FEATURE_COUNT})", race_id,
        )
    if history.shape != (n, history_cap, HISTORY_FEATURE_COUNT):
        raise InvariantViolationError(
            f"history tensor shape {history.shape} != ({n}, {history_cap}, {HISTORY_FEATURE_COUNT})",
            race_id,
        )
    if labels is not None and labels.shape != (n,):
        raise InvariantViolationError(f"labels shape {labels.shape} != ({n},)", race_id)


def assemble(
    rows: Sequence[Tuple[np.ndarray, np.ndarray, RunnerMeta]],
    history_cap: int,
    labels: Optional[Sequence[int]] = None,
    race_id: str = "",
) -> RaceTensors:
    """
    Stack per-runner (static vector, history matrix, meta) into race tensors.

    Raises:
        InvariantViolationError: any row of the wrong length, any history
            block of the wrong shape, or labels of a different length
    """
    for static_vec, history_mat, meta in rows:
        if np.shape(static_vec) != (STATIC_FEATURE_COUNT,):
            raise InvariantViolationError(
                f"runner {meta.number}: static vector length {np.shape(static_vec)} "
                f"!= {STATIC_FEATURE_COUNT}",
                race_id,
            )
        if np.shape(history_mat) != (history_cap, HISTORY_FEATURE_COUNT):
            raise InvariantViolationError(
                f"runner {meta.number}: history shape {np.shape(history_mat)} "
                f"!= ({history_cap}, {HISTORY_FEATURE_COUNT})",
                race_id,
            )

    n = len(rows)
    if n:
        static = np.stack([r[0] for r in rows]).astype(np.float32)
        history = np.stack([r[1] for r in rows]).astype(np.float32)
    else:
        static = np.zeros((0, STATIC_FEATURE_COUNT), dtype=np.float32)
        history = np.zeros((0, history_cap, HISTORY_FEATURE_COUNT), dtype=np.float32)
    metadata = [r[2] for r in rows]
    label_arr = np.asarray(labels, dtype=np.int8) if labels is not None else None

    _check_shapes(static, history, metadata, label_arr, history_cap, race_id)
    return RaceTensors(static=static, history=history, metadata=metadata, labels=label_arr)


def stack(parts: Sequence[RaceTensors]) -> RaceTensors:
    """
    Concatenate races along the runner axis (training corpus).

    Labels are kept only if every part has them.
    """
    if not parts:
        raise InvariantViolationError("nothing to stack")
    caps = {p.history_cap for p in parts}
    if len(caps) != 1:
        raise InvariantViolationError(f"history caps differ between races: {sorted(caps)}")
    cap = caps.pop()

    static = np.concatenate([p.static for p in parts], axis=0)
    history = np.concatenate([p.history for p in parts], axis=0)
    metadata = [m for p in parts for m in p.metadata]
    labels = None
    if all(p.labels is not None for p in parts):
        labels = np.concatenate([p.labels for p in parts], axis=0)

    _check_shapes(static, history, metadata, labels, cap)
    return RaceTensors(static=static, history=history, metadata=metadata, labels=labels)
