# -*- coding: utf-8 -*-
"""
errors.py - Exceptions raised by the harness feature pipeline

Parse-level gaps never raise (they become known/unknown flags). Only two
situations leave the pipeline as exceptions:

- no usable data for a race (nothing to predict)
- a structural contract violation (training/inference parity bug)
"""


class FeaturePipelineError(Exception):
    """Base exception for all feature pipeline errors."""
    pass


class NoDataError(FeaturePipelineError):
    """Nothing to build features from (empty race or empty corpus)."""
    pass


class NoStartersError(NoDataError):
    """The race has no non-scratched runners to build features for."""

    def __init__(self, race_id: str):
        self.race_id = race_id
        super().__init__(f"[{race_id}] race has no starters")


class InvariantViolationError(FeaturePipelineError):
    """Tensor shapes, lengths or persisted artifacts do not match the contract."""

    def __init__(self, message: str, race_id: str = ""):
        self.race_id = race_id
        prefix = f"[{race_id}] " if race_id else ""
        super().__init__(f"{prefix}{message}")


class MappingSchemaError(InvariantViolationError):
    """Persisted identity maps are missing a namespace or counter."""
    pass
