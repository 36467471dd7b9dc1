# -*- coding: utf-8 -*-
"""
Tests for src/harness_features/identity.py
"""

import json

import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.harness_features.errors import InvariantViolationError, MappingSchemaError
from src.harness_features.identity import (
    COACH,
    DRIVER,
    TRACK,
    IdentityMapBuilder,
    IdentityMaps,
    identity_key,
)


# =============================================================================
# Key derivation
# =============================================================================

class TestIdentityKey:

    def test_driver_uses_surname(self):
        assert identity_key("Mika Forss", DRIVER) == "forss"
        assert identity_key("M Forss", DRIVER) == "forss"
        assert identity_key("  FORSS ", DRIVER) == "forss"

    def test_coach_and_track_use_full_name(self):
        assert identity_key("Jari Makela", COACH) == "jari makela"
        assert identity_key(" Vr ", TRACK) == "vr"

    @pytest.mark.parametrize("name", [None, "", "   ", "Unknown", "unknown", "0"])
    def test_placeholders(self, name):
        assert identity_key(name, DRIVER) is None
        assert identity_key(name, COACH) is None

    def test_unknown_namespace(self):
        with pytest.raises(ValueError):
            identity_key("x", "horses")


# =============================================================================
# Training builder
# =============================================================================

class TestIdentityMapBuilder:

    def test_ids_start_at_one_per_namespace(self):
        builder = IdentityMapBuilder()
        assert builder.resolve("Coach A", COACH) == 1
        assert builder.resolve("Driver A", DRIVER) == 1
        assert builder.resolve("Vr", TRACK) == 1
        assert builder.resolve("Coach B", COACH) == 2

    def test_same_key_same_id(self):
        builder = IdentityMapBuilder()
        first = builder.resolve("Mika Forss", DRIVER)
        assert builder.resolve("M Forss", DRIVER) == first
        assert builder.resolve("mika forss", DRIVER) == first

    def test_shared_first_name_different_surname(self):
        builder = IdentityMapBuilder()
        assert builder.resolve("Mika Forss", DRIVER) != builder.resolve("Mika Salo", DRIVER)

    def test_placeholder_does_not_grow_map(self):
        builder = IdentityMapBuilder()
        assert builder.resolve("Unknown", DRIVER) == 0
        assert builder.resolve("", COACH) == 0
        maps = builder.freeze()
        assert len(maps) == 0
        assert maps.next_id(DRIVER) == 1

    def test_freeze_snapshot_is_independent(self):
        builder = IdentityMapBuilder()
        builder.resolve("Coach A", COACH)
        maps = builder.freeze()
        builder.resolve("Coach B", COACH)
        assert maps.resolve("Coach B", COACH) == 0
        assert maps.next_id(COACH) == 2

    def test_seeded_builder_continues_counters(self):
        seed = IdentityMaps({COACH: {"coach a": 1}, DRIVER: {}, TRACK: {}},
                            {COACH: 2, DRIVER: 1, TRACK: 1})
        builder = IdentityMapBuilder(seed)
        assert builder.resolve("Coach A", COACH) == 1
        assert builder.resolve("Coach B", COACH) == 2


# =============================================================================
# Read-only snapshot
# =============================================================================

class TestIdentityMaps:

    @pytest.fixture
    def maps(self):
        builder = IdentityMapBuilder()
        builder.resolve("Coach A", COACH)
        builder.resolve("Mika Forss", DRIVER)
        builder.resolve("Vr", TRACK)
        return builder.freeze()

    def test_resolve_known(self, maps):
        assert maps.resolve("Coach A", COACH) == 1
        assert maps.resolve("Hannu Forss", DRIVER) == 1
        assert maps.resolve("vr", TRACK) == 1

    def test_unseen_resolves_to_zero_without_mutation(self, maps):
        before = maps.to_dict()
        assert maps.resolve("New Driver", DRIVER) == 0
        assert maps.to_dict() == before

    def test_tables_are_read_only(self, maps):
        with pytest.raises(TypeError):
            maps.table(COACH)["new"] = 5

    def test_missing_namespace_rejected(self):
        with pytest.raises(MappingSchemaError):
            IdentityMaps({COACH: {}, DRIVER: {}}, {COACH: 1, DRIVER: 1, TRACK: 1})

    def test_to_dict_layout(self, maps):
        data = maps.to_dict()
        assert data["coaches"] == {"coach a": 1}
        assert data["drivers"] == {"forss": 1}
        assert data["tracks"] == {"vr": 1}
        assert data["counts"] == {"c": 2, "d": 2, "t": 2}
        assert data["version"] == 1

    def test_save_and_load(self, tmp_path, maps):
        path = maps.save(tmp_path / "mappings.json")
        assert IdentityMaps.load(path) == maps

    def test_loads_layout_without_version(self):
        data = {"coaches": {"a": 1}, "drivers": {}, "tracks": {}, "counts": {"c": 2, "d": 1, "t": 1}}
        maps = IdentityMaps.from_dict(data)
        assert maps.resolve("A", COACH) == 1

    @pytest.mark.parametrize("broken", [
        {"coaches": {}, "drivers": {}, "counts": {"c": 1, "d": 1, "t": 1}},
        {"coaches": {}, "drivers": {}, "tracks": {}, "counts": {"c": 1, "d": 1}},
        {"coaches": {}, "drivers": {}, "tracks": {}},
        {"coaches": [], "drivers": {}, "tracks": {}, "counts": {"c": 1, "d": 1, "t": 1}},
        {"coaches": {"a": "x"}, "drivers": {}, "tracks": {}, "counts": {"c": 2, "d": 1, "t": 1}},
        {"coaches": {"a": None}, "drivers": {}, "tracks": {}, "counts": {"c": 2, "d": 1, "t": 1}},
        {"coaches": {}, "drivers": {}, "tracks": {}, "counts": {"c": "x", "d": 1, "t": 1}},
        {"coaches": {}, "drivers": {}, "tracks": {}, "counts": {"c": [1], "d": 1, "t": 1}},
        {"version": "v1", "coaches": {}, "drivers": {}, "tracks": {}, "counts": {"c": 1, "d": 1, "t": 1}},
    ])
    def test_malformed_layout(self, broken):
        with pytest.raises(MappingSchemaError):
            IdentityMaps.from_dict(broken)

    def test_schema_error_is_invariant_violation(self, tmp_path):
        path = tmp_path / "mappings.json"
        path.write_text(json.dumps({"coaches": {}}), encoding="utf-8")
        with pytest.raises(InvariantViolationError):
            IdentityMaps.load(path)
