# -*- coding: utf-8 -*-
"""
Tests for src/harness_features/records.py
"""

import json

import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.harness_features.parsers import CART_YES, HAS_SHOES, NO_SHOES, UNKNOWN
from src.harness_features.records import (
    COLD_BLOOD,
    WARM_BLOOD,
    PriorStart,
    Race,
    Runner,
    load_corpus,
    race_from_api,
    race_from_dict,
    race_to_dict,
    save_corpus,
    unwrap_collection,
)


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def race_info():
    return {
        "raceId": 123,
        "distance": 2100,
        "breed": "K",
        "startType": "CAR_START",
        "toteResultString": "5-3-8",
    }


@pytest.fixture
def runners_payload():
    return {"collection": [
        {
            "startNumber": 5,
            "horseName": "Äijän Poika",
            "coachName": "Jari Mäkelä",
            "driverName": "Mika Forss",
            "horseAge": 7,
            "gender": "ORI",
            "frontShoes": "HAS_SHOES",
            "rearShoes": "NO_SHOES",
            "frontShoesChanged": True,
            "specialCart": "YES",
            "scratched": False,
            "mobileStartRecord": "21,5a",
            "handicapRaceRecord": "22,0",
            "betPercentages": {"KAK": {"percentage": 2534}},
            "stats": {"total": {"winningPercent": 12.5}},
            "prevStarts": [
                {
                    "shortMeetDate": "10.1.26",
                    "driverFullName": "M Forss",
                    "trackCode": "Vr",
                    "distance": 2100,
                    "startTrack": 3,
                    "kmTime": "22,1a",
                    "result": "2",
                    "winOdd": 152,
                    "firstPrize": 150000,
                    "trackCondition": "Good",
                    "frontShoes": "HAS_SHOES",
                },
                {"shortMeetDate": "", "driverFullName": ""},
            ],
        },
        {"startNumber": 3, "horseName": "Scratched One", "scratched": True},
        {"startNumber": 8, "horseName": "Third", "driverName": "Ari Moilanen"},
        {"startNumber": 1, "horseName": "Unplaced"},
    ]}


# =============================================================================
# API payload adapter
# =============================================================================

class TestRaceFromApi:

    def test_race_context(self, race_info, runners_payload):
        race = race_from_api(race_info, runners_payload, "2026-01-31")
        assert race.race_id == "123"
        assert race.distance == 2100
        assert race.cold_blood is True
        assert race.breed == COLD_BLOOD
        assert race.car_start is True
        assert race.date == "2026-01-31"
        assert len(race.runners) == 4

    def test_starters_exclude_scratched(self, race_info, runners_payload):
        race = race_from_api(race_info, runners_payload)
        assert [r.number for r in race.starters] == [5, 8, 1]

    def test_labels_from_tote_result(self, race_info, runners_payload):
        race = race_from_api(race_info, runners_payload)
        positions = {r.number: r.position for r in race.runners}
        assert positions == {5: 1, 3: 2, 8: 3, 1: None}
        assert [r.top3 for r in race.starters] == [1, 1, 0]

    def test_runner_fields(self, race_info, runners_payload):
        runner = race_from_api(race_info, runners_payload).runners[0]
        assert runner.name == "Aijan Poika"
        assert runner.coach == "Jari Makela"
        assert runner.driver == "Mika Forss"
        assert runner.age == 7
        assert runner.gender == 3
        assert runner.front_shoes == HAS_SHOES
        assert runner.rear_shoes == NO_SHOES
        assert runner.front_shoes_changed is True
        assert runner.rear_shoes_changed is False
        assert runner.special_cart == CART_YES
        assert runner.record == pytest.approx(21.5)
        assert runner.record_from_car_start is True
        assert runner.betting_fraction == pytest.approx(0.2534)
        assert runner.win_fraction == pytest.approx(0.125)

    def test_prior_start_fields(self, race_info, runners_payload):
        ps = race_from_api(race_info, runners_payload).runners[0].prior_starts[0]
        assert ps.date == "10.1.26"
        assert ps.driver == "M Forss"
        assert ps.track == "Vr"
        assert ps.post == 3
        assert ps.km_time == pytest.approx(22.1)
        assert ps.car_start is True
        assert ps.gait_fault is False
        assert ps.position == 2
        assert ps.win_odds == pytest.approx(15.2)
        assert ps.first_prize == pytest.approx(15.0)
        assert ps.track_condition == "good"
        assert ps.rear_shoes == UNKNOWN

    def test_placeholder_prior_start_kept_but_invalid(self, race_info, runners_payload):
        runner = race_from_api(race_info, runners_payload).runners[0]
        assert len(runner.prior_starts) == 2
        assert len(runner.valid_prior_starts) == 1

    def test_sparse_runner_defaults(self, race_info, runners_payload):
        runner = race_from_api(race_info, runners_payload).runners[3]
        assert runner.driver == ""
        assert runner.age is None
        assert runner.gender == 2
        assert runner.record is None
        assert runner.betting_fraction == 0.0
        assert runner.prior_starts == ()

    def test_missing_distance_defaults(self, runners_payload):
        race = race_from_api({"raceId": 1}, runners_payload)
        assert race.distance == 2100
        assert race.cold_blood is False
        assert race.breed == WARM_BLOOD

    def test_unwrap_collection(self):
        assert unwrap_collection([{"a": 1}]) == [{"a": 1}]
        assert unwrap_collection({"runners": [{"a": 1}]}) == [{"a": 1}]
        assert unwrap_collection({"other": 1}) == []
        assert unwrap_collection(None) == []


# =============================================================================
# Corpus format
# =============================================================================

class TestCorpus:

    def test_race_from_dict(self):
        data = {
            "trackID": "R1",
            "distance": 1609,
            "isColdBlood": False,
            "isCarStart": True,
            "date": "2026-02-01",
            "runners": [{
                "number": 4,
                "name": "Speedy",
                "coach": "Coach A",
                "driver": "Driver B",
                "age": 5,
                "gender": 1,
                "frontShoes": "NO_SHOES",
                "bettingPercentage": 25.34,
                "winPercentage": 10.0,
                "record": 12.1,
                "isAutoRecord": True,
                "position": 2,
                "prevStarts": [{
                    "date": "2026-01-10",
                    "driver": "Driver B",
                    "track": "Vr",
                    "distance": 2100,
                    "number": 6,
                    "kmTime": 13.2,
                    "isCarStart": True,
                    "break": True,
                    "disqualified": True,
                    "position": 20,
                    "odd": 8.5,
                    "firstPrice": 2.0,
                }],
            }],
        }
        race = race_from_dict(data)
        runner = race.runners[0]
        assert race.race_id == "R1"
        assert race.car_start is True
        assert runner.betting_fraction == pytest.approx(0.2534)
        assert runner.win_fraction == pytest.approx(0.10)
        assert runner.front_shoes == NO_SHOES
        assert runner.record_from_car_start is True
        assert runner.top3 == 1
        ps = runner.prior_starts[0]
        assert ps.post == 6
        assert ps.gait_fault is True
        assert ps.disqualified is True
        assert ps.position == 20
        assert ps.win_odds == pytest.approx(8.5)

    def test_api_record_survives_corpus_layout(self, race_info, runners_payload):
        race = race_from_api(race_info, runners_payload, "2026-01-31")
        assert race_from_dict(race_to_dict(race)) == race

    def test_save_and_load(self, tmp_path, race_info, runners_payload):
        race = race_from_api(race_info, runners_payload, "2026-01-31")
        path = tmp_path / "corpus.json"
        assert save_corpus([race, race], path) == 2

        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
        assert list(raw) == ["races"]

        loaded = load_corpus(path)
        assert loaded == [race, race]

    def test_load_skips_non_objects(self, tmp_path):
        path = tmp_path / "corpus.json"
        path.write_text(json.dumps({"races": [{"trackID": "A"}, "junk", None]}), encoding="utf-8")
        races = load_corpus(path)
        assert [r.race_id for r in races] == ["A"]


# =============================================================================
# Records
# =============================================================================

class TestRecords:

    def test_records_are_frozen(self):
        runner = Runner(number=1)
        with pytest.raises(AttributeError):
            runner.number = 2

    def test_prior_start_validity(self):
        assert PriorStart(date="2026-01-01", driver="A B").is_valid
        assert not PriorStart(date="", driver="A B").is_valid
        assert not PriorStart(date="2026-01-01", driver="").is_valid
        assert not PriorStart(date="0", driver="A B").is_valid

    def test_starters(self):
        race = Race(race_id="x", runners=(Runner(number=1), Runner(number=2, scratched=True)))
        assert [r.number for r in race.starters] == [1]
