# -*- coding: utf-8 -*-
"""
records.py - Normalised race / runner / prior start records

Two adapters produce the same frozen records:

- race_from_api(): raw public-API payloads (live inference, scraper)
- race_from_dict(): the stored training corpus ({"races": [...]})

Both run the shared field parsers, so a runner looks the same to the feature
builder whichever way it arrived. Records are never mutated after
construction.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .parsers import (
    UNKNOWN,
    is_car_start,
    is_cold_blood,
    parse_finish_position,
    parse_float,
    parse_gender,
    parse_int,
    parse_km_time,
    parse_shoes,
    parse_special_cart,
    parse_tote_result,
    parse_track_condition,
    parse_betting_fraction,
    parse_win_fraction,
    parse_record_value,
    positive_or_none,
    select_race_record,
)
from .text import clean_text

logger = logging.getLogger(__name__)

COLD_BLOOD = "cold_blood"
WARM_BLOOD = "warm_blood"

# winOdd is sent x10 (152 = 15.2); firstPrize in 1/10000 euro units
WIN_ODDS_DIVISOR = 10.0
FIRST_PRIZE_DIVISOR = 10000.0

_DATE_PLACEHOLDERS = ("", "0", "NaT")
_NAME_PLACEHOLDERS = ("", "0", "<undefined>")


# =============================================================================
# Records
# =============================================================================

@dataclass(frozen=True)
class PriorStart:
    """One earlier start of a horse"""
    date: str = ""
    driver: str = ""
    track: str = ""
    distance: Optional[int] = None
    post: Optional[int] = None
    km_time: Optional[float] = None  # raw km time, None = unknown
    car_start: bool = False
    gait_fault: bool = False
    front_shoes: str = UNKNOWN
    rear_shoes: str = UNKNOWN
    special_cart: str = UNKNOWN
    position: Optional[int] = None  # 1-16, 20 = disqualified, 21 = DNF
    disqualified: bool = False
    dnf: bool = False
    win_odds: Optional[float] = None
    first_prize: Optional[float] = None
    track_condition: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        """Placeholder rows have no date or no driver"""
        return (
            self.date.strip() not in _DATE_PLACEHOLDERS
            and self.driver.strip() not in _NAME_PLACEHOLDERS
        )


@dataclass(frozen=True)
class Runner:
    """One horse in one race"""
    number: Optional[int]
    name: str = ""
    coach: str = ""
    driver: str = ""
    age: Optional[int] = None
    gender: int = 2
    front_shoes: str = UNKNOWN
    rear_shoes: str = UNKNOWN
    front_shoes_changed: bool = False
    rear_shoes_changed: bool = False
    special_cart: str = UNKNOWN
    scratched: bool = False
    betting_fraction: float = 0.0
    win_fraction: float = 0.0
    record: Optional[float] = None
    record_from_car_start: bool = False
    position: Optional[int] = None  # actual finish in this race (training label)
    prior_starts: Tuple[PriorStart, ...] = ()

    @property
    def valid_prior_starts(self) -> List[PriorStart]:
        return [ps for ps in self.prior_starts if ps.is_valid]

    @property
    def top3(self) -> int:
        return 1 if self.position is not None and 1 <= self.position <= 3 else 0


@dataclass(frozen=True)
class Race:
    """Race context plus its runners (scratched ones included)"""
    race_id: str
    distance: Optional[int] = None
    cold_blood: bool = False
    car_start: bool = False
    date: str = ""
    runners: Tuple[Runner, ...] = field(default_factory=tuple)

    @property
    def breed(self) -> str:
        return COLD_BLOOD if self.cold_blood else WARM_BLOOD

    @property
    def starters(self) -> List[Runner]:
        return [r for r in self.runners if not r.scratched]


# =============================================================================
# Raw API payloads
# =============================================================================

def _first(payload: Mapping[str, Any], *keys: str) -> Any:
    """First truthy value among keys (API field names vary between endpoints)"""
    for key in keys:
        value = payload.get(key)
        if value not in (None, ""):
            return value
    return None


def _positive_int(value: Any) -> Optional[int]:
    parsed = parse_int(value)
    return parsed if parsed is not None and parsed > 0 else None


def _scaled(value: Any, divisor: float) -> Optional[float]:
    parsed = positive_or_none(parse_float(value))
    return parsed / divisor if parsed is not None else None


def prior_start_from_api(payload: Mapping[str, Any]) -> PriorStart:
    """prevStarts[] entry of the runners endpoint -> PriorStart"""
    km = parse_km_time(payload.get("kmTime"))
    result = parse_finish_position(payload.get("result"))
    meet_date = _first(payload, "shortMeetDate", "meetDate")

    return PriorStart(
        date=clean_text(str(meet_date)[:10]) if meet_date else "",
        driver=clean_text(_first(payload, "driverFullName", "driver", "driverName")),
        track=clean_text(_first(payload, "trackCode", "track")),
        distance=_positive_int(payload.get("distance")),
        post=_positive_int(payload.get("startTrack")),
        km_time=km.value if km.value > 0 else None,
        car_start=km.car_start,
        gait_fault=km.gait_fault,
        front_shoes=parse_shoes(payload.get("frontShoes")),
        rear_shoes=parse_shoes(payload.get("rearShoes")),
        special_cart=parse_special_cart(payload.get("specialCart")),
        position=result.position,
        disqualified=result.disqualified,
        dnf=result.dnf,
        win_odds=_scaled(payload.get("winOdd"), WIN_ODDS_DIVISOR),
        first_prize=_scaled(payload.get("firstPrize"), FIRST_PRIZE_DIVISOR),
        track_condition=parse_track_condition(payload.get("trackCondition")),
    )


def runner_from_api(
    payload: Mapping[str, Any],
    car_start: bool,
    position: Optional[int] = None,
) -> Runner:
    """Runner entry of the runners endpoint -> Runner"""
    record = select_race_record(payload, car_start)
    history = _first(payload, "prevStarts", "priorStarts", "previousStarts", "starts") or []

    return Runner(
        number=parse_int(_first(payload, "startNumber", "number")),
        name=clean_text(_first(payload, "horseName", "name")),
        coach=clean_text(_first(payload, "coachName", "trainerName")),
        driver=clean_text(payload.get("driverName")),
        age=_positive_int(_first(payload, "horseAge", "age")),
        gender=parse_gender(payload.get("gender")),
        front_shoes=parse_shoes(payload.get("frontShoes")),
        rear_shoes=parse_shoes(payload.get("rearShoes")),
        front_shoes_changed=payload.get("frontShoesChanged") is True,
        rear_shoes_changed=payload.get("rearShoesChanged") is True,
        special_cart=parse_special_cart(payload.get("specialCart")),
        scratched=payload.get("scratched") is True,
        betting_fraction=parse_betting_fraction(payload),
        win_fraction=parse_win_fraction(payload),
        record=record.value,
        record_from_car_start=record.from_car_start,
        position=position,
        prior_starts=tuple(prior_start_from_api(h) for h in history if isinstance(h, Mapping)),
    )


def unwrap_collection(payload: Any) -> List[Mapping[str, Any]]:
    """The API returns lists either bare or wrapped in collection/runners/data"""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        for key in ("collection", "runners", "races", "data"):
            value = payload.get(key)
            if isinstance(value, list):
                return value
    return []


def race_from_api(
    race_info: Mapping[str, Any],
    runners_payload: Any,
    meet_date: Optional[str] = None,
) -> Race:
    """
    Race entry of the card endpoint + runners endpoint payload -> Race

    Args:
        race_info: one element of /card/{id}/races
        runners_payload: response of /race/{id}/runners (list or wrapped)
        meet_date: canonical meet date of the card (falls back to race_info)

    Finishing positions 1-3 are taken from toteResultString when the race has
    already been run; other runners keep position None.
    """
    race_id = str(_first(race_info, "raceId", "id") or "")
    car_start = is_car_start(race_info.get("startType"))
    podium = parse_tote_result(race_info.get("toteResultString"))

    runners = []
    for payload in unwrap_collection(runners_payload):
        number = parse_int(_first(payload, "startNumber", "number"))
        position = podium.index(number) + 1 if number is not None and number in podium else None
        runners.append(runner_from_api(payload, car_start, position))

    date_text = meet_date or _first(race_info, "meetDate", "date") or ""
    return Race(
        race_id=race_id,
        distance=_positive_int(race_info.get("distance")) or 2100,
        cold_blood=is_cold_blood(race_info.get("breed")),
        car_start=car_start,
        date=clean_text(str(date_text)[:10]),
        runners=tuple(runners),
    )


# =============================================================================
# Stored corpus ({"races": [...]})
# =============================================================================

def _prior_start_from_dict(data: Mapping[str, Any]) -> PriorStart:
    return PriorStart(
        date=clean_text(data.get("date")),
        driver=clean_text(data.get("driver")),
        track=clean_text(data.get("track")),
        distance=_positive_int(data.get("distance")),
        post=_positive_int(data.get("number")),
        km_time=positive_or_none(parse_float(data.get("kmTime"))),
        car_start=bool(data.get("isCarStart")),
        gait_fault=bool(data.get("break")),
        front_shoes=parse_shoes(data.get("frontShoes")),
        rear_shoes=parse_shoes(data.get("rearShoes")),
        special_cart=parse_special_cart(data.get("specialCart")),
        position=parse_int(data.get("position")),
        disqualified=bool(data.get("disqualified")),
        dnf=bool(data.get("DNF")),
        win_odds=positive_or_none(parse_float(data.get("odd"))),
        first_prize=positive_or_none(parse_float(data.get("firstPrice"))),
        track_condition=parse_track_condition(data.get("trackCondition")),
    )


def _percent_to_fraction(value: Any) -> float:
    parsed = parse_float(value)
    return parsed / 100.0 if parsed is not None and parsed > 0 else 0.0


def _runner_from_dict(data: Mapping[str, Any]) -> Runner:
    return Runner(
        number=parse_int(data.get("number")),
        name=clean_text(data.get("name")),
        coach=clean_text(data.get("coach")),
        driver=clean_text(data.get("driver")),
        age=_positive_int(data.get("age")),
        gender=parse_int(data.get("gender")) or 2,
        front_shoes=parse_shoes(data.get("frontShoes")),
        rear_shoes=parse_shoes(data.get("rearShoes")),
        front_shoes_changed=bool(data.get("frontShoesChanged")),
        rear_shoes_changed=bool(data.get("rearShoesChanged")),
        special_cart=parse_special_cart(data.get("specialCart")),
        scratched=bool(data.get("scratched")),
        betting_fraction=_percent_to_fraction(data.get("bettingPercentage")),
        win_fraction=_percent_to_fraction(data.get("winPercentage")),
        record=parse_record_value(data.get("record")),
        record_from_car_start=bool(data.get("isAutoRecord")),
        position=parse_int(data.get("position")),
        prior_starts=tuple(
            _prior_start_from_dict(ps) for ps in data.get("prevStarts") or []
            if isinstance(ps, Mapping)
        ),
    )


def race_from_dict(data: Mapping[str, Any]) -> Race:
    """Corpus race entry -> Race"""
    return Race(
        race_id=str(data.get("trackID") or data.get("raceId") or ""),
        distance=_positive_int(data.get("distance")),
        cold_blood=bool(data.get("isColdBlood")),
        car_start=bool(data.get("isCarStart")),
        date=clean_text(str(data.get("date") or "")[:10]),
        runners=tuple(_runner_from_dict(r) for r in data.get("runners") or [] if isinstance(r, Mapping)),
    )


def _prior_start_to_dict(ps: PriorStart) -> Dict[str, Any]:
    return {
        "date": ps.date or None,
        "driver": ps.driver,
        "track": ps.track or None,
        "distance": ps.distance,
        "number": ps.post,
        "kmTime": ps.km_time,
        "frontShoes": None if ps.front_shoes == UNKNOWN else ps.front_shoes,
        "rearShoes": None if ps.rear_shoes == UNKNOWN else ps.rear_shoes,
        "specialCart": None if ps.special_cart == UNKNOWN else ps.special_cart,
        "isCarStart": ps.car_start,
        "break": ps.gait_fault,
        "disqualified": ps.disqualified,
        "DNF": ps.dnf,
        "trackCondition": ps.track_condition,
        "position": ps.position,
        "odd": ps.win_odds,
        "firstPrice": ps.first_prize,
    }


def race_to_dict(race: Race) -> Dict[str, Any]:
    """Race -> corpus race entry (inverse of race_from_dict)"""
    runners = []
    for r in race.runners:
        runners.append({
            "number": r.number,
            "name": r.name,
            "coach": r.coach,
            "driver": r.driver,
            "age": r.age,
            "gender": r.gender,
            "frontShoes": None if r.front_shoes == UNKNOWN else r.front_shoes,
            "rearShoes": None if r.rear_shoes == UNKNOWN else r.rear_shoes,
            "frontShoesChanged": r.front_shoes_changed,
            "rearShoesChanged": r.rear_shoes_changed,
            "specialCart": None if r.special_cart == UNKNOWN else r.special_cart,
            "scratched": r.scratched,
            "winPercentage": round(r.win_fraction * 100.0, 6) if r.win_fraction > 0 else None,
            "bettingPercentage": round(r.betting_fraction * 100.0, 6) if r.betting_fraction > 0 else None,
            "record": r.record,
            "isAutoRecord": r.record_from_car_start,
            "position": r.position,
            "prevStarts": [_prior_start_to_dict(ps) for ps in r.prior_starts],
        })
    return {
        "trackID": race.race_id,
        "distance": race.distance,
        "isColdBlood": race.cold_blood,
        "isCarStart": race.car_start,
        "date": race.date,
        "runners": runners,
    }


def load_corpus(path: Union[str, Path]) -> List[Race]:
    """
    Read the training corpus JSON written by the scraper.

    Returns:
        Races in file order (the identity maps are assigned in this order)
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)

    entries = raw.get("races", []) if isinstance(raw, Mapping) else raw
    races = [race_from_dict(entry) for entry in entries if isinstance(entry, Mapping)]
    logger.info(f"Loaded {len(races):,} races from {path}")
    return races


def save_corpus(races: Iterable[Race], path: Union[str, Path]) -> int:
    """Write races in the corpus layout. Returns the number of races written"""
    entries = [race_to_dict(race) for race in races]
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump({"races": entries}, f, ensure_ascii=False)
    logger.info(f"Saved {len(entries):,} races to {path}")
    return len(entries)
