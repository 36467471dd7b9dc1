# -*- coding: utf-8 -*-
"""
parsers.py - Field parsers for harness race records

All ad hoc encodings of the racing API are decoded here, once. The corpus
builder and the live inference builder both go through these functions, so a
rule changed here changes both paths together.

【Contract】
Every parser is total: absent or malformed input returns a defined "unknown"
result instead of raising. Callers pair the result with a known/unknown flag.

【Encodings】
- km time:       "15,5"  "15,5a" (car start)  "15,5x" (gait fault)
- result code:   "1" .. "16", letters h/d/p = disqualified, k = did not finish
- race record:   "15,2ke" / "12,6aly" - leading digits are the value
- shoes:         HAS_SHOES / NO_SHOES / true / false / 1 / 0
- percentages:   betPercentages.KAK.percentage is a percentage x 100
"""

import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional

from .config import DEFAULT_TRACK_CONDITIONS

# =============================================================================
# Symbolic states
# =============================================================================

HAS_SHOES = "HAS_SHOES"
NO_SHOES = "NO_SHOES"
UNKNOWN = "UNKNOWN"

CART_YES = "YES"
CART_NO = "NO"

DISQUALIFIED_POSITION = 20
DNF_POSITION = 21

_SHOE_SYNONYMS = {
    "HAS_SHOES": HAS_SHOES, "TRUE": HAS_SHOES, "YES": HAS_SHOES, "1": HAS_SHOES,
    "NO_SHOES": NO_SHOES, "FALSE": NO_SHOES, "NO": NO_SHOES, "0": NO_SHOES,
}

_GENDER_CODES = {
    "TAMMA": 1, "MARE": 1,
    "ORI": 3, "STALLION": 3,
}

_DISQUALIFIED_LETTERS = re.compile(r"[hdp]")
_DNF_LETTER = "k"
_CAR_START_MARKER = "a"
_GAIT_FAULT_MARKER = "x"

_KM_NUMBER = re.compile(r"\d+(?:,\d+)?")
_LEADING_RECORD = re.compile(r"^\s*(\d+(?:,\d+)?)")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_LEADING_FLOAT = re.compile(r"^\s*([+-]?\d+(?:\.\d+)?)")

CAR_START_RECORD_ORDER = ("mobileStartRecord", "handicapRaceRecord", "vaultStartRecord")
LINE_START_RECORD_ORDER = ("handicapRaceRecord", "mobileStartRecord", "vaultStartRecord")
CAR_START_RECORD_FIELD = "mobileStartRecord"


@dataclass(frozen=True)
class KmTime:
    """km time per kilometre (0.0 = unknown) and the two suffix markers"""
    value: float
    car_start: bool
    gait_fault: bool


@dataclass(frozen=True)
class FinishResult:
    """Parsed finishing outcome. position is None when not placed / unknown"""
    position: Optional[int]
    disqualified: bool
    dnf: bool


@dataclass(frozen=True)
class RaceRecord:
    """Best available race record. value is None when no record field parses"""
    value: Optional[float]
    from_car_start: bool


# =============================================================================
# Numeric coercion
# =============================================================================

def parse_int(value: Any) -> Optional[int]:
    """Leading integer of a value ("12", 12.0, "12m" -> 12); None otherwise"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    m = _LEADING_INT.match(str(value))
    return int(m.group(1)) if m else None


def parse_float(value: Any) -> Optional[float]:
    """Float of a value; comma is accepted as the decimal separator"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        result = float(value)
        return result if math.isfinite(result) else None
    text = str(value).strip().replace(",", ".")
    try:
        result = float(text)
    except ValueError:
        m = _LEADING_FLOAT.match(text)
        if not m:
            return None
        result = float(m.group(1))
    return result if math.isfinite(result) else None


def positive_or_none(value: Optional[float]) -> Optional[float]:
    return value if value is not None and value > 0 else None


# =============================================================================
# km time
# =============================================================================

def parse_km_time(raw: Any) -> KmTime:
    """
    km time string -> KmTime

    The numeric part is the first digit run with an optional comma decimal.
    Markers are detected anywhere in the string.

    >>> parse_km_time("15,5a")
    KmTime(value=15.5, car_start=True, gait_fault=False)
    """
    if raw is None:
        return KmTime(0.0, False, False)
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        value = parse_float(raw)
        return KmTime(value if value and value > 0 else 0.0, False, False)

    text = str(raw).lower()
    car_start = _CAR_START_MARKER in text
    gait_fault = _GAIT_FAULT_MARKER in text

    m = _KM_NUMBER.search(text)
    value = float(m.group(0).replace(",", ".")) if m else 0.0
    return KmTime(value, car_start, gait_fault)


def normalize_km_time(
    km: Optional[float],
    distance: Optional[float],
    divisor: float = 2000.0,
    anchor: float = 2100.0,
) -> Optional[float]:
    """
    Adjust a km time to its anchor-distance (2100 m) equivalent.

    km + (anchor - distance) / divisor. A missing or non-positive distance
    counts as the anchor. A missing or non-positive km passes through.
    """
    if km is None or km <= 0 or (isinstance(km, float) and math.isnan(km)):
        return km
    dist = distance if distance is not None and distance > 0 else anchor
    return km + (anchor - dist) / divisor


# =============================================================================
# Finishing position
# =============================================================================

def parse_finish_position(raw: Any) -> FinishResult:
    """
    Result code -> FinishResult

    "2"  -> position 2
    "d"  -> position 20, disqualified
    "k"  -> position 21, did not finish
    "-"  -> position None (not placed / unknown)
    """
    if raw is None or raw == "":
        return FinishResult(None, False, False)
    if isinstance(raw, int) and not isinstance(raw, bool):
        return FinishResult(raw, False, False)

    text = str(raw).strip().lower()
    disqualified = bool(_DISQUALIFIED_LETTERS.search(text))
    dnf = _DNF_LETTER in text

    m = re.match(r"^\d+", text)
    if m:
        position = int(m.group(0))
    elif disqualified:
        position = DISQUALIFIED_POSITION
    elif dnf:
        position = DNF_POSITION
    else:
        position = None
    return FinishResult(position, disqualified, dnf)


# =============================================================================
# Equipment / horse attributes
# =============================================================================

def parse_shoes(raw: Any) -> str:
    """Shoe status -> HAS_SHOES / NO_SHOES / UNKNOWN"""
    if raw is None:
        return UNKNOWN
    if isinstance(raw, bool):
        return HAS_SHOES if raw else NO_SHOES
    return _SHOE_SYNONYMS.get(str(raw).strip().upper(), UNKNOWN)


def shoe_flags(state: str):
    """(active, known) pair for a shoe state"""
    state = parse_shoes(state)
    return (1.0 if state == HAS_SHOES else 0.0, 0.0 if state == UNKNOWN else 1.0)


def parse_special_cart(raw: Any) -> str:
    """Special cart -> YES / NO / UNKNOWN"""
    if raw is None:
        return UNKNOWN
    if isinstance(raw, bool):
        return CART_YES if raw else CART_NO
    text = str(raw).strip().upper()
    return text if text in (CART_YES, CART_NO) else UNKNOWN


def cart_flags(state: str):
    """(active, known) pair for a special cart state"""
    state = parse_special_cart(state)
    return (1.0 if state == CART_YES else 0.0, 0.0 if state == UNKNOWN else 1.0)


def parse_gender(raw: Any) -> int:
    """mare = 1, gelding / unknown = 2, stallion = 3"""
    if raw is None:
        return 2
    return _GENDER_CODES.get(str(raw).strip().upper(), 2)


def is_cold_blood(breed: Any) -> bool:
    """Finnhorse (cold blood) vs. standardbred (warm blood)"""
    return str(breed or "").strip().upper() in ("K", "FINNHORSE")


def is_car_start(start_type: Any) -> bool:
    return str(start_type or "").strip().upper() in ("CAR_START", "AUTO")


# =============================================================================
# Race record
# =============================================================================

def parse_record_value(raw: Any) -> Optional[float]:
    """Leading numeric part of a record string ("15,2ke" -> 15.2)"""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return positive_or_none(parse_float(raw))
    m = _LEADING_RECORD.match(str(raw))
    if not m:
        return None
    return positive_or_none(float(m.group(1).replace(",", ".")))


def select_race_record(payload: Mapping[str, Any], car_start: bool) -> RaceRecord:
    """
    Best available race record for the current start type.

    Car starts prefer the car (mobile) start record, line starts the handicap
    record. The first field whose numeric part is positive wins.
    """
    order = CAR_START_RECORD_ORDER if car_start else LINE_START_RECORD_ORDER
    for key in order:
        value = parse_record_value(payload.get(key))
        if value is not None:
            return RaceRecord(value, key == CAR_START_RECORD_FIELD)
    return RaceRecord(None, False)


# =============================================================================
# Track condition
# =============================================================================

def encode_track_condition(
    raw: Any,
    vocabulary: Optional[Dict[str, float]] = None,
    neutral: float = 0.5,
) -> float:
    """Track condition -> 0.0 (heaviest) .. 1.0 (lightest); unknown = neutral"""
    if vocabulary is None:
        vocabulary = DEFAULT_TRACK_CONDITIONS
    key = str(raw or "").strip().lower()
    return vocabulary.get(key, neutral)


def parse_track_condition(raw: Any) -> Optional[str]:
    """Lower-cased condition text; None for missing / "unknown" """
    text = str(raw or "").strip().lower()
    return None if text in ("", "unknown") else text


# =============================================================================
# Market signals
# =============================================================================

def parse_betting_fraction(payload: Mapping[str, Any]) -> float:
    """
    Betting share of the runner in the current race as a 0-1 fraction.

    The API sends the percentage multiplied by 100 (2534 = 25.34 %).
    """
    pools = payload.get("betPercentages")
    pool = pools.get("KAK") if isinstance(pools, Mapping) else None
    if not isinstance(pool, Mapping):
        return 0.0
    value = parse_float(pool.get("percentage"))
    if value is None or value <= 0:
        return 0.0
    return value / 100.0 / 100.0


def parse_win_fraction(payload: Mapping[str, Any]) -> float:
    """Historical win share (0-1) from the runner's total statistics"""
    stats = payload.get("stats") or payload.get("statistics") or {}
    total = stats.get("total") if isinstance(stats, Mapping) else None
    if not isinstance(total, Mapping):
        return 0.0

    winning_percent = parse_float(total.get("winningPercent"))
    if winning_percent is not None:
        return max(winning_percent, 0.0) / 100.0

    starts = parse_int(total.get("starts") or total.get("startCount")) or 0
    wins = parse_int(total.get("position1") or total.get("wins")) or 0
    if starts > 0 and wins > 0:
        return round(wins / starts, 4)
    return 0.0


def parse_tote_result(raw: Any) -> List[int]:
    """Race result string "5-3-8" -> start numbers in finishing order"""
    if not raw:
        return []
    numbers = []
    for token in str(raw).split("-"):
        value = parse_int(token.strip())
        if value is not None:
            numbers.append(value)
    return numbers


# =============================================================================
# Dates
# =============================================================================

def parse_race_date(raw: Any) -> Optional[date]:
    """
    Date text -> date

    Accepts "2026-01-31", "2026-01-31T18:00:00", "31.1.26" and "31.1.2026".
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw

    text = str(raw).strip()
    if text in ("", "0", "NaT"):
        return None
    try:
        if "-" in text:
            return date.fromisoformat(text[:10])
        if "." in text:
            day, month, year = (int(p) for p in text.split(".")[:3])
            if year < 100:
                year += 2000
            return date(year, month, day)
    except (ValueError, OverflowError):
        return None
    return None


def days_since(
    race_date: Any,
    start_date: Any,
    cap: float = 365.0,
    default: float = 30.0,
) -> float:
    """Days between a prior start and the race, clamped to [0, cap]"""
    current = parse_race_date(race_date)
    previous = parse_race_date(start_date)
    if current is None or previous is None:
        return default
    days = (current - previous).days
    return float(min(cap, max(0, days)))
