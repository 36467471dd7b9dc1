# -*- coding: utf-8 -*-
"""
identity.py - Coach / driver / track name -> integer ID

【Namespaces】
- coaches: full lower-cased name
- drivers: lower-cased surname (last whitespace-separated token), so
           "Mika Forss" and "M Forss" share one ID
- tracks:  full lower-cased track code

IDs start at 1 in every namespace. 0 means "placeholder or unseen".

【Modes】
- IdentityMapBuilder: training only. Unseen keys get the next integer.
- IdentityMaps:       immutable snapshot. Unseen keys resolve to 0 and the
                      snapshot is never modified, so one instance can be
                      shared by concurrent inference calls.

Persisted layout (mappings.json):
    {"version": 1,
     "coaches": {...}, "drivers": {...}, "tracks": {...},
     "counts": {"c": <next coach id>, "d": <next driver id>, "t": <next track id>}}
"""

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from .errors import MappingSchemaError

logger = logging.getLogger(__name__)

MAPPINGS_VERSION = 1

COACH = "coaches"
DRIVER = "drivers"
TRACK = "tracks"
NAMESPACES = (COACH, DRIVER, TRACK)

# counter keys of the persisted layout
_COUNTER_KEYS = {COACH: "c", DRIVER: "d", TRACK: "t"}

_PLACEHOLDERS = ("", "unknown", "0")


def identity_key(name: Any, kind: str) -> Optional[str]:
    """
    Lookup key of a name, None for placeholders.

    >>> identity_key("Mika Forss", "drivers")
    'forss'
    >>> identity_key(" Vermo ", "tracks")
    'vermo'
    """
    if kind not in NAMESPACES:
        raise ValueError(f"Unknown identity namespace: {kind}")
    if name is None:
        return None
    text = str(name).strip().lower()
    if text in _PLACEHOLDERS:
        return None
    if kind == DRIVER:
        return text.split()[-1]
    return text


class IdentityMaps:
    """Read-only snapshot of the three namespaces"""

    def __init__(
        self,
        tables: Mapping[str, Mapping[str, int]],
        counters: Mapping[str, int],
        version: int = MAPPINGS_VERSION,
    ):
        for ns in NAMESPACES:
            if ns not in tables:
                raise MappingSchemaError(f"identity maps missing namespace '{ns}'")
            if ns not in counters:
                raise MappingSchemaError(f"identity maps missing counter for '{ns}'")

        self._tables = MappingProxyType({ns: MappingProxyType(dict(tables[ns])) for ns in NAMESPACES})
        self._counters = MappingProxyType({ns: int(counters[ns]) for ns in NAMESPACES})
        self.version = version

    @classmethod
    def empty(cls) -> "IdentityMaps":
        return cls({ns: {} for ns in NAMESPACES}, {ns: 1 for ns in NAMESPACES})

    def resolve(self, name: Any, kind: str) -> int:
        """ID of a name; 0 for placeholders and names not seen in training"""
        key = identity_key(name, kind)
        if key is None:
            return 0
        return self._tables[kind].get(key, 0)

    def table(self, kind: str) -> Mapping[str, int]:
        return self._tables[kind]

    def next_id(self, kind: str) -> int:
        return self._counters[kind]

    def __len__(self) -> int:
        return sum(len(t) for t in self._tables.values())

    def __eq__(self, other) -> bool:
        if not isinstance(other, IdentityMaps):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        sizes = ", ".join(f"{ns}={len(self._tables[ns])}" for ns in NAMESPACES)
        return f"IdentityMaps({sizes})"

    # -------------------------------------------------------------------------
    # persistence
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"version": self.version}
        for ns in NAMESPACES:
            data[ns] = dict(self._tables[ns])
        data["counts"] = {_COUNTER_KEYS[ns]: self._counters[ns] for ns in NAMESPACES}
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "IdentityMaps":
        """
        Raises:
            MappingSchemaError: a namespace or counter is missing, not a table,
                or holds a value that is not an integer
        """
        if not isinstance(data, Mapping):
            raise MappingSchemaError("identity maps must be a JSON object")

        counts = data.get("counts")
        if not isinstance(counts, Mapping):
            raise MappingSchemaError("identity maps missing 'counts'")

        tables = {}
        counters = {}
        for ns in NAMESPACES:
            table = data.get(ns)
            if not isinstance(table, Mapping):
                raise MappingSchemaError(f"identity maps missing namespace '{ns}'")
            counter = counts.get(_COUNTER_KEYS[ns])
            if counter is None:
                raise MappingSchemaError(f"identity maps missing counter '{_COUNTER_KEYS[ns]}'")
            try:
                tables[ns] = {str(k): int(v) for k, v in table.items()}
                counters[ns] = int(counter)
            except (TypeError, ValueError) as e:
                raise MappingSchemaError(f"identity maps namespace '{ns}' malformed: {e}") from e

        try:
            version = int(data.get("version", MAPPINGS_VERSION))
        except (TypeError, ValueError) as e:
            raise MappingSchemaError(f"identity maps version malformed: {e}") from e
        return cls(tables, counters, version=version)

    def save(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, ensure_ascii=False, indent=2)
        logger.info(f"Saved identity maps: {self!r} -> {path}")
        return path

    @classmethod
    def load(cls, path: Union[str, Path]) -> "IdentityMaps":
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        maps = cls.from_dict(data)
        logger.info(f"Loaded identity maps: {maps!r} <- {path}")
        return maps


class IdentityMapBuilder:
    """
    Sequential, append-only map construction for the training corpus.

    IDs depend on the order of resolve() calls, so the corpus has to be
    walked in one fixed order (file order, then runner / history order).
    """

    def __init__(self, seed: Optional[IdentityMaps] = None):
        seed = seed or IdentityMaps.empty()
        self._tables: Dict[str, Dict[str, int]] = {ns: dict(seed.table(ns)) for ns in NAMESPACES}
        self._counters: Dict[str, int] = {ns: seed.next_id(ns) for ns in NAMESPACES}

    def resolve(self, name: Any, kind: str) -> int:
        key = identity_key(name, kind)
        if key is None:
            return 0
        table = self._tables[kind]
        if key not in table:
            table[key] = self._counters[kind]
            self._counters[kind] += 1
        return table[key]

    def freeze(self) -> IdentityMaps:
        return IdentityMaps(self._tables, self._counters)
