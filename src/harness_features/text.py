# -*- coding: utf-8 -*-
"""
text.py - Name normalisation for coach / driver / horse / track strings
"""

import re
from typing import Any

_TRANSLITERATION = str.maketrans({
    "ä": "a", "ö": "o", "å": "a",
    "Ä": "A", "Ö": "O", "Å": "A",
})

_DISALLOWED = re.compile(r"[^A-Za-z0-9 \-.:]")


def clean_text(value: Any) -> str:
    """
    ASCII-only, trimmed version of a free-text name.

    Scandinavian vowels are transliterated first, then every character other
    than letters, digits, space, hyphen, period and colon is dropped.

    >>> clean_text("  Jörgen Åström ")
    'Jorgen Astrom'
    >>> clean_text(None)
    ''
    """
    if value is None:
        return ""
    text = str(value)
    if not text:
        return ""
    text = text.translate(_TRANSLITERATION)
    return _DISALLOWED.sub("", text).strip()
