"""Heuristic locale detection for dream text.

Only two locales are supported. The result is a best guess used to stamp
migrated records, not a guarantee.
"""

from __future__ import annotations

import re
from typing import Literal

Language = Literal["tr", "en"]

TURKISH_CHARS = re.compile(r"[çğıöşüÇĞİÖŞÜ]")
TURKISH_WORDS = frozenset({"ve", "bir", "bu", "için", "ile", "ben", "sen", "rüya", "gördüm", "idi"})
MAX_WORDS = 50
MIN_WORD_HITS = 2


def detect_language(text: str) -> Language:
    if not text:
        return "tr"

    if TURKISH_CHARS.search(text):
        return "tr"

    words = text.lower().split()[:MAX_WORDS]
    hits = sum(1 for word in words if word in TURKISH_WORDS)
    return "tr" if hits >= MIN_WORD_HITS else "en"
