"""Utility functions shared across the reconquest pipeline."""
from __future__ import annotations

import math
import re
import unicodedata
from typing import Optional

from rapidfuzz.distance import Levenshtein

UNKNOWN_CLIENT = "Client inconnu"

_LIGATURES = {"œ": "oe", "Œ": "OE", "æ": "ae", "Æ": "AE", "’": "'", "‘": "'", "`": "'"}
_NON_ALNUM = re.compile(r"[^A-Z0-9\s]")
_SPACES = re.compile(r"\s+")


def fold_text(value: Optional[str]) -> str:
    """Lowercase, strip accents and collapse whitespace for keyword matching."""
    if not value:
        return ""
    for src, dst in _LIGATURES.items():
        value = value.replace(src, dst)
    decomposed = unicodedata.normalize("NFKD", value)
    ascii_only = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _SPACES.sub(" ", ascii_only.lower()).strip()


def normalize_product_name(value: Optional[str]) -> str:
    """Uppercase and replace every non-alphanumeric character by a single space.

    "Sopralène flam 180-25" -> "SOPRALENE FLAM 180 25"
    """
    if not value:
        return ""
    upper = fold_text(value).upper()
    return _SPACES.sub(" ", _NON_ALNUM.sub(" ", upper)).strip()


def similarity(a: str, b: str) -> int:
    """Edit-distance similarity in percent, 100 when both strings are empty."""
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 100
    distance = Levenshtein.distance(a, b)
    return round((1 - distance / max_len) * 100)


def as_flag(value: object) -> Optional[bool]:
    """Coerce upstream boolean-like values ("true"/"false" strings included)."""
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        return None
    if isinstance(value, (int, float)):
        return bool(value)
    return None


def safe_amount(value: object) -> float:
    """Convert to float if possible, else 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = re.sub(r"[\s €]", "", value)
        # Both separators present: the rightmost one is the decimal separator
        if "," in value and "." in value:
            if value.rindex(",") > value.rindex("."):
                value = value.replace(".", "").replace(",", ".")
            else:
                value = value.replace(",", "")
        else:
            value = value.replace(",", ".")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(amount):
        return 0.0
    return amount
