"""
Numeric cell parsing for reconciliation.

Every mode and the classifier read cell values through ``parse_numeric`` so
there is exactly one interpretation of what a "number" looks like in a sheet:

- native ints/floats pass through (NaN is not a number)
- text containing Latin or CJK letters is rejected outright
- remaining text may only use digits, ``.``, ``,``, ``，``, parentheses,
  ``$``, ``%``/``％``, whitespace and ``-``
- thousands separators, ``$`` and whitespace are stripped
- percent signs are stripped without scaling ("12%" -> 12.0)
- "(500)" is accounting notation for -500
"""

from __future__ import annotations

import math
import numbers
import re
from typing import Any

LETTER_RE = re.compile(r"[A-Za-z一-龥]")
NUMERIC_CHARS_RE = re.compile(r"^[-0-9.,，()$%％\s]+$")
STRIP_RE = re.compile(r"[,，$\s]")
PERCENT_RE = re.compile(r"[%％]")


def parse_numeric(raw: Any) -> float | None:
    """Return the numeric value of a cell, or None when it is not numeric."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, numbers.Real):
        try:
            value = float(raw)
        except OverflowError:
            # ints too wide for a float
            return math.inf if raw > 0 else -math.inf
        return None if math.isnan(value) else value

    text = str(raw).strip()
    if not text:
        return None
    if LETTER_RE.search(text):
        return None
    if not NUMERIC_CHARS_RE.match(text):
        return None

    cleaned = PERCENT_RE.sub("", STRIP_RE.sub("", text))
    if cleaned.startswith("(") and cleaned.endswith(")"):
        cleaned = "-" + cleaned.replace("(", "").replace(")", "")

    try:
        value = float(cleaned)
    except ValueError:
        return None
    return None if math.isnan(value) else value


def is_numeric(raw: Any) -> bool:
    return parse_numeric(raw) is not None


def format_number(value: float) -> str:
    """Render a value with thousands separators and at most three decimals."""
    if math.isfinite(value) and float(value).is_integer():
        return f"{int(value):,}"
    text = f"{value:,.3f}".rstrip("0").rstrip(".")
    return "0" if text in {"-0", ""} else text
