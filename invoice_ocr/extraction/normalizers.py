"""Normalization of individual field values.

Both functions are total: malformed input is returned as-is (dates) or
stripped of what can be stripped (amounts), never rejected.
"""

import re

_CANONICAL_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Tried in order; the first match wins
_DATE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"(\d{4})\s*年\s*(\d{1,2})\s*月\s*(\d{1,2})\s*日"),
    re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})"),
    re.compile(r"(\d{4})(\d{2})(\d{2})"),
    re.compile(r"(\d{4})[/.\-](\d{1,2})[/.\-](\d{1,2})"),
]

_AMOUNT_NOISE = re.compile(r"[¥￥$,，\s]")


def normalize_date(value: str) -> str:
    """Convert a recognized date to ``YYYY-MM-DD``.

    Accepts ``2026年3月5日``, ``2026-3-5``, ``20260305`` and
    ``2026/3/5`` or ``2026.3.5``.

    Args:
        value: Date string as recognized.

    Returns:
        Zero-padded ISO date, or the input unchanged when no pattern fits.
    """
    if not value:
        return ""

    value = value.strip()
    if _CANONICAL_DATE.match(value):
        return value

    for pattern in _DATE_PATTERNS:
        match = pattern.search(value)
        if match:
            year, month, day = match.groups()
            return f"{year}-{int(month):02d}-{int(day):02d}"

    return value


def clean_amount(value: str) -> str:
    """Strip currency glyphs, thousands separators and whitespace.

    The result stays a string; callers decide on the numeric type.

    Args:
        value: Amount as recognized, e.g. ``"¥1,234.56"``.

    Returns:
        Bare numeric string such as ``"1234.56"``.
    """
    if not value:
        return ""
    return _AMOUNT_NOISE.sub("", str(value))
