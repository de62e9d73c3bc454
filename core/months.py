"""
Month key normalization and arithmetic.

Historical capacity files mix several date spellings. Everything is reduced
to a canonical ``MM/YYYY`` key that sorts and compares by (year, month).
"""
import re
from typing import Optional, Tuple

# Tried in order; each pattern yields (month, year).
_MONTH_YEAR = re.compile(r"^(\d{1,2})/(\d{4})$")
_DAY_MONTH_YEAR = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_DAY_MONTH_YEAR_DASH = re.compile(r"^(\d{2})-(\d{2})-(\d{4})$")


def format_month_key(year: int, month: int) -> str:
    return f"{month:02d}/{year}"


def normalize_month(value: Optional[str]) -> Optional[str]:
    """
    Convert a date-like string into a ``MM/YYYY`` key.

    Accepted shapes: M/YYYY, MM/YYYY, D/M/YYYY, DD/MM/YYYY, DD-MM-YYYY
    (the day part is discarded). Month numbers outside 1-12 are rejected.

    Returns:
        The canonical key, or None when the value is not a recognizable month

    Examples:
        >>> normalize_month("1/2023")
        '01/2023'
        >>> normalize_month("31/12/2022")
        '12/2022'
        >>> normalize_month("13-01-2023")
        '01/2023'
        >>> normalize_month("2023-01") is None
        True
    """
    if value is None:
        return None
    s = str(value).strip()

    m = _MONTH_YEAR.match(s)
    if m:
        month, year = int(m.group(1)), int(m.group(2))
    else:
        m = _DAY_MONTH_YEAR.match(s) or _DAY_MONTH_YEAR_DASH.match(s)
        if not m:
            return None
        month, year = int(m.group(2)), int(m.group(3))

    if not 1 <= month <= 12:
        return None
    return format_month_key(year, month)


def parse_month_key(key: str) -> Tuple[int, int]:
    """
    Split a canonical key into (year, month) integers.

    Raises:
        ValueError: If ``key`` is not of the form MM/YYYY
    """
    month_part, sep, year_part = key.partition("/")
    if not sep:
        raise ValueError(f"Not a month key: {key!r}")
    return int(year_part), int(month_part)


def month_sort_key(key: str) -> Tuple[int, int]:
    return parse_month_key(key)


def compare_months(a: str, b: str) -> int:
    """Negative if ``a`` precedes ``b``, zero if equal, positive otherwise."""
    ya, ma = parse_month_key(a)
    yb, mb = parse_month_key(b)
    if ya != yb:
        return ya - yb
    return ma - mb


def minus_months(key: str, n: int) -> str:
    """
    Step ``n`` months back from ``key``, borrowing from the year.

    Years may go to zero or below for very large ``n``; the result is still
    a well-formed key.

    Examples:
        >>> minus_months("03/2024", 3)
        '12/2023'
        >>> minus_months("01/2024", 0)
        '01/2024'
    """
    if n < 0:
        raise ValueError(f"n must be non-negative, got {n}")
    year, month = parse_month_key(key)
    years_back, months_back = divmod(n, 12)
    month -= months_back
    year -= years_back
    if month < 1:
        month += 12
        year -= 1
    return format_month_key(year, month)
