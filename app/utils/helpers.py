"""
Helpers for reading loosely-typed scraped values.
"""
import re
from typing import Any


def safe_str(value: Any, default: str = "") -> str:
    """str(value), or default for None."""
    if value is None:
        return default
    return str(value)


def safe_lower(value: Any) -> str:
    """Lowercased text; "" for None."""
    return safe_str(value).lower()


def safe_strip(value: Any) -> str:
    """Text without surrounding whitespace; "" for None."""
    return safe_str(value).strip()


_COUNT_RE = re.compile(r"(\d[\d,.]*)([KMB]?)\b", re.IGNORECASE)

_COUNT_MULTIPLIERS = {
    "": 1,
    "K": 1_000,
    "M": 1_000_000,
    "B": 1_000_000_000,
}


def parse_count(text: Any) -> int:
    """
    Parse an abbreviated count such as "1.2K watching" or "3,405 subscribers".

    Args:
        text: Display text containing a number with optional K/M/B suffix

    Returns:
        The count as an int, 0 if no number is found
    """
    match = _COUNT_RE.search(safe_strip(text))
    if not match:
        return 0
    digits = match.group(1).replace(",", "").rstrip(".")
    try:
        number = float(digits)
    except ValueError:
        return 0
    return int(round(number * _COUNT_MULTIPLIERS[match.group(2).upper()]))
