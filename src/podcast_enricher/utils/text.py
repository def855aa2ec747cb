"""Text, date and number helpers shared by the enrichment stages."""

from __future__ import annotations

import math
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Iterable, List, Optional, Sequence, TypeVar

from ..config_constants import MAX_SANE_YEAR, MIN_SANE_YEAR

T = TypeVar("T")

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_STEM_EDGE_TRAILING = re.compile(r"[\s\-:–—]+$")
_STEM_EDGE_LEADING = re.compile(r"^[\s\-:–—]+")
_ROMAN_VALUES = {"i": 1, "v": 5, "x": 10, "l": 50, "c": 100, "d": 500, "m": 1000}
_ROMAN_CANONICAL = re.compile(r"^m{0,4}(cm|cd|d?c{0,3})(xc|xl|l?x{0,3})(ix|iv|v?i{0,3})$")
SECONDS_PER_DAY = 60 * 60 * 24


def slugify(text: str) -> str:
    """Lowercase ``text`` and collapse every non-alphanumeric run into ``-``."""
    return _NON_ALNUM.sub("-", text.lower()).strip("-")


to_kebab_case = slugify


def clean_title_stem(stem: str) -> str:
    """Strip separators (dashes, colons, whitespace) from both ends of a stem."""
    stem = _STEM_EDGE_TRAILING.sub("", stem)
    stem = _STEM_EDGE_LEADING.sub("", stem)
    return stem.strip()


def to_title_case(value: str) -> str:
    """Capitalize every whitespace-separated word, lowercasing the rest."""
    words = [word.lower().capitalize() for word in value.split()]
    return " ".join(words).strip()


def roman_to_int(value: str) -> Optional[int]:
    """Convert a roman numeral (any case) to an integer.

    Returns:
        The integer value, or None when ``value`` is not a well-formed numeral.
    """
    numeral = value.strip().lower()
    if not numeral or not _ROMAN_CANONICAL.match(numeral):
        return None
    total = 0
    for index, char in enumerate(numeral):
        current = _ROMAN_VALUES[char]
        following = _ROMAN_VALUES[numeral[index + 1]] if index + 1 < len(numeral) else 0
        total += -current if current < following else current
    return total or None


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 or RFC 2822 date into an aware UTC datetime."""
    if not value or not value.strip():
        return None
    text = value.strip()
    parsed: Optional[datetime] = None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = parsedate_to_datetime(text)
        except (TypeError, ValueError, IndexError):
            return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def days_between(a: Optional[datetime], b: Optional[datetime]) -> Optional[int]:
    """Rounded absolute number of days between two datetimes."""
    if a is None or b is None:
        return None
    return round(abs((a - b).total_seconds()) / SECONDS_PER_DAY)


def median(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 0:
        return (ordered[mid - 1] + ordered[mid]) / 2
    return ordered[mid]


def average(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    return sum(values) / len(values)


def clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def unique_sorted(values: Iterable[T]) -> List[T]:
    return sorted(set(values))  # type: ignore[type-var]


def sanitize_year(value: object) -> Optional[int]:
    """Coerce a year-like value to an int, rejecting NaN and absurd values.

    Booleans and non-numeric values are treated as missing. Fractional values
    (e.g. the median of two years) are truncated toward zero.
    """
    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return None
    if value < MIN_SANE_YEAR or value > MAX_SANE_YEAR:
        return None
    return int(value)
