"""Century label lookup.

Episodes may carry a coarse era label such as ``"19th Century"`` or
``"5th century BC"`` in a lookup keyed by episode number. Labels are
converted to inclusive year ranges for the rule-based fallback. Negative
years are BCE; there is no year zero.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Dict, Optional

from .exceptions import EnrichmentInputError
from .models import YearRange
from .utils.filesystem import read_json

logger = logging.getLogger(__name__)

_ERA = r"(?:\s*(?P<era>b\.?\s?c\.?(?:\s?e\.?)?|a\.?\s?d\.?|c\.?\s?e\.?))?"
_QUALIFIER = (
    r"(?:(?P<qualifier>early|mid|middle|late|(?:first|second)\s+half(?:\s+of)?)[\s-]+)?"
)

_CENTURY = re.compile(
    rf"^(?:the\s+)?{_QUALIFIER}(?:the\s+)?(?P<n>\d{{1,2}})(?:st|nd|rd|th)\s+century{_ERA}$",
    re.IGNORECASE,
)
_MILLENNIUM = re.compile(
    rf"^(?:the\s+)?{_QUALIFIER}(?:the\s+)?(?P<n>\d)(?:st|nd|rd|th)\s+millenn?ium{_ERA}$",
    re.IGNORECASE,
)
_DECADE = re.compile(r"^(?:the\s+)?(?P<decade>\d{3}0)'?s$", re.IGNORECASE)
_YEAR_RANGE = re.compile(
    rf"^(?P<a>\d{{1,4}}){_ERA.replace('era', 'era_a')}\s*[-–—]\s*(?P<b>\d{{1,4}}){_ERA}$",
    re.IGNORECASE,
)
_YEAR = re.compile(rf"^(?:(?P<prefix>a\.?\s?d\.?)\s*)?(?P<year>\d{{1,4}}){_ERA}$", re.IGNORECASE)


def _is_bce(era: Optional[str]) -> bool:
    return bool(era) and era.lower().lstrip().startswith("b")


def _signed(year: int, era: Optional[str]) -> int:
    return -year if _is_bce(era) else year


def _apply_qualifier(span: YearRange, qualifier: Optional[str]) -> YearRange:
    """Narrow a chronological span to its early/mid/late third or half."""
    if not qualifier:
        return span
    word = qualifier.lower().split()[0]
    width = span.end - span.start + 1
    if word in ("first", "second"):
        half = width // 2
        if word == "first":
            return YearRange(span.start, span.start + half - 1)
        return YearRange(span.start + half, span.end)
    third = width // 3
    if word == "early":
        return YearRange(span.start, span.start + third - 1)
    if word in ("mid", "middle"):
        return YearRange(span.start + third, span.end - third)
    return YearRange(span.end - third + 1, span.end)


def _period_span(n: int, size: int, bce: bool) -> YearRange:
    """Span of the n-th century (size 100) or millennium (size 1000)."""
    if bce:
        return YearRange(-n * size, -((n - 1) * size + 1))
    return YearRange(max(1, (n - 1) * size), (n - 1) * size + size - 1)


def century_label_to_range(label: Optional[str]) -> Optional[YearRange]:
    """Convert a century-style label into an inclusive year range.

    Recognised forms (case-insensitive):

    - ``"19th Century"`` -> 1800..1899, ``"5th century BC"`` -> -500..-401
    - ``"Early 20th Century"``, ``"Mid 18th century"``, ``"Late 15th Century"``
      (thirds), ``"First half of the 17th century"`` (halves)
    - ``"1st Millennium BCE"`` -> -1000..-1, ``"2nd millennium"`` -> 1000..1999
    - ``"1960s"`` -> 1960..1969 (a ``"1800s"`` label is the whole century)
    - ``"1914-1918"``, ``"1492"``, ``"44 BC"``, ``"AD 79"``

    Returns:
        The range, or None for anything unrecognised.

    Example:
        >>> century_label_to_range("5th century BC")
        YearRange(start=-500, end=-401)
    """
    if not label:
        return None
    text = re.sub(r"\s+", " ", label.strip())
    if not text:
        return None

    match = _CENTURY.match(text)
    if match:
        n = int(match.group("n"))
        if n < 1:
            return None
        span = _period_span(n, 100, _is_bce(match.group("era")))
        return _apply_qualifier(span, match.group("qualifier"))

    match = _MILLENNIUM.match(text)
    if match:
        n = int(match.group("n"))
        if n < 1:
            return None
        span = _period_span(n, 1000, _is_bce(match.group("era")))
        return _apply_qualifier(span, match.group("qualifier"))

    match = _DECADE.match(text)
    if match:
        start = int(match.group("decade"))
        if start % 100 == 0:
            return YearRange(max(1, start), start + 99)
        return YearRange(start, start + 9)

    match = _YEAR_RANGE.match(text)
    if match:
        end_era = match.group("era")
        start_era = match.group("era_a") or end_era
        start = _signed(int(match.group("a")), start_era)
        end = _signed(int(match.group("b")), end_era)
        return YearRange(min(start, end), max(start, end))

    match = _YEAR.match(text)
    if match:
        year = int(match.group("year"))
        if year == 0:
            return None
        value = _signed(year, match.group("era"))
        return YearRange(value, value)

    return None


def load_century_map(path: Path) -> Dict[int, str]:
    """Load the century label lookup keyed by episode number.

    A missing file is an empty lookup. Blank labels are dropped.

    Raises:
        EnrichmentInputError: If the file is not a JSON object of labels
            keyed by episode number
    """
    if not path.exists():
        logger.debug("No century map at %s", path)
        return {}
    try:
        data = read_json(path)
    except (OSError, json.JSONDecodeError) as exc:
        raise EnrichmentInputError(f"Century map could not be read: {exc}", str(path)) from exc
    if not isinstance(data, dict):
        raise EnrichmentInputError("Century map must be a JSON object", str(path))

    result: Dict[int, str] = {}
    for raw_key, label in data.items():
        try:
            episode = int(raw_key)
        except ValueError as exc:
            raise EnrichmentInputError(
                f"Century map key {raw_key!r} is not an episode number", str(path)
            ) from exc
        if label is None:
            continue
        if not isinstance(label, str):
            raise EnrichmentInputError(
                f"Century label for episode {episode} must be a string", str(path)
            )
        if label.strip():
            result[episode] = label.strip()
    logger.debug("Loaded %d century label(s) from %s", len(result), path)
    return result
