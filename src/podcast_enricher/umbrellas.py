"""Umbrella overrides and the umbrella index.

Umbrellas group resolved series under broad themes. The index is rebuilt from
the final series list on every run and never persisted as state of its own.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from pydantic import ValidationError

from .exceptions import EnrichmentInputError
from .schemas import (
    Series,
    Umbrella,
    UmbrellaIndex,
    UmbrellaOverride,
    UmbrellaOverridesAdapter,
    YearBounds,
)
from .utils.filesystem import read_json
from .utils.text import to_kebab_case

logger = logging.getLogger(__name__)

# Sorts missing years after every real year.
_NO_YEAR = float("inf")


def load_umbrella_overrides(path: Path) -> Dict[str, UmbrellaOverride]:
    """Load the override table ``{umbrellaKey: {key?, title?}}``.

    A missing file means no overrides.

    Raises:
        EnrichmentInputError: If the file is unreadable or fails validation
    """
    if not path.exists():
        return {}
    try:
        data = read_json(path)
        overrides = UmbrellaOverridesAdapter.validate_python(data)
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        raise EnrichmentInputError(
            f"Umbrella overrides failed validation: {exc}", str(path)
        ) from exc
    logger.debug("Loaded %d umbrella override(s) from %s", len(overrides), path)
    return overrides


def apply_umbrella_overrides(
    series_list: Sequence[Series], overrides: Mapping[str, UmbrellaOverride]
) -> List[Series]:
    """Rename umbrellas per the override table, marking provenance ``override``.

    Overrides are looked up by each series' current umbrella key. A ``key``
    override is kebab-cased; a missing ``key`` or ``title`` keeps the
    series' own value.
    """
    if not overrides:
        return list(series_list)
    result: List[Series] = []
    for series in series_list:
        override = overrides.get(series.umbrella_key)
        if override is None:
            result.append(series)
            continue
        next_key = to_kebab_case(override.key) if override.key else series.umbrella_key
        next_title = override.title if override.title is not None else series.umbrella_title
        result.append(
            series.model_copy(
                update={
                    "umbrella_key": next_key,
                    "umbrella_title": next_title,
                    "source": "override",
                }
            )
        )
    return result


def year_floor(series: Series) -> Optional[int]:
    """Best available lower year: yearFrom, else yearPrimary, else yearTo."""
    for value in (series.year_from, series.year_primary, series.year_to):
        if value is not None:
            return value
    return None


def year_ceiling(series: Series) -> Optional[int]:
    """Best available upper year: yearTo, else yearPrimary, else yearFrom."""
    for value in (series.year_to, series.year_primary, series.year_from):
        if value is not None:
            return value
    return None


def _or_last(value: Optional[int]) -> float:
    return _NO_YEAR if value is None else value


def build_umbrella_index(series_list: Sequence[Series]) -> UmbrellaIndex:
    """Group series by umbrella key.

    The umbrella title is taken from the first series seen with that key.
    Members sort by floor year, then lowest episode number, then key;
    umbrellas sort by minimum year, then key. Missing years sort last.
    """
    buckets: Dict[str, List[Series]] = {}
    titles: Dict[str, str] = {}
    for series in series_list:
        if series.umbrella_key not in buckets:
            buckets[series.umbrella_key] = []
            titles[series.umbrella_key] = series.umbrella_title
        buckets[series.umbrella_key].append(series)

    umbrellas: List[Umbrella] = []
    for key, members in buckets.items():
        floors = [year for year in (year_floor(item) for item in members) if year is not None]
        ceilings = [year for year in (year_ceiling(item) for item in members) if year is not None]
        ordered = sorted(
            members,
            key=lambda item: (
                _or_last(year_floor(item)),
                min(item.episode_numbers, default=0),
                item.key,
            ),
        )
        series_keys = [item.key for item in ordered]
        umbrellas.append(
            Umbrella(
                key=key,
                title=titles[key],
                series_keys=series_keys,
                years=YearBounds(
                    min=min(floors) if floors else None,
                    max=max(ceilings) if ceilings else None,
                ),
                count=len(series_keys),
            )
        )

    umbrellas.sort(key=lambda item: (_or_last(item.years.min), item.key))
    return UmbrellaIndex(umbrellas=umbrellas)
