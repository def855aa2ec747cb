"""Persistent series inference cache.

The cache file holds one of two shapes:

- **modern**: ``{seriesKey: SeriesCacheEntry}`` with a literal ``version`` tag
- **legacy**: ``{episodeSlug: LegacyCacheEntry}`` from the per-episode generation

The shape is resolved once at load time into a ``CacheState``. Everything
downstream works on modern entries only; legacy entries are translated per
seed by ``promote_legacy_entries`` and never written back.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Literal, Mapping, Optional

from pydantic import ValidationError

from ..config_constants import CACHE_SCHEMA_VERSION, FALLBACK_CONFIDENCE
from ..exceptions import CacheValidationError
from ..models import SeriesSeed
from ..schemas import (
    BOUNDED_SCOPES,
    LegacyCacheAdapter,
    LegacyCacheEntry,
    Scope,
    Series,
    SeriesCacheAdapter,
    SeriesCacheEntry,
)
from ..utils.filesystem import read_json
from ..utils.text import average, median, sanitize_year, to_kebab_case, to_title_case

logger = logging.getLogger(__name__)

CacheKind = Literal["empty", "modern", "legacy"]


@dataclass
class CacheState:
    """Loaded cache, tagged with the shape it was read from.

    Attributes:
        kind: ``empty`` (no file or refresh), ``modern`` or ``legacy``.
        entries: Modern entries keyed by series key (empty unless modern).
        legacy: Legacy entries keyed by episode slug (None unless legacy).
    """

    kind: CacheKind = "empty"
    entries: Dict[str, SeriesCacheEntry] = field(default_factory=dict)
    legacy: Optional[Dict[str, LegacyCacheEntry]] = None


def load_inference_cache(path: Path) -> CacheState:
    """Load the cache file, detecting its shape.

    Args:
        path: Cache file path

    Returns:
        CacheState; a missing file yields an empty state

    Raises:
        CacheValidationError: If the file is unreadable or matches neither shape
    """
    if not path.exists():
        logger.debug("Inference cache miss: no file at %s", path)
        return CacheState()

    try:
        data: Any = read_json(path)
    except (OSError, json.JSONDecodeError) as exc:
        raise CacheValidationError(str(path)) from exc

    try:
        entries = SeriesCacheAdapter.validate_python(data)
    except ValidationError as modern_error:
        try:
            legacy = LegacyCacheAdapter.validate_python(data)
        except ValidationError:
            logger.debug("Inference cache failed modern validation: %s", modern_error)
            raise CacheValidationError(str(path)) from modern_error
        logger.info("Loaded legacy inference cache with %d episode entries", len(legacy))
        return CacheState(kind="legacy", legacy=legacy)

    logger.debug("Loaded inference cache with %d series entries", len(entries))
    return CacheState(kind="modern", entries=entries)


def lookup_previous_key(seed: SeriesSeed, previous_by_slug: Mapping[str, Series]) -> Optional[str]:
    """Key of the previous run's series containing one of the seed's episodes.

    Members are tried in episode order; the first match wins.
    """
    for slug in seed.slugs:
        previous = previous_by_slug.get(slug)
        if previous is not None:
            return previous.key
    return None


def lookup_cached_entry(
    seed: SeriesSeed, state: CacheState, previous_by_slug: Mapping[str, Series]
) -> Optional[SeriesCacheEntry]:
    """Modern cache entry for a seed, found through its previous series key."""
    if not state.entries:
        return None
    previous_key = lookup_previous_key(seed, previous_by_slug)
    if previous_key is None:
        return None
    return state.entries.get(previous_key)


def promote_legacy_entries(
    seed: SeriesSeed, legacy: Mapping[str, LegacyCacheEntry]
) -> Optional[SeriesCacheEntry]:
    """Aggregate a seed's per-episode legacy entries into one series entry.

    Title is the first non-empty legacy title (else the provisional stem);
    umbrella is the first non-empty ``umbrellas[0]``, title-cased (else the
    title). Bounds are the min/max of the legacy bounds, the primary year is
    their median, scope is the first bounded legacy scope (else derived from
    the bounds) and confidence is the mean (else the fallback constant).

    Returns:
        A modern entry treated like a cache hit, or None when none of the
        seed's episodes has a legacy entry.
    """
    entries = [legacy[slug] for slug in seed.slugs if slug in legacy]
    if not entries:
        return None

    titles = [e.series_title.strip() for e in entries if e.series_title and e.series_title.strip()]
    title = titles[0] if titles else seed.provisional_stem
    umbrella = next(
        (e.umbrellas[0] for e in entries if e.umbrellas and e.umbrellas[0].strip()),
        None,
    )
    umbrella_key = to_kebab_case(umbrella if umbrella is not None else title)
    umbrella_title = to_title_case(umbrella) if umbrella is not None else title

    from_values = [v for v in (sanitize_year(e.year_from) for e in entries) if v is not None]
    to_values = [v for v in (sanitize_year(e.year_to) for e in entries) if v is not None]
    primary_values = [v for v in (sanitize_year(e.year_primary) for e in entries) if v is not None]
    confidences = [e.confidence for e in entries if e.confidence is not None]

    year_from = min(from_values) if from_values else None
    year_to = max(to_values) if to_values else None
    year_primary = median(primary_values)

    scope: Scope = next((e.scope for e in entries if e.scope in BOUNDED_SCOPES), "unknown")
    bounded = year_from is not None and year_to is not None
    if scope == "unknown" and bounded and year_from != year_to:
        scope = "range"

    confidence = average(confidences)
    logger.debug("Promoted %d legacy entries for seed %r", len(entries), seed.detection_key)
    return SeriesCacheEntry(
        title=title,
        umbrella_key=umbrella_key,
        umbrella_title=umbrella_title,
        year_primary=sanitize_year(year_primary),
        year_from=sanitize_year(year_from),
        year_to=sanitize_year(year_to),
        scope=scope,
        confidence=confidence if confidence is not None else FALLBACK_CONFIDENCE,
        source="llm",
        version=CACHE_SCHEMA_VERSION,
    )


def build_cache_entry(series: Series) -> SeriesCacheEntry:
    """Cache entry recording a resolved series' final values."""
    return SeriesCacheEntry(
        title=series.title,
        umbrella_key=series.umbrella_key,
        umbrella_title=series.umbrella_title,
        year_primary=series.year_primary,
        year_from=series.year_from,
        year_to=series.year_to,
        scope=series.scope,
        confidence=series.confidence,
        source=series.source,
        version=CACHE_SCHEMA_VERSION,
    )


def serialize_cache(entries: Mapping[str, SeriesCacheEntry]) -> Dict[str, Dict[str, Any]]:
    """Modern cache document, keyed and ordered by series key."""
    return {key: entries[key].to_dict() for key in sorted(entries)}
