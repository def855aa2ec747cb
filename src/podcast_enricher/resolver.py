"""Resolve each seed's title, umbrella, year span, scope and confidence.

Per seed, in priority order:

1. A judgement replayed from the cache (or promoted from the legacy cache)
2. A fresh judgement from the language model
3. A rule-based fallback from the episodes' own prior year fields, or from
   their century labels

Model judgements below ``LOW_CONFIDENCE_THRESHOLD`` are blended: the rule
fallback's bounds and scope replace the model's and the confidence is capped
at the threshold. Judgements replayed from the cache with another provenance
are used verbatim. Every result is normalized before it leaves this module.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass
from typing import List, Optional

from .century import century_label_to_range
from .config_constants import FALLBACK_CONFIDENCE, LOW_CONFIDENCE_THRESHOLD
from .models import SeriesSeed, YearEstimate
from .schemas import BOUNDED_SCOPES, Scope, SeriesCacheEntry, SeriesInference, SeriesSource
from .utils.text import average, clamp, median, sanitize_year, to_kebab_case

logger = logging.getLogger(__name__)


@dataclass
class Judgement:
    """A series judgement from the model or the cache, before resolution.

    Attributes:
        title: Proposed series title (blank falls back to the provisional stem).
        umbrella_title: Proposed umbrella title (blank falls back to the title).
        umbrella_key: Umbrella key recorded in the cache, if replayed.
        year_primary: Proposed representative year.
        year_from: Proposed lower bound.
        year_to: Proposed upper bound.
        scope: Proposed scope.
        confidence: Proposed confidence, or None when unknown.
        source: Provenance; only ``llm`` judgements are confidence-gated.
    """

    title: Optional[str]
    umbrella_title: Optional[str]
    umbrella_key: Optional[str]
    year_primary: Optional[int]
    year_from: Optional[int]
    year_to: Optional[int]
    scope: Scope
    confidence: Optional[float]
    source: SeriesSource = "llm"

    @classmethod
    def from_inference(cls, inference: SeriesInference) -> "Judgement":
        return cls(
            title=inference.series_title,
            umbrella_title=inference.umbrella_title,
            umbrella_key=None,
            year_primary=inference.year_primary,
            year_from=inference.year_from,
            year_to=inference.year_to,
            scope=inference.scope,
            confidence=inference.confidence,
            source="llm",
        )

    @classmethod
    def from_cache_entry(cls, entry: SeriesCacheEntry) -> "Judgement":
        return cls(
            title=entry.title,
            umbrella_title=entry.umbrella_title,
            umbrella_key=entry.umbrella_key or None,
            year_primary=entry.year_primary,
            year_from=entry.year_from,
            year_to=entry.year_to,
            scope=entry.scope,
            confidence=entry.confidence,
            source=entry.source or "llm",
        )


@dataclass
class ResolvedSeries:
    """Resolved values for one seed, ready for key assignment."""

    seed: SeriesSeed
    title: str
    umbrella_key: str
    umbrella_title: str
    year_primary: Optional[int]
    year_from: Optional[int]
    year_to: Optional[int]
    scope: Scope
    confidence: Optional[float]
    source: SeriesSource


@dataclass
class NormalizedYears:
    year_primary: Optional[int]
    year_from: Optional[int]
    year_to: Optional[int]
    scope: Scope
    confidence: Optional[float]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def derive_years_from_episodes(seed: SeriesSeed) -> Optional[YearEstimate]:
    """Rule fallback from the episodes' prior-generation year fields.

    Lower bound is the min of ``yearFrom``, upper bound the max of ``yearTo``,
    primary the median of ``yearPrimary``. Scope is the majority vote of the
    episodes' scopes (first seen wins ties); when that is not a bounded scope
    it becomes ``range`` for differing bounds or ``point`` when a primary year
    exists. Confidence is the mean of the episodes' confidences.

    Returns:
        The estimate, or None when no episode carries a usable year.
    """
    from_values: List[int] = []
    to_values: List[int] = []
    primary_values: List[int] = []
    scopes: List[str] = []
    confidences: List[float] = []
    for entry in seed.episodes:
        episode = entry.episode
        year_from = sanitize_year(episode.year_from)
        year_to = sanitize_year(episode.year_to)
        year_primary = sanitize_year(episode.year_primary)
        if year_from is not None:
            from_values.append(year_from)
        if year_to is not None:
            to_values.append(year_to)
        if year_primary is not None:
            primary_values.append(year_primary)
        if episode.scope:
            scopes.append(episode.scope)
        if episode.confidence is not None:
            confidences.append(episode.confidence)

    if not from_values and not to_values and not primary_values:
        return None

    year_from_value = min(from_values) if from_values else None
    year_to_value = max(to_values) if to_values else None
    year_primary_value = median(primary_values)

    scope: Scope = "unknown"
    if scopes:
        candidate = Counter(scopes).most_common(1)[0][0]
        if candidate in BOUNDED_SCOPES:
            scope = candidate  # type: ignore[assignment]
    if scope == "unknown":
        if (
            year_from_value is not None
            and year_to_value is not None
            and year_from_value != year_to_value
        ):
            scope = "range"
        elif year_primary_value is not None:
            scope = "point"

    confidence = average(confidences)
    return YearEstimate(
        year_primary=sanitize_year(year_primary_value),
        year_from=sanitize_year(year_from_value),
        year_to=sanitize_year(year_to_value),
        scope=scope,
        confidence=confidence if confidence is not None else FALLBACK_CONFIDENCE,
    )


def derive_years_from_century(seed: SeriesSeed) -> Optional[YearEstimate]:
    """Rule fallback spanning every recognised century label of the seed.

    Returns:
        The estimate (primary = rounded midpoint, fixed low confidence), or
        None when no label is recognised.
    """
    ranges = [
        span for span in (century_label_to_range(label) for label in seed.century_labels) if span
    ]
    if not ranges:
        return None
    start = min(span.start for span in ranges)
    end = max(span.end for span in ranges)
    return YearEstimate(
        year_primary=sanitize_year(_round_half_up((start + end) / 2)),
        year_from=sanitize_year(start),
        year_to=sanitize_year(end),
        scope="point" if start == end else "range",
        confidence=FALLBACK_CONFIDENCE,
    )


def rule_fallback(seed: SeriesSeed) -> Optional[YearEstimate]:
    return derive_years_from_episodes(seed) or derive_years_from_century(seed)


def normalize_years(
    year_primary: Optional[int],
    year_from: Optional[int],
    year_to: Optional[int],
    scope: Scope,
    confidence: Optional[float],
) -> NormalizedYears:
    """Enforce the year and confidence invariants.

    - ``point`` collapses all three years to one value (primary, else from,
      else to)
    - ``range`` fills a missing bound from the other
    - inverted bounds are swapped
    - the primary year is clamped into the bounds
    - confidence is clamped into [0, 1]

    Example:
        >>> years = normalize_years(1700, 1600, 1400, "range", 1.2)
        >>> (years.year_from, years.year_to, years.year_primary, years.confidence)
        (1400, 1600, 1600, 1.0)
    """
    if scope == "point":
        primary = next((v for v in (year_primary, year_from, year_to) if v is not None), None)
        if primary is not None:
            year_primary = year_from = year_to = primary
    if scope == "range":
        if year_from is not None and year_to is None:
            year_to = year_from
        elif year_to is not None and year_from is None:
            year_from = year_to
    if year_from is not None and year_to is not None and year_from > year_to:
        year_from, year_to = year_to, year_from
    if year_primary is not None and year_from is not None and year_to is not None:
        year_primary = int(clamp(year_primary, year_from, year_to))
    if confidence is not None:
        confidence = clamp(float(confidence), 0.0, 1.0)
    return NormalizedYears(year_primary, year_from, year_to, scope, confidence)


def resolve_series(seed: SeriesSeed, judgement: Optional[Judgement]) -> ResolvedSeries:
    """Resolve a seed from its judgement (if any) and the rule fallbacks.

    Args:
        seed: The seed being resolved
        judgement: Cached, promoted or fresh model judgement, or None

    Returns:
        Normalized values. Without any signal all years are None, scope is
        ``unknown``, confidence is None and source is ``rules``.
    """
    title = seed.provisional_stem
    umbrella_title: Optional[str] = None
    if judgement is not None:
        title = (judgement.title or "").strip() or seed.provisional_stem
        umbrella_title = (judgement.umbrella_title or "").strip() or None
    umbrella_title = umbrella_title or title

    year_primary: Optional[int]
    year_from: Optional[int]
    year_to: Optional[int]
    scope: Scope
    confidence: Optional[float]
    source: SeriesSource

    if judgement is None:
        fallback = rule_fallback(seed)
        source = "rules"
        if fallback is not None:
            year_primary, year_from, year_to = (
                fallback.year_primary,
                fallback.year_from,
                fallback.year_to,
            )
            scope, confidence = fallback.scope, fallback.confidence
        else:
            year_primary = year_from = year_to = None
            scope, confidence = "unknown", None
    else:
        year_primary = sanitize_year(judgement.year_primary)
        year_from = sanitize_year(judgement.year_from)
        year_to = sanitize_year(judgement.year_to)
        scope, confidence, source = judgement.scope, judgement.confidence, judgement.source
        if source == "llm" and (confidence is None or confidence < LOW_CONFIDENCE_THRESHOLD):
            fallback = rule_fallback(seed)
            if fallback is not None:
                year_primary, year_from, year_to = (
                    fallback.year_primary,
                    fallback.year_from,
                    fallback.year_to,
                )
                scope = fallback.scope
                confidence = min(fallback.confidence, LOW_CONFIDENCE_THRESHOLD)
                source = "mixed"
            else:
                year_primary = year_from = year_to = None
                scope = "unknown"
            logger.debug(
                "Low-confidence judgement for %r resolved as %s", seed.detection_key, source
            )

    normalized = normalize_years(year_primary, year_from, year_to, scope, confidence)
    umbrella_key = (
        judgement.umbrella_key if judgement is not None and judgement.umbrella_key else None
    ) or (to_kebab_case(umbrella_title) or to_kebab_case(title))
    return ResolvedSeries(
        seed=seed,
        title=title,
        umbrella_key=umbrella_key,
        umbrella_title=umbrella_title,
        year_primary=normalized.year_primary,
        year_from=normalized.year_from,
        year_to=normalized.year_to,
        scope=normalized.scope,
        confidence=normalized.confidence,
        source=source,
    )
