"""Schemas package for podcast enricher.

This package contains the artefact models written to disk and the structured
output schema returned by the language model.
"""

from .artifacts import (
    BOUNDED_SCOPES,
    Collection,
    EpisodeCatalogueAdapter,
    EpisodeRecord,
    LEGACY_EPISODE_FIELDS,
    LegacyCacheAdapter,
    LegacyCacheEntry,
    Scope,
    SCOPES,
    Series,
    SeriesCacheAdapter,
    SeriesCacheEntry,
    SeriesListAdapter,
    SeriesSource,
    Umbrella,
    UmbrellaIndex,
    UmbrellaOverride,
    UmbrellaOverridesAdapter,
    YearBounds,
)
from .inference import parse_series_inference, SeriesInference

__all__ = [
    "BOUNDED_SCOPES",
    "Collection",
    "EpisodeCatalogueAdapter",
    "EpisodeRecord",
    "LEGACY_EPISODE_FIELDS",
    "LegacyCacheAdapter",
    "LegacyCacheEntry",
    "SCOPES",
    "Scope",
    "Series",
    "SeriesCacheAdapter",
    "SeriesCacheEntry",
    "SeriesInference",
    "SeriesListAdapter",
    "SeriesSource",
    "Umbrella",
    "UmbrellaIndex",
    "UmbrellaOverride",
    "UmbrellaOverridesAdapter",
    "YearBounds",
    "parse_series_inference",
]
