"""Artefact schemas for the enrichment pipeline.

These models describe every JSON document the pipeline reads or writes:

- ``EpisodeRecord``: one entry of the upstream episode catalogue (read-only)
- ``Series``: one resolved arc or singleton in ``series.json``
- ``Collection``: the browse view of a series in ``collections.json``
- ``UmbrellaIndex``: thematic groupings in ``umbrellas.json``
- ``SeriesCacheEntry`` / ``LegacyCacheEntry``: the two inference cache shapes

Artefact field names are camelCase on disk; Python attributes are snake_case
and mapped through ``to_camel`` aliases. Always dump with ``by_alias=True``.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, TypeAdapter
from pydantic.alias_generators import to_camel

Scope = Literal["point", "range", "broad", "unknown"]
SeriesSource = Literal["rules", "llm", "override", "mixed"]
EpisodeSource = Literal["series", "override"]

SCOPES = ("point", "range", "broad", "unknown")
BOUNDED_SCOPES = ("point", "range", "broad")

# Prior-generation fields stripped from an episode before it is re-stamped.
LEGACY_EPISODE_FIELDS = frozenset(
    {
        "seriesKey",
        "seriesTitle",
        "seriesPart",
        "yearPrimary",
        "yearFrom",
        "yearTo",
        "scope",
        "umbrellas",
        "confidence",
        "source",
    }
)


class ArtifactModel(BaseModel):
    """Base for camelCase artefacts."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the on-disk dictionary."""
        return self.model_dump(mode="json", by_alias=True)


def _optional_number(value: Any) -> Optional[float]:
    """Read a prior-generation numeric field leniently."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return None
        return value
    return None


class EpisodeRecord(BaseModel):
    """One episode of the upstream catalogue.

    Titles and description accept strings or numbers (numbers are kept as
    text). Prior-generation year fields are read leniently: anything that
    is not a number is treated as missing. Unknown keys pass through.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    episode: int
    title_feed: Optional[str] = None
    title_sheet: Optional[str] = None
    description: Optional[str] = None
    pub_date: str = Field(alias="pubDate")
    slug: str = Field(min_length=1)

    year_primary: Optional[float] = Field(default=None, alias="yearPrimary")
    year_from: Optional[float] = Field(default=None, alias="yearFrom")
    year_to: Optional[float] = Field(default=None, alias="yearTo")
    scope: Optional[str] = None
    confidence: Optional[float] = None

    @field_validator("episode", mode="before")
    @classmethod
    def _whole_episode_number(cls, value: Any) -> Any:
        if isinstance(value, bool):
            raise ValueError("episode must be a number")
        if isinstance(value, float) and not value.is_integer():
            raise ValueError("episode must be a whole number")
        return value

    @field_validator("title_feed", "title_sheet", "description", mode="before")
    @classmethod
    def _nullable_text(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, bool):
            raise ValueError("expected text")
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("year_primary", "year_from", "year_to", "confidence", mode="before")
    @classmethod
    def _lenient_number(cls, value: Any) -> Optional[float]:
        return _optional_number(value)

    @field_validator("scope", mode="before")
    @classmethod
    def _lenient_scope(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None

    @property
    def preferred_title(self) -> Optional[str]:
        """Sheet title when present, else the feed title."""
        return self.title_sheet if self.title_sheet is not None else self.title_feed

    def base_fields(self) -> Dict[str, Any]:
        """Record as written on disk, minus prior-generation enrichment fields."""
        data = self.model_dump(mode="json", by_alias=True)
        return {key: value for key, value in data.items() if key not in LEGACY_EPISODE_FIELDS}


class Series(ArtifactModel):
    """A resolved arc (or singleton) with its year span and umbrella."""

    key: str
    title: str
    umbrella_key: str
    umbrella_title: str
    episode_numbers: List[int]
    episode_slugs: List[str]
    parts: List[int]
    year_primary: Optional[int]
    year_from: Optional[int]
    year_to: Optional[int]
    scope: Scope
    confidence: Optional[float] = Field(ge=0, le=1)
    singleton: bool
    source: SeriesSource


class YearBounds(BaseModel):
    model_config = ConfigDict(extra="forbid")

    min: Optional[int]
    max: Optional[int]


class Collection(ArtifactModel):
    key: str
    title: str
    umbrella_key: str
    umbrella_title: str
    count: int
    parts: List[int]
    episodes: List[int]
    slugs: List[str]
    years: YearBounds


class Umbrella(ArtifactModel):
    key: str
    title: str
    series_keys: List[str]
    years: YearBounds
    count: int


class UmbrellaIndex(ArtifactModel):
    umbrellas: List[Umbrella] = Field(default_factory=list)


class UmbrellaOverride(BaseModel):
    """Manual rename for an umbrella, keyed by the umbrella key it replaces."""

    model_config = ConfigDict(extra="forbid")

    key: Optional[str] = None
    title: Optional[str] = None


class SeriesCacheEntry(ArtifactModel):
    """Modern inference cache entry, keyed by series key.

    ``source`` records how the values were produced so that a replay keeps
    the same provenance; older entries without it are treated as model output.
    """

    model_config = ConfigDict(extra="ignore")

    title: str
    umbrella_key: str
    umbrella_title: str
    year_primary: Optional[int]
    year_from: Optional[int]
    year_to: Optional[int]
    scope: Scope
    confidence: Optional[float] = Field(ge=0, le=1)
    source: Optional[SeriesSource] = None
    version: Literal[1]

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=False)


class LegacyCacheEntry(BaseModel):
    """Episode-keyed cache entry from the previous cache generation."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    series_title: Optional[str] = Field(alias="seriesTitle")
    series_part: Optional[int] = Field(alias="seriesPart", gt=0)
    year_primary: Optional[int] = Field(alias="yearPrimary")
    year_from: Optional[int] = Field(alias="yearFrom")
    year_to: Optional[int] = Field(alias="yearTo")
    scope: Scope
    umbrellas: List[str]
    confidence: Optional[float] = Field(ge=0, le=1)


EpisodeCatalogueAdapter = TypeAdapter(List[EpisodeRecord])
SeriesListAdapter = TypeAdapter(List[Series])
SeriesCacheAdapter = TypeAdapter(Dict[str, SeriesCacheEntry])
LegacyCacheAdapter = TypeAdapter(Dict[str, LegacyCacheEntry])
UmbrellaOverridesAdapter = TypeAdapter(Dict[str, UmbrellaOverride])
