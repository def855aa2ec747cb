from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal, Optional

from .schemas import EpisodeRecord, Scope

DetectionSource = Literal["multi", "singleton"]


@dataclass
class PartCandidate:
    """A ``(stem, part)`` pair extracted from one episode title.

    Attributes:
        key: Slugified stem used to bucket candidates.
        stem: Cleaned stem as written in the title.
        part: 1-based part number (roman numerals already converted).
        episode: The episode the title belongs to.
    """

    key: str
    stem: str
    part: int
    episode: EpisodeRecord


@dataclass
class SeriesGroup:
    """A validated multi-part arc detected from title text and cadence.

    Attributes:
        key: Detection key (slug of the stem).
        stem: Stem taken from the earliest episode.
        episodes: Member episodes ordered by episode number.
        parts: Part numbers ``1..N`` aligned with ``episodes``.

    Example:
        >>> group = SeriesGroup(key="columbus", stem="Columbus", episodes=[e10, e11], parts=[1, 2])
    """

    key: str
    stem: str
    episodes: List[EpisodeRecord]
    parts: List[int]


@dataclass
class SeedEpisode:
    episode: EpisodeRecord
    century_label: Optional[str] = None


@dataclass
class SeriesSeed:
    """A provisional grouping of episodes awaiting key and year resolution.

    Seeds are built fresh every run and ordered by ``first_episode_number``;
    that order is the canonical first-seen order for key assignment.

    Attributes:
        detection_key: Slug of the matched stem, or the episode slug for singletons.
        provisional_stem: Display stem used when nothing better is known.
        detection_source: ``multi`` for detected arcs, ``singleton`` otherwise.
        episodes: Member episodes with their century labels, by episode number.
        parts: 1-based part numbers aligned with ``episodes``.
        first_episode_number: Lowest member episode number.
    """

    detection_key: str
    provisional_stem: str
    detection_source: DetectionSource
    episodes: List[SeedEpisode]
    parts: List[int]
    first_episode_number: int

    @property
    def slugs(self) -> List[str]:
        return [entry.episode.slug for entry in self.episodes]

    @property
    def episode_numbers(self) -> List[int]:
        return [entry.episode.episode for entry in self.episodes]

    @property
    def century_labels(self) -> List[str]:
        """Distinct non-empty century labels, sorted."""
        return sorted({entry.century_label for entry in self.episodes if entry.century_label})

    @property
    def is_singleton(self) -> bool:
        return len(self.episodes) == 1


@dataclass(frozen=True)
class YearRange:
    """Inclusive year span; negative years are BCE."""

    start: int
    end: int


@dataclass
class YearEstimate:
    """Year span, scope and confidence produced by a rule-based fallback."""

    year_primary: Optional[int]
    year_from: Optional[int]
    year_to: Optional[int]
    scope: Scope
    confidence: float


@dataclass
class EpisodeContext:
    """Title and description of one member episode, as shown to the model."""

    title_feed: Optional[str]
    title_sheet: Optional[str]
    description: Optional[str]


@dataclass
class SeriesInferenceRequest:
    """Everything the model sees about one seed.

    Attributes:
        provisional_stem: The seed's provisional display stem.
        episodes: Member episode titles and descriptions, by episode number.
        century_labels: Distinct known century labels for the members.
    """

    provisional_stem: str
    episodes: List[EpisodeContext] = field(default_factory=list)
    century_labels: List[str] = field(default_factory=list)

    @classmethod
    def from_seed(cls, seed: SeriesSeed) -> "SeriesInferenceRequest":
        return cls(
            provisional_stem=seed.provisional_stem,
            episodes=[
                EpisodeContext(
                    title_feed=entry.episode.title_feed,
                    title_sheet=entry.episode.title_sheet,
                    description=entry.episode.description,
                )
                for entry in seed.episodes
            ],
            century_labels=seed.century_labels,
        )
