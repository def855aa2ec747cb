"""Type definitions for the enrichment workflow."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from ..schemas import Collection, Series, UmbrellaIndex


@dataclass
class EnrichmentSummary:
    """Counters reported at the end of a run.

    Attributes:
        total_episodes: Episodes in the catalogue.
        total_series: Resolved series, singletons included.
        singleton_series: Series with exactly one episode.
        llm_calls: Model calls issued.
        llm_skipped: Seeds that needed the model while no credentials were set.
        llm_failures: Model calls that failed after exhausting retries.
        umbrellas: Umbrellas in the index.
        low_confidence_series: Series whose confidence is below the threshold.
    """

    total_episodes: int = 0
    total_series: int = 0
    singleton_series: int = 0
    llm_calls: int = 0
    llm_skipped: int = 0
    llm_failures: int = 0
    umbrellas: int = 0
    low_confidence_series: int = 0

    def format_line(self) -> str:
        line = (
            f"Series: {self.total_series} | Episodes: {self.total_episodes} | "
            f"Singletons: {self.singleton_series} | LLM calls: {self.llm_calls} | "
            f"Skipped: {self.llm_skipped} | Umbrellas: {self.umbrellas} | "
            f"Low confidence: {self.low_confidence_series}"
        )
        if self.llm_failures:
            line += f" | LLM failures: {self.llm_failures}"
        return line


@dataclass
class EnrichResult:
    """Everything one run computed, whether or not it was written.

    Attributes:
        series: Series artefact, sorted by key.
        episodes: Enriched episode artefact, sorted by episode number.
        collections: Collections artefact, sorted by key.
        umbrellas: Umbrella index.
        cache: Refreshed cache document, keyed and sorted by series key.
        summary: Run counters.
        written: Paths written (empty for dry runs).
    """

    series: List[Series]
    episodes: List[Dict[str, Any]]
    collections: List[Collection]
    umbrellas: UmbrellaIndex
    cache: Dict[str, Dict[str, Any]]
    summary: EnrichmentSummary
    written: List[str] = field(default_factory=list)
