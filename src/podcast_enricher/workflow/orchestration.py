"""Enrichment pipeline orchestration.

This module wires the stages into one deterministic run:

1. Load the episode catalogue, century labels, previous series, cache and
   umbrella overrides (any malformed input aborts before anything is written)
2. Detect arcs and build seeds in first-seen order
3. Replay cached judgements and promote legacy entries
4. Ask the language model about the remaining seeds (bounded, per-seed
   failures degrade to rules)
5. Resolve and normalize years, assign keys, apply umbrella overrides
6. Build the episode, series, collections and umbrella artefacts plus the
   refreshed cache, and write them in one batch unless this is a dry run
"""

from __future__ import annotations

import json
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Sequence

from pydantic import ValidationError

from .. import config
from ..cache import (
    build_cache_entry,
    CacheState,
    load_inference_cache,
    lookup_cached_entry,
    promote_legacy_entries,
    serialize_cache,
)
from ..century import load_century_map
from ..config_constants import LOW_CONFIDENCE_THRESHOLD
from ..exceptions import EnrichmentInputError, ProviderError
from ..keys import SeriesKeyRegistry
from ..models import SeriesInferenceRequest, SeriesSeed
from ..providers.base import SeriesInferenceProvider
from ..providers.factory import create_inference_provider
from ..resolver import Judgement, resolve_series, ResolvedSeries
from ..schemas import (
    Collection,
    EpisodeCatalogueAdapter,
    EpisodeRecord,
    Series,
    SeriesListAdapter,
    YearBounds,
)
from ..seeds import build_series_seeds
from ..umbrellas import apply_umbrella_overrides, build_umbrella_index, load_umbrella_overrides
from ..utils.filesystem import read_json, write_json_batch
from . import metrics
from .types import EnrichmentSummary, EnrichResult

logger = logging.getLogger(__name__)

JudgementOrigin = Literal["cache", "legacy", "llm", "none"]


@dataclass
class SeedContext:
    """Per-seed resolution state threaded through the run."""

    seed: SeriesSeed
    judgement: Optional[Judgement] = None
    origin: JudgementOrigin = "none"
    allows_llm: bool = True


_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def apply_log_level(level: str, log_file: Optional[str] = None) -> None:
    """Set the root log level, with a console handler and an optional file handler.

    Repeated calls adjust the level and never attach the same log file twice.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())
    if not root_logger.handlers:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(_LOG_FORMAT))
        root_logger.addHandler(console)

    if log_file:
        log_path = Path(log_file).resolve()
        if not any(
            isinstance(h, logging.FileHandler) and Path(h.baseFilename) == log_path
            for h in root_logger.handlers
        ):
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
            file_handler.setFormatter(logging.Formatter(_LOG_FORMAT))
            root_logger.addHandler(file_handler)


def load_episodes(path: Path) -> List[EpisodeRecord]:
    """Load and validate the episode catalogue.

    Raises:
        EnrichmentInputError: If the file is missing, not a JSON array of
            valid episodes, or repeats an episode number or slug
    """
    if not path.exists():
        raise EnrichmentInputError("Episode catalogue not found", str(path))
    try:
        data = read_json(path)
    except (OSError, json.JSONDecodeError) as exc:
        raise EnrichmentInputError(
            f"Episode catalogue could not be read: {exc}", str(path)
        ) from exc
    if not isinstance(data, list):
        raise EnrichmentInputError("Episode catalogue must be a JSON array", str(path))
    try:
        episodes = EpisodeCatalogueAdapter.validate_python(data)
    except ValidationError as exc:
        raise EnrichmentInputError(
            f"Episode catalogue failed validation: {exc}", str(path)
        ) from exc

    seen_numbers: Dict[int, str] = {}
    seen_slugs: Dict[str, int] = {}
    for episode in episodes:
        if episode.episode in seen_numbers:
            raise EnrichmentInputError(f"Duplicate episode number {episode.episode}", str(path))
        if episode.slug in seen_slugs:
            raise EnrichmentInputError(f"Duplicate episode slug {episode.slug!r}", str(path))
        seen_numbers[episode.episode] = episode.slug
        seen_slugs[episode.slug] = episode.episode
    logger.debug("Loaded %d episode(s) from %s", len(episodes), path)
    return episodes


def load_previous_series(path: Path) -> List[Series]:
    """Load the previous run's series artefact (missing file = none).

    Raises:
        EnrichmentInputError: If the file exists but is malformed
    """
    if not path.exists():
        return []
    try:
        return SeriesListAdapter.validate_python(read_json(path))
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        raise EnrichmentInputError(
            f"Previous series artefact is invalid: {exc}", str(path)
        ) from exc


def index_series_by_slug(series_list: Sequence[Series]) -> Dict[str, Series]:
    index: Dict[str, Series] = {}
    for series in series_list:
        for slug in series.episode_slugs:
            index[slug] = series
    return index


def _replay_cache(
    contexts: Sequence[SeedContext],
    state: CacheState,
    previous_by_slug: Dict[str, Series],
    pipeline_metrics: metrics.Metrics,
) -> None:
    for context in contexts:
        entry = lookup_cached_entry(context.seed, state, previous_by_slug)
        if entry is not None:
            context.judgement = Judgement.from_cache_entry(entry)
            context.origin = "cache"
            pipeline_metrics.cache_hits += 1
            continue
        if state.legacy:
            promoted = promote_legacy_entries(context.seed, state.legacy)
            if promoted is not None:
                context.judgement = Judgement.from_cache_entry(promoted)
                context.origin = "legacy"
                pipeline_metrics.legacy_promotions += 1


def _infer_one(
    provider: SeriesInferenceProvider,
    context: SeedContext,
    pipeline_metrics: metrics.Metrics,
) -> Optional[Judgement]:
    request = SeriesInferenceRequest.from_seed(context.seed)
    start = time.time()
    try:
        inference = provider.infer_series(request)
    except ProviderError as exc:
        pipeline_metrics.record_llm_call(time.time() - start, failed=True)
        logger.warning(
            "Series inference unavailable for %r, using rules: %s",
            context.seed.detection_key,
            exc,
        )
        return None
    pipeline_metrics.record_llm_call(time.time() - start)
    return Judgement.from_inference(inference)


def _run_model_calls(
    targets: Sequence[SeedContext],
    provider: SeriesInferenceProvider,
    workers: int,
    pipeline_metrics: metrics.Metrics,
) -> None:
    """Issue model calls in document order; the provider bounds concurrency."""
    logger.info("Requesting series inference for %d seed(s)", len(targets))
    with ThreadPoolExecutor(max_workers=max(1, min(workers, len(targets)))) as executor:
        futures: List[Future[Optional[Judgement]]] = [
            executor.submit(_infer_one, provider, context, pipeline_metrics) for context in targets
        ]
        for context, future in zip(targets, futures):
            judgement = future.result()
            if judgement is not None:
                context.judgement = judgement
                context.origin = "llm"


def _build_series(resolved: ResolvedSeries, key: str) -> Series:
    seed = resolved.seed
    return Series(
        key=key,
        title=resolved.title,
        umbrella_key=resolved.umbrella_key,
        umbrella_title=resolved.umbrella_title,
        episode_numbers=seed.episode_numbers,
        episode_slugs=seed.slugs,
        parts=list(seed.parts),
        year_primary=resolved.year_primary,
        year_from=resolved.year_from,
        year_to=resolved.year_to,
        scope=resolved.scope,
        confidence=resolved.confidence,
        singleton=seed.is_singleton,
        source=resolved.source,
    )


def build_enriched_episodes(
    series_list: Sequence[Series], seeds: Sequence[SeriesSeed]
) -> List[Dict[str, Any]]:
    """Stamp every episode with its series' key, part, years and scope.

    Args:
        series_list: Final series, aligned with ``seeds``
        seeds: Seeds in first-seen order

    Returns:
        Enriched episode records sorted by episode number
    """
    episodes: List[Dict[str, Any]] = []
    for series, seed in zip(series_list, seeds):
        for index, entry in enumerate(seed.episodes):
            record = entry.episode.base_fields()
            record.update(
                {
                    "seriesKey": series.key,
                    "seriesPart": None if series.singleton else series.parts[index],
                    "yearPrimary": series.year_primary,
                    "yearFrom": series.year_from,
                    "yearTo": series.year_to,
                    "scope": series.scope,
                    "source": "override" if series.source == "override" else "series",
                }
            )
            episodes.append(record)
    episodes.sort(key=lambda record: record["episode"])
    return episodes


def build_collections(series_list: Sequence[Series]) -> List[Collection]:
    """Browse view of each series, sorted by key."""
    collections = [
        Collection(
            key=series.key,
            title=series.title,
            umbrella_key=series.umbrella_key,
            umbrella_title=series.umbrella_title,
            count=len(series.episode_numbers),
            parts=list(series.parts),
            episodes=list(series.episode_numbers),
            slugs=list(series.episode_slugs),
            years=YearBounds(min=series.year_from, max=series.year_to),
        )
        for series in series_list
    ]
    collections.sort(key=lambda item: item.key)
    return collections


def run_pipeline(
    cfg: config.Config,
    inference_provider: Optional[SeriesInferenceProvider] = None,
) -> EnrichResult:
    """Run one enrichment pass.

    Args:
        cfg: Configuration object (root, artefact paths, run modes, model settings)
        inference_provider: Provider to use instead of the one built from ``cfg``

    Returns:
        EnrichResult with every artefact and the run summary

    Raises:
        EnrichmentInputError: If an input artefact is malformed
        CacheValidationError: If the cache matches neither known shape
    """
    pipeline_metrics = metrics.Metrics()

    # Stage 1: load inputs
    stage_start = time.time()
    episodes = load_episodes(cfg.episodes_source)
    century_map = load_century_map(cfg.resolve(cfg.century_map_path))
    previous_by_slug = index_series_by_slug(load_previous_series(cfg.resolve(cfg.series_path)))
    if cfg.refresh:
        cache_state = CacheState()
        logger.info("Refresh requested: ignoring cached and legacy inferences")
    else:
        cache_state = load_inference_cache(cfg.resolve(cfg.cache_path))
    overrides = load_umbrella_overrides(cfg.resolve(cfg.overrides_path))
    pipeline_metrics.record_stage("loading", time.time() - stage_start)

    # Stage 2: seeds in first-seen order
    stage_start = time.time()
    seeds = build_series_seeds(episodes, century_map)
    if cfg.only_slug and not any(cfg.only_slug in seed.slugs for seed in seeds):
        logger.warning("No episode with slug %r; no series inference will run", cfg.only_slug)
    contexts = [
        SeedContext(
            seed=seed,
            allows_llm=cfg.only_slug is None or cfg.only_slug in seed.slugs,
        )
        for seed in seeds
    ]

    # Stage 3: cache and legacy
    _replay_cache(contexts, cache_state, previous_by_slug, pipeline_metrics)

    # Stage 4: language model
    targets = [ctx for ctx in contexts if ctx.judgement is None and ctx.allows_llm]
    if targets and not cfg.cache_only:
        provider = inference_provider or create_inference_provider(cfg)
        if provider is None:
            pipeline_metrics.llm_skipped = len(targets)
            logger.warning(
                "Skipping %d series inference%s because OPENAI_API_KEY is not set.",
                len(targets),
                "" if len(targets) == 1 else "s",
            )
        else:
            _run_model_calls(targets, provider, cfg.workers, pipeline_metrics)

    # Stage 5: resolve, key, override
    registry = SeriesKeyRegistry()
    ordered_series: List[Series] = []
    for context in contexts:
        resolved = resolve_series(context.seed, context.judgement)
        if context.judgement is None:
            pipeline_metrics.rule_fallbacks += 1
        elif resolved.source == "mixed" and context.judgement.source == "llm":
            pipeline_metrics.low_confidence_blends += 1
        seed = context.seed
        key = registry.assign(resolved.title, seed.detection_key, seed.first_episode_number)
        ordered_series.append(_build_series(resolved, key))
    final_series = apply_umbrella_overrides(ordered_series, overrides)
    pipeline_metrics.overrides_applied = sum(
        1 for before, after in zip(ordered_series, final_series) if before is not after
    )
    pipeline_metrics.record_stage("resolving", time.time() - stage_start)

    # Stage 6: artefacts
    enriched_episodes = build_enriched_episodes(final_series, seeds)
    collections = build_collections(final_series)
    umbrella_index = build_umbrella_index(final_series)
    series_artifact = sorted(final_series, key=lambda item: item.key)
    cache_document = serialize_cache({item.key: build_cache_entry(item) for item in final_series})

    summary = EnrichmentSummary(
        total_episodes=len(episodes),
        total_series=len(final_series),
        singleton_series=sum(1 for item in final_series if item.singleton),
        llm_calls=pipeline_metrics.llm_calls,
        llm_skipped=pipeline_metrics.llm_skipped,
        llm_failures=pipeline_metrics.llm_failures,
        umbrellas=len(umbrella_index.umbrellas),
        low_confidence_series=sum(
            1
            for item in final_series
            if item.confidence is not None and item.confidence < LOW_CONFIDENCE_THRESHOLD
        ),
    )

    written: List[str] = []
    if cfg.dry_run:
        logger.info("Dry run: no artefacts written")
    else:
        stage_start = time.time()
        documents: Dict[Path, Any] = {}
        if not cfg.series_only:
            documents[cfg.resolve(cfg.episodes_path)] = enriched_episodes
        documents[cfg.resolve(cfg.series_path)] = [item.to_dict() for item in series_artifact]
        documents[cfg.resolve(cfg.collections_path)] = [item.to_dict() for item in collections]
        documents[cfg.resolve(cfg.umbrellas_path)] = umbrella_index.to_dict()
        documents[cfg.resolve(cfg.cache_path)] = cache_document
        written = [str(path) for path in write_json_batch(documents)]
        pipeline_metrics.record_stage("writing", time.time() - stage_start)
        logger.info("Wrote %d artefact(s)", len(written))

    logger.info(summary.format_line())
    pipeline_metrics.log_metrics()
    return EnrichResult(
        series=series_artifact,
        episodes=enriched_episodes,
        collections=collections,
        umbrellas=umbrella_index,
        cache=cache_document,
        summary=summary,
        written=written,
    )
