"""Build series seeds from detected arcs and leftover episodes."""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence

from .models import DetectionSource, SeedEpisode, SeriesSeed
from .schemas import EpisodeRecord
from .series_detector import detect_series_groups

logger = logging.getLogger(__name__)


def singleton_stem(episode: EpisodeRecord) -> str:
    """Stem for a lone episode: sheet title, else feed title, else ``Episode <n>``."""
    title = episode.preferred_title
    if title and title.strip():
        return title.strip()
    return f"Episode {episode.episode}"


def _make_seed(
    episodes: Sequence[EpisodeRecord],
    century_map: Mapping[int, str],
    detection_key: str,
    provisional_stem: str,
    detection_source: DetectionSource,
) -> SeriesSeed:
    ordered = sorted(episodes, key=lambda item: item.episode)
    return SeriesSeed(
        detection_key=detection_key,
        provisional_stem=provisional_stem,
        detection_source=detection_source,
        episodes=[
            SeedEpisode(episode=item, century_label=century_map.get(item.episode))
            for item in ordered
        ],
        parts=list(range(1, len(ordered) + 1)),
        first_episode_number=ordered[0].episode,
    )


def build_series_seeds(
    episodes: Sequence[EpisodeRecord],
    century_map: Optional[Mapping[int, str]] = None,
) -> List[SeriesSeed]:
    """Combine detected arcs with a singleton seed for every unclaimed episode.

    Args:
        episodes: The full episode catalogue.
        century_map: Century label per episode number (optional).

    Returns:
        Seeds sorted by first episode number. This is the canonical first-seen
        order used for deterministic key assignment.
    """
    century_map = century_map or {}
    groups = detect_series_groups(episodes)

    seeds: List[SeriesSeed] = []
    claimed: Dict[str, str] = {}
    for group in groups.values():
        seeds.append(_make_seed(group.episodes, century_map, group.key, group.stem, "multi"))
        for episode in group.episodes:
            claimed[episode.slug] = group.key

    for episode in sorted(episodes, key=lambda item: item.episode):
        if episode.slug in claimed:
            continue
        seeds.append(
            _make_seed([episode], century_map, episode.slug, singleton_stem(episode), "singleton")
        )

    seeds.sort(key=lambda seed: seed.first_episode_number)
    logger.debug(
        "Built %d seed(s): %d arc(s), %d singleton(s)",
        len(seeds),
        len(groups),
        len(seeds) - len(groups),
    )
    return seeds
