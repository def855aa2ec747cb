"""Detect multi-part arcs from episode titles.

An arc is a run of episodes whose titles share a stem followed by a
``Part <n>`` marker (arabic or roman numerals, also ``Pt.``, ``Part #n`` and
``Part No. n``). Candidates are bucketed by the slug of their stem and a
bucket only becomes an arc when it holds together numerically and in time.
Any violation discards the whole bucket.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional, Tuple

from .config_constants import MAX_DAYS_BETWEEN_PARTS, MAX_EPISODE_GAP, MIN_ARC_EPISODES
from .models import PartCandidate, SeriesGroup
from .schemas import EpisodeRecord
from .utils.text import clean_title_stem, days_between, parse_date, roman_to_int, slugify

logger = logging.getLogger(__name__)

PART_PATTERN = re.compile(
    r"(.*?)(?:\s*[-–—:]\s*)?\b(?:part|pt\.?)\s*(?:#|no\.?\s*)?([ivxlcdm]+|\d+)\b",
    re.IGNORECASE,
)


def extract_part_candidate(title: Optional[str]) -> Optional[Tuple[str, str, int]]:
    """Extract ``(key, stem, part)`` from a title, or None when it has no part marker.

    Example:
        >>> extract_part_candidate("Columbus - Part II")
        ('columbus', 'Columbus', 2)
    """
    if not title:
        return None
    match = PART_PATTERN.search(title)
    if not match:
        return None
    stem = clean_title_stem(match.group(1) or "")
    if not stem:
        return None
    raw_part = match.group(2)
    part = int(raw_part) if raw_part.isdigit() else roman_to_int(raw_part)
    if not part or part <= 0:
        return None
    key = slugify(stem)
    if not key:
        return None
    return key, stem, part


def _pick_candidate(episode: EpisodeRecord) -> Optional[PartCandidate]:
    # Sheet title wins over the feed title.
    for title in (episode.title_sheet, episode.title_feed):
        extracted = extract_part_candidate(title)
        if extracted:
            key, stem, part = extracted
            return PartCandidate(key=key, stem=stem, part=part, episode=episode)
    return None


def _is_valid_arc(candidates: List[PartCandidate]) -> bool:
    """Check an episode-ordered bucket for arc cohesion."""
    if len(candidates) < MIN_ARC_EPISODES:
        return False
    if candidates[0].part != 1:
        return False
    for prev, curr in zip(candidates, candidates[1:]):
        if curr.part != prev.part + 1:
            return False
        if curr.episode.episode - prev.episode.episode > MAX_EPISODE_GAP:
            return False
        gap = days_between(parse_date(prev.episode.pub_date), parse_date(curr.episode.pub_date))
        if gap is not None and gap > MAX_DAYS_BETWEEN_PARTS:
            return False
    return True


def detect_series_groups(episodes: Iterable[EpisodeRecord]) -> Dict[str, SeriesGroup]:
    """Detect valid arcs across the whole catalogue.

    Args:
        episodes: All catalogue episodes, in any order.

    Returns:
        Arcs keyed by detection key, in first-seen bucket order. Each arc's
        episodes are ordered by episode number with parts ``1..N``.
    """
    buckets: Dict[str, List[PartCandidate]] = {}
    for episode in episodes:
        candidate = _pick_candidate(episode)
        if candidate is None:
            continue
        buckets.setdefault(candidate.key, []).append(candidate)

    groups: Dict[str, SeriesGroup] = {}
    for key, candidates in buckets.items():
        ordered = sorted(candidates, key=lambda item: item.episode.episode)
        if not _is_valid_arc(ordered):
            logger.debug(
                "Discarding part bucket %r (%d candidate(s)): not a cohesive arc",
                key,
                len(ordered),
            )
            continue
        groups[key] = SeriesGroup(
            key=key,
            stem=ordered[0].stem,
            episodes=[item.episode for item in ordered],
            parts=list(range(1, len(ordered) + 1)),
        )
        logger.debug("Detected arc %r with %d parts", key, len(ordered))
    return groups
