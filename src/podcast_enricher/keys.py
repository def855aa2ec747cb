"""Deterministic, collision-free series key assignment."""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Set

from .utils.text import to_kebab_case

logger = logging.getLogger(__name__)


class SeriesKeyRegistry:
    """Accumulator of series keys already handed out in this run.

    Keys must be assigned in first-seen seed order (by first episode
    number); the same order always yields the same keys.

    Example:
        >>> registry = SeriesKeyRegistry()
        >>> registry.assign("Columbus", "columbus", 10)
        'columbus'
        >>> registry.assign("Columbus", "columbus-part-1", 40)
        'columbus-e40'
    """

    def __init__(self, reserved: Optional[Iterable[str]] = None) -> None:
        self._used: Set[str] = set(reserved or ())

    def __contains__(self, key: object) -> bool:
        return key in self._used

    def __len__(self) -> int:
        return len(self._used)

    @staticmethod
    def base_key(title: str, detection_key: str, first_episode_number: int) -> str:
        """``kebab(title)``, else ``kebab(detection_key)``, else ``series-<n>``."""
        return (
            to_kebab_case(title)
            or to_kebab_case(detection_key)
            or f"series-{first_episode_number}"
        )

    def assign(self, title: str, detection_key: str, first_episode_number: int) -> str:
        """Reserve and return a unique key.

        On collision ``-e<first episode>`` is appended; if that is taken too,
        ``-2``, ``-3``, ... are tried in turn.
        """
        base = self.base_key(title, detection_key, first_episode_number)
        candidate = base
        if candidate in self._used:
            with_episode = f"{base}-e{first_episode_number}"
            candidate = with_episode
            counter = 2
            while candidate in self._used:
                candidate = f"{with_episode}-{counter}"
                counter += 1
            logger.debug("Series key %r taken; using %r", base, candidate)
        self._used.add(candidate)
        return candidate
