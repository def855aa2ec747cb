"""Podcast Series Enricher - derive arcs, year ranges and umbrellas for episodes.

This package enriches a podcast episode catalogue with derived metadata:
- Multi-part arcs detected from "Part N" title markers
- Historical year spans resolved from cache, a language model, or rules
- Thematic umbrellas with manual override support

Every run regenerates the same JSON artefacts byte for byte given the same
inputs and cache state.

Programmatic API Example:
    >>> import podcast_enricher
    >>>
    >>> cfg = podcast_enricher.Config(root_dir="./site", cache_only=True)
    >>> result = podcast_enricher.run_pipeline(cfg)
    >>> print(result.summary.total_series)

Service API Example (for scheduled jobs):
    >>> from podcast_enricher import service
    >>> result = service.run_from_config_file("enrich.yaml")
    >>> if not result.success:
    ...     print(f"Error: {result.error}")

CLI Usage:
    $ python -m podcast_enricher --root ./site --cache-only
    $ python -m podcast_enricher --config enrich.yaml --dry-run
"""

from __future__ import annotations

from .config import Config, load_config_file
from .workflow import run_pipeline

__all__ = [
    "Config",
    "load_config_file",
    "run_pipeline",
    "__version__",
]
# Note: 'cli' and 'service' are available via __getattr__ for lazy loading
__version__ = "1.2.0"

_import_cache: dict[str, object] = {}


def __getattr__(name: str):
    if name in _import_cache:
        return _import_cache[name]

    if name in ("cli", "service"):
        import importlib

        module = importlib.import_module(f"{__name__}.{name}")
        _import_cache[name] = module
        return module
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
