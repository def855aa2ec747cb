"""Workflow orchestration and pipeline execution.

This package provides:
- Pipeline orchestration (orchestration.py)
- Run result and summary types (types.py)
- Metrics collection (metrics.py)
"""

from __future__ import annotations

from . import metrics
from .orchestration import (
    apply_log_level,
    build_collections,
    build_enriched_episodes,
    load_episodes,
    load_previous_series,
    run_pipeline,
)
from .types import EnrichmentSummary, EnrichResult

__all__ = [
    "EnrichResult",
    "EnrichmentSummary",
    "apply_log_level",
    "build_collections",
    "build_enriched_episodes",
    "load_episodes",
    "load_previous_series",
    "metrics",
    "run_pipeline",
]
