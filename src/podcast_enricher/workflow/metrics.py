"""Simple in-memory metrics collector for enrichment runs."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field, fields
from typing import Any, Dict

logger = logging.getLogger(__name__)


@dataclass
class Metrics:
    """In-memory metrics collector for one pipeline run.

    Counters touched from model-call worker threads go through the
    ``record_*`` methods, which hold a lock.
    """

    # Resolution paths
    cache_hits: int = 0
    legacy_promotions: int = 0
    llm_calls: int = 0
    llm_skipped: int = 0
    llm_failures: int = 0
    rule_fallbacks: int = 0
    low_confidence_blends: int = 0
    overrides_applied: int = 0

    # Timing
    run_duration_seconds: float = 0.0
    time_loading: float = 0.0
    time_resolving: float = 0.0
    time_writing: float = 0.0
    llm_seconds_total: float = 0.0

    _start_time: float = field(default_factory=time.time, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record_llm_call(self, elapsed_seconds: float, failed: bool = False) -> None:
        """Record one model call (thread-safe)."""
        with self._lock:
            self.llm_calls += 1
            self.llm_seconds_total += elapsed_seconds
            if failed:
                self.llm_failures += 1

    def record_stage(self, stage: str, elapsed_seconds: float) -> None:
        """Add elapsed time to a stage bucket (``loading``, ``resolving`` or ``writing``)."""
        attr = f"time_{stage}"
        if not hasattr(self, attr):
            raise ValueError(f"Unknown stage: {stage}")
        setattr(self, attr, getattr(self, attr) + elapsed_seconds)

    def finish(self) -> Dict[str, Any]:
        """Stop the run clock and return the metrics as a dictionary."""
        self.run_duration_seconds = round(time.time() - self._start_time, 3)
        return {f.name: getattr(self, f.name) for f in fields(self) if not f.name.startswith("_")}

    def log_metrics(self) -> None:
        """Log collected metrics at debug level."""
        data = self.finish()
        logger.debug(
            "Enrichment metrics: %s",
            ", ".join(f"{key}={value}" for key, value in data.items()),
        )
