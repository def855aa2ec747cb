"""Core utilities for podcast_enricher.

This module provides:
- Text, date and number helpers (slugs, roman numerals, medians, year sanity)
- Atomic JSON artefact writes
- Bounded retry with exponential backoff
"""

from .filesystem import dump_json, read_json, write_json_batch, write_text_atomic
from .retry import backoff_delay, retry_with_exponential_backoff
from .text import (
    average,
    clamp,
    clean_title_stem,
    days_between,
    median,
    parse_date,
    roman_to_int,
    sanitize_year,
    slugify,
    to_kebab_case,
    to_title_case,
    unique_sorted,
)

__all__ = [
    # Filesystem exports
    "dump_json",
    "read_json",
    "write_json_batch",
    "write_text_atomic",
    # Retry exports
    "backoff_delay",
    "retry_with_exponential_backoff",
    # Text exports
    "average",
    "clamp",
    "clean_title_stem",
    "days_between",
    "median",
    "parse_date",
    "roman_to_int",
    "sanitize_year",
    "slugify",
    "to_kebab_case",
    "to_title_case",
    "unique_sorted",
]
