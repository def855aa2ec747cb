"""Shared pytest setup for podcast_enricher tests.

Helper functions live in ``enricher_testing.py``, importable because the
tests directory is on ``pythonpath``.
"""

import os

import pytest

# Never let a developer's real credentials reach a test run
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("OPENAI_API_BASE", None)


@pytest.fixture(autouse=True)
def _reset_prompt_cache():
    from podcast_enricher.prompts import store

    store.clear_cache()
    yield
    store.clear_cache()
