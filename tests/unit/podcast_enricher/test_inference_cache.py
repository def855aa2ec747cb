#!/usr/bin/env python3
"""Tests for the inference cache and legacy promotion."""

import json
import tempfile
import unittest
from pathlib import Path

import pytest
from enricher_testing import make_catalogue, make_series, to_records

from podcast_enricher.cache import (
    build_cache_entry,
    CacheState,
    load_inference_cache,
    lookup_cached_entry,
    lookup_previous_key,
    promote_legacy_entries,
    serialize_cache,
)
from podcast_enricher.exceptions import CacheValidationError
from podcast_enricher.seeds import build_series_seeds

pytestmark = pytest.mark.unit

MODERN_ENTRY = {
    "title": "Columbus's Voyages",
    "umbrellaKey": "age-of-discovery",
    "umbrellaTitle": "Age of Discovery",
    "yearPrimary": 1492,
    "yearFrom": 1492,
    "yearTo": 1504,
    "scope": "range",
    "confidence": 0.9,
    "version": 1,
}

LEGACY_CACHE = {
    "episode-10": {
        "seriesTitle": "Columbus",
        "seriesPart": 1,
        "yearPrimary": 1492,
        "yearFrom": 1492,
        "yearTo": 1493,
        "scope": "range",
        "umbrellas": ["age of discovery"],
        "confidence": 0.8,
    },
    "episode-11": {
        "seriesTitle": "",
        "seriesPart": 2,
        "yearPrimary": 1493,
        "yearFrom": 1493,
        "yearTo": 1502,
        "scope": "unknown",
        "umbrellas": [],
        "confidence": 0.6,
    },
}


class CacheTestCase(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.path = Path(self.temp_dir.name) / "inference-cache.json"
        self.seeds = build_series_seeds(to_records(make_catalogue()))

    def tearDown(self):
        self.temp_dir.cleanup()

    def _write(self, data):
        self.path.write_text(json.dumps(data), encoding="utf-8")


class TestLoadInferenceCache(CacheTestCase):
    """Test shape detection at load time."""

    def test_missing_file(self):
        state = load_inference_cache(self.path)
        self.assertEqual(state.kind, "empty")
        self.assertEqual(state.entries, {})
        self.assertIsNone(state.legacy)

    def test_modern_shape(self):
        self._write({"columbus-s-voyages": MODERN_ENTRY})
        state = load_inference_cache(self.path)
        self.assertEqual(state.kind, "modern")
        entry = state.entries["columbus-s-voyages"]
        self.assertEqual(entry.umbrella_key, "age-of-discovery")
        self.assertIsNone(entry.source)

    def test_unknown_keys_in_modern_entry_ignored(self):
        self._write({"columbus-s-voyages": dict(MODERN_ENTRY, rationale="well known")})
        state = load_inference_cache(self.path)
        self.assertEqual(state.kind, "modern")
        entry = state.entries["columbus-s-voyages"]
        self.assertNotIn("rationale", entry.to_dict())
        self.assertEqual(entry.year_to, 1504)

    def test_empty_object_is_modern(self):
        self._write({})
        self.assertEqual(load_inference_cache(self.path).kind, "modern")

    def test_legacy_shape(self):
        self._write(LEGACY_CACHE)
        state = load_inference_cache(self.path)
        self.assertEqual(state.kind, "legacy")
        self.assertEqual(sorted(state.legacy), ["episode-10", "episode-11"])

    def test_unknown_shape_is_fatal(self):
        self._write({"columbus": {"title": "Columbus"}})
        with self.assertRaises(CacheValidationError):
            load_inference_cache(self.path)

    def test_wrong_version_is_fatal(self):
        self._write({"columbus": dict(MODERN_ENTRY, version=2)})
        with self.assertRaises(CacheValidationError):
            load_inference_cache(self.path)

    def test_invalid_json_is_fatal(self):
        self.path.write_text("{", encoding="utf-8")
        with self.assertRaises(CacheValidationError):
            load_inference_cache(self.path)


class TestLookup(CacheTestCase):
    """Test finding cache entries through the previous run's series."""

    def test_previous_key_from_any_member(self):
        previous = make_series("columbus-s-voyages", episodes=[13])
        previous_by_slug = {"episode-13": previous}
        self.assertEqual(lookup_previous_key(self.seeds[0], previous_by_slug), "columbus-s-voyages")
        self.assertIsNone(lookup_previous_key(self.seeds[1], previous_by_slug))

    def test_cached_entry_hit_and_miss(self):
        self._write({"columbus-s-voyages": MODERN_ENTRY})
        state = load_inference_cache(self.path)
        previous_by_slug = {"episode-10": make_series("columbus-s-voyages", episodes=[10])}

        entry = lookup_cached_entry(self.seeds[0], state, previous_by_slug)
        self.assertEqual(entry.title, "Columbus's Voyages")
        self.assertIsNone(lookup_cached_entry(self.seeds[1], state, previous_by_slug))
        self.assertIsNone(lookup_cached_entry(self.seeds[0], CacheState(), previous_by_slug))


class TestPromoteLegacyEntries(CacheTestCase):
    """Test aggregating legacy per-episode entries into one series entry."""

    def setUp(self):
        super().setUp()
        self._write(LEGACY_CACHE)
        self.legacy = load_inference_cache(self.path).legacy

    def test_promotion(self):
        entry = promote_legacy_entries(self.seeds[0], self.legacy)

        self.assertEqual(entry.title, "Columbus")
        self.assertEqual(entry.umbrella_key, "age-of-discovery")
        self.assertEqual(entry.umbrella_title, "Age Of Discovery")
        self.assertEqual(entry.year_from, 1492)
        self.assertEqual(entry.year_to, 1502)
        self.assertEqual(entry.year_primary, 1492)
        self.assertEqual(entry.scope, "range")
        self.assertAlmostEqual(entry.confidence, 0.7)
        self.assertEqual(entry.source, "llm")
        self.assertEqual(entry.version, 1)

    def test_no_legacy_entries_for_seed(self):
        self.assertIsNone(promote_legacy_entries(self.seeds[1], self.legacy))

    def test_scope_derived_from_bounds(self):
        legacy = {
            "episode-14": dict(LEGACY_CACHE["episode-11"], seriesTitle=None, umbrellas=["  "])
        }
        state_path = self.path
        state_path.write_text(json.dumps(legacy), encoding="utf-8")
        entry = promote_legacy_entries(self.seeds[1], load_inference_cache(state_path).legacy)
        self.assertEqual(entry.title, "The Fall of Rome")
        self.assertEqual(entry.umbrella_key, "the-fall-of-rome")
        self.assertEqual(entry.scope, "range")


class TestSerializeCache(unittest.TestCase):
    """Test the refreshed cache document."""

    def test_entries_sorted_by_key_with_version(self):
        entries = {
            "rome": build_cache_entry(make_series("rome", source="mixed", confidence=0.4)),
            "columbus": build_cache_entry(make_series("columbus", source="llm")),
        }
        document = serialize_cache(entries)
        self.assertEqual(list(document), ["columbus", "rome"])
        self.assertEqual(document["rome"]["version"], 1)
        self.assertEqual(document["rome"]["source"], "mixed")
        self.assertEqual(document["rome"]["umbrellaKey"], "rome")
        self.assertIn("yearPrimary", document["rome"])
