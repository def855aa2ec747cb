#!/usr/bin/env python3
"""Tests for the year/scope resolver."""

import unittest

import pytest
from enricher_testing import make_episode, make_inference, to_records

from podcast_enricher.resolver import (
    derive_years_from_century,
    derive_years_from_episodes,
    Judgement,
    normalize_years,
    resolve_series,
)
from podcast_enricher.schemas import SeriesCacheEntry
from podcast_enricher.seeds import build_series_seeds

pytestmark = pytest.mark.unit


def _seed(episodes, century_map=None):
    (seed,) = build_series_seeds(to_records(episodes), century_map)
    return seed


def _rome_seed():
    return _seed([make_episode(14, "The Fall of Rome")], {14: "5th century"})


def _columbus_seed_with_prior_years():
    return _seed(
        [
            make_episode(
                10,
                "Columbus - Part 1",
                yearPrimary=1492,
                yearFrom=1492,
                yearTo=1493,
                scope="range",
                confidence=0.8,
            ),
            make_episode(
                11,
                "Columbus - Part 2",
                yearPrimary=1500,
                yearFrom=1493,
                yearTo=1502,
                scope="point",
                confidence=0.9,
            ),
        ]
    )


class TestRuleFallbacks(unittest.TestCase):
    """Test the rule-based year estimates."""

    def test_from_episode_fields(self):
        estimate = derive_years_from_episodes(_columbus_seed_with_prior_years())
        self.assertEqual(estimate.year_from, 1492)
        self.assertEqual(estimate.year_to, 1502)
        self.assertEqual(estimate.year_primary, 1496)
        self.assertEqual(estimate.scope, "range")
        self.assertAlmostEqual(estimate.confidence, 0.85)

    def test_from_episode_fields_without_years(self):
        self.assertIsNone(derive_years_from_episodes(_rome_seed()))

    def test_episode_fields_default_confidence(self):
        seed = _seed([make_episode(3, "Hastings", yearPrimary=1066)])
        estimate = derive_years_from_episodes(seed)
        self.assertEqual(estimate.scope, "point")
        self.assertEqual(estimate.confidence, 0.4)

    def test_from_century(self):
        estimate = derive_years_from_century(_rome_seed())
        self.assertEqual((estimate.year_from, estimate.year_to), (400, 499))
        self.assertEqual(estimate.year_primary, 450)
        self.assertEqual(estimate.scope, "range")
        self.assertEqual(estimate.confidence, 0.4)

    def test_unrecognised_century(self):
        seed = _seed([make_episode(14, "The Fall of Rome")], {14: "Late antiquity"})
        self.assertIsNone(derive_years_from_century(seed))


class TestNormalizeYears(unittest.TestCase):
    """Test the numeric invariants."""

    def test_swaps_and_clamps(self):
        years = normalize_years(1700, 1600, 1400, "range", 1.2)
        self.assertEqual((years.year_from, years.year_to, years.year_primary), (1400, 1600, 1600))
        self.assertEqual(years.confidence, 1.0)

    def test_point_collapses(self):
        years = normalize_years(None, 1492, 1500, "point", 0.5)
        self.assertEqual((years.year_primary, years.year_from, years.year_to), (1492, 1492, 1492))

    def test_range_fills_missing_bound(self):
        years = normalize_years(None, 1492, None, "range", None)
        self.assertEqual((years.year_from, years.year_to), (1492, 1492))
        self.assertIsNone(years.confidence)

    def test_negative_confidence_clamped(self):
        self.assertEqual(normalize_years(None, None, None, "unknown", -0.2).confidence, 0.0)


class TestResolveSeries(unittest.TestCase):
    """Test the per-seed resolution cascade."""

    def test_no_signal(self):
        resolved = resolve_series(_seed([make_episode(5, "Mystery")]), None)
        self.assertEqual(resolved.title, "Mystery")
        self.assertEqual(resolved.umbrella_title, "Mystery")
        self.assertEqual(resolved.umbrella_key, "mystery")
        self.assertIsNone(resolved.year_primary)
        self.assertIsNone(resolved.year_from)
        self.assertIsNone(resolved.year_to)
        self.assertEqual(resolved.scope, "unknown")
        self.assertIsNone(resolved.confidence)
        self.assertEqual(resolved.source, "rules")

    def test_rules_from_century(self):
        resolved = resolve_series(_rome_seed(), None)
        self.assertEqual((resolved.year_from, resolved.year_to), (400, 499))
        self.assertEqual(resolved.source, "rules")

    def test_confident_model_judgement_used_as_is(self):
        inference = make_inference(
            seriesTitle="Columbus's Voyages",
            umbrellaTitle="Age of Discovery",
            yearPrimary=1492,
            yearFrom=1492,
            yearTo=1504,
            scope="range",
            confidence=0.9,
        )
        resolved = resolve_series(
            _columbus_seed_with_prior_years(), Judgement.from_inference(inference)
        )
        self.assertEqual(resolved.title, "Columbus's Voyages")
        self.assertEqual(resolved.umbrella_key, "age-of-discovery")
        self.assertEqual((resolved.year_from, resolved.year_to), (1492, 1504))
        self.assertEqual(resolved.confidence, 0.9)
        self.assertEqual(resolved.source, "llm")

    def test_low_confidence_blends_with_century(self):
        inference = make_inference(
            seriesTitle="The Fall of Rome", yearPrimary=1200, scope="point", confidence=0.3
        )
        resolved = resolve_series(_rome_seed(), Judgement.from_inference(inference))
        self.assertEqual((resolved.year_from, resolved.year_to), (400, 499))
        self.assertEqual(resolved.year_primary, 450)
        self.assertEqual(resolved.scope, "range")
        self.assertEqual(resolved.confidence, 0.4)
        self.assertEqual(resolved.source, "mixed")

    def test_blended_confidence_is_capped(self):
        inference = make_inference(yearPrimary=1200, scope="point", confidence=0.2)
        resolved = resolve_series(
            _columbus_seed_with_prior_years(), Judgement.from_inference(inference)
        )
        self.assertEqual(resolved.confidence, 0.55)
        self.assertEqual(resolved.source, "mixed")
        self.assertEqual((resolved.year_from, resolved.year_to), (1492, 1502))

    def test_missing_confidence_counts_as_low(self):
        inference = make_inference(yearPrimary=1200, scope="point")
        resolved = resolve_series(_rome_seed(), Judgement.from_inference(inference))
        self.assertEqual(resolved.source, "mixed")

    def test_low_confidence_without_fallback_drops_years(self):
        inference = make_inference(
            seriesTitle="Mystery Tales", yearPrimary=1200, scope="point", confidence=0.3
        )
        resolved = resolve_series(
            _seed([make_episode(5, "Mystery")]), Judgement.from_inference(inference)
        )
        self.assertIsNone(resolved.year_primary)
        self.assertEqual(resolved.scope, "unknown")
        self.assertEqual(resolved.confidence, 0.3)
        self.assertEqual(resolved.source, "llm")
        self.assertEqual(resolved.title, "Mystery Tales")

    def test_blank_titles_fall_back(self):
        inference = make_inference(seriesTitle="  ", umbrellaTitle="", confidence=0.9)
        resolved = resolve_series(_rome_seed(), Judgement.from_inference(inference))
        self.assertEqual(resolved.title, "The Fall of Rome")
        self.assertEqual(resolved.umbrella_title, "The Fall of Rome")

    def test_cached_non_model_entry_replayed_verbatim(self):
        entry = SeriesCacheEntry(
            title="The Fall of Rome",
            umbrella_key="exploration",
            umbrella_title="Exploration",
            year_primary=476,
            year_from=476,
            year_to=476,
            scope="point",
            confidence=0.4,
            source="override",
            version=1,
        )
        resolved = resolve_series(_rome_seed(), Judgement.from_cache_entry(entry))
        self.assertEqual(resolved.year_primary, 476)
        self.assertEqual(resolved.confidence, 0.4)
        self.assertEqual(resolved.source, "override")
        self.assertEqual(resolved.umbrella_key, "exploration")

    def test_cached_rules_entry_ignores_new_century_label(self):
        entry = SeriesCacheEntry(
            title="The Fall of Rome",
            umbrella_key="the-fall-of-rome",
            umbrella_title="The Fall of Rome",
            year_primary=None,
            year_from=None,
            year_to=None,
            scope="unknown",
            confidence=None,
            source="rules",
            version=1,
        )
        resolved = resolve_series(_rome_seed(), Judgement.from_cache_entry(entry))
        self.assertIsNone(resolved.year_from)
        self.assertEqual(resolved.scope, "unknown")
        self.assertEqual(resolved.source, "rules")

    def test_cached_entry_without_source_is_model_output(self):
        entry = SeriesCacheEntry(
            title="The Fall of Rome",
            umbrella_key="ancient-rome",
            umbrella_title="Ancient Rome",
            year_primary=476,
            year_from=476,
            year_to=476,
            scope="point",
            confidence=0.9,
            version=1,
        )
        judgement = Judgement.from_cache_entry(entry)
        self.assertEqual(judgement.source, "llm")
        self.assertEqual(resolve_series(_rome_seed(), judgement).source, "llm")
