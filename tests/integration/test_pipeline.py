#!/usr/bin/env python3
"""Integration tests for the enrichment pipeline.

These tests run the whole pipeline against a temporary site root, with the
language model replaced by a fake provider.
"""

import json
import tempfile
import unittest
from pathlib import Path

import pytest
from enricher_testing import (
    FakeSeriesProvider,
    make_catalogue,
    make_config,
    make_episode,
    make_inference,
    read_artifact,
    write_site,
)

from podcast_enricher import run_pipeline
from podcast_enricher.exceptions import (
    CacheValidationError,
    EnrichmentInputError,
    ProviderRuntimeError,
)

pytestmark = pytest.mark.integration

ARTIFACTS = (
    "public/episodes.json",
    "public/series.json",
    "public/collections.json",
    "public/umbrellas.json",
    "data/inference-cache.json",
)

COLUMBUS = make_inference(
    seriesTitle="Columbus's Voyages",
    umbrellaTitle="Age of Discovery",
    yearPrimary=1492,
    yearFrom=1492,
    yearTo=1504,
    scope="range",
    confidence=0.9,
)
ROME = make_inference(
    seriesTitle="The Fall of Rome",
    umbrellaTitle="Ancient Rome",
    yearPrimary=1200,
    scope="point",
    confidence=0.3,
)


def _answers():
    return {
        "Columbus": COLUMBUS,
        "The Fall of Rome": ROME,
        "Vikings Part 1": ProviderRuntimeError("timed out", provider="Fake", attempts=3),
    }


class PipelineTestCase(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self.temp_dir.name)
        write_site(self.root, make_catalogue(), century_map={"14": "5th century"})

    def tearDown(self):
        self.temp_dir.cleanup()

    def _snapshot(self):
        return {
            name: (self.root / name).read_bytes()
            for name in ARTIFACTS
            if (self.root / name).exists()
        }

    def _series_by_key(self):
        return {item["key"]: item for item in read_artifact(self.root, "public/series.json")}


class TestCacheOnlyRun(PipelineTestCase):
    """Cache-only run with no credentials resolves everything from rules."""

    def test_rules_only_artifacts(self):
        result = run_pipeline(make_config(self.root, cache_only=True))

        summary = result.summary
        self.assertEqual(summary.total_episodes, 6)
        self.assertEqual(summary.total_series, 4)
        self.assertEqual(summary.singleton_series, 3)
        self.assertEqual(summary.llm_calls, 0)
        self.assertEqual(summary.llm_skipped, 0)
        self.assertEqual(summary.umbrellas, 4)
        self.assertEqual(summary.low_confidence_series, 1)

        series = self._series_by_key()
        self.assertEqual(
            sorted(series), ["columbus", "the-fall-of-rome", "vikings-part-1", "vikings-part-2"]
        )
        columbus = series["columbus"]
        self.assertEqual(columbus["episodeNumbers"], [10, 11, 13])
        self.assertEqual(columbus["parts"], [1, 2, 3])
        self.assertEqual(columbus["scope"], "unknown")
        self.assertIsNone(columbus["yearPrimary"])
        self.assertIsNone(columbus["confidence"])
        self.assertEqual(columbus["source"], "rules")
        self.assertFalse(columbus["singleton"])
        rome = series["the-fall-of-rome"]
        self.assertEqual((rome["yearFrom"], rome["yearTo"], rome["yearPrimary"]), (400, 499, 450))
        self.assertEqual(rome["confidence"], 0.4)
        self.assertTrue(rome["singleton"])

    def test_episode_artifact(self):
        run_pipeline(make_config(self.root, cache_only=True))

        episodes = read_artifact(self.root, "public/episodes.json")
        self.assertEqual([e["episode"] for e in episodes], [10, 11, 13, 14, 20, 25])
        first = episodes[0]
        self.assertEqual(first["seriesKey"], "columbus")
        self.assertEqual(first["seriesPart"], 1)
        self.assertEqual(first["source"], "series")
        self.assertEqual(first["title_feed"], "Columbus - Part 1")
        self.assertIsNone(episodes[3]["seriesPart"])
        self.assertEqual(episodes[3]["yearFrom"], 400)

    def test_artifact_format_and_order(self):
        run_pipeline(make_config(self.root, cache_only=True))

        text = (self.root / "public/series.json").read_text(encoding="utf-8")
        self.assertTrue(text.endswith("]\n"))
        self.assertIn('\n  {\n    "key": "columbus"', text)
        collections = read_artifact(self.root, "public/collections.json")
        self.assertEqual([c["key"] for c in collections], sorted(c["key"] for c in collections))
        umbrellas = read_artifact(self.root, "public/umbrellas.json")["umbrellas"]
        self.assertEqual(umbrellas[0]["key"], "the-fall-of-rome")
        cache = read_artifact(self.root, "data/inference-cache.json")
        self.assertEqual(list(cache), sorted(cache))
        self.assertTrue(all(entry["version"] == 1 for entry in cache.values()))

    def test_rerun_is_byte_identical(self):
        run_pipeline(make_config(self.root, cache_only=True))
        first = self._snapshot()
        run_pipeline(make_config(self.root, cache_only=True))
        self.assertEqual(self._snapshot(), first)


class TestModelRun(PipelineTestCase):
    """Runs that reach the (fake) language model."""

    def test_model_results_blending_and_failures(self):
        provider = FakeSeriesProvider(_answers())

        result = run_pipeline(make_config(self.root), inference_provider=provider)

        self.assertCountEqual(
            provider.calls, ["Columbus", "The Fall of Rome", "Vikings Part 1", "Vikings Part 2"]
        )
        self.assertEqual(result.summary.llm_calls, 4)
        self.assertEqual(result.summary.llm_failures, 1)
        self.assertIn("LLM failures: 1", result.summary.format_line())

        series = self._series_by_key()
        columbus = series["columbus-s-voyages"]
        self.assertEqual(columbus["umbrellaKey"], "age-of-discovery")
        self.assertEqual((columbus["yearFrom"], columbus["yearTo"]), (1492, 1504))
        self.assertEqual(columbus["source"], "llm")
        rome = series["the-fall-of-rome"]
        self.assertEqual(rome["source"], "mixed")
        self.assertEqual(rome["umbrellaKey"], "ancient-rome")
        self.assertEqual((rome["yearFrom"], rome["yearTo"]), (400, 499))
        self.assertEqual(rome["confidence"], 0.4)
        self.assertEqual(series["vikings-part-1"]["source"], "rules")
        self.assertEqual(series["vikings-part-2"]["source"], "llm")
        self.assertIsNone(series["vikings-part-2"]["confidence"])

    def test_second_run_resolves_from_cache(self):
        run_pipeline(make_config(self.root), inference_provider=FakeSeriesProvider(_answers()))
        first = self._snapshot()

        provider = FakeSeriesProvider(_answers())
        result = run_pipeline(make_config(self.root), inference_provider=provider)

        self.assertEqual(provider.calls, [])
        self.assertEqual(result.summary.llm_calls, 0)
        self.assertEqual(self._snapshot(), first)

    def test_refresh_asks_again(self):
        run_pipeline(make_config(self.root), inference_provider=FakeSeriesProvider(_answers()))
        provider = FakeSeriesProvider(_answers())
        run_pipeline(make_config(self.root, refresh=True), inference_provider=provider)
        self.assertEqual(len(provider.calls), 4)

    def test_missing_credentials_counted_as_skipped(self):
        result = run_pipeline(make_config(self.root))
        self.assertEqual(result.summary.llm_skipped, 4)
        self.assertEqual(result.summary.llm_calls, 0)
        self.assertEqual(self._series_by_key()["the-fall-of-rome"]["source"], "rules")

    def test_only_slug_limits_model_calls(self):
        provider = FakeSeriesProvider(_answers())
        run_pipeline(make_config(self.root, only="episode-11"), inference_provider=provider)
        self.assertEqual(provider.calls, ["Columbus"])
        series = self._series_by_key()
        self.assertIn("columbus-s-voyages", series)
        self.assertEqual(series["the-fall-of-rome"]["source"], "rules")

    def test_keys_survive_title_collisions(self):
        episodes = make_catalogue() + [make_episode(40, "Columbus")]
        write_site(self.root, episodes)
        provider = FakeSeriesProvider({"Columbus": COLUMBUS})
        result = run_pipeline(make_config(self.root), inference_provider=provider)
        keys = [item.key for item in result.series]
        self.assertIn("columbus-s-voyages", keys)
        self.assertIn("columbus-s-voyages-e40", keys)
        self.assertEqual(len(keys), len(set(keys)))


class TestRunModes(PipelineTestCase):
    """Dry run, series-only and overrides."""

    def test_dry_run_writes_nothing(self):
        before = self._snapshot()
        result = run_pipeline(make_config(self.root, dry_run=True, cache_only=True))
        self.assertEqual(result.written, [])
        self.assertEqual(len(result.series), 4)
        self.assertEqual(self._snapshot(), before)
        self.assertFalse((self.root / "public/series.json").exists())

    def test_series_only_leaves_episodes_untouched(self):
        before = (self.root / "public/episodes.json").read_bytes()
        result = run_pipeline(make_config(self.root, series_only=True, cache_only=True))
        self.assertEqual((self.root / "public/episodes.json").read_bytes(), before)
        self.assertTrue((self.root / "public/series.json").exists())
        self.assertEqual(len(result.written), 4)

    def test_umbrella_override(self):
        overrides = {"age-of-discovery": {"key": "Exploration", "title": "Exploration"}}
        write_site(self.root, overrides=overrides)
        run_pipeline(make_config(self.root), inference_provider=FakeSeriesProvider(_answers()))
        first = self._snapshot()

        columbus = self._series_by_key()["columbus-s-voyages"]
        self.assertEqual(columbus["umbrellaKey"], "exploration")
        self.assertEqual(columbus["umbrellaTitle"], "Exploration")
        self.assertEqual(columbus["source"], "override")
        episode = read_artifact(self.root, "public/episodes.json")[0]
        self.assertEqual(episode["source"], "override")

        run_pipeline(make_config(self.root), inference_provider=FakeSeriesProvider(_answers()))
        self.assertEqual(self._snapshot(), first)


class TestLegacyCache(PipelineTestCase):
    """Promotion of the episode-keyed cache generation."""

    def test_legacy_entries_promoted_and_rewritten(self):
        legacy = {
            "episode-10": {
                "seriesTitle": "Columbus",
                "seriesPart": 1,
                "yearPrimary": 1492,
                "yearFrom": 1492,
                "yearTo": 1493,
                "scope": "range",
                "umbrellas": ["age of discovery"],
                "confidence": 0.8,
            }
        }
        write_site(self.root, cache=legacy)

        run_pipeline(make_config(self.root, cache_only=True))

        columbus = self._series_by_key()["columbus"]
        self.assertEqual(columbus["umbrellaKey"], "age-of-discovery")
        self.assertEqual(columbus["umbrellaTitle"], "Age Of Discovery")
        self.assertEqual((columbus["yearFrom"], columbus["yearTo"]), (1492, 1493))
        self.assertEqual(columbus["source"], "llm")
        cache = read_artifact(self.root, "data/inference-cache.json")
        self.assertNotIn("episode-10", cache)
        self.assertEqual(cache["columbus"]["version"], 1)


class TestFatalInputs(PipelineTestCase):
    """Malformed inputs abort before anything is written."""

    def test_corrupt_cache(self):
        write_site(self.root, cache={"columbus": {"title": "Columbus"}})
        with self.assertRaises(CacheValidationError):
            run_pipeline(make_config(self.root, cache_only=True))
        self.assertFalse((self.root / "public/series.json").exists())

    def test_missing_catalogue(self):
        (self.root / "public/episodes.json").unlink()
        with self.assertRaises(EnrichmentInputError):
            run_pipeline(make_config(self.root, cache_only=True))

    def test_invalid_catalogue(self):
        write_site(self.root, [{"episode": "ten", "slug": "x"}])
        with self.assertRaises(EnrichmentInputError):
            run_pipeline(make_config(self.root, cache_only=True))

    def test_duplicate_slugs(self):
        write_site(self.root, [make_episode(1, "A"), make_episode(2, "B", slug="episode-1")])
        with self.assertRaises(EnrichmentInputError):
            run_pipeline(make_config(self.root, cache_only=True))

    def test_catalogue_must_be_a_list(self):
        (self.root / "public/episodes.json").write_text(json.dumps({"episodes": []}))
        with self.assertRaises(EnrichmentInputError):
            run_pipeline(make_config(self.root, cache_only=True))


class TestArtifactInvariants(PipelineTestCase):
    """Properties every run must hold across all emitted series."""

    ANSWERS = {
        "Columbus": COLUMBUS,
        "The Fall of Rome": ROME,
        "Vikings Part 1": ProviderRuntimeError("timed out", provider="Fake", attempts=3),
        "Vikings Part 2": make_inference(
            seriesTitle="Viking Raids",
            umbrellaTitle="Age of Discovery",
            yearPrimary=850,
            yearFrom=793,
            yearTo=1066,
            scope="point",
            confidence=0.8,
        ),
        "Magna Carta": make_inference(
            seriesTitle="Magna Carta",
            yearPrimary=1300,
            yearFrom=1297,
            yearTo=1215,
            scope="range",
            confidence=0.7,
        ),
    }

    def setUp(self):
        super().setUp()
        episodes = make_catalogue() + [
            make_episode(30, "Magna Carta"),
            make_episode(31, "Untitled"),
        ]
        overrides = {"age-of-discovery": {"key": "exploration", "title": "Exploration"}}
        write_site(self.root, episodes, overrides=overrides)

    def _assert_invariants(self):
        series = read_artifact(self.root, "public/series.json")
        keys = [item["key"] for item in series]
        self.assertEqual(len(keys), len(set(keys)))

        for item in series:
            with self.subTest(series=item["key"]):
                bounds = (item["yearFrom"], item["yearTo"], item["yearPrimary"])
                if item["scope"] == "point":
                    self.assertEqual(len(set(bounds)), 1)
                if item["yearFrom"] is not None and item["yearTo"] is not None:
                    self.assertLessEqual(item["yearFrom"], item["yearTo"])

        umbrellas = read_artifact(self.root, "public/umbrellas.json")["umbrellas"]
        for umbrella in umbrellas:
            with self.subTest(umbrella=umbrella["key"]):
                members = umbrella["seriesKeys"]
                self.assertEqual(len(members), len(set(members)))
                self.assertEqual(umbrella["count"], len(members))
                pointing = {s["key"] for s in series if s["umbrellaKey"] == umbrella["key"]}
                self.assertEqual(set(members), pointing)
        self.assertEqual({u["key"] for u in umbrellas}, {s["umbrellaKey"] for s in series})

        episodes = read_artifact(self.root, "public/episodes.json")
        self.assertTrue(all(episode["seriesKey"] in set(keys) for episode in episodes))
        return series

    def test_invariants_hold_for_model_and_cached_runs(self):
        run_pipeline(make_config(self.root), inference_provider=FakeSeriesProvider(self.ANSWERS))
        series = self._assert_invariants()
        sources = {item["source"] for item in series}
        self.assertEqual(sources, {"llm", "mixed", "rules", "override"})
        self.assertTrue(any(item["singleton"] for item in series))
        self.assertTrue(any(not item["singleton"] for item in series))

        run_pipeline(make_config(self.root, cache_only=True))
        self.assertEqual(self._assert_invariants(), series)
