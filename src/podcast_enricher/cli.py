"""Command-line interface helpers for podcast_enricher."""

from __future__ import annotations

import argparse
import logging
from typing import Any, Callable, Dict, Optional, Sequence

from pydantic import ValidationError

from . import __version__, config, workflow
from .exceptions import EnrichmentError, ProviderError

_LOGGER = logging.getLogger(__name__)

# argparse dest -> Config field, for flags whose names differ
_DEST_TO_FIELD = {
    "root": "root_dir",
    "only": "only_slug",
    "model": "openai_model",
}


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default=None, help="Path to configuration file (JSON or YAML)")
    parser.add_argument(
        "--root",
        default=None,
        help="Site root holding public/ and data/ (default: current directory)",
    )
    parser.add_argument("--version", action="store_true", help="Show program version and exit")
    parser.add_argument("--log-level", default=None, help="Logging level (e.g., DEBUG, INFO)")
    parser.add_argument("--log-file", default=None, help="Also write logs to this file")
    parser.add_argument(
        "-v", "--verbose", action="store_true", default=None, help="Verbose (DEBUG) logging"
    )


def _add_mode_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("Run Modes")
    group.add_argument(
        "--dry-run", action="store_true", default=None, help="Compute everything, write nothing"
    )
    group.add_argument(
        "--refresh",
        action="store_true",
        default=None,
        help=(
            "Ignore cached and legacy inferences and ask the model again. Without it, "
            "cached rules, mixed and override series keep their stored years even when "
            "century labels or episode years change"
        ),
    )
    group.add_argument(
        "--cache-only", action="store_true", default=None, help="Never call the language model"
    )
    group.add_argument(
        "--series-only",
        action="store_true",
        default=None,
        help="Do not rewrite the episode artefact",
    )
    group.add_argument(
        "--only",
        metavar="SLUG",
        default=None,
        help="Restrict model calls to the series containing this episode slug",
    )


def _add_inference_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("Series Inference")
    group.add_argument("--model", default=None, help="OpenAI chat model for series inference")
    group.add_argument(
        "--llm-concurrency", type=int, default=None, help="Maximum in-flight model calls"
    )
    group.add_argument(
        "--llm-timeout", type=float, default=None, help="Per-attempt timeout in seconds"
    )
    group.add_argument("--workers", type=int, default=None, help="Threads issuing model calls")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments. Unset flags stay None so config file values survive."""
    parser = argparse.ArgumentParser(
        description="Enrich a podcast episode catalogue with series, years and umbrellas."
    )
    _add_common_arguments(parser)
    _add_mode_arguments(parser)
    _add_inference_arguments(parser)
    args = parser.parse_args(argv)
    if args.version:
        print(f"podcast_enricher {__version__}")
        raise SystemExit(0)
    return args


def _build_config(args: argparse.Namespace) -> config.Config:
    """Merge the optional config file with the flags given on the command line.

    Raises:
        ValueError: If the config file cannot be loaded
        ValidationError: If the merged values are invalid
    """
    payload: Dict[str, Any] = {}
    if args.config:
        payload.update(config.load_config_file(args.config))

    for dest, value in vars(args).items():
        if dest in ("config", "version") or value is None:
            continue
        field_name = _DEST_TO_FIELD.get(dest, dest)
        # A flag beats the config file whether it used the alias or the field name
        for alias, name in _DEST_TO_FIELD.items():
            if name == field_name:
                payload.pop(alias, None)
        payload[field_name] = value

    return config.Config.model_validate(payload)


def _log_configuration(cfg: config.Config, logger: logging.Logger) -> None:
    logger.debug("Configuration:")
    logger.debug(f"  Root: {cfg.root_dir}")
    logger.debug(f"  Episodes: {cfg.episodes_source}")
    logger.debug(f"  Cache: {cfg.resolve(cfg.cache_path)}")
    logger.debug(
        f"  Modes: dry_run={cfg.dry_run} refresh={cfg.refresh} cache_only={cfg.cache_only} "
        f"series_only={cfg.series_only} only={cfg.only_slug or '-'}"
    )
    logger.debug(
        f"  Model: {cfg.openai_model} (concurrency={cfg.llm_concurrency}, "
        f"timeout={cfg.llm_timeout}s, credentials={'yes' if cfg.openai_api_key else 'no'})"
    )


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    apply_log_level_fn: Optional[Callable[[str, Optional[str]], None]] = None,
    run_pipeline_fn: Optional[Callable[[config.Config], workflow.EnrichResult]] = None,
    logger: Optional[logging.Logger] = None,
) -> int:
    """Entry point for the CLI; returns an exit status code."""
    log = logger or _LOGGER
    if apply_log_level_fn is None:
        apply_log_level_fn = workflow.apply_log_level
    if run_pipeline_fn is None:
        run_pipeline_fn = workflow.run_pipeline

    args = parse_args(argv)

    try:
        cfg = _build_config(args)
    except ValidationError as exc:
        log.error(f"Invalid configuration: {exc}")
        return 1
    except ValueError as exc:
        log.error(f"Error: {exc}")
        return 1

    apply_log_level_fn(cfg.log_level, cfg.log_file)
    _log_configuration(cfg, log)

    try:
        result = run_pipeline_fn(cfg)
    except (EnrichmentError, ProviderError) as exc:
        log.error(f"Enrichment failed: {exc}")
        return 1

    print(result.summary.format_line())
    return 0


if __name__ == "__main__":  # pragma: no cover - script entry
    raise SystemExit(main())
