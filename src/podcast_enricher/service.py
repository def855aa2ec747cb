"""Service API for programmatic use of podcast_enricher.

This module provides a programmatic interface for non-interactive use, such
as a scheduled job (cron, systemd timer) regenerating the site artefacts.

The service API:
- Works exclusively with configuration files (no CLI arguments)
- Returns a structured result instead of raising
- Leaves CLI concerns (argument parsing, printing) to cli.py

Example:
    >>> from podcast_enricher import service, config
    >>>
    >>> config_dict = config.load_config_file("enrich.yaml")
    >>> cfg = config.Config(**config_dict)
    >>> result = service.run(cfg)
    >>> print(f"Resolved {result.series_resolved} series")
    >>> print(f"Summary: {result.summary}")

For scheduled usage:
    # crontab
    0 4 * * * python -m podcast_enricher.service --config /srv/site/enrich.yaml
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from . import __version__, config, workflow

logger = logging.getLogger(__name__)


@dataclass
class ServiceResult:
    """Result of a service run.

    Attributes:
        series_resolved: Number of series in the run (0 on failure)
        summary: Human-readable summary line
        success: Whether the run completed successfully
        error: Error message if success is False, None otherwise
    """

    series_resolved: int
    summary: str
    success: bool = True
    error: Optional[str] = None


def run(cfg: config.Config) -> ServiceResult:
    """Run the enrichment pipeline with the given configuration.

    Args:
        cfg: Configuration object

    Returns:
        ServiceResult describing the run

    Example:
        >>> cfg = config.Config(root_dir="./site", cache_only=True)
        >>> result = service.run(cfg)
        >>> if not result.success:
        ...     print(f"Error: {result.error}")
    """
    try:
        if cfg.log_file or cfg.log_level:
            workflow.apply_log_level(level=cfg.log_level or "INFO", log_file=cfg.log_file)

        result = workflow.run_pipeline(cfg)

        return ServiceResult(
            series_resolved=result.summary.total_series,
            summary=result.summary.format_line(),
            success=True,
            error=None,
        )
    except Exception as e:
        error_msg = str(e)
        logger.error(f"Pipeline execution failed: {error_msg}", exc_info=True)
        return ServiceResult(series_resolved=0, summary="", success=False, error=error_msg)


def run_from_config_file(config_path: Union[str, Path]) -> ServiceResult:
    """Run the pipeline from a configuration file.

    Args:
        config_path: Path to configuration file (JSON or YAML)

    Returns:
        ServiceResult; configuration problems are reported as failures
    """
    try:
        config_dict = config.load_config_file(str(config_path))
        cfg = config.Config(**config_dict)
    except Exception as exc:
        error_msg = f"Failed to load configuration file: {exc}"
        logger.error(error_msg)
        return ServiceResult(series_resolved=0, summary="", success=False, error=error_msg)

    return run(cfg)


def main(argv: Optional[list] = None) -> int:
    """Entry point for service mode (config file only).

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    import argparse

    parser = argparse.ArgumentParser(
        description="Podcast Enricher Service - Run pipeline from configuration file",
    )
    parser.add_argument(
        "--config",
        required=True,
        help="Path to configuration file (JSON or YAML)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"podcast_enricher {__version__}",
    )
    args = parser.parse_args(argv)

    result = run_from_config_file(args.config)
    if result.success:
        print(result.summary)
        return 0
    print(f"Error: {result.error}", file=sys.stderr)
    return 1


if __name__ == "__main__":  # pragma: no cover - script entry
    sys.exit(main())
