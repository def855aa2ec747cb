from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from . import config_constants


# Load .env file if it exists so OPENAI_API_KEY can live next to the site.
# SKIP .env loading in test environments - tests should use Config objects and
# environment variables directly, never rely on .env files
def _is_test_environment() -> bool:
    """Check if we're running in a test environment."""
    if "pytest" in sys.modules or "PYTEST_CURRENT_TEST" in os.environ:
        return True
    if os.environ.get("TESTING", "").lower() in ("1", "true", "yes"):
        return True
    return False


if not _is_test_environment():
    try:
        load_dotenv(override=False)
    except (PermissionError, OSError):
        # If loading fails, continue without .env file
        pass

# Re-exported for convenience
DEFAULT_LOG_LEVEL = config_constants.DEFAULT_LOG_LEVEL
VALID_LOG_LEVELS = config_constants.VALID_LOG_LEVELS
LOW_CONFIDENCE_THRESHOLD = config_constants.LOW_CONFIDENCE_THRESHOLD
FALLBACK_CONFIDENCE = config_constants.FALLBACK_CONFIDENCE
DEFAULT_OPENAI_MODEL = config_constants.DEFAULT_OPENAI_MODEL
DEFAULT_LLM_CONCURRENCY = config_constants.DEFAULT_LLM_CONCURRENCY
DEFAULT_LLM_TIMEOUT_SECONDS = config_constants.DEFAULT_LLM_TIMEOUT_SECONDS
DEFAULT_LLM_MAX_ATTEMPTS = config_constants.DEFAULT_LLM_MAX_ATTEMPTS
DEFAULT_LLM_INITIAL_DELAY_SECONDS = config_constants.DEFAULT_LLM_INITIAL_DELAY_SECONDS
DEFAULT_WORKERS = config_constants.DEFAULT_WORKERS


class Config(BaseModel):
    """Configuration model for the enrichment pipeline.

    The configuration is organized into several categories:

    - **Locations**: Site root and artefact paths (relative paths resolve
      against ``root_dir``)
    - **Run modes**: dry-run, refresh, cache-only, series-only, single slug
    - **Language model**: Provider, credentials, model, gate and retry policy
    - **Logging**: Log level, optional log file, verbose switch

    The model is immutable (frozen) after creation.

    Attributes:
        root_dir: Site root directory holding ``public/`` and ``data/``.
        episodes_path: Enriched episode artefact (also the default input).
        episodes_input_path: Optional separate episode catalogue to read.
        series_path: Series artefact; the previous run's copy recovers keys.
        collections_path: Collections artefact.
        umbrellas_path: Umbrella index artefact.
        cache_path: Inference cache (modern or legacy shape).
        century_map_path: Century label lookup keyed by episode number.
        overrides_path: Umbrella override table keyed by umbrella key.
        dry_run: Compute everything but write nothing.
        refresh: Ignore cached and legacy data and ask the model again.
        cache_only: Never call the model.
        series_only: Skip rewriting the episode artefact.
        only_slug: Restrict model calls to the seed containing this slug.
        inference_provider: Model provider name ("openai").
        openai_api_key: Bearer credential (falls back to OPENAI_API_KEY).
        openai_api_base: Optional API base URL (falls back to OPENAI_API_BASE).
        openai_model: Chat model used for series inference.
        llm_concurrency: Maximum simultaneous in-flight model calls.
        llm_timeout: Per-attempt timeout in seconds.
        llm_max_attempts: Attempts per call, including the first.
        llm_initial_delay: Backoff base delay in seconds (doubles per attempt).
        workers: Threads used to issue model calls.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional log file path.
        verbose: Shortcut for DEBUG logging.

    Example:
        >>> from podcast_enricher import Config
        >>> cfg = Config(root_dir="./site", cache_only=True)
        >>> cfg.resolve(cfg.series_path).name
        'series.json'
    """

    root_dir: str = Field(default=".", alias="root")
    episodes_path: str = Field(default=config_constants.DEFAULT_EPISODES_PATH)
    episodes_input_path: Optional[str] = Field(default=None)
    series_path: str = Field(default=config_constants.DEFAULT_SERIES_PATH)
    collections_path: str = Field(default=config_constants.DEFAULT_COLLECTIONS_PATH)
    umbrellas_path: str = Field(default=config_constants.DEFAULT_UMBRELLAS_PATH)
    cache_path: str = Field(default=config_constants.DEFAULT_CACHE_PATH)
    century_map_path: str = Field(default=config_constants.DEFAULT_CENTURY_MAP_PATH)
    overrides_path: str = Field(default=config_constants.DEFAULT_OVERRIDES_PATH)

    dry_run: bool = Field(default=False)
    refresh: bool = Field(default=False)
    cache_only: bool = Field(default=False)
    series_only: bool = Field(default=False)
    only_slug: Optional[str] = Field(default=None, alias="only")

    inference_provider: str = Field(default=config_constants.DEFAULT_INFERENCE_PROVIDER)
    openai_api_key: Optional[str] = Field(default=None)
    openai_api_base: Optional[str] = Field(default=None)
    openai_model: str = Field(default=DEFAULT_OPENAI_MODEL, alias="model")
    openai_temperature: float = Field(default=config_constants.DEFAULT_OPENAI_TEMPERATURE)
    openai_max_tokens: int = Field(default=config_constants.DEFAULT_OPENAI_MAX_TOKENS)
    series_system_prompt: str = Field(default=config_constants.DEFAULT_SERIES_SYSTEM_PROMPT)
    series_user_prompt: str = Field(default=config_constants.DEFAULT_SERIES_USER_PROMPT)
    llm_concurrency: int = Field(default=DEFAULT_LLM_CONCURRENCY)
    llm_timeout: float = Field(default=DEFAULT_LLM_TIMEOUT_SECONDS)
    llm_max_attempts: int = Field(default=DEFAULT_LLM_MAX_ATTEMPTS)
    llm_initial_delay: float = Field(default=DEFAULT_LLM_INITIAL_DELAY_SECONDS)
    workers: int = Field(default=DEFAULT_WORKERS)

    log_level: str = Field(default=DEFAULT_LOG_LEVEL)
    log_file: Optional[str] = Field(default=None)
    verbose: bool = Field(default=False)

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _apply_verbose(cls, data: Any) -> Any:
        """Verbose runs log at DEBUG unless a level was given explicitly."""
        if isinstance(data, dict) and data.get("verbose") and not data.get("log_level"):
            data = dict(data)
            data["log_level"] = "DEBUG"
        return data

    @model_validator(mode="after")
    def _check_modes(self) -> "Config":
        if self.refresh and self.cache_only:
            raise ValueError("refresh and cache_only cannot be combined")
        return self

    @field_validator("root_dir", mode="before")
    @classmethod
    def _coerce_root(cls, value: Any) -> str:
        if value is None or str(value).strip() == "":
            return "."
        return str(value).strip()

    @field_validator("only_slug", "episodes_input_path", "log_file", mode="before")
    @classmethod
    def _strip_optional(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        return str(value).strip() or None

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: Any) -> str:
        if value is None or value == "":
            return DEFAULT_LOG_LEVEL
        return str(value).strip().upper()

    @field_validator("log_level", mode="after")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        if value not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(VALID_LOG_LEVELS)}")
        return value

    @field_validator("inference_provider", mode="after")
    @classmethod
    def _validate_provider(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in config_constants.SUPPORTED_INFERENCE_PROVIDERS:
            raise ValueError(
                f"inference_provider must be one of "
                f"{list(config_constants.SUPPORTED_INFERENCE_PROVIDERS)}"
            )
        return value

    @field_validator("openai_api_key", mode="before")
    @classmethod
    def _load_openai_api_key_from_env(cls, value: Any) -> Optional[str]:
        """Load OpenAI API key from environment variable if not provided."""
        if value is not None:
            return str(value).strip() or None
        env_key = os.getenv("OPENAI_API_KEY")
        if env_key:
            return env_key.strip() or None
        return None

    @field_validator("openai_api_base", mode="before")
    @classmethod
    def _load_openai_api_base_from_env(cls, value: Any) -> Optional[str]:
        """Load OpenAI API base URL from environment variable if not provided."""
        if value is not None:
            return str(value).strip() or None
        env_base = os.getenv("OPENAI_API_BASE")
        if env_base:
            return env_base.strip() or None
        return None

    @field_validator("llm_concurrency", "llm_max_attempts", "workers", mode="before")
    @classmethod
    def _ensure_positive_int(cls, value: Any) -> int:
        try:
            parsed = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError("value must be an integer") from exc
        if parsed < 1:
            raise ValueError("value must be at least 1")
        return parsed

    @field_validator("llm_timeout", mode="before")
    @classmethod
    def _ensure_timeout(cls, value: Any) -> float:
        if value is None or value == "":
            return DEFAULT_LLM_TIMEOUT_SECONDS
        try:
            timeout = float(value)
        except (TypeError, ValueError) as exc:
            raise ValueError("llm_timeout must be a number") from exc
        return max(config_constants.MIN_LLM_TIMEOUT_SECONDS, timeout)

    @field_validator("llm_initial_delay", mode="before")
    @classmethod
    def _ensure_delay(cls, value: Any) -> float:
        if value is None or value == "":
            return DEFAULT_LLM_INITIAL_DELAY_SECONDS
        try:
            delay = float(value)
        except (TypeError, ValueError) as exc:
            raise ValueError("llm_initial_delay must be a number") from exc
        return max(0.0, delay)

    def resolve(self, relative: str) -> Path:
        """Resolve an artefact path against ``root_dir``."""
        path = Path(relative).expanduser()
        if path.is_absolute():
            return path
        return Path(self.root_dir).expanduser() / path

    @property
    def episodes_source(self) -> Path:
        """Episode catalogue to read (defaults to the episode artefact)."""
        return self.resolve(self.episodes_input_path or self.episodes_path)


def load_config_file(path: str) -> Dict[str, Any]:
    """Load configuration from a JSON or YAML file.

    The file format is auto-detected from the extension (``.json``, ``.yaml``
    or ``.yml``). The returned dictionary can be unpacked into ``Config``.

    Args:
        path: Path to configuration file. Supports tilde expansion.

    Returns:
        Dict[str, Any]: Configuration values keyed by field name or alias.

    Raises:
        ValueError: If the path is empty or missing, the format is unsupported,
            or the content does not parse to a mapping.

    Example:
        >>> cfg = Config(**load_config_file("enrich.yaml"))
    """
    if not path:
        raise ValueError("Config path cannot be empty")

    cfg_path = Path(path).expanduser()
    try:
        resolved = cfg_path.resolve()
    except (OSError, RuntimeError) as exc:
        raise ValueError(f"Invalid config path: {path} ({exc})") from exc

    if not resolved.exists():
        raise ValueError(f"Config file not found: {resolved}")

    suffix = resolved.suffix.lower()
    try:
        text = resolved.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Failed to read config file {resolved}: {exc}") from exc

    if suffix == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON config file {resolved}: {exc}") from exc
    elif suffix in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:  # type: ignore[attr-defined]
            raise ValueError(f"Invalid YAML config file {resolved}: {exc}") from exc
    else:
        raise ValueError(f"Unsupported config file type: {resolved.suffix}")

    if not isinstance(data, dict):
        raise ValueError("Config file must contain a mapping/object at the top level")

    return data
