"""Configuration constants for podcast_enricher.

Defaults, thresholds and artefact locations shared by the config model and
the pipeline stages. All constants are re-exported from config.py.
"""

# General defaults
DEFAULT_LOG_LEVEL = "INFO"
VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

# Artefact locations, relative to the site root
DEFAULT_EPISODES_PATH = "public/episodes.json"
DEFAULT_SERIES_PATH = "public/series.json"
DEFAULT_COLLECTIONS_PATH = "public/collections.json"
DEFAULT_UMBRELLAS_PATH = "public/umbrellas.json"
DEFAULT_CACHE_PATH = "data/inference-cache.json"
DEFAULT_CENTURY_MAP_PATH = "data/century-map.json"
DEFAULT_OVERRIDES_PATH = "data/umbrella-overrides.json"

# Series detection
MAX_EPISODE_GAP = 2
MAX_DAYS_BETWEEN_PARTS = 21
MIN_ARC_EPISODES = 2

# Year resolution
LOW_CONFIDENCE_THRESHOLD = 0.55
FALLBACK_CONFIDENCE = 0.4
MIN_SANE_YEAR = -5000
MAX_SANE_YEAR = 2500
CACHE_SCHEMA_VERSION = 1

# Language model defaults
SUPPORTED_INFERENCE_PROVIDERS = ("openai",)
DEFAULT_INFERENCE_PROVIDER = "openai"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_OPENAI_TEMPERATURE = 0.0
DEFAULT_OPENAI_MAX_TOKENS = 600
DEFAULT_LLM_CONCURRENCY = 2
DEFAULT_LLM_TIMEOUT_SECONDS = 30.0
DEFAULT_LLM_MAX_ATTEMPTS = 3
DEFAULT_LLM_INITIAL_DELAY_SECONDS = 0.5
DEFAULT_WORKERS = 4
MIN_LLM_TIMEOUT_SECONDS = 1.0

# Prompt templates
DEFAULT_SERIES_SYSTEM_PROMPT = "openai/series/system_v1"
DEFAULT_SERIES_USER_PROMPT = "openai/series/user_v1"
