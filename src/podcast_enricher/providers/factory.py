"""Factory for creating series inference providers.

This module provides a factory function to create the language-model
provider based on configuration.
"""

from __future__ import annotations

import logging
from typing import Optional, TYPE_CHECKING

from ..exceptions import ProviderConfigError

if TYPE_CHECKING:
    from podcast_enricher import config
    from podcast_enricher.providers.base import SeriesInferenceProvider

logger = logging.getLogger(__name__)


def create_inference_provider(cfg: config.Config) -> Optional[SeriesInferenceProvider]:
    """Create a series inference provider based on configuration.

    Args:
        cfg: Configuration object

    Returns:
        SeriesInferenceProvider instance, or None when no credentials are
        configured (the pipeline then degrades to rule-based resolution)

    Raises:
        ProviderConfigError: If provider type is not supported
    """
    provider_type = cfg.inference_provider

    if provider_type == "openai":
        if not cfg.openai_api_key:
            logger.debug("No OpenAI API key configured; series inference disabled")
            return None
        from .openai.openai_provider import OpenAISeriesInferenceProvider

        return OpenAISeriesInferenceProvider(cfg)
    raise ProviderConfigError(
        message=f"Unsupported inference provider: {provider_type}",
        provider="Factory",
        config_key="inference_provider",
        suggestion="Supported providers: 'openai'",
    )
