"""OpenAI provider for series inference."""

from .openai_provider import OpenAISeriesInferenceProvider

__all__ = ["OpenAISeriesInferenceProvider"]
