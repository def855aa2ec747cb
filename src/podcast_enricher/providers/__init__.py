"""Language-model providers for series inference.

This package contains:
- The SeriesInferenceProvider protocol (base.py)
- The provider factory (factory.py)
- Provider implementations, one subpackage each (openai/)
"""

from .base import SeriesInferenceProvider
from .factory import create_inference_provider

__all__ = ["SeriesInferenceProvider", "create_inference_provider"]
