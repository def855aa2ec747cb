"""SeriesInferenceProvider protocol definition.

This module defines the protocol that every language-model provider used for
series inference must implement.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable, TYPE_CHECKING

if TYPE_CHECKING:
    from podcast_enricher.models import SeriesInferenceRequest
    from podcast_enricher.schemas import SeriesInference


@runtime_checkable
class SeriesInferenceProvider(Protocol):
    """Protocol for series inference providers.

    Implementations must be safe to call from several threads at once and
    bound their own number of in-flight requests.
    """

    def infer_series(self, request: SeriesInferenceRequest) -> SeriesInference:
        """Judge a seed's title, umbrella, year span, scope and confidence.

        Args:
            request: Provisional stem, member episode texts and century labels

        Returns:
            Validated SeriesInference

        Raises:
            ProviderError: If no valid judgement could be obtained; callers
                treat this as "resolution unavailable for this seed"
        """
        ...
