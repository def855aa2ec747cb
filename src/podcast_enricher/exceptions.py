"""Custom exceptions for podcast_enricher.

Exception Hierarchy:
    ProviderError (base for the language-model boundary)
    ├── ProviderConfigError - Configuration issues
    ├── ProviderAuthError - Authentication failures
    └── ProviderRuntimeError - Runtime operation failures (retries exhausted)

    EnrichmentError (base for pipeline failures)
    ├── EnrichmentInputError - Malformed or schema-invalid input artefacts
    └── CacheValidationError - Cache matches neither the modern nor legacy shape

Provider errors are recoverable per seed; enrichment errors are fatal and
abort the run before anything is written.
"""

from typing import Optional


class ProviderError(Exception):
    """Base exception for all provider-related errors.

    Attributes:
        provider: Name of the provider (e.g., "OpenAI/SeriesInference")
        message: Human-readable error message
        suggestion: Optional suggestion for resolving the error
    """

    def __init__(
        self,
        message: str,
        provider: str = "Unknown",
        suggestion: Optional[str] = None,
    ) -> None:
        self.provider = provider
        self.message = message
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the full error message with provider and suggestion."""
        parts = [f"[{self.provider}] {self.message}"]
        if self.suggestion:
            parts.append(f"Suggestion: {self.suggestion}")
        return " ".join(parts)


class ProviderConfigError(ProviderError):
    """Raised when provider configuration is invalid or missing.

    Example:
        >>> raise ProviderConfigError(
        ...     message="Unsupported provider 'acme'",
        ...     provider="Factory",
        ...     config_key="inference_provider",
        ... )
    """

    def __init__(
        self,
        message: str,
        provider: str = "Unknown",
        config_key: Optional[str] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        self.config_key = config_key
        if config_key and config_key not in message:
            message = f"{message} (config key: {config_key})"
        super().__init__(message=message, provider=provider, suggestion=suggestion)


class ProviderAuthError(ProviderError):
    """Raised when authentication with a provider fails."""


class ProviderRuntimeError(ProviderError):
    """Raised when a provider call fails after exhausting its retries.

    Attributes:
        attempts: Number of attempts made before giving up
    """

    def __init__(
        self,
        message: str,
        provider: str = "Unknown",
        suggestion: Optional[str] = None,
        attempts: int = 0,
    ) -> None:
        self.attempts = attempts
        super().__init__(message=message, provider=provider, suggestion=suggestion)


class EnrichmentError(Exception):
    """Base exception for fatal pipeline failures."""


class EnrichmentInputError(EnrichmentError):
    """Raised when an input artefact is missing, malformed or schema-invalid.

    Attributes:
        path: Path of the offending artefact
    """

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        self.path = path
        if path and path not in message:
            message = f"{message} ({path})"
        super().__init__(message)


class CacheValidationError(EnrichmentError):
    """Raised when the inference cache matches neither known shape."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Inference cache at {path} failed validation")
