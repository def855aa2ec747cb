"""OpenAI provider for series inference.

This module provides the OpenAISeriesInferenceProvider class, which implements
the SeriesInferenceProvider protocol over the OpenAI chat completions API:

- A bounded semaphore gates the number of in-flight calls across threads
- Each attempt carries its own request timeout, so a slow call is cancelled
  by the HTTP client rather than by killing a thread
- Timeouts, API errors, empty content and invalid structured output are
  retried with exponential backoff up to a fixed number of attempts
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Dict, List, Optional

from openai import APIError, AuthenticationError, OpenAI

from ... import config
from ...exceptions import ProviderAuthError, ProviderConfigError, ProviderRuntimeError
from ...models import SeriesInferenceRequest
from ...prompts.store import get_prompt_hash, render_prompt
from ...schemas import parse_series_inference, SeriesInference
from ...utils.retry import retry_with_exponential_backoff

logger = logging.getLogger(__name__)

PROVIDER_NAME = "OpenAI/SeriesInference"
RETRYABLE_EXCEPTIONS = (APIError, ValueError)


def _safe_field(value: Optional[str]) -> str:
    return "null" if value is None else json.dumps(value, ensure_ascii=False)


class OpenAISeriesInferenceProvider:
    """Series inference over OpenAI chat completions with JSON output.

    The provider is thread-safe: the SDK client is shared and a bounded
    semaphore limits how many requests run at once, so callers may submit
    every seed from a thread pool without further coordination.
    """

    def __init__(self, cfg: config.Config):
        """Initialize the provider.

        Args:
            cfg: Configuration with the OpenAI key, model and retry policy

        Raises:
            ProviderConfigError: If the OpenAI API key is not provided
        """
        if not cfg.openai_api_key:
            raise ProviderConfigError(
                message="OpenAI API key required for series inference",
                provider=PROVIDER_NAME,
                config_key="openai_api_key",
                suggestion="Set OPENAI_API_KEY environment variable or openai_api_key in config",
            )

        self.cfg = cfg
        self.model = cfg.openai_model
        self.temperature = cfg.openai_temperature
        self.max_tokens = cfg.openai_max_tokens
        self.timeout = cfg.llm_timeout
        self.max_attempts = cfg.llm_max_attempts
        self.initial_delay = cfg.llm_initial_delay
        self.system_prompt_name = cfg.series_system_prompt
        self.user_prompt_name = cfg.series_user_prompt

        # Keep SDK request/response logs out of our DEBUG output
        if logging.getLogger().getEffectiveLevel() <= logging.DEBUG:
            for logger_name in ("openai", "openai._base_client", "httpx", "httpcore"):
                logging.getLogger(logger_name).setLevel(logging.WARNING)

        client_kwargs: Dict[str, Any] = {"api_key": cfg.openai_api_key, "max_retries": 0}
        if cfg.openai_api_base:
            client_kwargs["base_url"] = cfg.openai_api_base
        self.client = OpenAI(**client_kwargs)

        self._gate = threading.BoundedSemaphore(cfg.llm_concurrency)
        logger.debug(
            "OpenAI series inference ready: model=%s concurrency=%d timeout=%.0fs attempts=%d "
            "system_prompt=%s (%s)",
            self.model,
            cfg.llm_concurrency,
            self.timeout,
            self.max_attempts,
            self.system_prompt_name,
            get_prompt_hash(self.system_prompt_name)[:12],
        )

    def build_messages(self, request: SeriesInferenceRequest) -> List[Dict[str, str]]:
        """Render the system and user prompts for one seed."""
        system_prompt = render_prompt(self.system_prompt_name)
        user_prompt = render_prompt(
            self.user_prompt_name,
            provisional_title=_safe_field(request.provisional_stem),
            century_labels=json.dumps(request.century_labels, ensure_ascii=False),
            episodes=[
                {
                    "title_feed": _safe_field(episode.title_feed),
                    "title_sheet": _safe_field(episode.title_sheet),
                    "description": _safe_field(episode.description),
                }
                for episode in request.episodes
            ],
        )
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

    def _request_once(self, messages: List[Dict[str, str]]) -> SeriesInference:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,  # type: ignore[arg-type]
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                response_format={"type": "json_object"},
                timeout=self.timeout,
            )
        except AuthenticationError as exc:
            # Not retried
            raise ProviderAuthError(
                message=f"Authentication failed: {exc}",
                provider=PROVIDER_NAME,
                suggestion="Check OPENAI_API_KEY",
            ) from exc
        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ValueError("No content returned from OpenAI")
        return parse_series_inference(content)

    def infer_series(self, request: SeriesInferenceRequest) -> SeriesInference:
        """Ask the model for a structured series judgement.

        Blocks while the concurrency gate is full. The gate is held for the
        whole call including backoff sleeps.

        Args:
            request: Seed context for the prompt

        Returns:
            Validated SeriesInference

        Raises:
            ProviderAuthError: If the API key is rejected (not retried)
            ProviderRuntimeError: If every attempt failed
        """
        messages = self.build_messages(request)
        with self._gate:
            logger.debug("Inferring series for %r", request.provisional_stem)
            try:
                return retry_with_exponential_backoff(
                    lambda: self._request_once(messages),
                    max_attempts=self.max_attempts,
                    initial_delay=self.initial_delay,
                    retryable_exceptions=RETRYABLE_EXCEPTIONS,
                    description=f"Series inference for {request.provisional_stem!r}",
                )
            except RETRYABLE_EXCEPTIONS as exc:
                raise ProviderRuntimeError(
                    message=f"Series inference failed for {request.provisional_stem!r}: {exc}",
                    provider=PROVIDER_NAME,
                    attempts=self.max_attempts,
                ) from exc
