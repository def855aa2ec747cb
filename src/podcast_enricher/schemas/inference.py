"""Structured output schema for series inference.

The language model returns a JSON object describing one series. The payload
is validated strictly before it is trusted: years are integers or null,
confidence lies in [0, 1] and scope is one of the four known values. Extra
keys such as ``rationale`` are ignored.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .artifacts import Scope

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*\n", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\n```\s*$")


class SeriesInference(BaseModel):
    """One series judgement, from the model or replayed from the cache.

    Attributes:
        series_title: Display title for the series (None lets the caller
            fall back to the provisional stem)
        umbrella_title: Thematic umbrella title (None falls back to the title)
        year_primary: Most representative year
        year_from: Lower bound of the covered span
        year_to: Upper bound of the covered span
        scope: Precision class of the span
        confidence: Model confidence in [0, 1]
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    series_title: Optional[str] = Field(default=None, alias="seriesTitle")
    umbrella_title: Optional[str] = Field(default=None, alias="umbrellaTitle")
    year_primary: Optional[int] = Field(default=None, alias="yearPrimary", strict=True)
    year_from: Optional[int] = Field(default=None, alias="yearFrom", strict=True)
    year_to: Optional[int] = Field(default=None, alias="yearTo", strict=True)
    scope: Scope = "unknown"
    confidence: Optional[float] = Field(default=None, ge=0, le=1)

    @field_validator("series_title", "umbrella_title", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValueError("expected a string or null")
        return value.strip() or None

    @field_validator("year_primary", "year_from", "year_to", mode="before")
    @classmethod
    def _whole_years(cls, value: Any) -> Any:
        # JSON has no integer type of its own; 1492.0 is still a whole year.
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def _strip_code_fences(text: str) -> str:
    """Remove a markdown code fence wrapped around the JSON object."""
    text = text.strip()
    text = _FENCE_OPEN.sub("", text)
    text = _FENCE_CLOSE.sub("", text)
    return text.strip()


def parse_series_inference(text: str) -> SeriesInference:
    """Decode and validate a raw model response.

    Raises:
        ValueError: If the text is empty, not a JSON object, or fails schema
            validation (``json.JSONDecodeError`` and pydantic's
            ``ValidationError`` are both ``ValueError`` subclasses)
    """
    if not text or not text.strip():
        raise ValueError("Empty series inference response")
    data = json.loads(_strip_code_fences(text))
    if not isinstance(data, dict):
        raise ValueError("Series inference response must be a JSON object")
    inference = SeriesInference.model_validate(data)
    logger.debug(
        "Validated series inference: title=%r scope=%s confidence=%s",
        inference.series_title,
        inference.scope,
        inference.confidence,
    )
    return inference
