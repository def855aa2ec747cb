"""Prompt management for the series inference provider.

Features:
- File-based prompts (Jinja2 templates)
- Loading by logical name (e.g. "openai/series/user_v1")
- In-memory caching to avoid repeated disk I/O
- SHA256 hashes so logs identify the exact prompt version
"""

from __future__ import annotations

import os
from functools import lru_cache
from hashlib import sha256
from pathlib import Path
from typing import Any

from jinja2 import Template

# Templates ship inside the package; PROMPT_DIR overrides the location.
_PROMPT_DIR = Path(__file__).resolve().parent


class PromptNotFoundError(FileNotFoundError):
    """Raised when a requested prompt template is not found on disk."""


def set_prompt_dir(path: str | Path) -> None:
    """Set the root directory for prompt templates.

    Args:
        path: Path to prompt directory
    """
    global _PROMPT_DIR
    _PROMPT_DIR = Path(path).resolve()
    clear_cache()


def get_prompt_dir() -> Path:
    """Current prompt directory, honouring the PROMPT_DIR environment variable."""
    env_prompt_dir = os.getenv("PROMPT_DIR")
    if env_prompt_dir:
        return Path(env_prompt_dir).resolve()
    return _PROMPT_DIR


def _template_path(name: str) -> Path:
    rel_path = Path(name) if name.endswith(".j2") else Path(name + ".j2")
    return get_prompt_dir() / rel_path


@lru_cache(maxsize=None)
def _load_source(name: str) -> str:
    """Load and cache template source by logical name.

    Example:
        name="openai/series/user_v1" -> prompts/openai/series/user_v1.j2

    Raises:
        PromptNotFoundError: If template file doesn't exist
    """
    path = _template_path(name)
    if not path.exists():
        raise PromptNotFoundError(
            f"Prompt template not found: {path}\n"
            f"  Searched in: {get_prompt_dir()}\n"
            f"  Requested name: {name}"
        )
    return path.read_text(encoding="utf-8")


@lru_cache(maxsize=None)
def _load_template(name: str) -> Template:
    return Template(_load_source(name))


def clear_cache() -> None:
    """Drop cached templates (after changing the prompt directory)."""
    _load_source.cache_clear()
    _load_template.cache_clear()


def render_prompt(name: str, **params: Any) -> str:
    """Render a prompt template with optional parameters.

    Args:
        name: Logical name, e.g. "openai/series/user_v1"
        **params: Template parameters passed to Jinja2 .render()

    Returns:
        Rendered prompt string (stripped of leading/trailing whitespace).

    Raises:
        PromptNotFoundError: If template file doesn't exist
    """
    return _load_template(name).render(**params).strip()


def hash_text(text: str) -> str:
    """Return a SHA256 hex digest for arbitrary text."""
    return sha256(text.encode("utf-8")).hexdigest()


def get_prompt_hash(name: str) -> str:
    """SHA256 of a template's source, for logging which prompt version ran."""
    return hash_text(_load_source(name))
