"""Prompt template management for the language-model provider.

This package contains:
- Prompt store (store.py): Loading and caching of Jinja2 prompt templates
- Provider-specific prompts: one subdirectory per provider (openai/)
"""

from .store import (
    clear_cache,
    get_prompt_dir,
    get_prompt_hash,
    hash_text,
    PromptNotFoundError,
    render_prompt,
    set_prompt_dir,
)

__all__ = [
    "PromptNotFoundError",
    "clear_cache",
    "get_prompt_dir",
    "get_prompt_hash",
    "hash_text",
    "render_prompt",
    "set_prompt_dir",
]
