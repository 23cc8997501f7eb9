"""
Memory manager configuration and model context window mappings.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Model → context window size (tokens)
MODEL_CONTEXT_WINDOWS: dict[str, int] = {
    # Anthropic
    "claude-sonnet-4-5-20250929": 200_000,
    "claude-sonnet-4-20250514": 200_000,
    "claude-opus-4-20250514": 200_000,
    "claude-opus-4-5-20251101": 200_000,
    "claude-3-5-sonnet": 200_000,
    "claude-3-haiku": 200_000,
    # OpenAI compatible
    "gpt-4o": 128_000,
    "gpt-4o-mini": 128_000,
    "gpt-4-turbo": 128_000,
    # DeepSeek
    "deepseek-chat": 64_000,
    "deepseek-reasoner": 64_000,
    # GLM
    "glm-4": 128_000,
    "glm-4-flash": 128_000,
}

DEFAULT_CONTEXT_WINDOW = 128_000

# Tokens reserved for the summary slot between first pair and recent window
DEFAULT_MAX_SUMMARY_BUDGET_TOKENS = 500

_TRUTHY = ("1", "true", "yes")


def _optional_number(name: str, cast):
    raw = os.getenv(name, "").strip()
    return cast(raw) if raw else None


@dataclass
class MemoryConfig:
    """Configuration for the three-tier memory manager."""

    summarization_enabled: bool = True
    default_max_summary_budget_tokens: int = DEFAULT_MAX_SUMMARY_BUDGET_TOKENS

    # None = estimator default (4 chars/token)
    default_chars_per_token: Optional[float] = None

    # None = splitter default (200 tokens)
    safety_margin: Optional[int] = None

    # Await the summary write instead of scheduling it in the background
    await_persistence: bool = False

    logger: Optional[logging.Logger] = None

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "MemoryConfig":
        """Load configuration from environment variables (and an optional .env file)."""
        if env_file:
            load_dotenv(env_file, override=True)
        return cls(
            summarization_enabled=os.getenv(
                "MEMORY_SUMMARIZATION_ENABLED", "true"
            ).lower()
            in _TRUTHY,
            default_max_summary_budget_tokens=int(
                os.getenv(
                    "MEMORY_MAX_SUMMARY_BUDGET_TOKENS",
                    str(DEFAULT_MAX_SUMMARY_BUDGET_TOKENS),
                )
            ),
            default_chars_per_token=_optional_number("MEMORY_CHARS_PER_TOKEN", float),
            safety_margin=_optional_number("MEMORY_SAFETY_MARGIN", int),
            await_persistence=os.getenv("MEMORY_AWAIT_PERSISTENCE", "false").lower()
            in _TRUTHY,
        )

    @staticmethod
    def get_context_window(model_name: str) -> int:
        """Resolve context window size from a model name."""
        # Try exact match first, then prefix match
        if model_name in MODEL_CONTEXT_WINDOWS:
            return MODEL_CONTEXT_WINDOWS[model_name]
        for key, size in MODEL_CONTEXT_WINDOWS.items():
            if model_name.startswith(key) or (model_name and key.startswith(model_name)):
                return size
        return DEFAULT_CONTEXT_WINDOW
