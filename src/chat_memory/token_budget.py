"""
Token estimation for context window budgeting.

Uses a constant characters-per-token ratio rather than a tokenizer: the
estimate is for pre-flight budget checks, not billing.
"""

import math
from typing import Optional

from .messages import Content, Message
from .types import TokenBudgetConfig

# Approximate characters per token for mixed English text
DEFAULT_CHARS_PER_TOKEN = 4

# Buffer for message framing and formatting overhead
DEFAULT_SAFETY_MARGIN = 200


def estimate_tokens(text: str, chars_per_token: Optional[float] = None) -> int:
    """Estimate tokens for a plain string: ceil(len / ratio), 0 when empty."""
    ratio = DEFAULT_CHARS_PER_TOKEN if chars_per_token is None else chars_per_token
    if not text or ratio <= 0:
        return 0
    return math.ceil(len(text) / ratio)


def estimate_content_tokens(content: Content, chars_per_token: Optional[float] = None) -> int:
    """
    Estimate tokens for message content.

    For multi-part content only text parts are counted. Image parts have
    provider-specific costs and contribute nothing here.
    """
    if isinstance(content, str):
        return estimate_tokens(content, chars_per_token)

    ratio = DEFAULT_CHARS_PER_TOKEN if chars_per_token is None else chars_per_token
    if ratio <= 0:
        return 0

    total_chars = 0
    for part in content:
        if part.type == "text" and part.text:
            total_chars += len(part.text)
    return math.ceil(total_chars / ratio)


def estimate_message_tokens(msg: Message, chars_per_token: Optional[float] = None) -> int:
    return estimate_content_tokens(msg.content, chars_per_token)


def estimate_total_tokens(
    input_text: str,
    messages: Optional[list[Message]] = None,
    system_message: Optional[str] = None,
    chars_per_token: Optional[float] = None,
) -> int:
    """Estimate tokens across an input string, a history and a system message."""
    tokens = estimate_tokens(input_text, chars_per_token)

    if messages:
        for msg in messages:
            tokens += estimate_message_tokens(msg, chars_per_token)

    if system_message:
        tokens += estimate_tokens(system_message, chars_per_token)

    return tokens


def calculate_history_budget(config: TokenBudgetConfig) -> int:
    """
    Tokens available for message history.

    Available = context_window - max_output_tokens - safety_margin
                - system_message - new_user_message

    May be negative; callers treat anything <= 0 as "nothing fits".
    """
    safety_margin = (
        DEFAULT_SAFETY_MARGIN if config.safety_margin is None else config.safety_margin
    )
    budget = config.context_window - config.max_output_tokens - safety_margin

    if config.system_message:
        budget -= estimate_tokens(config.system_message, config.chars_per_token)
    if config.new_user_message:
        budget -= estimate_tokens(config.new_user_message, config.chars_per_token)

    return budget
