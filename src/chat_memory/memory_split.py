"""
Budget-aware splitting of conversation history.

Two strategies, both pure functions over a chronological message list:

- Sliding window: keep the longest contiguous run of recent messages
  that fits the budget.
- Three-tier: keep the first user/assistant pair verbatim, keep a recent
  window verbatim, and hand everything in between back as "dropped" so
  the caller can summarize it.
"""

import logging

from .messages import Message
from .token_budget import calculate_history_budget, estimate_message_tokens
from .types import ThreeTierConfig, ThreeTierSplitResult, TokenBudgetConfig

logger = logging.getLogger(__name__)

# Minimum messages for a first (user + assistant) pair
MIN_MESSAGES_FOR_FIRST_PAIR = 2


def _fill_backward(
    messages: list[Message],
    budget: int,
    chars_per_token,
    stop_index: int = 0,
) -> list[Message]:
    """
    Walk from the newest message down to ``stop_index``, keeping messages
    while they fit. The first message that does not fit ends the walk so
    the result is always a contiguous suffix, in chronological order.
    """
    kept = []
    used = 0
    for i in range(len(messages) - 1, stop_index - 1, -1):
        msg_tokens = estimate_message_tokens(messages[i], chars_per_token)
        if used + msg_tokens > budget:
            break
        used += msg_tokens
        kept.append(messages[i])
    kept.reverse()
    return kept


def truncate_to_token_budget(
    messages: list[Message], config: TokenBudgetConfig
) -> list[Message]:
    """
    Trim history to fit within the context window budget.

    The system message, new user message, output reservation and safety
    margin are deducted from the context window first. Older messages
    behind an oversized one are never considered, even if they would fit.
    """
    if not messages:
        return []

    budget = calculate_history_budget(config)
    if budget <= 0:
        return []

    return _fill_backward(messages, budget, config.chars_per_token)


def _split_not_applicable(messages: list[Message]) -> ThreeTierSplitResult:
    return ThreeTierSplitResult(
        first_pair=[],
        dropped_messages=list(messages),
        recent_messages=[],
        processed_through_index=len(messages) - 1,
        was_truncated=True,
    )


def split_for_three_tier_memory(
    messages: list[Message], config: ThreeTierConfig
) -> ThreeTierSplitResult:
    """
    Split history into first pair, dropped messages and recent window.

    ``was_truncated`` is False only when everything fits. When the split is
    not applicable (budget exhausted, or the first pair alone does not fit)
    the result is truncated with an empty first pair and the caller should
    fall back to ``truncate_to_token_budget``.
    """
    no_truncation = ThreeTierSplitResult(
        first_pair=[],
        dropped_messages=[],
        recent_messages=messages,
        processed_through_index=max(len(messages) - 1, 0),
        was_truncated=False,
    )

    if len(messages) < MIN_MESSAGES_FOR_FIRST_PAIR:
        return no_truncation

    chars_per_token = config.chars_per_token
    total_budget = calculate_history_budget(config)

    if total_budget <= 0:
        return _split_not_applicable(messages)

    first_pair_tokens = sum(
        estimate_message_tokens(m, chars_per_token)
        for m in messages[:MIN_MESSAGES_FOR_FIRST_PAIR]
    )
    if first_pair_tokens >= total_budget:
        return _split_not_applicable(messages)

    all_tokens = sum(estimate_message_tokens(m, chars_per_token) for m in messages)
    if all_tokens <= total_budget:
        return no_truncation

    first_pair = list(messages[:MIN_MESSAGES_FOR_FIRST_PAIR])
    recent_budget = (
        total_budget - first_pair_tokens - config.max_summary_budget_tokens
    )

    recent_messages = []
    if recent_budget > 0:
        recent_messages = _fill_backward(
            messages, recent_budget, chars_per_token, MIN_MESSAGES_FOR_FIRST_PAIR
        )

    recent_start = len(messages) - len(recent_messages)
    dropped_messages = list(messages[MIN_MESSAGES_FOR_FIRST_PAIR:recent_start])

    logger.debug(
        "Split %d messages (%d tokens, budget %d): first pair=%d, dropped=%d, recent=%d",
        len(messages),
        all_tokens,
        total_budget,
        len(first_pair),
        len(dropped_messages),
        len(recent_messages),
    )

    return ThreeTierSplitResult(
        first_pair=first_pair,
        dropped_messages=dropped_messages,
        recent_messages=recent_messages,
        processed_through_index=len(messages) - 1,
        was_truncated=True,
    )
