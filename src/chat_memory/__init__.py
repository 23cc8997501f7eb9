"""
Three-tier conversation memory for chat LLM applications.

Fits an unbounded, chronological message history into a model's context
window:

- Tier 1 (First pair): the first user + assistant exchange, kept verbatim
- Tier 2 (Summary): incremental LLM summary of messages dropped from the window
- Tier 3 (Recent): the newest messages that fit the remaining budget

When the first pair cannot be honored the manager falls back to a plain
sliding window. Summaries are persisted per entity through a storage
adapter so each call only summarizes newly dropped messages.
"""

from .adapters import MemoryStorageAdapter, SummarizationMode, SummarizerAdapter
from .config import MemoryConfig
from .manager import SUMMARY_PREFIX, ThreeTierMemoryManager
from .memory_split import (
    MIN_MESSAGES_FOR_FIRST_PAIR,
    split_for_three_tier_memory,
    truncate_to_token_budget,
)
from .messages import ContentPart, Message, ToolCall, format_messages_for_summary
from .store import InMemorySummaryStorage, PostgresSummaryStorage
from .summarizer import ConversationSummarizer
from .token_budget import (
    DEFAULT_CHARS_PER_TOKEN,
    calculate_history_budget,
    estimate_content_tokens,
    estimate_message_tokens,
    estimate_tokens,
    estimate_total_tokens,
)
from .types import (
    BuildHistoryInput,
    MemoryContext,
    MemorySummaryRecord,
    ThreeTierConfig,
    ThreeTierSplitResult,
    TokenBudgetConfig,
    UpsertSummaryData,
    decode_summarized_through,
    encode_summarized_through,
)

__all__ = [
    "BuildHistoryInput",
    "ContentPart",
    "ConversationSummarizer",
    "DEFAULT_CHARS_PER_TOKEN",
    "InMemorySummaryStorage",
    "MIN_MESSAGES_FOR_FIRST_PAIR",
    "MemoryConfig",
    "MemoryContext",
    "MemoryStorageAdapter",
    "MemorySummaryRecord",
    "Message",
    "PostgresSummaryStorage",
    "SUMMARY_PREFIX",
    "SummarizationMode",
    "SummarizerAdapter",
    "ThreeTierConfig",
    "ThreeTierMemoryManager",
    "ThreeTierSplitResult",
    "TokenBudgetConfig",
    "ToolCall",
    "UpsertSummaryData",
    "calculate_history_budget",
    "decode_summarized_through",
    "encode_summarized_through",
    "estimate_content_tokens",
    "estimate_message_tokens",
    "estimate_tokens",
    "estimate_total_tokens",
    "format_messages_for_summary",
    "split_for_three_tier_memory",
    "truncate_to_token_budget",
]
