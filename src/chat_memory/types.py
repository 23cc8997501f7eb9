"""
Budget, split and storage types for the three-tier memory system.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .messages import Message


# ── Budget & split ──


@dataclass(frozen=True)
class TokenBudgetConfig:
    """Token budget for the sliding window."""

    context_window: int
    max_output_tokens: int
    system_message: Optional[str] = None
    new_user_message: Optional[str] = None
    chars_per_token: Optional[float] = None  # None = estimator default (4)
    safety_margin: Optional[int] = None  # None = 200 tokens of framing overhead


@dataclass(frozen=True)
class ThreeTierConfig(TokenBudgetConfig):
    """Token budget plus the tokens reserved for the summary slot."""

    max_summary_budget_tokens: int = 0


@dataclass
class ThreeTierSplitResult:
    """
    Result of the three-tier split.

    When ``was_truncated`` is set and ``first_pair`` is non-empty,
    ``first_pair + dropped_messages + recent_messages`` is exactly the input.
    An empty ``first_pair`` with ``was_truncated`` set means the split was
    not applicable and the caller should fall back to the sliding window.
    """

    first_pair: list[Message]
    dropped_messages: list[Message]
    recent_messages: list[Message]
    processed_through_index: int
    was_truncated: bool


# ── Summarized-through marker ──
#
# Stored markers are ``dropped_count + 1``; the offset is historical and a
# marker of 0 or 1 means nothing has been summarized yet. Never compare raw
# markers against counts: go through these two functions.


def encode_summarized_through(dropped_count: int) -> int:
    """Marker value to persist after summarizing ``dropped_count`` messages."""
    return dropped_count + 1


def decode_summarized_through(marker: int) -> int:
    """Number of dropped messages a stored marker says are already summarized."""
    return max(marker - 1, 0)


# ── Storage ──


@dataclass(frozen=True)
class MemoryContext:
    """Key addressing a summary record."""

    entity_type: str
    entity_id: str
    model_key: Optional[str] = None


@dataclass
class MemorySummaryRecord:
    """A persisted memory summary."""

    id: str
    entity_type: str
    entity_id: str
    model_key: Optional[str]
    summary: str
    summarized_through_index: int  # encoded marker, see decode_summarized_through
    created_at: datetime
    updated_at: datetime

    @property
    def summarized_count(self) -> int:
        return decode_summarized_through(self.summarized_through_index)


@dataclass(frozen=True)
class UpsertSummaryData:
    """Data for creating or replacing a summary record."""

    entity_type: str
    entity_id: str
    model_key: Optional[str]
    summary: str
    summarized_through_index: int  # encoded marker


# ── Manager input ──


@dataclass
class BuildHistoryInput:
    """Input for ``ThreeTierMemoryManager.build_history``."""

    all_history: list[Message]
    context_window: int
    max_output_tokens: int
    system_message: Optional[str] = None
    new_user_message: Optional[str] = None
    # Opaque payload handed through to the summarizer
    summarization_context: Any = field(default=None)
