"""
Collaborator contracts for the memory manager.

Storage and summarization are two independent capabilities. Applications
implement them against their own database and LLM provider; the bundled
implementations live in ``store`` and ``summarizer``.
"""

from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable

from .types import MemorySummaryRecord, UpsertSummaryData


@runtime_checkable
class MemoryStorageAdapter(Protocol):
    """
    Persists summary records.

    ``(entity_type, entity_id, model_key)`` is a unique key and
    ``upsert_summary`` must create-or-replace atomically.
    """

    async def get_summary(
        self, entity_type: str, entity_id: str, model_key: Optional[str]
    ) -> Optional[MemorySummaryRecord]: ...

    async def upsert_summary(self, data: UpsertSummaryData) -> None: ...

    async def delete_summaries_by_entity(self, entity_type: str, entity_id: str) -> None: ...


@runtime_checkable
class SummarizerAdapter(Protocol):
    """
    Generates or incrementally updates a conversation summary.

    Returns None on ordinary generation failures instead of raising.
    ``context`` is the opaque ``summarization_context`` of the call.
    """

    async def summarize(
        self,
        messages_text: str,
        existing_summary: Optional[str],
        context: Any = None,
    ) -> Optional[str]: ...


class SummarizationMode(str, Enum):
    """Which summarization capabilities a manager was built with."""

    ENABLED = "enabled"
    STORAGE_ONLY = "storage_only"
    SUMMARIZER_ONLY = "summarizer_only"
    UNAVAILABLE = "unavailable"
    DISABLED = "disabled"

    @classmethod
    def resolve(cls, storage, summarizer, enabled: bool = True) -> "SummarizationMode":
        if not enabled:
            return cls.DISABLED
        if storage is not None and summarizer is not None:
            return cls.ENABLED
        if storage is not None:
            return cls.STORAGE_ONLY
        if summarizer is not None:
            return cls.SUMMARIZER_ONLY
        return cls.UNAVAILABLE

    @property
    def can_summarize(self) -> bool:
        return self is SummarizationMode.ENABLED
