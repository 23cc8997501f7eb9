"""
Three-tier memory manager.

Builds the message history handed to the LLM:

- Tier 1 (First pair): the first user + assistant exchange, kept verbatim
- Tier 2 (Summary): a summary of the messages that fell out of the window
- Tier 3 (Recent): the most recent messages, kept verbatim

Summaries are generated incrementally and persisted per entity, so each
call only summarizes messages dropped since the previous summary.
Summarization is best-effort: collaborator failures are logged and the
history is assembled with the best summary available, or none.
"""

import asyncio
import logging
from typing import Any, Optional

from .adapters import MemoryStorageAdapter, SummarizationMode, SummarizerAdapter
from .config import MemoryConfig
from .memory_split import (
    MIN_MESSAGES_FOR_FIRST_PAIR,
    split_for_three_tier_memory,
    truncate_to_token_budget,
)
from .messages import Message, format_messages_for_summary
from .types import (
    BuildHistoryInput,
    MemoryContext,
    ThreeTierConfig,
    ThreeTierSplitResult,
    TokenBudgetConfig,
    UpsertSummaryData,
    decode_summarized_through,
    encode_summarized_through,
)

logger = logging.getLogger(__name__)

SUMMARY_PREFIX = "[Conversation Summary]\n"


def summary_message(summary: str) -> Message:
    return Message(role="user", content=f"{SUMMARY_PREFIX}{summary}")


class ThreeTierMemoryManager:
    """
    Framework-agnostic three-tier memory orchestration.

    Usage:
        manager = ThreeTierMemoryManager(storage=store, summarizer=summarizer)
        history = await manager.build_history(
            BuildHistoryInput(all_history=messages, context_window=128_000,
                              max_output_tokens=4096, new_user_message=text),
            MemoryContext("conversation", conversation_id),
        )

    Without a storage or summarizer the manager still splits and
    truncates, it just never summarizes.

    Summary writes are fire-and-forget by default. Two concurrent calls for
    the same context can both summarize from the same stale record; the
    last write wins.
    """

    def __init__(
        self,
        storage: Optional[MemoryStorageAdapter] = None,
        summarizer: Optional[SummarizerAdapter] = None,
        config: Optional[MemoryConfig] = None,
    ):
        self.config = config or MemoryConfig()
        self.storage = storage
        self.summarizer = summarizer
        self.mode = SummarizationMode.resolve(
            storage, summarizer, self.config.summarization_enabled
        )
        self.logger = self.config.logger or logger
        # Keeps fire-and-forget writes referenced until they finish
        self._pending_writes: set[asyncio.Task] = set()

    async def build_history(
        self,
        input: BuildHistoryInput,
        context: Optional[MemoryContext] = None,
    ) -> list[Message]:
        """
        Build message history using three-tier memory.

        Falls back to sliding-window truncation when the three-tier split is
        not applicable. The new user message, if any, is appended last.
        """
        all_history = input.all_history
        split = self._split_messages(input)

        if not split.was_truncated:
            return self._with_new_message(list(all_history), input)

        if not split.first_pair:
            truncated = self._truncate_messages(input)
            return self._with_new_message(truncated, input)

        summary = None
        if context is not None:
            summary = await self._build_summary_message(
                split.dropped_messages, context, input.summarization_context
            )

        assembled = list(split.first_pair)
        if summary is not None:
            assembled.append(summary)
        assembled.extend(split.recent_messages)
        return self._with_new_message(assembled, input)

    async def delete_summaries(self, entity_type: str, entity_id: str) -> None:
        """Delete all summaries for an entity."""
        if self.storage is None:
            return
        await self.storage.delete_summaries_by_entity(entity_type, entity_id)

    async def wait_for_pending_writes(self) -> None:
        """Wait for background summary writes scheduled by earlier calls."""
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes))

    # ── Split / truncate ──

    def _budget_kwargs(self, input: BuildHistoryInput) -> dict:
        return dict(
            context_window=input.context_window,
            max_output_tokens=input.max_output_tokens,
            system_message=input.system_message,
            new_user_message=input.new_user_message,
            chars_per_token=self.config.default_chars_per_token,
            safety_margin=self.config.safety_margin,
        )

    def _split_messages(self, input: BuildHistoryInput) -> ThreeTierSplitResult:
        messages = input.all_history
        if len(messages) < MIN_MESSAGES_FOR_FIRST_PAIR:
            return ThreeTierSplitResult(
                first_pair=[],
                dropped_messages=[],
                recent_messages=messages,
                processed_through_index=max(len(messages) - 1, 0),
                was_truncated=False,
            )

        config = ThreeTierConfig(
            max_summary_budget_tokens=self.config.default_max_summary_budget_tokens,
            **self._budget_kwargs(input),
        )
        result = split_for_three_tier_memory(messages, config)

        if result.was_truncated:
            self.logger.debug(
                "3-tier split: %d messages -> first pair: %d, dropped: %d, recent: %d",
                len(messages),
                len(result.first_pair),
                len(result.dropped_messages),
                len(result.recent_messages),
            )
        return result

    def _truncate_messages(self, input: BuildHistoryInput) -> list[Message]:
        messages = input.all_history
        if not messages:
            return []

        truncated = truncate_to_token_budget(
            messages, TokenBudgetConfig(**self._budget_kwargs(input))
        )
        if len(truncated) < len(messages):
            self.logger.debug(
                "Truncated history from %d to %d messages (context window: %d)",
                len(messages),
                len(truncated),
                input.context_window,
            )
        return truncated

    @staticmethod
    def _with_new_message(messages: list[Message], input: BuildHistoryInput) -> list[Message]:
        if input.new_user_message:
            messages.append(Message(role="user", content=input.new_user_message))
        return messages

    # ── Summary ──

    async def _build_summary_message(
        self,
        dropped_messages: list[Message],
        context: MemoryContext,
        summarization_context: Any = None,
    ) -> Optional[Message]:
        """
        Resolve a summary message for the dropped tier.

        Only messages dropped since the stored summary are sent to the
        summarizer. This assumes history is append-only: previously dropped
        messages must be a prefix of the current dropped tier.
        """
        if not dropped_messages or not self.mode.can_summarize:
            return None

        try:
            existing = await self.storage.get_summary(
                context.entity_type, context.entity_id, context.model_key
            )

            already_summarized = (
                decode_summarized_through(existing.summarized_through_index)
                if existing
                else 0
            )
            newly_dropped = dropped_messages[already_summarized:]

            if not newly_dropped:
                if existing:
                    self.logger.debug(
                        "Reusing summary for %s/%s (%d dropped messages already summarized)",
                        context.entity_type,
                        context.entity_id,
                        len(dropped_messages),
                    )
                    return summary_message(existing.summary)
                return None

            try:
                summary_text = await self.summarizer.summarize(
                    format_messages_for_summary(newly_dropped),
                    existing.summary if existing else None,
                    summarization_context,
                )
            except Exception as e:
                self.logger.warning(
                    "Summarizer failed for %s/%s: %s",
                    context.entity_type,
                    context.entity_id,
                    e,
                )
                summary_text = None

            if summary_text:
                self.logger.info(
                    "Summarized %d newly dropped messages for %s/%s",
                    len(newly_dropped),
                    context.entity_type,
                    context.entity_id,
                )
                await self._persist_summary(
                    UpsertSummaryData(
                        entity_type=context.entity_type,
                        entity_id=context.entity_id,
                        model_key=context.model_key,
                        summary=summary_text,
                        summarized_through_index=encode_summarized_through(
                            len(dropped_messages)
                        ),
                    )
                )
                return summary_message(summary_text)

            if existing:
                # Summarization failed, the stale summary is better than none
                return summary_message(existing.summary)
        except Exception as e:
            self.logger.warning(
                "Failed to build summary for %s/%s, proceeding without: %s",
                context.entity_type,
                context.entity_id,
                e,
            )

        return None

    async def _persist_summary(self, data: UpsertSummaryData) -> None:
        if self.config.await_persistence:
            await self._upsert_quietly(data)
            return

        task = asyncio.create_task(self._upsert_quietly(data))
        self._pending_writes.add(task)
        task.add_done_callback(self._pending_writes.discard)

    async def _upsert_quietly(self, data: UpsertSummaryData) -> None:
        try:
            await self.storage.upsert_summary(data)
        except Exception as e:
            self.logger.warning(
                "Failed to persist summary for %s/%s: %s",
                data.entity_type,
                data.entity_id,
                e,
            )
