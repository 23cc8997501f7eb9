"""
LLM-backed conversation summarizer.

Implements the summarizer contract with a LangChain chat model. Produces
an initial summary, or folds newly dropped messages into an existing one,
and compresses the result when it grows past ``max_summary_tokens``.
"""

import logging
from typing import Any, Optional

from langchain.chat_models import init_chat_model
from langchain_core.messages import HumanMessage, SystemMessage

from .token_budget import estimate_tokens

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = """You are a conversation summarizer. Summarize the following conversation messages concisely.
Focus on:
- Key topics discussed
- Important decisions made
- Relevant context for future conversation
- Tool calls and their outcomes (brief)

Output a concise summary in the same language as the conversation. Do NOT use markdown headers."""

UPDATE_SYSTEM_PROMPT = """You maintain a running summary of a conversation.
You are given the current summary and messages that happened after it.
Rewrite the summary so it also covers the new messages. Keep earlier facts
that still matter, drop details that no longer do.

Output only the updated summary, in the same language as the conversation. Do NOT use markdown headers."""

COMPRESS_SYSTEM_PROMPT = """Compress the following summary to approximately 1/3 of its length.
Keep the most important information. Output in the same language."""


def _response_text(response) -> str:
    content = response.content if hasattr(response, "content") else response
    if isinstance(content, list):
        return "".join(
            block.get("text", "") if isinstance(block, dict) else str(block)
            for block in content
        ).strip()
    return str(content).strip()


class ConversationSummarizer:
    """Generates and incrementally updates conversation summaries."""

    def __init__(self, llm=None, max_summary_tokens: int = 1000):
        self._llm = llm
        self.max_summary_tokens = max_summary_tokens

    @classmethod
    def from_model_name(
        cls, model: str, max_summary_tokens: int = 1000, **model_kwargs
    ) -> "ConversationSummarizer":
        """Build a summarizer around ``init_chat_model(model, **model_kwargs)``."""
        return cls(
            llm=init_chat_model(model, **model_kwargs),
            max_summary_tokens=max_summary_tokens,
        )

    async def summarize(
        self,
        messages_text: str,
        existing_summary: Optional[str],
        context: Any = None,
    ) -> Optional[str]:
        """
        Summarize ``messages_text``, folding it into ``existing_summary`` if given.

        ``context`` may be a dict with an ``instructions`` string that is
        appended to the system prompt. Returns None on any failure.
        """
        if not self._llm or not messages_text.strip():
            return None

        if existing_summary:
            system_prompt = UPDATE_SYSTEM_PROMPT
            user_content = (
                f"[Current Summary]\n{existing_summary}\n\n"
                f"[New Messages]\n{messages_text}"
            )
        else:
            system_prompt = SUMMARY_SYSTEM_PROMPT
            user_content = messages_text

        if isinstance(context, dict) and context.get("instructions"):
            system_prompt = f"{system_prompt}\n\n{context['instructions']}"

        try:
            response = await self._llm.ainvoke([
                SystemMessage(content=system_prompt),
                HumanMessage(content=user_content),
            ])
            summary = _response_text(response)
        except Exception as e:
            logger.warning("Failed to generate summary: %s", e)
            return None

        if not summary:
            return None

        if estimate_tokens(summary) > self.max_summary_tokens:
            summary = await self.compress_summary(summary)

        return summary

    async def compress_summary(self, summary: str) -> str:
        """Compress a summary once; returns the input unchanged on failure."""
        try:
            response = await self._llm.ainvoke([
                SystemMessage(content=COMPRESS_SYSTEM_PROMPT),
                HumanMessage(content=summary),
            ])
            compressed = _response_text(response)
        except Exception as e:
            logger.warning("Failed to compress summary: %s", e)
            return summary
        if compressed and estimate_tokens(compressed) < estimate_tokens(summary):
            return compressed
        return summary
