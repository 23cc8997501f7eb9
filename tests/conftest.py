"""
Shared pytest configuration.

Puts ``src`` on the module search path so tests import ``chat_memory``
without an install, and provides message builders and collaborator stubs.
"""

import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# 添加 src 目录到 PYTHONPATH
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from chat_memory import Message  # noqa: E402


def make_message(role: str, chars: int, idx: int = 0) -> Message:
    """A message of exactly ``chars`` characters, tagged with its index."""
    tag = f"[{idx}]"
    return Message(role=role, content=tag + "x" * max(chars - len(tag), 0))


def make_conversation(count: int, chars: int = 400) -> list[Message]:
    """Alternating user/assistant messages; 400 chars = 100 tokens each."""
    return [
        make_message("user" if i % 2 == 0 else "assistant", chars, i)
        for i in range(count)
    ]


@pytest.fixture
def mock_storage():
    storage = MagicMock()
    storage.get_summary = AsyncMock(return_value=None)
    storage.upsert_summary = AsyncMock(return_value=None)
    storage.delete_summaries_by_entity = AsyncMock(return_value=None)
    return storage


@pytest.fixture
def mock_summarizer():
    summarizer = MagicMock()
    summarizer.summarize = AsyncMock(return_value="Generated summary")
    return summarizer
