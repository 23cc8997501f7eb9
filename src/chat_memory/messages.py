"""
Chat message model.

Messages are immutable: the memory system only references, slices and
recombines them. Conversion helpers map to and from LangChain message
objects so callers already working with ``langchain_core`` can plug in
their history directly.
"""

import json
from dataclasses import asdict, dataclass
from typing import Literal, Optional, Union

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)

MessageRole = Literal["system", "user", "assistant", "tool"]


@dataclass(frozen=True)
class ContentPart:
    """A single part of a multimodal message (text or image)."""

    type: Literal["text", "image_url"]
    text: Optional[str] = None
    image_url: Optional[str] = None

    def to_block(self) -> dict:
        if self.type == "text":
            return {"type": "text", "text": self.text or ""}
        return {"type": "image_url", "image_url": {"url": self.image_url or ""}}


@dataclass(frozen=True)
class ToolCall:
    """A tool call made by the assistant. ``arguments`` is a JSON string."""

    id: str
    name: str
    arguments: str


Content = Union[str, tuple[ContentPart, ...]]


@dataclass(frozen=True)
class Message:
    """A chat message."""

    role: MessageRole
    content: Content
    name: Optional[str] = None
    tool_call_id: Optional[str] = None
    tool_calls: Optional[tuple[ToolCall, ...]] = None

    @classmethod
    def user(cls, content: Content) -> "Message":
        return cls(role="user", content=content)

    @classmethod
    def assistant(cls, content: Content, tool_calls=None) -> "Message":
        return cls(
            role="assistant",
            content=content,
            tool_calls=tuple(tool_calls) if tool_calls else None,
        )

    @classmethod
    def system(cls, content: Content) -> "Message":
        return cls(role="system", content=content)

    @classmethod
    def tool(cls, content: Content, tool_call_id: str, name: Optional[str] = None) -> "Message":
        return cls(role="tool", content=content, tool_call_id=tool_call_id, name=name)

    def content_text(self) -> str:
        """Render content as text, the way it is shown to the summarizer."""
        if isinstance(self.content, str):
            return self.content
        return json.dumps(
            [
                {k: v for k, v in asdict(part).items() if v is not None}
                for part in self.content
            ],
            ensure_ascii=False,
        )

    def to_langchain(self) -> BaseMessage:
        """Convert to the matching LangChain message class."""
        if isinstance(self.content, str):
            content = self.content
        else:
            content = [part.to_block() for part in self.content]

        if self.role == "system":
            return SystemMessage(content=content)
        if self.role == "assistant":
            tool_calls = [
                {
                    "id": tc.id,
                    "name": tc.name,
                    "args": _parse_arguments(tc.arguments),
                }
                for tc in self.tool_calls or ()
            ]
            return AIMessage(content=content, name=self.name, tool_calls=tool_calls)
        if self.role == "tool":
            return ToolMessage(
                content=content,
                tool_call_id=self.tool_call_id or "",
                name=self.name,
            )
        return HumanMessage(content=content, name=self.name)

    @classmethod
    def from_langchain(cls, msg: BaseMessage) -> "Message":
        """
        Build a Message from a LangChain message.

        - HumanMessage -> user, AIMessage -> assistant,
          SystemMessage -> system, ToolMessage -> tool
        - Unknown message types are treated as user messages
        - Only text and image blocks are kept from list content
        """
        content = _content_from_langchain(msg.content)
        name = getattr(msg, "name", None)

        if isinstance(msg, SystemMessage):
            return cls(role="system", content=content, name=name)
        if isinstance(msg, AIMessage):
            tool_calls = tuple(
                ToolCall(
                    id=tc.get("id") or "",
                    name=tc["name"],
                    arguments=json.dumps(tc.get("args", {}), ensure_ascii=False),
                )
                for tc in msg.tool_calls
            )
            return cls(
                role="assistant",
                content=content,
                name=name,
                tool_calls=tool_calls or None,
            )
        if isinstance(msg, ToolMessage):
            return cls(
                role="tool",
                content=content,
                name=name,
                tool_call_id=msg.tool_call_id,
            )
        return cls(role="user", content=content, name=name)


def _parse_arguments(arguments: str) -> dict:
    try:
        parsed = json.loads(arguments) if arguments else {}
    except json.JSONDecodeError:
        return {"input": arguments}
    return parsed if isinstance(parsed, dict) else {"input": parsed}


def _content_from_langchain(content) -> Content:
    if isinstance(content, str):
        return content

    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(ContentPart(type="text", text=block))
        elif isinstance(block, dict):
            btype = block.get("type", "")
            if btype == "text":
                parts.append(ContentPart(type="text", text=block.get("text", "")))
            elif btype == "image_url":
                image = block.get("image_url") or {}
                url = image.get("url") if isinstance(image, dict) else image
                parts.append(ContentPart(type="image_url", image_url=url))
            # thinking / tool_use blocks have no counterpart
    return tuple(parts)


def format_messages_for_summary(messages: list[Message]) -> str:
    """Render messages as ``role: content`` blocks separated by blank lines."""
    return "\n\n".join(f"{m.role}: {m.content_text()}" for m in messages)
