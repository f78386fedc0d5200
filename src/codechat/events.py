"""Wire events streamed from the relay to the client.

Each event is framed as one ``data: <json>`` line followed by a blank
line (server-sent events). The JSON object's ``type`` field selects the
event kind:

- "session": backend session id and working directory.
- "thinking": incremental reasoning text.
- "content": incremental answer text.
- "tool_use": a tool invocation with its structured input.
- "result": terminal success flag, token usage and cost.
- "error": terminal failure message.
- "done": end of stream.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Optional, Union

FRAME_PREFIX = "data: "


@dataclass(frozen=True)
class SessionEvent:
    session_id: str
    cwd: str
    type = "session"

    def to_dict(self) -> dict:
        return {"type": self.type, "sessionId": self.session_id, "cwd": self.cwd}


@dataclass(frozen=True)
class ThinkingEvent:
    content: str
    type = "thinking"

    def to_dict(self) -> dict:
        return {"type": self.type, "content": self.content}


@dataclass(frozen=True)
class ContentEvent:
    content: str
    type = "content"

    def to_dict(self) -> dict:
        return {"type": self.type, "content": self.content}


@dataclass(frozen=True)
class ToolUseEvent:
    tool: str
    input: dict = field(default_factory=dict)
    type = "tool_use"

    def to_dict(self) -> dict:
        return {"type": self.type, "tool": self.tool, "input": self.input}


@dataclass(frozen=True)
class ResultEvent:
    success: bool
    usage: Optional[dict[str, Any]] = None
    cost: Optional[float] = None
    type = "result"

    def to_dict(self) -> dict:
        return {"type": self.type, "success": self.success, "usage": self.usage, "cost": self.cost}


@dataclass(frozen=True)
class ErrorEvent:
    error: str
    type = "error"

    def to_dict(self) -> dict:
        return {"type": self.type, "error": self.error}


@dataclass(frozen=True)
class DoneEvent:
    type = "done"

    def to_dict(self) -> dict:
        return {"type": self.type}


WireEvent = Union[
    SessionEvent, ThinkingEvent, ContentEvent, ToolUseEvent,
    ResultEvent, ErrorEvent, DoneEvent,
]


def encode_event(event: WireEvent) -> str:
    """Frame an event for a text/event-stream response."""
    return f"{FRAME_PREFIX}{json.dumps(event.to_dict())}\n\n"


def parse_event(data: Any) -> WireEvent | None:
    """Build a typed event from a decoded frame payload.

    Returns None for payloads that are not objects, have an unknown
    ``type``, or lack a required field.
    """
    if not isinstance(data, dict):
        return None

    event_type = data.get("type")

    if event_type == "session":
        session_id = data.get("sessionId")
        if not isinstance(session_id, str) or not session_id:
            return None
        return SessionEvent(session_id=session_id, cwd=data.get("cwd") or "")

    if event_type in ("thinking", "content"):
        content = data.get("content")
        if not isinstance(content, str):
            return None
        return ThinkingEvent(content) if event_type == "thinking" else ContentEvent(content)

    if event_type == "tool_use":
        tool_input = data.get("input")
        return ToolUseEvent(
            tool=str(data.get("tool") or "unknown"),
            input=tool_input if isinstance(tool_input, dict) else {},
        )

    if event_type == "result":
        usage = data.get("usage")
        cost = data.get("cost")
        return ResultEvent(
            success=bool(data.get("success")),
            usage=usage if isinstance(usage, dict) else None,
            cost=cost if isinstance(cost, (int, float)) else None,
        )

    if event_type == "error":
        return ErrorEvent(error=str(data.get("error") or "Unknown error"))

    if event_type == "done":
        return DoneEvent()

    return None
