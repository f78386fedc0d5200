"""Core data models for codechat."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

PROVISIONAL_PREFIX = "session-"


@dataclass
class Session:
    """A conversation bound to a working directory.

    ``provisional`` is True while the id is locally fabricated and the
    backend has not yet assigned its own.
    """

    id: str
    cwd: str
    name: str
    created_at: datetime
    last_accessed: datetime
    provisional: bool = False

    @property
    def is_confirmed(self) -> bool:
        return not self.provisional

    def to_dict(self) -> dict:
        return {
            "sessionId": self.id,
            "cwd": self.cwd,
            "name": self.name,
            "createdAt": self.created_at.isoformat(),
            "lastAccessed": self.last_accessed.isoformat(),
            "provisional": self.provisional,
        }

    @classmethod
    def from_dict(cls, data: dict, session_id: str | None = None) -> "Session":
        sid = session_id or data["sessionId"]
        created = parse_iso(data.get("createdAt")) or utcnow()
        provisional = data.get("provisional")
        if provisional is None:
            # Stores written before the tag existed
            provisional = sid.startswith(PROVISIONAL_PREFIX)
        return cls(
            id=sid,
            cwd=data["cwd"],
            name=data.get("name") or display_name(data["cwd"]),
            created_at=created,
            last_accessed=parse_iso(data.get("lastAccessed")) or created,
            provisional=bool(provisional),
        )


@dataclass
class ToolInvocation:
    """A tool the agent invoked during a turn."""

    name: str
    input: dict = field(default_factory=dict)
    status: str = "running"  # "running" | "complete" | "error"


@dataclass
class TranscriptMessage:
    """A single message within a client-side transcript."""

    id: str
    role: str  # "user" | "assistant"
    content: str = ""
    timestamp: Optional[datetime] = None
    thinking: str = ""
    tools: list[ToolInvocation] = field(default_factory=list)
    usage: Optional[dict[str, Any]] = None
    cost: Optional[float] = None
    is_streaming: bool = False
    is_thinking: bool = False
    is_error: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "thinking": self.thinking,
            "tools": [
                {"name": t.name, "input": t.input, "status": t.status}
                for t in self.tools
            ],
            "usage": self.usage,
            "cost": self.cost,
            "isStreaming": self.is_streaming,
            "isThinking": self.is_thinking,
            "isError": self.is_error,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TranscriptMessage":
        return cls(
            id=str(data["id"]),
            role=data.get("role", "assistant"),
            content=data.get("content", ""),
            timestamp=parse_iso(data.get("timestamp")),
            thinking=data.get("thinking", ""),
            tools=[
                ToolInvocation(
                    name=t.get("name", "unknown"),
                    input=t.get("input") or {},
                    status=t.get("status", "complete"),
                )
                for t in data.get("tools") or []
                if isinstance(t, dict)
            ],
            usage=data.get("usage"),
            cost=data.get("cost"),
            is_streaming=data.get("isStreaming", False),
            is_thinking=data.get("isThinking", False),
            is_error=data.get("isError", False),
        )


def display_name(cwd: str) -> str:
    """Return the final path segment of a working directory."""
    return Path(cwd).name or cwd


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_iso(value: str | None) -> datetime | None:
    """Parse an ISO 8601 datetime string."""
    if not value:
        return None
    try:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        return datetime.fromisoformat(value)
    except (ValueError, TypeError):
        return None
