"""Conversation state reducer.

Folds wire events into a transcript. Every function here is pure: it
returns a new ``ConversationState`` and never mutates its input, so the
same event sequence always yields the same transcript.
"""

from dataclasses import dataclass, field, replace
from typing import Callable, Iterable, Optional

from ..core import ToolInvocation, TranscriptMessage
from ..events import (
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    ResultEvent,
    SessionEvent,
    ThinkingEvent,
    ToolUseEvent,
    WireEvent,
)

ERROR_PREFIX = "Error: "


@dataclass(frozen=True)
class ConversationState:
    """The active conversation: backend session, working directory and transcript."""

    session_id: Optional[str] = None
    cwd: Optional[str] = None
    messages: tuple[TranscriptMessage, ...] = field(default_factory=tuple)

    def get(self, message_id: str) -> TranscriptMessage | None:
        return next((m for m in self.messages if m.id == message_id), None)


def reduce(state: ConversationState, message_id: str, event: WireEvent | None) -> ConversationState:
    """Apply one event to the assistant message ``message_id``."""
    if isinstance(event, SessionEvent):
        return replace(state, session_id=event.session_id, cwd=event.cwd or state.cwd)
    return _update(state, message_id, lambda m: _reduce_message(m, event))


def replay(state: ConversationState, message_id: str, events: Iterable[WireEvent]) -> ConversationState:
    """Fold a sequence of events."""
    for event in events:
        state = reduce(state, message_id, event)
    return state


def append(state: ConversationState, message: TranscriptMessage) -> ConversationState:
    return replace(state, messages=state.messages + (message,))


def stop_streaming(state: ConversationState, message_id: str) -> ConversationState:
    """Close a message without touching its content (used on abort)."""
    return _update(state, message_id, lambda m: replace(m, is_streaming=False, is_thinking=False))


def mark_failed(state: ConversationState, message_id: str, text: str) -> ConversationState:
    """Replace a message's text with a failure notice."""
    return _update(
        state,
        message_id,
        lambda m: replace(m, content=text, is_streaming=False, is_thinking=False, is_error=True),
    )


def _update(
    state: ConversationState,
    message_id: str,
    fn: Callable[[TranscriptMessage], TranscriptMessage],
) -> ConversationState:
    if state.get(message_id) is None:
        return state
    return replace(
        state,
        messages=tuple(fn(m) if m.id == message_id else m for m in state.messages),
    )


def _reduce_message(message: TranscriptMessage, event: WireEvent | None) -> TranscriptMessage:
    if isinstance(event, ThinkingEvent):
        return replace(message, thinking=message.thinking + event.content, is_thinking=True)

    if isinstance(event, ContentEvent):
        return replace(message, content=message.content + event.content, is_thinking=False)

    if isinstance(event, ToolUseEvent):
        tool = ToolInvocation(name=event.tool, input=event.input, status="running")
        return replace(message, tools=[*message.tools, tool])

    if isinstance(event, ResultEvent):
        return replace(
            message,
            tools=[replace(t, status="complete") for t in message.tools],
            usage=event.usage,
            cost=event.cost,
        )

    if isinstance(event, DoneEvent):
        return replace(message, is_streaming=False, is_thinking=False)

    if isinstance(event, ErrorEvent):
        return replace(
            message,
            content=f"{ERROR_PREFIX}{event.error}",
            is_streaming=False,
            is_thinking=False,
            is_error=True,
        )

    return message
