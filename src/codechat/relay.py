"""Agent relay: runs one conversational turn and translates backend events.

A turn resolves its working directory and resume token from the session
store, streams the backend's events, re-encodes them as wire events and,
once the backend reports a final result, reconciles the store with the
backend-assigned session id.
"""

import logging
import os
from collections.abc import AsyncIterator

from .backend import AgentBackend
from .errors import ValidationError
from .events import (
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    ResultEvent,
    SessionEvent,
    ThinkingEvent,
    ToolUseEvent,
    WireEvent,
)
from .store import SessionStore

logger = logging.getLogger(__name__)

SUCCESS_SUBTYPE = "success"


class AgentRelay:
    """Relays turns between the HTTP surface and an agent backend."""

    def __init__(self, store: SessionStore, backend: AgentBackend, default_cwd: str | None = None):
        self.store = store
        self.backend = backend
        self.default_cwd = default_cwd

    def handle_turn(self, prompt: str | None, session_id: str | None = None) -> AsyncIterator[WireEvent]:
        """Validate a turn and return its wire event stream.

        Raises ValidationError for an empty prompt before the backend is
        touched.
        """
        if not prompt:
            raise ValidationError("Message is required")
        return self._run_turn(prompt, session_id or None)

    async def _run_turn(self, prompt: str, session_id: str | None) -> AsyncIterator[WireEvent]:
        session = self.store.get(session_id)
        cwd = session.cwd if session else (self.default_cwd or os.getcwd())
        resume = session.id if session and session.is_confirmed else None
        backend_id = None

        try:
            async for entry in self.backend.stream(prompt, cwd=cwd, resume=resume):
                entry_type = entry.get("type", "")

                if entry_type == "system" and entry.get("session_id"):
                    backend_id = entry["session_id"]
                    yield SessionEvent(session_id=backend_id, cwd=cwd)

                elif entry_type == "assistant":
                    for event in _assistant_events(entry):
                        yield event

                elif entry_type == "result":
                    backend_id = backend_id or entry.get("session_id")
                    yield ResultEvent(
                        success=entry.get("subtype") == SUCCESS_SUBTYPE,
                        usage=entry.get("usage"),
                        cost=entry.get("total_cost_usd"),
                    )
                    self._record_turn(session_id, backend_id, cwd)
        except Exception as e:
            logger.error("Turn failed for session %s: %s", session_id or "(new)", e)
            yield ErrorEvent(error=str(e) or type(e).__name__)

        yield DoneEvent()

    def _record_turn(self, session_id: str | None, backend_id: str | None, cwd: str) -> None:
        """Reconcile the store with the backend id observed for this turn."""
        if not backend_id:
            return

        if session_id:
            session = self.store.get(session_id)
            if session is None:
                return
            if session.id != backend_id:
                self.store.rename(session.id, backend_id)
            else:
                self.store.touch(backend_id)
        else:
            self.store.insert(backend_id, cwd)


def _assistant_events(entry: dict) -> list[WireEvent]:
    """Translate an assistant entry into wire events, in block order."""
    msg_data = entry.get("message", {})
    content = msg_data.get("content", [])

    if isinstance(content, str):
        return [ContentEvent(content)] if content else []

    events: list[WireEvent] = []
    for block in content:
        if not isinstance(block, dict):
            continue

        block_type = block.get("type", "")

        if block_type == "text":
            text = block.get("text", "")
            if text:
                events.append(ContentEvent(text))

        elif block_type == "thinking":
            text = block.get("thinking", "")
            if text:
                events.append(ThinkingEvent(text))

        elif block_type == "tool_use":
            events.append(ToolUseEvent(
                tool=block.get("name", "unknown"),
                input=block.get("input", {}),
            ))

    return events
