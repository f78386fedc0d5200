"""Session UI controller.

Coordinates the relay client, the local transcript cache and the
conversation reducer: session lifecycle (create, select, delete), sending
a turn, and aborting it.
"""

import asyncio
import logging
import time
from contextlib import aclosing
from dataclasses import replace
from typing import Callable, Optional

import httpx

from ..core import Session, TranscriptMessage, utcnow
from ..errors import CodeChatError
from ..events import SessionEvent, WireEvent
from .api import RelayClient
from .cache import TranscriptCache
from .decoder import decode_stream
from .reducer import ConversationState, append, mark_failed, reduce, stop_streaming

logger = logging.getLogger(__name__)

CONNECTION_ERROR_PREFIX = "Connection error: "


class SessionController:
    """Client-side state for the session list and the active conversation.

    ``on_change`` is called with the controller after every change that
    affects what should be rendered.
    """

    def __init__(
        self,
        client: RelayClient,
        cache: TranscriptCache,
        on_change: Optional[Callable[["SessionController"], None]] = None,
    ):
        self.client = client
        self.cache = cache
        self.on_change = on_change
        self.sessions: list[Session] = []
        self.state = ConversationState()
        self.is_loading = False
        self._reader: asyncio.Future | None = None
        self._aborted = False
        self._last_id_ms = 0

    @property
    def active_session_id(self) -> str | None:
        return self.state.session_id

    @property
    def working_dir(self) -> str | None:
        return self.state.cwd

    @property
    def messages(self) -> list[TranscriptMessage]:
        return list(self.state.messages)

    # ── Session lifecycle ────────────────────────────────────────────

    async def load_sessions(self) -> list[Session]:
        try:
            self.sessions = await self.client.list_sessions()
        except (httpx.HTTPError, CodeChatError) as e:
            logger.error("Failed to load sessions: %s", e)
        self._changed()
        return self.sessions

    async def create_session(self, cwd: str) -> Session:
        """Create a session on the relay and make it active."""
        session = await self.client.create_session(cwd)
        self.sessions.append(session)
        self.select_session(session.id)
        return session

    def select_session(self, session_id: str) -> bool:
        """Swap in a session's cached transcript. Returns False if it is unknown."""
        session = self._find(session_id)
        if session is None:
            return False
        self.state = ConversationState(
            session_id=session.id,
            cwd=session.cwd,
            messages=tuple(self.cache.load(session.id)),
        )
        self._changed()
        return True

    async def delete_session(self, session_id: str) -> None:
        await self.client.delete_session(session_id)
        self.sessions = [s for s in self.sessions if s.id != session_id]
        self.cache.remove(session_id)
        if self.state.session_id == session_id:
            self.state = ConversationState()
        self._changed()

    # ── Turns ────────────────────────────────────────────────────────

    async def send(self, text: str) -> TranscriptMessage | None:
        """Send a turn and fold its events into the transcript.

        Returns the assistant message, or None if nothing was sent (blank
        input or a turn already in flight).
        """
        if not text.strip() or self.is_loading:
            return None

        now = utcnow()
        user_id = self._next_id()
        assistant_id = self._next_id()
        self.state = append(self.state, TranscriptMessage(id=user_id, role="user", content=text, timestamp=now))
        self.state = append(self.state, TranscriptMessage(
            id=assistant_id,
            role="assistant",
            timestamp=now,
            is_streaming=True,
            is_thinking=True,
        ))
        self.is_loading = True
        self._aborted = False
        self._persist()
        self._changed()

        self._reader = asyncio.ensure_future(self._read_turn(text, assistant_id))
        try:
            await self._reader
        except asyncio.CancelledError:
            if not self._aborted:
                raise
        except (httpx.HTTPError, CodeChatError) as e:
            if not self._aborted:
                logger.error("Turn failed: %s", e)
                self.state = mark_failed(self.state, assistant_id, f"{CONNECTION_ERROR_PREFIX}{e}")
        finally:
            # Partial output is kept; only the streaming flags are cleared.
            self.state = stop_streaming(self.state, assistant_id)
            self.is_loading = False
            self._reader = None
            self._persist()
            self._changed()

        return self.state.get(assistant_id)

    def abort(self) -> None:
        """Stop the in-flight turn, closing its response immediately."""
        if self._reader is None:
            return
        self._aborted = True
        if not self._reader.done():
            self._reader.cancel()

    async def _read_turn(self, text: str, message_id: str) -> None:
        async with self.client.open_turn(text, self.state.session_id) as chunks:
            async with aclosing(decode_stream(chunks)) as events:
                async for event in events:
                    if self._aborted:
                        break
                    self._apply(message_id, event)

    # ── Private helpers ──────────────────────────────────────────────

    def _apply(self, message_id: str, event: WireEvent) -> None:
        if isinstance(event, SessionEvent):
            self._adopt_session_id(event.session_id)
        self.state = reduce(self.state, message_id, event)
        self._persist()
        self._changed()

    def _adopt_session_id(self, new_id: str) -> None:
        """Patch the session list (and cache) when the backend assigns an id."""
        old_id = self.state.session_id
        if old_id is None or old_id == new_id:
            return
        self.sessions = [
            replace(s, id=new_id, provisional=False) if s.id == old_id else s
            for s in self.sessions
        ]
        self.cache.rename(old_id, new_id)

    def _persist(self) -> None:
        if self.state.session_id and self.state.messages:
            self.cache.store(self.state.session_id, self.state.messages)

    def _find(self, session_id: str) -> Session | None:
        return next((s for s in self.sessions if s.id == session_id), None)

    def _next_id(self) -> str:
        ms = int(time.time() * 1000)
        if ms <= self._last_id_ms:
            ms = self._last_id_ms + 1
        self._last_id_ms = ms
        return str(ms)

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change(self)
