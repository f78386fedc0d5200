"""Durable session store.

Sessions are kept in memory and mirrored to a single JSON file keyed by
session id. Every mutation rewrites the whole file. Persistence is
best-effort: failed reads start from an empty store, failed writes are
logged and the in-memory state stays authoritative.
"""

import json
import logging
import os
import time
from dataclasses import replace
from pathlib import Path

from .core import PROVISIONAL_PREFIX, Session, display_name, utcnow
from .errors import InvalidDirectory, PersistenceError

logger = logging.getLogger(__name__)


class SessionStore:
    """Owns the session mapping and exclusive write access to its file."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._sessions: dict[str, Session] = {}
        self._last_id_ms = 0

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    # ── Persistence ──────────────────────────────────────────────────

    def load(self) -> dict[str, Session]:
        """Read the store file, replacing the in-memory mapping."""
        self._sessions = {}
        try:
            self._sessions = self._read()
        except PersistenceError as e:
            logger.warning("Ignoring unreadable session store %s: %s", self.path, e)
        return dict(self._sessions)

    def save(self) -> None:
        """Write the full mapping to disk, logging any failure."""
        try:
            self._write()
        except PersistenceError as e:
            logger.error("Failed to persist sessions to %s: %s", self.path, e)

    def _read(self) -> dict[str, Session]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            raise PersistenceError(str(e)) from e

        if not isinstance(data, dict):
            raise PersistenceError("expected a JSON object at top level")

        sessions = {}
        for session_id, entry in data.items():
            if not isinstance(entry, dict):
                logger.warning("Skipping malformed session record %r", session_id)
                continue
            try:
                sessions[session_id] = Session.from_dict(entry, session_id=session_id)
            except (KeyError, TypeError) as e:
                logger.warning("Skipping malformed session record %r: %s", session_id, e)
        return sessions

    def _write(self) -> None:
        payload = {sid: s.to_dict() for sid, s in self._sessions.items()}
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise PersistenceError(str(e)) from e

    # ── Queries ──────────────────────────────────────────────────────

    def get(self, session_id: str | None) -> Session | None:
        if not session_id:
            return None
        return self._sessions.get(session_id)

    def all(self) -> list[Session]:
        """Return all sessions, most recently accessed first."""
        return sorted(self._sessions.values(), key=lambda s: s.last_accessed, reverse=True)

    # ── Mutations ────────────────────────────────────────────────────

    def create(self, cwd: str) -> Session:
        """Create a provisional session rooted at ``cwd``."""
        path = Path(cwd).expanduser()
        if not path.is_dir():
            raise InvalidDirectory(f"Not a directory: {cwd}")

        resolved = str(path.resolve())
        now = utcnow()
        session = Session(
            id=self._new_provisional_id(),
            cwd=resolved,
            name=display_name(resolved),
            created_at=now,
            last_accessed=now,
            provisional=True,
        )
        self._sessions[session.id] = session
        self.save()
        logger.info("Created session %s in %s", session.id, resolved)
        return session

    def insert(self, session_id: str, cwd: str) -> Session:
        """Record a backend-assigned session that had no provisional record."""
        now = utcnow()
        session = Session(
            id=session_id,
            cwd=cwd,
            name=display_name(cwd),
            created_at=now,
            last_accessed=now,
        )
        self._sessions[session_id] = session
        self.save()
        logger.info("Recorded session %s in %s", session_id, cwd)
        return session

    def rename(self, old_id: str, new_id: str) -> Session | None:
        """Move a record to the backend-assigned id. No-op if ``old_id`` is unknown."""
        old = self._sessions.pop(old_id, None)
        if old is None:
            return None

        session = replace(old, id=new_id, provisional=False, last_accessed=utcnow())
        self._sessions[new_id] = session
        self.save()
        logger.info("Session %s is now %s", old_id, new_id)
        return session

    def touch(self, session_id: str) -> None:
        session = self._sessions.get(session_id)
        if session is None:
            return
        session.last_accessed = utcnow()
        self.save()

    def delete(self, session_id: str) -> bool:
        """Remove a session. Returns False (and writes nothing) if it is unknown."""
        if session_id not in self._sessions:
            return False
        del self._sessions[session_id]
        self.save()
        logger.info("Deleted session %s", session_id)
        return True

    def _new_provisional_id(self) -> str:
        ms = int(time.time() * 1000)
        if ms <= self._last_id_ms:
            ms = self._last_id_ms + 1
        while f"{PROVISIONAL_PREFIX}{ms}" in self._sessions:
            ms += 1
        self._last_id_ms = ms
        return f"{PROVISIONAL_PREFIX}{ms}"
