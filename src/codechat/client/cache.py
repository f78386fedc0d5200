"""Client-local transcript cache, one JSON file per session."""

import json
import logging
import re
from pathlib import Path

from ..core import TranscriptMessage

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]")


class TranscriptCache:
    """Stores each session's messages under ``messages-<id>.json``.

    All operations are best-effort: unreadable files load as an empty
    transcript and failed writes are logged.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, session_id: str) -> Path:
        return self.directory / f"messages-{_UNSAFE.sub('_', session_id)}.json"

    def load(self, session_id: str) -> list[TranscriptMessage]:
        path = self.path_for(session_id)
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return [TranscriptMessage.from_dict(m) for m in data if isinstance(m, dict)]
        except (json.JSONDecodeError, OSError, KeyError, TypeError) as e:
            logger.warning("Failed to read cached transcript %s: %s", path, e)
            return []

    def store(self, session_id: str, messages) -> None:
        path = self.path_for(session_id)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path.write_text(
                json.dumps([m.to_dict() for m in messages], ensure_ascii=False),
                encoding="utf-8",
            )
        except OSError as e:
            logger.error("Failed to cache transcript %s: %s", path, e)

    def remove(self, session_id: str) -> None:
        try:
            self.path_for(session_id).unlink(missing_ok=True)
        except OSError as e:
            logger.error("Failed to remove cached transcript for %s: %s", session_id, e)

    def rename(self, old_id: str, new_id: str) -> None:
        """Move a cached transcript to a backend-assigned session id."""
        old_path = self.path_for(old_id)
        if not old_path.exists():
            return
        try:
            old_path.replace(self.path_for(new_id))
        except OSError as e:
            logger.error("Failed to move cached transcript %s -> %s: %s", old_id, new_id, e)
