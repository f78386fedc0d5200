"""Shared test fixtures for codechat."""

import pytest

from codechat.backend import AgentBackend
from codechat.store import SessionStore


class FakeBackend(AgentBackend):
    """Scripted backend: yields canned entries and records each call.

    If ``fail_with`` is set, it is raised after the scripted entries.
    """

    name = "fake"

    def __init__(self, entries=None, fail_with: Exception | None = None):
        self.entries = list(entries or [])
        self.fail_with = fail_with
        self.calls: list[dict] = []

    async def stream(self, prompt, *, cwd, resume=None):
        self.calls.append({"prompt": prompt, "cwd": cwd, "resume": resume})
        for entry in self.entries:
            yield entry
        if self.fail_with is not None:
            raise self.fail_with


def agent_turn(session_id: str, text: str = "Hello!", tools=(), usage=None, cost=0.0012):
    """Build a realistic backend event sequence for one successful turn."""
    content = [{"type": "thinking", "thinking": "Let me look."}]
    for name, tool_input in tools:
        content.append({"type": "tool_use", "id": f"toolu_{name}", "name": name, "input": tool_input})
    content.append({"type": "text", "text": text})
    return [
        {"type": "system", "subtype": "init", "session_id": session_id, "cwd": "/ignored"},
        {"type": "assistant", "message": {"content": content}},
        {"type": "user", "message": {"content": [{"type": "tool_result", "content": "ok"}]}},
        {
            "type": "result",
            "subtype": "success",
            "session_id": session_id,
            "usage": usage or {"input_tokens": 12, "output_tokens": 5},
            "total_cost_usd": cost,
        },
    ]


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "state" / "sessions.json"


@pytest.fixture
def store(store_path):
    store = SessionStore(store_path)
    store.load()
    return store


@pytest.fixture
def project_dir(tmp_path):
    """A working directory for sessions."""
    path = tmp_path / "projects" / "myapp"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def fake_backend():
    return FakeBackend(agent_turn("backend-uuid-001"))


@pytest.fixture
def make_turn():
    return agent_turn


@pytest.fixture
def make_backend():
    return FakeBackend
