"""Tests for the agent relay."""

import pytest

from codechat.errors import ValidationError
from codechat.events import (
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    ResultEvent,
    SessionEvent,
    ThinkingEvent,
    ToolUseEvent,
)
from codechat.relay import AgentRelay


async def _collect(events):
    return [e async for e in events]


@pytest.mark.asyncio
async def test_translates_backend_events(store, project_dir, make_backend, make_turn):
    backend = make_backend(make_turn(
        "backend-uuid-001",
        text="Done.",
        tools=[("Bash", {"command": "ls"})],
        usage={"input_tokens": 5, "output_tokens": 2},
        cost=0.5,
    ))
    relay = AgentRelay(store, backend, default_cwd=str(project_dir))

    events = await _collect(relay.handle_turn("list files"))

    assert events == [
        SessionEvent(session_id="backend-uuid-001", cwd=str(project_dir)),
        ThinkingEvent("Let me look."),
        ToolUseEvent(tool="Bash", input={"command": "ls"}),
        ContentEvent("Done."),
        ResultEvent(success=True, usage={"input_tokens": 5, "output_tokens": 2}, cost=0.5),
        DoneEvent(),
    ]


@pytest.mark.asyncio
async def test_string_content_and_failed_result(store, project_dir, make_backend):
    backend = make_backend([
        {"type": "system", "subtype": "init", "session_id": "s1"},
        {"type": "assistant", "message": {"content": "plain "}},
        {"type": "assistant", "message": {"content": [{"type": "text", "text": "text"}]}},
        {"type": "result", "subtype": "error_max_turns", "session_id": "s1", "usage": None},
    ])
    relay = AgentRelay(store, backend, default_cwd=str(project_dir))

    events = await _collect(relay.handle_turn("hi"))

    contents = [e.content for e in events if isinstance(e, ContentEvent)]
    assert "".join(contents) == "plain text"
    result = next(e for e in events if isinstance(e, ResultEvent))
    assert result.success is False
    assert events[-1] == DoneEvent()


@pytest.mark.asyncio
async def test_provisional_session_is_renamed_to_backend_id(store, project_dir, fake_backend):
    provisional = store.create(str(project_dir))
    relay = AgentRelay(store, fake_backend)

    await _collect(relay.handle_turn("hello", provisional.id))

    assert fake_backend.calls[0]["cwd"] == str(project_dir.resolve())
    assert fake_backend.calls[0]["resume"] is None
    assert len(store) == 1
    session = store.get("backend-uuid-001")
    assert session is not None
    assert session.provisional is False
    assert session.cwd == str(project_dir.resolve())
    assert provisional.id not in store


@pytest.mark.asyncio
async def test_confirmed_session_is_resumed(store, project_dir, make_backend, make_turn):
    store.insert("backend-uuid-001", str(project_dir))
    before = store.get("backend-uuid-001").last_accessed
    backend = make_backend(make_turn("backend-uuid-001"))
    relay = AgentRelay(store, backend)

    await _collect(relay.handle_turn("continue", "backend-uuid-001"))

    assert backend.calls[0]["resume"] == "backend-uuid-001"
    assert len(store) == 1
    assert store.get("backend-uuid-001").last_accessed >= before


@pytest.mark.asyncio
async def test_resumed_session_with_new_backend_id(store, project_dir, make_backend, make_turn):
    store.insert("backend-uuid-001", str(project_dir))
    backend = make_backend(make_turn("backend-uuid-002"))
    relay = AgentRelay(store, backend)

    await _collect(relay.handle_turn("continue", "backend-uuid-001"))

    assert "backend-uuid-001" not in store
    assert store.get("backend-uuid-002").cwd == str(project_dir)


@pytest.mark.asyncio
async def test_new_conversation_records_session(store, project_dir, fake_backend):
    relay = AgentRelay(store, fake_backend, default_cwd=str(project_dir))

    await _collect(relay.handle_turn("hello"))

    assert fake_backend.calls[0]["resume"] is None
    session = store.get("backend-uuid-001")
    assert session.cwd == str(project_dir)
    assert session.name == "myapp"


@pytest.mark.asyncio
async def test_unknown_session_id_uses_default_cwd(store, project_dir, fake_backend):
    relay = AgentRelay(store, fake_backend, default_cwd=str(project_dir))

    await _collect(relay.handle_turn("hello", "never-seen"))

    assert fake_backend.calls[0]["cwd"] == str(project_dir)
    assert fake_backend.calls[0]["resume"] is None
    assert len(store) == 0


@pytest.mark.asyncio
async def test_session_id_taken_from_result_without_init(store, project_dir, make_backend):
    backend = make_backend([
        {"type": "assistant", "message": {"content": "ok"}},
        {"type": "result", "subtype": "success", "session_id": "late-id"},
    ])
    relay = AgentRelay(store, backend, default_cwd=str(project_dir))

    events = await _collect(relay.handle_turn("hi"))

    assert not any(isinstance(e, SessionEvent) for e in events)
    assert "late-id" in store


@pytest.mark.asyncio
async def test_backend_failure_emits_error_then_done(store, project_dir, make_backend):
    backend = make_backend(
        [{"type": "system", "subtype": "init", "session_id": "s1"}],
        fail_with=RuntimeError("boom"),
    )
    relay = AgentRelay(store, backend, default_cwd=str(project_dir))

    events = await _collect(relay.handle_turn("hi"))

    assert events == [
        SessionEvent(session_id="s1", cwd=str(project_dir)),
        ErrorEvent("boom"),
        DoneEvent(),
    ]
    assert len(store) == 0


@pytest.mark.parametrize("prompt", ["", None])
def test_empty_prompt_rejected_before_backend(store, fake_backend, prompt):
    relay = AgentRelay(store, fake_backend)

    with pytest.raises(ValidationError):
        relay.handle_turn(prompt)

    assert fake_backend.calls == []
