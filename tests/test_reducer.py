"""Tests for the conversation state reducer."""

from codechat.client.reducer import ConversationState, append, mark_failed, reduce, replay, stop_streaming
from codechat.core import TranscriptMessage
from codechat.events import (
    ContentEvent,
    DoneEvent,
    ErrorEvent,
    ResultEvent,
    SessionEvent,
    ThinkingEvent,
    ToolUseEvent,
)

MSG_ID = "1700000000001"


def _streaming_state() -> ConversationState:
    state = append(ConversationState(), TranscriptMessage(id="1700000000000", role="user", content="Hi"))
    return append(state, TranscriptMessage(id=MSG_ID, role="assistant", is_streaming=True, is_thinking=True))


def test_content_result_done():
    state = replay(_streaming_state(), MSG_ID, [
        ContentEvent("Hi"),
        ContentEvent(" there"),
        ResultEvent(success=True, usage={"input_tokens": 5, "output_tokens": 2}),
        DoneEvent(),
    ])

    msg = state.get(MSG_ID)
    assert msg.content == "Hi there"
    assert msg.is_streaming is False
    assert msg.is_thinking is False
    assert msg.usage == {"input_tokens": 5, "output_tokens": 2}
    assert msg.is_error is False


def test_error_then_done():
    state = replay(_streaming_state(), MSG_ID, [ErrorEvent("boom"), DoneEvent()])

    msg = state.get(MSG_ID)
    assert msg.is_error is True
    assert "boom" in msg.content
    assert msg.content.startswith("Error: ")
    assert msg.is_streaming is False


def test_thinking_until_first_content():
    state = reduce(_streaming_state(), MSG_ID, ThinkingEvent("Hmm, "))
    state = reduce(state, MSG_ID, ThinkingEvent("let me see."))
    msg = state.get(MSG_ID)
    assert msg.thinking == "Hmm, let me see."
    assert msg.is_thinking is True

    state = reduce(state, MSG_ID, ContentEvent("Answer"))
    msg = state.get(MSG_ID)
    assert msg.is_thinking is False
    assert msg.is_streaming is True


def test_tools_run_then_complete():
    state = replay(_streaming_state(), MSG_ID, [
        ToolUseEvent("Read", {"file_path": "a.py"}),
        ToolUseEvent("Bash", {"command": "pytest"}),
    ])
    msg = state.get(MSG_ID)
    assert [(t.name, t.status) for t in msg.tools] == [("Read", "running"), ("Bash", "running")]
    assert msg.tools[0].input == {"file_path": "a.py"}

    state = reduce(state, MSG_ID, ResultEvent(success=True, cost=0.25))
    msg = state.get(MSG_ID)
    assert all(t.status == "complete" for t in msg.tools)
    assert msg.cost == 0.25


def test_session_event_updates_conversation():
    state = reduce(_streaming_state(), MSG_ID, SessionEvent("backend-1", "/work/app"))
    assert state.session_id == "backend-1"
    assert state.cwd == "/work/app"


def test_unparseable_event_is_ignored():
    state = _streaming_state()
    assert reduce(state, MSG_ID, None) == state


def test_unknown_message_id_is_ignored():
    state = _streaming_state()
    assert reduce(state, "nope", ContentEvent("x")) == state


def test_replay_is_deterministic_and_pure():
    events = [
        SessionEvent("backend-1", "/work/app"),
        ThinkingEvent("plan"),
        ToolUseEvent("Glob", {"pattern": "*.py"}),
        ContentEvent("Found 3 files."),
        ResultEvent(success=True, usage={"input_tokens": 1, "output_tokens": 1}, cost=0.1),
        DoneEvent(),
    ]
    initial = _streaming_state()
    snapshot = [m.to_dict() for m in initial.messages]

    first = replay(initial, MSG_ID, events)
    second = replay(initial, MSG_ID, events)

    assert first == second
    assert [m.to_dict() for m in initial.messages] == snapshot


def test_stop_streaming_keeps_partial_content():
    state = reduce(_streaming_state(), MSG_ID, ContentEvent("partial"))
    state = stop_streaming(state, MSG_ID)
    msg = state.get(MSG_ID)
    assert msg.content == "partial"
    assert msg.is_streaming is False
    assert msg.is_error is False


def test_mark_failed():
    state = mark_failed(_streaming_state(), MSG_ID, "Connection error: refused")
    msg = state.get(MSG_ID)
    assert msg.is_error is True
    assert msg.content == "Connection error: refused"
