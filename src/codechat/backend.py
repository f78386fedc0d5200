"""Agent backend boundary.

The relay talks to the agent through ``AgentBackend.stream``, which
yields backend-internal events as plain mappings in the agent transcript
shape:

- ``{"type": "system", "subtype": "init", "session_id": ...}``
- ``{"type": "assistant", "message": {"content": str | [blocks]}}``, where
  blocks are ``text``, ``thinking`` or ``tool_use`` mappings.
- ``{"type": "result", "subtype": ..., "session_id": ..., "usage": ...,
  "total_cost_usd": ...}``
- ``{"type": "user", ...}`` for tool results fed back to the agent.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from claude_agent_sdk import (
    AssistantMessage,
    ClaudeAgentOptions,
    ClaudeSDKError,
    ResultMessage,
    SystemMessage,
    TextBlock,
    ThinkingBlock,
    ToolUseBlock,
    query,
)

from .errors import BackendError

ALLOWED_TOOLS = [
    "Read", "Write", "Edit", "Bash", "Glob", "Grep",
    "WebSearch", "WebFetch", "TodoWrite",
]
PERMISSION_MODE = "bypassPermissions"
MAX_TURNS = 10


class AgentBackend(ABC):
    """Base class for conversational agent backends."""

    name: str

    @abstractmethod
    def stream(self, prompt: str, *, cwd: str, resume: str | None = None) -> AsyncIterator[dict]:
        """Run one turn and yield backend events as they arrive.

        ``resume`` is a backend session id whose context the turn continues.
        """
        ...


class ClaudeAgentBackend(AgentBackend):
    """Backend driving the Claude Agent SDK."""

    name = "claude"

    def __init__(self, allowed_tools: list[str] | None = None, max_turns: int = MAX_TURNS):
        self.allowed_tools = list(allowed_tools or ALLOWED_TOOLS)
        self.max_turns = max_turns

    def build_options(self, cwd: str, resume: str | None = None) -> ClaudeAgentOptions:
        return ClaudeAgentOptions(
            cwd=cwd,
            permission_mode=PERMISSION_MODE,
            allowed_tools=self.allowed_tools,
            max_turns=self.max_turns,
            resume=resume,
        )

    async def stream(self, prompt: str, *, cwd: str, resume: str | None = None) -> AsyncIterator[dict]:
        options = self.build_options(cwd, resume)
        try:
            async for message in query(prompt=prompt, options=options):
                entry = message_to_entry(message)
                if entry is not None:
                    yield entry
        except ClaudeSDKError as e:
            raise BackendError(str(e) or type(e).__name__) from e


def message_to_entry(message) -> dict | None:
    """Convert an SDK message to a backend event mapping.

    Returns None for message kinds the relay does not consume.
    """
    if isinstance(message, SystemMessage):
        data = dict(message.data or {})
        data["type"] = "system"
        data["subtype"] = message.subtype
        return data

    if isinstance(message, AssistantMessage):
        content = message.content
        if isinstance(content, str):
            return {"type": "assistant", "message": {"content": content}}
        return {
            "type": "assistant",
            "message": {"content": [b for b in (_block_to_dict(b) for b in content) if b]},
        }

    if isinstance(message, ResultMessage):
        return {
            "type": "result",
            "subtype": message.subtype,
            "session_id": message.session_id,
            "is_error": message.is_error,
            "num_turns": message.num_turns,
            "usage": message.usage,
            "total_cost_usd": message.total_cost_usd,
        }

    return None


def _block_to_dict(block) -> dict | None:
    if isinstance(block, TextBlock):
        return {"type": "text", "text": block.text}
    if isinstance(block, ThinkingBlock):
        return {"type": "thinking", "thinking": block.thinking}
    if isinstance(block, ToolUseBlock):
        return {"type": "tool_use", "id": block.id, "name": block.name, "input": block.input}
    return None
