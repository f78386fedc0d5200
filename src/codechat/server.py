"""FastAPI relay server for codechat."""

import logging
from collections.abc import AsyncIterator

from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from .backend import AgentBackend, ClaudeAgentBackend
from .browse import list_directory
from .config import get_store_path
from .errors import CodeChatError, NotFoundError, ValidationError
from .events import WireEvent, encode_event
from .relay import AgentRelay
from .store import SessionStore

logger = logging.getLogger(__name__)

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


class ChatRequest(BaseModel):
    message: str | None = None
    sessionId: str | None = None


class CreateSessionRequest(BaseModel):
    cwd: str | None = None


def _get_relay(request: Request) -> AgentRelay:
    """Lazily build the relay from the configured store and backend."""
    state = request.app.state
    if state.relay is None:
        store = state.store
        if store is None:
            store = SessionStore(get_store_path())
            store.load()
            logger.info("Loaded %d sessions from %s", len(store), store.path)
            state.store = store
        backend = state.backend or ClaudeAgentBackend()
        state.relay = AgentRelay(store, backend)
    return state.relay


def _describe_validation_error(exc: RequestValidationError) -> str:
    """Summarize the first invalid field, e.g. "Invalid message: Input should be a valid string"."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"Invalid {field or 'request'}: {first.get('msg', 'invalid value')}"


async def _encode_stream(events: AsyncIterator[WireEvent]) -> AsyncIterator[str]:
    async for event in events:
        yield encode_event(event)


# ── Routes ───────────────────────────────────────────────────────

router = APIRouter()


@router.get("/health")
async def health():
    return {"status": "ok"}


@router.post("/chat")
async def chat(body: ChatRequest, request: Request):
    """Run one turn, streaming wire events as server-sent events."""
    relay = _get_relay(request)
    events = relay.handle_turn(body.message, body.sessionId)
    return StreamingResponse(
        _encode_stream(events),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )


@router.get("/sessions")
async def get_sessions(request: Request):
    """Return all known sessions, most recently used first."""
    store = _get_relay(request).store
    return {"sessions": [s.to_dict() for s in store.all()]}


@router.post("/sessions")
async def create_session(body: CreateSessionRequest, request: Request):
    """Create a provisional session rooted at a working directory."""
    if not body.cwd:
        raise ValidationError("cwd is required")
    store = _get_relay(request).store
    return store.create(body.cwd).to_dict()


@router.delete("/sessions/{session_id}")
async def delete_session(session_id: str, request: Request):
    store = _get_relay(request).store
    if not store.delete(session_id):
        raise NotFoundError("Session not found")
    return {"success": True}


@router.get("/browse")
async def browse(path: str | None = Query(None, description="Directory to list")):
    """List subdirectories for the folder picker."""
    return list_directory(path)


def create_app(store: SessionStore | None = None, backend: AgentBackend | None = None) -> FastAPI:
    """Build the relay application.

    ``store`` and ``backend`` default to the configured session file and
    the Claude Agent SDK backend, created on first request.
    """
    application = FastAPI(title="codechat", version="0.1.0")
    application.state.store = store
    application.state.backend = backend
    application.state.relay = None

    @application.exception_handler(CodeChatError)
    async def handle_codechat_error(request: Request, exc: CodeChatError):
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})

    @application.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": _describe_validation_error(exc)})

    application.include_router(router)
    application.include_router(router, prefix="/api")
    return application


app = create_app()
